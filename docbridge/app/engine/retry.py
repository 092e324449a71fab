"""
Caller-side retry policy for bridge transfers.

The engine never retries on its own. Callers that want recovery wrap the
engine in a TransferRetryRunner, which re-runs a transfer while the
returned OperationResult carries a recoverable error.
"""

from __future__ import annotations

import logging
from typing import Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from docbridge.app.engine.engine import BridgeEngine
from docbridge.app.schemas.operation import OperationResult

logger = logging.getLogger(__name__)


def is_recoverable_failure(result: OperationResult) -> bool:
    return (not result.success) and any(
        error.is_recoverable for error in result.errors
    )


def _last_result(retry_state: RetryCallState) -> OperationResult:
    return retry_state.outcome.result()


def _log_retry(retry_state: RetryCallState) -> None:
    logger.info(
        "Retrying bridge transfer (attempt %d failed with a recoverable error)",
        retry_state.attempt_number,
    )


class TransferRetryRunner:
    def __init__(
        self,
        engine: BridgeEngine,
        *,
        max_attempts: Optional[int] = None,
        wait: Optional[wait_base] = None,
    ) -> None:
        self._engine = engine
        self._max_attempts = max_attempts
        self._wait = wait if wait is not None else wait_exponential(min=0.1, max=2)

    async def run_transfer(self) -> OperationResult:
        return await self._run(self._engine.execute_transfer)

    async def run_reverse_transfer(self) -> OperationResult:
        return await self._run(self._engine.execute_reverse_transfer)

    async def _run(self, operation) -> OperationResult:
        config = self._engine.get_configuration()
        if not config.enable_error_recovery:
            return await operation()

        attempts = self._max_attempts or config.max_retry_attempts

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait,
            retry=retry_if_result(is_recoverable_failure),
            before_sleep=_log_retry,
            retry_error_callback=_last_result,
        )

        result: OperationResult = await retrying(operation)
        attempt_number = retrying.statistics.get("attempt_number", 1)

        if result.success or attempt_number <= 1:
            return result

        # Record how many recovery attempts were made on the final errors
        return result.model_copy(
            update={
                "errors": [
                    error.model_copy(
                        update={"recovery_attempts": attempt_number - 1}
                    )
                    for error in result.errors
                ]
            }
        )
