"""
Keyword-based error classification.

Converts an arbitrary raised value into a structured ErrorDetails record.

IMPORTANT:
- Classification is deterministic: the same message always maps to the
  same category, severity and recoverability.
- Categories are matched in table order and the first match wins.
  NETWORK_RELATED is checked first so that transport failures
  ("timeout", "connection") are never shadowed by generic keywords such
  as "error" or "failed".
- The classifier suggests recovery strategies. It never retries.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

from docbridge.app.schemas.errors import (
    ErrorCategory,
    ErrorContext,
    ErrorDetails,
    ErrorSeverity,
    OperationName,
    RecoveryStrategy,
)
from docbridge.app.utils.timing import now_ms

logger = logging.getLogger(__name__)

MAX_RECOVERY_ATTEMPTS = 3
EMPTY_MESSAGE = "Empty error message"
UNKNOWN_MESSAGE = "Unknown error"


class CategoryRule(NamedTuple):
    category: ErrorCategory
    severity: ErrorSeverity
    recoverable: bool
    keywords: Tuple[str, ...]


CATEGORY_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule(
        ErrorCategory.NETWORK_RELATED,
        ErrorSeverity.MEDIUM,
        True,
        ("network", "timeout", "connection", "fetch", "request"),
    ),
    CategoryRule(
        ErrorCategory.CRITICAL_SYSTEM,
        ErrorSeverity.CRITICAL,
        False,
        ("critical", "fatal", "system", "crash", "corruption"),
    ),
    CategoryRule(
        ErrorCategory.HIGH_OPERATION,
        ErrorSeverity.HIGH,
        True,
        ("error", "failed", "exception", "abort", "rejected"),
    ),
    CategoryRule(
        ErrorCategory.MEDIUM_VALIDATION,
        ErrorSeverity.MEDIUM,
        True,
        ("warning", "deprecated", "invalid", "missing", "incomplete"),
    ),
    CategoryRule(
        ErrorCategory.PERMISSION_DENIED,
        ErrorSeverity.HIGH,
        False,
        ("permission", "unauthorized", "forbidden", "access", "denied"),
    ),
    CategoryRule(
        ErrorCategory.DATA_PROCESSING,
        ErrorSeverity.MEDIUM,
        True,
        ("parse", "serialize", "transform", "convert", "format"),
    ),
    CategoryRule(
        ErrorCategory.BRIDGE_SPECIFIC,
        ErrorSeverity.HIGH,
        True,
        ("bridge", "transfer", "sync", "extraction", "transformation"),
    ),
)

DEFAULT_RULE = CategoryRule(
    ErrorCategory.UNKNOWN_ERROR,
    ErrorSeverity.MEDIUM,
    True,
    (),
)

RECOVERY_STRATEGIES = frozenset(
    {
        RecoveryStrategy.RETRY_OPERATION,
        RecoveryStrategy.FALLBACK_EXECUTION,
        RecoveryStrategy.USER_INTERVENTION,
    }
)


def extract_message(raw: Any) -> str:
    """
    Best-effort human-readable message from any raised value.
    """
    if isinstance(raw, BaseException):
        message = str(raw) or type(raw).__name__
    elif isinstance(raw, str):
        message = raw
    elif raw is None:
        message = UNKNOWN_MESSAGE
    else:
        try:
            message = str(raw)
        except Exception as exc:
            logger.debug("Could not stringify raised value: %s", exc)
            message = type(raw).__name__

    return message if message.strip() else EMPTY_MESSAGE


def categorize(message: str) -> CategoryRule:
    lowered = message.lower()
    for rule in CATEGORY_RULES:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule
    return DEFAULT_RULE


class ErrorClassifier:
    """
    Stateless converter from raised values to ErrorDetails.
    """

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock

    def classify(
        self,
        raw: Any,
        *,
        operation: OperationName = OperationName.TRANSFER,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorDetails:
        message = extract_message(raw)
        rule = categorize(message)
        timestamp = self._clock()

        details = ErrorDetails(
            code=f"{rule.category.value}-{str(timestamp)[-6:]}",
            message=message,
            timestamp=timestamp,
            context=ErrorContext(
                operation=operation,
                data=dict(context or {}),
                severity=rule.severity,
                recoverable=rule.recoverable,
            ),
            severity=rule.severity,
            category=rule.category,
            is_recoverable=rule.recoverable,
            recovery_attempts=0,
            max_recovery_attempts=MAX_RECOVERY_ATTEMPTS if rule.recoverable else 0,
            recovery_strategies=RECOVERY_STRATEGIES if rule.recoverable else frozenset(),
        )

        logger.debug(
            "Classified %s error %s (%s, recoverable=%s): %s",
            operation.value,
            details.code,
            rule.severity.value,
            rule.recoverable,
            message,
        )
        return details

    # ------------------------------------------------------------------
    # Per-operation helpers
    # ------------------------------------------------------------------

    def handle_transfer_error(self, raw: Any, **context: Any) -> ErrorDetails:
        return self.classify(raw, operation=OperationName.TRANSFER, context=context)

    def handle_reverse_transfer_error(self, raw: Any, **context: Any) -> ErrorDetails:
        return self.classify(
            raw, operation=OperationName.REVERSE_TRANSFER, context=context
        )

    def handle_validation_error(self, raw: Any, **context: Any) -> ErrorDetails:
        return self.classify(raw, operation=OperationName.VALIDATION, context=context)

    def handle_extraction_error(self, raw: Any, **context: Any) -> ErrorDetails:
        return self.classify(raw, operation=OperationName.EXTRACTION, context=context)

    def handle_transformation_error(self, raw: Any, **context: Any) -> ErrorDetails:
        return self.classify(
            raw, operation=OperationName.TRANSFORMATION, context=context
        )

    def handle_update_error(self, raw: Any, **context: Any) -> ErrorDetails:
        return self.classify(raw, operation=OperationName.UPDATE, context=context)

    def handle(self, operation: OperationName, raw: Any, **context: Any) -> ErrorDetails:
        """
        Route a failure to the helper for the operation it was raised in.
        """
        handlers: Dict[OperationName, Callable[..., ErrorDetails]] = {
            OperationName.TRANSFER: self.handle_transfer_error,
            OperationName.REVERSE_TRANSFER: self.handle_reverse_transfer_error,
            OperationName.VALIDATION: self.handle_validation_error,
            OperationName.EXTRACTION: self.handle_extraction_error,
            OperationName.TRANSFORMATION: self.handle_transformation_error,
            OperationName.UPDATE: self.handle_update_error,
        }
        return handlers[operation](raw, **context)
