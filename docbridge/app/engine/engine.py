"""
Bridge engine orchestrator.

IMPORTANT:
The engine SEQUENCES components. It does not derive content itself.

Its responsibilities are:
- checking preconditions
- enforcing phase order (preconditions -> extract -> transform -> update)
- enforcing the single-current-operation rule
- converting every failure into a classified ErrorDetails
- owning engine state and operation metrics

It MUST NOT:
- raise out of ``execute_*`` calls
- retry on its own (see ``TransferRetryRunner`` for a caller-side policy)
- share state with other engine instances
"""

from __future__ import annotations

import logging
import random
import string
from typing import Any, Awaitable, Callable, List, Mapping, NamedTuple, Optional, Union

import anyio

from docbridge.app.config import BridgeConfig, get_config
from docbridge.app.errors.classifier import ErrorClassifier
from docbridge.app.errors.exceptions import BridgeOperationError, StoreUnavailableError
from docbridge.app.events import (
    BridgeEvent,
    BridgeEventEmitter,
    BridgeEventType,
    NullEventEmitter,
)
from docbridge.app.extraction.document_extractor import DocumentSnapshotExtractor
from docbridge.app.extraction.external_data import (
    assess_external_data_quality,
    external_data_passes_preconditions,
    generate_snapshot_from_external_data,
)
from docbridge.app.extraction.wizard_extractor import WizardSnapshotExtractor
from docbridge.app.schemas.errors import ErrorDetails, OperationName
from docbridge.app.schemas.operation import (
    BidirectionalSyncResult,
    ComponentStatus,
    ConfigurationSummary,
    DataSource,
    EngineMetrics,
    EngineMetricsReport,
    EngineState,
    EngineStatus,
    ExternalData,
    ExternalDataQuality,
    OperationMetadata,
    OperationPhase,
    OperationResult,
    TransferDirection,
)
from docbridge.app.schemas.transformation import (
    ReverseTransformationResult,
    TransformationResult,
)
from docbridge.app.schemas.validation import ValidationResult
from docbridge.app.stores import DocumentStore, PersistedKeyStore, UiStore, WizardStore
from docbridge.app.transform.cache import CacheManager
from docbridge.app.transform.forward import ForwardTransformer
from docbridge.app.transform.reverse import ReverseTransformer
from docbridge.app.update.document_updater import DocumentStateUpdater
from docbridge.app.update.wizard_updater import WizardStateUpdater
from docbridge.app.utils.timing import elapsed_ms, monotonic_ms, now_ms
from docbridge.app.validation.validator import StructuralValidator

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits

TransferredData = Union[TransformationResult, ReverseTransformationResult]


def new_operation_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=6))
    return f"bridge_{now_ms()}_{suffix}"


class Preconditions(NamedTuple):
    passed: bool
    data_source: Optional[DataSource]
    snapshot: Any = None
    validation: Optional[ValidationResult] = None


class PhaseOutcome(NamedTuple):
    data: TransferredData
    data_source: Optional[DataSource]
    warnings: List[str]


class BridgeEngine:
    """
    Explicitly constructed, dependency-injected bridge engine.

    Callers hold the instance. There is no global lookup.
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        extractor: DocumentSnapshotExtractor,
        validator: StructuralValidator,
        transformer: ForwardTransformer,
        wizard_updater: WizardStateUpdater,
        error_classifier: Optional[ErrorClassifier] = None,
        wizard_extractor: Optional[WizardSnapshotExtractor] = None,
        reverse_transformer: Optional[ReverseTransformer] = None,
        document_updater: Optional[DocumentStateUpdater] = None,
        external_data: Optional[ExternalData] = None,
        emitter: Optional[BridgeEventEmitter] = None,
    ) -> None:
        self._config = config
        self._extractor = extractor
        self._validator = validator
        self._transformer = transformer
        self._wizard_updater = wizard_updater
        self._classifier = error_classifier or ErrorClassifier()
        self._wizard_extractor = wizard_extractor
        self._reverse_transformer = reverse_transformer or ReverseTransformer(validator)
        self._document_updater = document_updater
        self._external_data = external_data
        self._emitter = emitter or NullEventEmitter()

        self._metrics = EngineMetrics()
        self._phase = OperationPhase.COMPLETE
        self._state = EngineState()
        self._set_state(
            is_initialized=True,
            has_external_data=external_data is not None,
            external_data_timestamp=(
                external_data.supplied_at if external_data is not None else None
            ),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute_transfer(
        self,
        *,
        emitter: Optional[BridgeEventEmitter] = None,
    ) -> OperationResult:
        """
        Document -> wizard transfer.
        """
        return await self._run_operation(
            direction=TransferDirection.DOCUMENT_TO_WIZARD,
            operation=OperationName.TRANSFER,
            runner=self._run_forward,
            emitter=emitter or self._emitter,
        )

    async def execute_reverse_transfer(
        self,
        *,
        emitter: Optional[BridgeEventEmitter] = None,
    ) -> OperationResult:
        """
        Wizard -> document transfer.
        """
        return await self._run_operation(
            direction=TransferDirection.WIZARD_TO_DOCUMENT,
            operation=OperationName.REVERSE_TRANSFER,
            runner=self._run_reverse,
            emitter=emitter or self._emitter,
        )

    async def execute_bidirectional_sync(self) -> BidirectionalSyncResult:
        """
        Forward transfer followed by reverse transfer.

        Both directions always run; the second is not skipped when the
        first fails.
        """
        started = monotonic_ms()

        forward = await self.execute_transfer()
        reverse = await self.execute_reverse_transfer()

        errors = [
            f"document -> wizard: {error.message}" for error in forward.errors
        ] + [
            f"wizard -> document: {error.message}" for error in reverse.errors
        ]

        return BidirectionalSyncResult(
            document_to_wizard_success=forward.success,
            wizard_to_document_success=reverse.success,
            overall_success=forward.success and reverse.success,
            errors=errors,
            duration_ms=elapsed_ms(started),
        )

    def check_preconditions(self) -> bool:
        return self._evaluate_preconditions().passed

    def has_external_data(self) -> bool:
        return self._external_data is not None

    def get_external_data_quality(self) -> Optional[ExternalDataQuality]:
        if self._external_data is None:
            return None
        return assess_external_data_quality(self._external_data)

    def get_configuration(self) -> BridgeConfig:
        return self._config

    def get_status(self) -> EngineStatus:
        return EngineStatus(
            state=self._state,
            configuration=ConfigurationSummary(
                enable_validation=self._config.enable_validation,
                enable_error_recovery=self._config.enable_error_recovery,
                debug_mode=self._config.debug_mode,
                max_retry_attempts=self._config.max_retry_attempts,
                timeout_ms=self._config.timeout_ms,
            ),
            metrics=self._metrics,
            is_ready=(
                self._state.is_initialized
                and self._state.current_operation_id is None
            ),
        )

    def get_metrics(self) -> EngineMetricsReport:
        components = ComponentStatus(
            extractor=self._extractor is not None,
            transformer=self._transformer is not None,
            reverse_transformer=self._reverse_transformer is not None,
            updater=self._wizard_updater is not None,
            validator=self._validator is not None,
            error_classifier=self._classifier is not None,
        )
        return EngineMetricsReport(
            metrics=self._metrics,
            components=components,
            all_components_operational=components.all_operational,
            cache_size=len(self._transformer.cache),
        )

    @property
    def cache(self) -> CacheManager:
        return self._transformer.cache

    async def invalidate_cache(self) -> None:
        self._transformer.cache.invalidate_all()
        await self._emit(
            self._emitter,
            "cache",
            BridgeEventType.CACHE_INVALIDATED,
            {"invalidation_signal": self._transformer.cache.invalidation_signal},
        )

    # ------------------------------------------------------------------
    # Operation wrapper
    # ------------------------------------------------------------------

    async def _run_operation(
        self,
        *,
        direction: TransferDirection,
        operation: OperationName,
        runner: Callable[[str, BridgeEventEmitter], Awaitable[PhaseOutcome]],
        emitter: BridgeEventEmitter,
    ) -> OperationResult:
        operation_id = new_operation_id()

        if self._state.current_operation_id is not None:
            return await self._reject(operation_id, direction, operation, emitter)

        started = monotonic_ms()
        self._phase = OperationPhase.CHECK_PRECONDITIONS
        self._set_state(
            current_operation_id=operation_id,
            operation_count=self._state.operation_count + 1,
        )

        try:
            return await self._drive(
                operation_id, direction, operation, runner, emitter, started
            )
        finally:
            # Cancelled by the caller before an outcome was recorded
            if self._state.current_operation_id == operation_id:
                logger.warning(
                    "Bridge operation %s was cancelled during %s",
                    operation_id,
                    self._phase.value,
                )
                self._record_outcome(success=False)

    async def _drive(
        self,
        operation_id: str,
        direction: TransferDirection,
        operation: OperationName,
        runner: Callable[[str, BridgeEventEmitter], Awaitable[PhaseOutcome]],
        emitter: BridgeEventEmitter,
        started: float,
    ) -> OperationResult:
        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.OPERATION_STARTED,
            {"direction": direction.value},
        )

        try:
            with anyio.fail_after(self._config.timeout_ms / 1000):
                outcome = await runner(operation_id, emitter)

        except TimeoutError:
            error = self._classifier.handle(
                operation,
                f"Operation timeout after {self._config.timeout_ms}ms",
                operation_id=operation_id,
                phase=self._phase.value,
            )
            return await self._fail(
                operation_id, direction, error, started, emitter
            )

        except Exception as exc:
            error = self._classifier.handle(
                getattr(exc, "operation", None) or operation,
                exc,
                operation_id=operation_id,
                phase=self._phase.value,
            )
            return await self._fail(
                operation_id, direction, error, started, emitter
            )

        duration = elapsed_ms(started)
        self._record_outcome(success=True)

        if self._config.performance_logging:
            logger.info(
                "Bridge operation %s (%s) completed in %.2fms",
                operation_id,
                direction.value,
                duration,
            )

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.OPERATION_COMPLETED,
            {
                "strategy": outcome.data.strategy.value,
                "duration_ms": duration,
                "data_source": (
                    outcome.data_source.value if outcome.data_source else None
                ),
            },
        )

        return OperationResult(
            success=True,
            errors=[],
            warnings=outcome.warnings,
            transferred_data=outcome.data,
            duration_ms=duration,
            execution_metadata=OperationMetadata(
                operation_id=operation_id,
                direction=direction,
                data_source=outcome.data_source,
                processing_time_ms=duration,
                transformation_success=True,
                final_phase=OperationPhase.COMPLETE,
            ),
        )

    async def _reject(
        self,
        operation_id: str,
        direction: TransferDirection,
        operation: OperationName,
        emitter: BridgeEventEmitter,
    ) -> OperationResult:
        current = self._state.current_operation_id
        logger.warning(
            "Rejected bridge operation %s: %s is still in progress",
            operation_id,
            current,
        )

        error = self._classifier.handle(
            operation,
            f"Operation rejected: {current} is still in progress",
            operation_id=operation_id,
            current_operation_id=current,
        )

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.OPERATION_REJECTED,
            {"current_operation_id": current},
        )

        return OperationResult(
            success=False,
            errors=[error],
            execution_metadata=OperationMetadata(
                operation_id=operation_id,
                direction=direction,
                final_phase=OperationPhase.FAILED,
            ),
        )

    async def _fail(
        self,
        operation_id: str,
        direction: TransferDirection,
        error: ErrorDetails,
        started: float,
        emitter: BridgeEventEmitter,
    ) -> OperationResult:
        failed_phase = self._phase
        duration = elapsed_ms(started)
        self._record_outcome(success=False)

        logger.warning(
            "Bridge operation %s failed during %s: %s",
            operation_id,
            failed_phase.value,
            error.message,
        )

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.OPERATION_FAILED,
            {
                "phase": failed_phase.value,
                "error_code": error.code,
                "severity": error.severity.value,
                "recoverable": error.is_recoverable,
            },
        )

        return OperationResult(
            success=False,
            errors=[error],
            warnings=[],
            transferred_data=None,
            duration_ms=duration,
            execution_metadata=OperationMetadata(
                operation_id=operation_id,
                direction=direction,
                processing_time_ms=duration,
                transformation_success=False,
                final_phase=OperationPhase.FAILED,
            ),
        )

    # ------------------------------------------------------------------
    # Phase runners
    # ------------------------------------------------------------------

    async def _run_forward(
        self, operation_id: str, emitter: BridgeEventEmitter
    ) -> PhaseOutcome:
        # 1. Preconditions
        self._phase = OperationPhase.CHECK_PRECONDITIONS
        preconditions = self._evaluate_preconditions()

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.PRECONDITIONS_CHECKED,
            {
                "passed": preconditions.passed,
                "data_source": (
                    preconditions.data_source.value
                    if preconditions.data_source
                    else None
                ),
            },
        )

        if not preconditions.passed:
            raise BridgeOperationError(
                "Precondition check failed: no transferable document data",
                operation=OperationName.VALIDATION,
            )

        # 2. Extraction
        self._phase = OperationPhase.EXTRACT
        extraction_started = monotonic_ms()

        if preconditions.data_source is DataSource.EXTERNAL:
            snapshot = generate_snapshot_from_external_data(self._external_data)
        else:
            snapshot = preconditions.snapshot

        if snapshot is None:
            raise BridgeOperationError(
                "Document extraction failed",
                operation=OperationName.EXTRACTION,
            )

        extraction_ms = elapsed_ms(extraction_started)

        validation = preconditions.validation
        validation_ms = 0.0
        if validation is None and self._config.enable_validation:
            validation_started = monotonic_ms()
            validation = self._validator.validate(snapshot)
            validation_ms = elapsed_ms(validation_started)
        warnings = list(validation.warnings) if validation is not None else []

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.EXTRACTION_COMPLETED,
            {
                "snapshot_kind": snapshot.kind,
                "container_count": len(snapshot.containers),
                "paragraph_count": len(snapshot.paragraphs),
                "warning_count": len(warnings),
            },
        )

        # 3. Transformation
        self._phase = OperationPhase.TRANSFORM
        result = self._transformer.transform(
            snapshot,
            extraction_ms=extraction_ms,
            validation_ms=validation_ms,
        )

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.TRANSFORMATION_COMPLETED,
            {
                "strategy": result.strategy.value,
                "success": result.success,
                "quality": result.quality_metrics.overall_quality,
            },
        )

        if not result.success:
            raise BridgeOperationError(
                "Transformation failed: " + "; ".join(result.errors),
                operation=OperationName.TRANSFORMATION,
            )

        # 4. Update
        self._phase = OperationPhase.UPDATE
        updated = await self._wizard_updater.apply(result)

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.UPDATE_COMPLETED,
            {"updated": updated},
        )

        if not updated:
            raise BridgeOperationError(
                "Wizard store update failed",
                operation=OperationName.UPDATE,
            )

        self._phase = OperationPhase.COMPLETE
        return PhaseOutcome(result, preconditions.data_source, warnings)

    async def _run_reverse(
        self, operation_id: str, emitter: BridgeEventEmitter
    ) -> PhaseOutcome:
        self._phase = OperationPhase.CHECK_PRECONDITIONS
        if self._wizard_extractor is None or self._document_updater is None:
            raise BridgeOperationError(
                "Reverse transfer is not configured: missing wizard or document store",
                operation=OperationName.REVERSE_TRANSFER,
            )

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.PRECONDITIONS_CHECKED,
            {"passed": True, "data_source": DataSource.STORE.value},
        )

        # Extraction
        self._phase = OperationPhase.EXTRACT
        snapshot = self._wizard_extractor.extract()
        if snapshot is None:
            raise BridgeOperationError(
                "Wizard extraction failed",
                operation=OperationName.EXTRACTION,
            )

        validation = self._validator.validate_wizard_snapshot(snapshot)

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.EXTRACTION_COMPLETED,
            {
                "current_step": snapshot.current_step,
                "warning_count": len(validation.warnings),
            },
        )

        # Transformation
        self._phase = OperationPhase.TRANSFORM
        result = self._reverse_transformer.transform(snapshot)

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.TRANSFORMATION_COMPLETED,
            {
                "strategy": result.strategy.value,
                "success": result.success,
                "quality": result.content_metadata.quality.quality_score,
            },
        )

        if not result.success:
            raise BridgeOperationError(
                "Reverse transformation failed: " + "; ".join(result.errors),
                operation=OperationName.TRANSFORMATION,
            )

        # Update
        self._phase = OperationPhase.UPDATE
        updated = await self._document_updater.apply(result)

        await self._emit(
            emitter,
            operation_id,
            BridgeEventType.UPDATE_COMPLETED,
            {"updated": updated},
        )

        if not updated:
            raise BridgeOperationError(
                "Document store update failed",
                operation=OperationName.UPDATE,
            )

        self._phase = OperationPhase.COMPLETE
        return PhaseOutcome(result, DataSource.STORE, list(validation.warnings))

    # ------------------------------------------------------------------
    # Structural helpers
    # ------------------------------------------------------------------

    def _evaluate_preconditions(self) -> Preconditions:
        """
        External data first, the document store second.
        """
        if self._external_data is not None:
            quality = assess_external_data_quality(self._external_data)
            self._metrics = self._metrics.model_copy(
                update={
                    "external_data_validations": (
                        self._metrics.external_data_validations + 1
                    )
                }
            )

            if external_data_passes_preconditions(quality):
                return Preconditions(passed=True, data_source=DataSource.EXTERNAL)

            logger.info(
                "External data failed the quality gate (score=%d); "
                "falling back to the document store",
                quality.quality_score,
            )

        snapshot = self._extractor.extract()
        if snapshot is None:
            return Preconditions(passed=False, data_source=None)

        if not self._config.enable_validation:
            return Preconditions(
                passed=True, data_source=DataSource.STORE, snapshot=snapshot
            )

        validation = self._validator.validate(snapshot)
        if self._config.debug_mode:
            logger.debug(
                "Store snapshot validation: valid=%s warnings=%s",
                validation.is_valid_for_transfer,
                validation.warnings,
            )

        return Preconditions(
            passed=validation.is_valid_for_transfer,
            data_source=DataSource.STORE,
            snapshot=snapshot,
            validation=validation,
        )

    def _set_state(self, **changes: Any) -> None:
        self._state = self._state.model_copy(
            update={**changes, "last_operation_time": now_ms()}
        )

    def _record_outcome(self, *, success: bool) -> None:
        # Metrics and state change together, with no await in between
        self._metrics = self._metrics.model_copy(
            update={
                "total_operations": self._metrics.total_operations + 1,
                "successful_operations": (
                    self._metrics.successful_operations + (1 if success else 0)
                ),
                "failed_operations": (
                    self._metrics.failed_operations + (0 if success else 1)
                ),
            }
        )
        self._phase = OperationPhase.COMPLETE if success else OperationPhase.FAILED
        self._set_state(current_operation_id=None)

    @staticmethod
    async def _emit(
        emitter: BridgeEventEmitter,
        operation_id: str,
        event_type: BridgeEventType,
        details: Optional[dict] = None,
    ) -> None:
        try:
            await emitter.emit(
                BridgeEvent(
                    operation_id=operation_id,
                    event_type=event_type,
                    details=details,
                )
            )
        except Exception as exc:
            # Emission failures are logged, never propagated
            logger.warning("Event emission failed for %s: %s", event_type, exc)


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------

def _coerce_external_data(external_data: Any) -> Optional[ExternalData]:
    if external_data is None or isinstance(external_data, ExternalData):
        if external_data is not None and external_data.supplied_at is None:
            return external_data.model_copy(update={"supplied_at": now_ms()})
        return external_data

    if isinstance(external_data, Mapping):
        containers = external_data.get("containers")
        paragraphs = external_data.get("paragraphs")
        if isinstance(containers, list) and isinstance(paragraphs, list):
            return ExternalData(
                containers=containers,
                paragraphs=paragraphs,
                supplied_at=now_ms(),
            )

    logger.warning(
        "Ignoring external data without container and paragraph lists: %s",
        type(external_data).__name__,
    )
    return None


def create_engine(
    config: Optional[BridgeConfig] = None,
    external_data: Any = None,
    *,
    document_store: Optional[DocumentStore] = None,
    ui_store: Optional[UiStore] = None,
    wizard_store: Optional[WizardStore] = None,
    editor_store: Optional[DocumentStore] = None,
    persisted_keys: Optional[PersistedKeyStore] = None,
    emitter: Optional[BridgeEventEmitter] = None,
) -> BridgeEngine:
    """
    Construct a fully wired BridgeEngine.

    Raises StoreUnavailableError when the document, UI or wizard store is
    missing. Reverse transfers write through the optional setters of
    ``editor_store`` when given, otherwise of ``document_store``.
    """
    missing = [
        name
        for name, store in (
            ("document_store", document_store),
            ("ui_store", ui_store),
            ("wizard_store", wizard_store),
        )
        if store is None
    ]
    if missing:
        raise StoreUnavailableError(
            "Bridge engine requires store collaborators: " + ", ".join(missing)
        )

    config = config or get_config()
    validator = StructuralValidator.from_config(config)

    return BridgeEngine(
        config,
        extractor=DocumentSnapshotExtractor(document_store, ui_store),
        validator=validator,
        transformer=ForwardTransformer(
            CacheManager.from_config(config, persisted_keys=persisted_keys)
        ),
        wizard_updater=WizardStateUpdater.from_config(wizard_store, config),
        error_classifier=ErrorClassifier(),
        wizard_extractor=WizardSnapshotExtractor(wizard_store),
        reverse_transformer=ReverseTransformer(validator),
        document_updater=DocumentStateUpdater(editor_store or document_store),
        external_data=_coerce_external_data(external_data),
        emitter=emitter,
    )
