"""
Engine-level schemas: state, metrics, external data and operation results.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from docbridge.app.schemas.errors import ErrorDetails
from docbridge.app.schemas.transformation import (
    ReverseTransformationResult,
    TransformationResult,
)


class DataSource(str, Enum):
    EXTERNAL = "external"
    STORE = "store"


class TransferDirection(str, Enum):
    DOCUMENT_TO_WIZARD = "document_to_wizard"
    WIZARD_TO_DOCUMENT = "wizard_to_document"


class OperationPhase(str, Enum):
    """
    Per-call state machine of the engine.

    CHECK_PRECONDITIONS -> EXTRACT -> TRANSFORM -> UPDATE -> COMPLETE,
    or FAILED from any phase.
    """

    CHECK_PRECONDITIONS = "check_preconditions"
    EXTRACT = "extract"
    TRANSFORM = "transform"
    UPDATE = "update"
    COMPLETE = "complete"
    FAILED = "failed"


# ----------------------------------------------------------------------
# External data
# ----------------------------------------------------------------------

class ExternalData(BaseModel):
    """
    Caller-supplied document data that takes precedence over the store.

    Entries are raw, untyped mappings; they are filtered by the same guards
    as store data.
    """

    containers: List[Any] = Field(default_factory=list)
    paragraphs: List[Any] = Field(default_factory=list)
    supplied_at: Optional[int] = Field(None, description="Epoch milliseconds")

    model_config = ConfigDict(frozen=True, extra="forbid")


class ExternalDataQuality(BaseModel):
    is_quality_valid: bool
    quality_score: int = Field(..., ge=0, le=100)
    valid_container_count: int = Field(0, ge=0)
    valid_paragraph_count: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


# ----------------------------------------------------------------------
# Engine state
# ----------------------------------------------------------------------

class EngineState(BaseModel):
    """
    Mutable-by-replacement engine state.

    Owned exclusively by the engine. Every transition replaces the record
    through ``model_copy(update=...)`` and stamps ``last_operation_time``.
    """

    is_initialized: bool = False
    last_operation_time: int = 0
    operation_count: int = 0
    current_operation_id: Optional[str] = None
    has_external_data: bool = False
    external_data_timestamp: Optional[int] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class EngineMetrics(BaseModel):
    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    external_data_validations: int = 0

    model_config = ConfigDict(frozen=True, extra="forbid")


class ComponentStatus(BaseModel):
    extractor: bool
    transformer: bool
    reverse_transformer: bool
    updater: bool
    validator: bool
    error_classifier: bool

    @property
    def all_operational(self) -> bool:
        return all(self.model_dump().values())

    model_config = ConfigDict(frozen=True, extra="forbid")


class ConfigurationSummary(BaseModel):
    enable_validation: bool
    enable_error_recovery: bool
    debug_mode: bool
    max_retry_attempts: int
    timeout_ms: int

    model_config = ConfigDict(frozen=True, extra="forbid")


class EngineStatus(BaseModel):
    state: EngineState
    configuration: ConfigurationSummary
    metrics: EngineMetrics
    is_ready: bool

    model_config = ConfigDict(frozen=True, extra="forbid")


class EngineMetricsReport(BaseModel):
    metrics: EngineMetrics
    components: ComponentStatus
    all_components_operational: bool
    cache_size: int = 0

    model_config = ConfigDict(frozen=True, extra="forbid")


# ----------------------------------------------------------------------
# Operation results
# ----------------------------------------------------------------------

class OperationMetadata(BaseModel):
    operation_id: str
    direction: TransferDirection
    data_source: Optional[DataSource] = None
    processing_time_ms: float = 0.0
    transformation_success: bool = False
    final_phase: OperationPhase

    model_config = ConfigDict(frozen=True, extra="forbid")


class OperationResult(BaseModel):
    """
    Typed outcome of one engine call. Never raised, always returned.
    """

    success: bool
    errors: List[ErrorDetails] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    transferred_data: Optional[
        Union[TransformationResult, ReverseTransformationResult]
    ] = None
    duration_ms: float = 0.0
    execution_metadata: OperationMetadata

    model_config = ConfigDict(frozen=True, extra="forbid")


class BidirectionalSyncResult(BaseModel):
    document_to_wizard_success: bool
    wizard_to_document_success: bool
    overall_success: bool
    errors: List[str] = Field(default_factory=list)
    duration_ms: float = 0.0

    model_config = ConfigDict(frozen=True, extra="forbid")
