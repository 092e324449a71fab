from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, List

from pydantic import BaseModel, ConfigDict, Field


class ValidationFlag(str, Enum):
    HAS_DATA = "HAS_DATA"
    NO_DATA = "NO_DATA"
    HAS_CONTENT = "HAS_CONTENT"
    NO_CONTENT = "NO_CONTENT"
    VALID_STRUCTURE = "VALID_STRUCTURE"
    INVALID_STRUCTURE = "INVALID_STRUCTURE"
    CONSISTENT = "CONSISTENT"
    INCONSISTENT = "INCONSISTENT"

    # Wizard-side checks
    SNAPSHOT_NULL = "SNAPSHOT_NULL"
    VALID_FORM_VALUES = "VALID_FORM_VALUES"
    INVALID_FORM_VALUES = "INVALID_FORM_VALUES"
    VALID_STEP = "VALID_STEP"
    INVALID_STEP = "INVALID_STEP"
    VALID_TIMESTAMP = "VALID_TIMESTAMP"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    STRUCTURE_VALIDATED = "STRUCTURE_VALIDATED"


class ValidationMetrics(BaseModel):
    """
    Counts gathered while validating a snapshot.

    All fields default to zero so failure results can be built from a
    partial measurement.
    """

    total_containers: int = 0
    total_paragraphs: int = 0
    total_content_length: int = 0
    assigned_paragraphs: int = 0
    unassigned_paragraphs: int = 0
    empty_containers: int = 0
    average_content_length: float = 0.0
    validation_duration_ms: float = 0.0
    validation_failed: int = 0

    model_config = ConfigDict(frozen=True, extra="forbid")


class ValidationResult(BaseModel):
    """
    Derived verdict over a snapshot. Recomputed on demand, never persisted.

    IMPORTANT:
    - Consistency problems are warnings, not errors
    - ``is_valid_for_transfer`` is True whenever any data is present
    """

    is_valid_for_transfer: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    has_minimum_content: bool = False
    has_required_structure: bool = False

    error_details: Dict[str, str] = Field(
        default_factory=dict,
        description="Machine-readable key to human-readable error message",
    )

    metrics: ValidationMetrics = Field(default_factory=ValidationMetrics)
    flags: FrozenSet[ValidationFlag] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True, extra="forbid")
