"""
Transformation result schemas.

Both directions produce a result record rather than raising:

- TransformationResult         document -> wizard
- ReverseTransformationResult  wizard -> document

A result with ``success=False`` is a normal return value. Consumers MUST
check ``success`` before writing content into a store.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransformationStrategy(str, Enum):
    """
    Named algorithms for deriving flattened content.

    EMERGENCY_RECOVERY is never selected heuristically. It marks results
    produced after an internal failure.
    """

    EXISTING_CONTENT = "EXISTING_CONTENT"
    REBUILD_FROM_CONTAINERS = "REBUILD_FROM_CONTAINERS"
    PARAGRAPH_FALLBACK = "PARAGRAPH_FALLBACK"
    HYBRID_APPROACH = "HYBRID_APPROACH"
    EMERGENCY_RECOVERY = "EMERGENCY_RECOVERY"


# ----------------------------------------------------------------------
# Forward (document -> wizard)
# ----------------------------------------------------------------------

class PerformanceMetrics(BaseModel):
    extraction_ms: float = 0.0
    validation_ms: float = 0.0
    transformation_ms: float = 0.0
    total_ms: float = 0.0
    quality_score: int = Field(0, ge=0, le=100)

    model_config = ConfigDict(frozen=True, extra="forbid")


class TransformationMetadata(BaseModel):
    container_count: int = 0
    paragraph_count: int = 0
    assigned_paragraph_count: int = 0
    unassigned_paragraph_count: int = 0
    total_content_length: int = 0
    processing_time_ms: float = 0.0
    warnings: List[str] = Field(default_factory=list)
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    strategy: Optional[TransformationStrategy] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class QualityMetrics(BaseModel):
    overall_quality: int = Field(0, ge=0, le=100)
    content_length: int = Field(0, ge=0)
    processing_efficiency: float = Field(0.0, ge=0, le=100)

    model_config = ConfigDict(frozen=True, extra="forbid")


class TransformationResult(BaseModel):
    """
    Output of the forward transformer.

    Created once per transformation, consumed once by the wizard updater,
    and cached by snapshot fingerprint.
    """

    content: str = Field(..., description="Flattened content for the wizard")
    is_completed: bool
    strategy: TransformationStrategy
    metadata: TransformationMetadata = Field(default_factory=TransformationMetadata)
    success: bool
    errors: List[str] = Field(default_factory=list)
    timestamp: int = Field(..., description="Epoch milliseconds")
    quality_metrics: QualityMetrics = Field(default_factory=QualityMetrics)
    content_integrity_hash: str

    model_config = ConfigDict(frozen=True, extra="forbid")


# ----------------------------------------------------------------------
# Reverse (wizard -> document)
# ----------------------------------------------------------------------

class ContentQuality(BaseModel):
    """
    Heuristic quality measurement of wizard-side editor content.
    """

    word_count: int = 0
    character_count: int = 0
    line_count: int = 0
    has_markdown_syntax: bool = False
    has_structured_content: bool = False
    quality_score: int = Field(0, ge=0, le=100)

    model_config = ConfigDict(frozen=True, extra="forbid")


class ReverseContentMetadata(BaseModel):
    content_length: int = 0
    is_completed: bool = False
    transformation_success: bool = False
    transformation_duration_ms: float = 0.0
    quality: ContentQuality = Field(default_factory=ContentQuality)
    form_metadata_count: int = 0
    has_title: bool = False
    has_description: bool = False
    error_message: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class ReverseTransformationResult(BaseModel):
    """
    Output of the reverse transformer.

    ``data_integrity_validation`` is True when the produced content is
    non-empty.
    """

    content: str
    is_completed: bool
    strategy: TransformationStrategy
    success: bool
    errors: List[str] = Field(default_factory=list)
    timestamp: int = Field(..., description="Epoch milliseconds")
    content_metadata: ReverseContentMetadata = Field(
        default_factory=ReverseContentMetadata
    )
    data_integrity_validation: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")
