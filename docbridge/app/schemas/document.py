"""
Document-side snapshot schemas.

A document snapshot is the immutable, typed result of reading the document
store and the UI store once. Untyped store data is parsed into exactly one
of two variants at the extraction boundary:

- ValidSnapshot     best-effort snapshot of the store contents
- FallbackSnapshot  empty snapshot produced when content generation failed

Downstream components operate on these variants only and never inspect
raw store mappings.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, FrozenSet, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class Container(BaseModel):
    """
    An ordered, named grouping of paragraph blocks.
    """

    id: str = Field(..., description="Container identifier")
    name: str = Field(..., description="Heading text rendered for the container")
    order: float = Field(..., description="Sort key among containers")

    model_config = ConfigDict(frozen=True, extra="forbid")


class ParagraphBlock(BaseModel):
    """
    An ordered unit of text, optionally assigned to a container.
    """

    id: str = Field(..., description="Paragraph identifier")
    content: str = Field(..., description="Raw paragraph text")
    order: float = Field(..., description="Sort key among paragraphs")
    container_id: Optional[str] = Field(
        None,
        description="Owning container id, or None when unassigned",
    )

    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

class ProcessingFlag(str, Enum):
    """
    Markers describing how a snapshot was produced.
    """

    SNAPSHOT_GENERATED = "SNAPSHOT_GENERATED"
    VALIDATION_PASSED = "VALIDATION_PASSED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    FALLBACK_MODE = "FALLBACK_MODE"
    EXTERNAL_DATA_SOURCE = "EXTERNAL_DATA_SOURCE"


class SnapshotMetrics(BaseModel):
    container_count: int = Field(0, ge=0)
    paragraph_count: int = Field(0, ge=0)
    content_length: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class SnapshotMetadata(BaseModel):
    """
    Diagnostic record attached to every snapshot.

    IMPORTANT:
    - Observational only
    - MUST NOT influence strategy selection
    """

    extraction_duration_ms: float = Field(
        0.0,
        ge=0,
        description="Time spent reading and parsing store state",
    )

    is_valid: bool = Field(
        ...,
        description="True when the snapshot carries any container or paragraph",
    )

    integrity_hash: str = Field(
        ...,
        description="Digest of the flattened content",
    )

    additional_metrics: SnapshotMetrics = Field(default_factory=SnapshotMetrics)

    processing_flags: FrozenSet[ProcessingFlag] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Snapshot variants
# ---------------------------------------------------------------------------

class _SnapshotBase(BaseModel):
    containers: List[Container] = Field(default_factory=list)
    paragraphs: List[ParagraphBlock] = Field(default_factory=list)

    flattened_content: str = Field(
        "",
        description="Precomputed or regenerated flattened text",
    )

    is_completed: bool = False

    active_paragraph_id: Optional[str] = None
    selected_paragraph_ids: List[str] = Field(default_factory=list)
    is_preview_open: bool = False

    extracted_at: int = Field(..., description="Epoch milliseconds")

    metadata: SnapshotMetadata

    model_config = ConfigDict(frozen=True, extra="forbid")


class ValidSnapshot(_SnapshotBase):
    """
    Best-effort snapshot of the document store.

    Entities have passed the structural guards. Cross-entity consistency
    (orphans, duplicates) is NOT guaranteed and is reported by the
    validator.
    """

    kind: Literal["valid"] = "valid"


class FallbackSnapshot(_SnapshotBase):
    """
    Empty snapshot returned when content generation failed mid-extraction.
    """

    kind: Literal["fallback"] = "fallback"


DocumentSnapshot = Annotated[
    Union[ValidSnapshot, FallbackSnapshot],
    Field(discriminator="kind"),
]

SNAPSHOT_TYPES = (ValidSnapshot, FallbackSnapshot)
