"""
Document snapshot extraction.

Reads the document store and the UI store once each and parses the raw
state into a typed snapshot variant.

IMPORTANT:
- Returns None ONLY when the document store raises or does not return a
  mapping.
- A failing UI store degrades to default cursor values.
- Invalid containers and paragraphs are dropped, not reported as errors.
- If content generation fails, a FallbackSnapshot is returned instead of
  None.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from docbridge.app.schemas.document import (
    Container,
    FallbackSnapshot,
    ParagraphBlock,
    ProcessingFlag,
    SnapshotMetadata,
    SnapshotMetrics,
    ValidSnapshot,
)
from docbridge.app.stores import DocumentStore, UiStore
from docbridge.app.transform.content_builder import build_document_content
from docbridge.app.utils.hashing import compute_content_hash
from docbridge.app.utils.timing import elapsed_ms, monotonic_ms, now_ms
from docbridge.app.utils.type_guards import (
    parse_containers,
    parse_paragraphs,
    to_bool,
    to_list,
    to_optional_str,
)

logger = logging.getLogger(__name__)


class UiCursor(NamedTuple):
    active_paragraph_id: Optional[str] = None
    selected_paragraph_ids: Tuple[str, ...] = ()
    is_preview_open: bool = False


# ---------------------------------------------------------------------------
# Metadata helpers
# ---------------------------------------------------------------------------

def build_snapshot_metadata(
    *,
    containers: Sequence[Container],
    paragraphs: Sequence[ParagraphBlock],
    content: str,
    duration_ms: float,
    extra_flags: Sequence[ProcessingFlag] = (),
) -> SnapshotMetadata:
    """
    Construct the metadata record shared by store and external snapshots.
    """
    is_valid = bool(containers) or bool(paragraphs)

    flags = {ProcessingFlag.SNAPSHOT_GENERATED, *extra_flags}
    flags.add(
        ProcessingFlag.VALIDATION_PASSED
        if is_valid
        else ProcessingFlag.VALIDATION_FAILED
    )

    return SnapshotMetadata(
        extraction_duration_ms=duration_ms,
        is_valid=is_valid,
        integrity_hash=compute_content_hash(content),
        additional_metrics=SnapshotMetrics(
            container_count=len(containers),
            paragraph_count=len(paragraphs),
            content_length=len(content),
        ),
        processing_flags=frozenset(flags),
    )


def _raw_length(value: Any) -> int:
    return len(value) if isinstance(value, (list, tuple)) else 0


def build_fallback_snapshot(*, duration_ms: float = 0.0) -> FallbackSnapshot:
    """
    Empty snapshot marking a failed content generation.
    """
    return FallbackSnapshot(
        extracted_at=now_ms(),
        metadata=SnapshotMetadata(
            extraction_duration_ms=duration_ms,
            is_valid=False,
            integrity_hash=compute_content_hash(""),
            processing_flags=frozenset({ProcessingFlag.FALLBACK_MODE}),
        ),
    )


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class DocumentSnapshotExtractor:
    """
    Produces one immutable DocumentSnapshot per call.
    """

    def __init__(self, document_store: DocumentStore, ui_store: UiStore) -> None:
        self._document_store = document_store
        self._ui_store = ui_store

    def extract(self) -> Optional[Union[ValidSnapshot, FallbackSnapshot]]:
        started = monotonic_ms()

        try:
            raw_state = self._document_store.get_state()
        except Exception as exc:
            logger.warning("Document store read failed: %s", exc)
            return None

        if not isinstance(raw_state, Mapping):
            logger.warning(
                "Document store returned %s instead of a mapping",
                type(raw_state).__name__,
            )
            return None

        cursor = self._read_ui_cursor()

        try:
            return self._build_snapshot(raw_state, cursor, started)
        except Exception as exc:
            logger.warning(
                "Snapshot content generation failed, using fallback: %s", exc
            )
            return build_fallback_snapshot(duration_ms=elapsed_ms(started))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_ui_cursor(self) -> UiCursor:
        try:
            raw_ui = self._ui_store.get_state()
        except Exception as exc:
            logger.warning("UI store read failed, using defaults: %s", exc)
            return UiCursor()

        if not isinstance(raw_ui, Mapping):
            return UiCursor()

        return UiCursor(
            active_paragraph_id=to_optional_str(raw_ui.get("activeParagraphId")),
            selected_paragraph_ids=tuple(
                to_list(
                    raw_ui.get("selectedParagraphIds"),
                    lambda item: isinstance(item, str),
                )
            ),
            is_preview_open=to_bool(raw_ui.get("isPreviewOpen"), False),
        )

    def _build_snapshot(
        self,
        raw_state: Mapping[str, Any],
        cursor: UiCursor,
        started: float,
    ) -> ValidSnapshot:
        raw_containers = raw_state.get("containers")
        raw_paragraphs = raw_state.get("paragraphs")

        containers = parse_containers(raw_containers)
        paragraphs = parse_paragraphs(raw_paragraphs)

        dropped = (
            _raw_length(raw_containers)
            + _raw_length(raw_paragraphs)
            - len(containers)
            - len(paragraphs)
        )
        if dropped:
            logger.debug("Dropped %d malformed store entries", dropped)

        stored_content = raw_state.get("completedContent")
        if isinstance(stored_content, str):
            content = stored_content
        else:
            content = build_document_content(containers, paragraphs)

        return ValidSnapshot(
            containers=containers,
            paragraphs=paragraphs,
            flattened_content=content,
            is_completed=to_bool(raw_state.get("isCompleted"), False),
            active_paragraph_id=cursor.active_paragraph_id,
            selected_paragraph_ids=list(cursor.selected_paragraph_ids),
            is_preview_open=cursor.is_preview_open,
            extracted_at=now_ms(),
            metadata=build_snapshot_metadata(
                containers=containers,
                paragraphs=paragraphs,
                content=content,
                duration_ms=elapsed_ms(started),
            ),
        )
