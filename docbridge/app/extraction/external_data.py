"""
Snapshots built from caller-supplied document data.

When an engine is created with external data, that data takes precedence
over the document store. It passes through the same guards and the same
content builder as store data, so both sources yield comparable snapshots.
"""

from __future__ import annotations

import logging

from docbridge.app.extraction.document_extractor import build_snapshot_metadata
from docbridge.app.schemas.document import ProcessingFlag, ValidSnapshot
from docbridge.app.schemas.operation import ExternalData, ExternalDataQuality
from docbridge.app.transform.content_builder import build_document_content
from docbridge.app.utils.timing import elapsed_ms, monotonic_ms, now_ms
from docbridge.app.utils.type_guards import (
    is_raw_container,
    is_raw_paragraph,
    parse_containers,
    parse_paragraphs,
)

logger = logging.getLogger(__name__)

QUALITY_THRESHOLD = 60


def _valid_ratio(total: int, valid: int) -> float:
    # An empty list is not a quality defect
    return 1.0 if total == 0 else valid / total


def assess_external_data_quality(external_data: ExternalData) -> ExternalDataQuality:
    """
    Score external data by the share of entries that pass the guards.

    ``quality_score = round((container_ratio + paragraph_ratio) * 50)``
    """
    valid_containers = sum(
        1 for item in external_data.containers if is_raw_container(item)
    )
    valid_paragraphs = sum(
        1 for item in external_data.paragraphs if is_raw_paragraph(item)
    )

    container_ratio = _valid_ratio(len(external_data.containers), valid_containers)
    paragraph_ratio = _valid_ratio(len(external_data.paragraphs), valid_paragraphs)

    quality_score = round((container_ratio + paragraph_ratio) * 50)

    return ExternalDataQuality(
        is_quality_valid=quality_score >= QUALITY_THRESHOLD,
        quality_score=quality_score,
        valid_container_count=valid_containers,
        valid_paragraph_count=valid_paragraphs,
    )


def external_data_passes_preconditions(quality: ExternalDataQuality) -> bool:
    """
    Lenient gate: good quality OR at least one usable entity.
    """
    return (
        quality.is_quality_valid
        or quality.valid_container_count > 0
        or quality.valid_paragraph_count > 0
    )


def generate_snapshot_from_external_data(external_data: ExternalData) -> ValidSnapshot:
    started = monotonic_ms()

    containers = parse_containers(external_data.containers)
    paragraphs = parse_paragraphs(external_data.paragraphs)
    content = build_document_content(containers, paragraphs)

    logger.debug(
        "Generated snapshot from external data: %d containers, %d paragraphs",
        len(containers),
        len(paragraphs),
    )

    return ValidSnapshot(
        containers=containers,
        paragraphs=paragraphs,
        flattened_content=content,
        is_completed=len(content) > 0,
        extracted_at=now_ms(),
        metadata=build_snapshot_metadata(
            containers=containers,
            paragraphs=paragraphs,
            content=content,
            duration_ms=elapsed_ms(started),
            extra_flags=(ProcessingFlag.EXTERNAL_DATA_SOURCE,),
        ),
    )
