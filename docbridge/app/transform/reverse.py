"""
Reverse transformation: wizard snapshot -> document content.

The wizard keeps the editor output as a single string. Reverse
transformation scores that string, picks a strategy and optionally
re-renders it with a leading heading.

IMPORTANT:
- Validation is lenient: only a missing snapshot fails.
- ``transform`` never raises. Failures yield ``success=False`` with empty
  content.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, NamedTuple, Optional

from docbridge.app.schemas.transformation import (
    ContentQuality,
    ReverseContentMetadata,
    ReverseTransformationResult,
    TransformationStrategy,
)
from docbridge.app.schemas.wizard import (
    EDITOR_COMPLETED_FIELD,
    EDITOR_CONTENT_FIELD,
    WizardSnapshot,
)
from docbridge.app.utils.timing import elapsed_ms, monotonic_ms, now_ms
from docbridge.app.utils.type_guards import to_bool, to_str
from docbridge.app.validation.validator import StructuralValidator

logger = logging.getLogger(__name__)

FORM_METADATA_KEYS = (
    "title",
    "description",
    "tags",
    "nickname",
    "emailPrefix",
    "emailDomain",
)

MARKDOWN_PATTERN = re.compile(r"[#*`\[\]_~]")
STRUCTURE_PATTERN = re.compile(r"^(#{1,6}\s|[-*+]\s|\d+\.\s)", re.MULTILINE)

HIGH_QUALITY_SCORE = 70
HIGH_QUALITY_WORDS = 50
STRUCTURED_MIN_LENGTH = 100
HEADING_MIN_LENGTH = 30


class ExtractedWizardContent(NamedTuple):
    content: str
    is_completed: bool
    form_metadata: Dict[str, Any]
    quality: ContentQuality


# ---------------------------------------------------------------------------
# Extraction and scoring
# ---------------------------------------------------------------------------

def analyze_content_quality(content: str) -> ContentQuality:
    """
    Heuristic 0-100 score.

    - word count: 2 points per word, at most 40
    - markdown punctuation present: 20
    - structured lines (headings, list markers): 20
    - more than one line: 10
    - more than 500 characters: 10
    """
    word_count = len(content.split())
    line_count = len(content.split("\n"))
    has_markdown = MARKDOWN_PATTERN.search(content) is not None
    has_structure = STRUCTURE_PATTERN.search(content) is not None

    score = min(word_count * 2, 40)
    score += 20 if has_markdown else 0
    score += 20 if has_structure else 0
    score += 10 if line_count > 1 else 0
    score += 10 if len(content) > 500 else 0

    return ContentQuality(
        word_count=word_count,
        character_count=len(content),
        line_count=line_count,
        has_markdown_syntax=has_markdown,
        has_structured_content=has_structure,
        quality_score=min(score, 100),
    )


def extract_wizard_content(snapshot: WizardSnapshot) -> ExtractedWizardContent:
    form_values: Mapping[str, Any] = (
        snapshot.form_values if isinstance(snapshot.form_values, Mapping) else {}
    )

    content = to_str(form_values.get(EDITOR_CONTENT_FIELD))
    is_completed = to_bool(form_values.get(EDITOR_COMPLETED_FIELD), False)
    form_metadata = {
        key: form_values[key]
        for key in FORM_METADATA_KEYS
        if form_values.get(key) is not None
    }

    return ExtractedWizardContent(
        content=content,
        is_completed=is_completed,
        form_metadata=form_metadata,
        quality=analyze_content_quality(content),
    )


# ---------------------------------------------------------------------------
# Strategy
# ---------------------------------------------------------------------------

def select_reverse_strategy(extracted: ExtractedWizardContent) -> TransformationStrategy:
    quality = extracted.quality

    if (
        quality.quality_score >= HIGH_QUALITY_SCORE
        and quality.word_count >= HIGH_QUALITY_WORDS
    ):
        return TransformationStrategy.EXISTING_CONTENT

    if (
        quality.has_structured_content
        and len(extracted.content) > STRUCTURED_MIN_LENGTH
    ):
        return TransformationStrategy.REBUILD_FROM_CONTAINERS

    return TransformationStrategy.PARAGRAPH_FALLBACK


def enhance_structure(content: str) -> str:
    """
    Trim every line and promote the first non-empty line to a ``##``
    heading when it is long and not already a heading.
    """
    enhanced = []
    seen_content = False

    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped:
            enhanced.append("")
            continue

        if (
            not seen_content
            and len(stripped) > HEADING_MIN_LENGTH
            and not stripped.startswith("#")
        ):
            enhanced.append(f"## {stripped}")
        else:
            enhanced.append(stripped)
        seen_content = True

    return "\n".join(enhanced)


def apply_reverse_strategy(
    strategy: TransformationStrategy,
    extracted: ExtractedWizardContent,
) -> str:
    if strategy is TransformationStrategy.REBUILD_FROM_CONTAINERS:
        return enhance_structure(extracted.content)
    return extracted.content.strip()


# ---------------------------------------------------------------------------
# Transformer
# ---------------------------------------------------------------------------

class ReverseTransformer:
    def __init__(self, validator: Optional[StructuralValidator] = None) -> None:
        self._validator = validator or StructuralValidator()

    def transform(self, snapshot: Optional[WizardSnapshot]) -> ReverseTransformationResult:
        started = monotonic_ms()

        try:
            validation = self._validator.validate_wizard_snapshot(snapshot)
            if not validation.is_valid_for_transfer:
                raise ValueError(
                    "Wizard snapshot validation failed: "
                    + "; ".join(validation.errors)
                )

            extracted = extract_wizard_content(snapshot)
            strategy = select_reverse_strategy(extracted)
            content = apply_reverse_strategy(strategy, extracted)
            duration = elapsed_ms(started)

            if validation.warnings:
                logger.debug(
                    "Reverse transformation proceeding with warnings: %s",
                    validation.warnings,
                )

            return ReverseTransformationResult(
                content=content,
                is_completed=extracted.is_completed,
                strategy=strategy,
                success=True,
                errors=[],
                timestamp=now_ms(),
                content_metadata=ReverseContentMetadata(
                    content_length=len(extracted.content),
                    is_completed=extracted.is_completed,
                    transformation_success=True,
                    transformation_duration_ms=duration,
                    quality=extracted.quality,
                    form_metadata_count=len(extracted.form_metadata),
                    has_title="title" in extracted.form_metadata,
                    has_description="description" in extracted.form_metadata,
                ),
                data_integrity_validation=len(content) > 0,
            )

        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("Reverse transformation failed: %s", message)
            return ReverseTransformationResult(
                content="",
                is_completed=False,
                strategy=TransformationStrategy.PARAGRAPH_FALLBACK,
                success=False,
                errors=[message],
                timestamp=now_ms(),
                content_metadata=ReverseContentMetadata(
                    transformation_success=False,
                    transformation_duration_ms=elapsed_ms(started),
                    error_message=message,
                ),
                data_integrity_validation=False,
            )

    @staticmethod
    def validate_result(result: Any) -> bool:
        """
        Structural check of a reverse result before it is written back.
        """
        return (
            isinstance(result, ReverseTransformationResult)
            and isinstance(result.content, str)
            and isinstance(result.is_completed, bool)
            and isinstance(result.errors, list)
            and result.timestamp > 0
        )
