"""
Forward transformation: document snapshot -> wizard content.

Pipeline:
    1. Defensive re-filter into a ValidatedDataSet
    2. Cache lookup by snapshot fingerprint (a hit short-circuits)
    3. Quality scoring
    4. Strategy selection (or a caller-forced strategy)
    5. Content generation
    6. Result assembly and caching

IMPORTANT:
- ``transform`` never raises. Any exception yields an EMERGENCY_RECOVERY
  result with ``success=False``.
- Strategy selection depends only on container count, assigned-paragraph
  presence, unassigned-paragraph presence and trimmed content length.
- Only successful results are cached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from docbridge.app.schemas.document import (
    SNAPSHOT_TYPES,
    Container,
    ParagraphBlock,
)
from docbridge.app.schemas.transformation import (
    PerformanceMetrics,
    QualityMetrics,
    TransformationMetadata,
    TransformationResult,
    TransformationStrategy,
)
from docbridge.app.transform.cache import CacheManager, fingerprint
from docbridge.app.transform.content_builder import (
    build_from_containers,
    build_from_unassigned,
)
from docbridge.app.utils.hashing import ERROR_HASH, compute_content_hash
from docbridge.app.utils.timing import elapsed_ms, monotonic_ms, now_ms

logger = logging.getLogger(__name__)

EXISTING_CONTENT_THRESHOLD = 100
HYBRID_CONTENT_THRESHOLD = 10


# ---------------------------------------------------------------------------
# Validated data set
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidatedDataSet:
    containers: Tuple[Container, ...]
    paragraphs: Tuple[ParagraphBlock, ...]
    existing_content: str
    is_completed: bool

    @property
    def assigned(self) -> Tuple[ParagraphBlock, ...]:
        return tuple(p for p in self.paragraphs if p.container_id is not None)

    @property
    def unassigned(self) -> Tuple[ParagraphBlock, ...]:
        return tuple(p for p in self.paragraphs if p.container_id is None)


def build_dataset(snapshot) -> ValidatedDataSet:
    """
    Re-filter a snapshot's entities. Raises TypeError for non-snapshots.
    """
    if not isinstance(snapshot, SNAPSHOT_TYPES):
        raise TypeError(
            f"Cannot transform {type(snapshot).__name__}: not a document snapshot"
        )

    return ValidatedDataSet(
        containers=tuple(
            c for c in snapshot.containers if isinstance(c, Container) and c.id
        ),
        paragraphs=tuple(
            p for p in snapshot.paragraphs if isinstance(p, ParagraphBlock) and p.id
        ),
        existing_content=snapshot.flattened_content,
        is_completed=snapshot.is_completed,
    )


# ---------------------------------------------------------------------------
# Quality and strategy
# ---------------------------------------------------------------------------

def compute_quality_score(dataset: ValidatedDataSet) -> int:
    """
    0-100 score from entity counts, content length and assignment.
    """
    score = 0.0
    score += min(len(dataset.containers) * 10, 30)
    score += min(len(dataset.paragraphs) * 5, 25)
    score += min(len(dataset.existing_content) / 10, 30)
    if dataset.assigned:
        score += 15

    return int(round(min(max(score, 0), 100)))


def quality_warnings(dataset: ValidatedDataSet) -> List[str]:
    warnings: List[str] = []
    if not dataset.containers:
        warnings.append("No containers present")
    if not dataset.paragraphs:
        warnings.append("No paragraphs present")
    if not dataset.existing_content.strip():
        warnings.append("No existing content present")
    if dataset.paragraphs and not dataset.assigned:
        warnings.append("No paragraph is assigned to a container")
    if dataset.unassigned:
        warnings.append(f"{len(dataset.unassigned)} unassigned paragraph(s)")
    return warnings


def select_strategy(dataset: ValidatedDataSet) -> TransformationStrategy:
    trimmed_length = len(dataset.existing_content.strip())

    if trimmed_length > EXISTING_CONTENT_THRESHOLD:
        return TransformationStrategy.EXISTING_CONTENT

    if dataset.containers and dataset.assigned:
        return TransformationStrategy.REBUILD_FROM_CONTAINERS

    if dataset.unassigned or trimmed_length > HYBRID_CONTENT_THRESHOLD:
        return TransformationStrategy.HYBRID_APPROACH

    return TransformationStrategy.PARAGRAPH_FALLBACK


# ---------------------------------------------------------------------------
# Content generators
# ---------------------------------------------------------------------------

class GeneratedContent(NamedTuple):
    content: str
    error: Optional[str] = None


def _require(content: str, error: str) -> GeneratedContent:
    return GeneratedContent(content) if content else GeneratedContent("", error)


def generate_existing(dataset: ValidatedDataSet) -> GeneratedContent:
    return _require(dataset.existing_content.strip(), "Existing content is empty")


def generate_from_containers(dataset: ValidatedDataSet) -> GeneratedContent:
    return _require(
        build_from_containers(dataset.containers, dataset.paragraphs),
        "No container produced content",
    )


def generate_from_paragraphs(dataset: ValidatedDataSet) -> GeneratedContent:
    return _require(
        build_from_unassigned(dataset.paragraphs),
        "No unassigned paragraph produced content",
    )


def generate_hybrid(dataset: ValidatedDataSet) -> GeneratedContent:
    parts = [
        dataset.existing_content.strip(),
        build_from_containers(dataset.containers, dataset.paragraphs),
        build_from_unassigned(dataset.paragraphs),
    ]
    return _require(
        "\n\n".join(part for part in parts if part).strip(),
        "Hybrid generation produced no content",
    )


GENERATORS: Dict[TransformationStrategy, Callable[[ValidatedDataSet], GeneratedContent]] = {
    TransformationStrategy.EXISTING_CONTENT: generate_existing,
    TransformationStrategy.REBUILD_FROM_CONTAINERS: generate_from_containers,
    TransformationStrategy.PARAGRAPH_FALLBACK: generate_from_paragraphs,
    TransformationStrategy.HYBRID_APPROACH: generate_hybrid,
    TransformationStrategy.EMERGENCY_RECOVERY: generate_existing,
}


# ---------------------------------------------------------------------------
# Transformer
# ---------------------------------------------------------------------------

class ForwardTransformer:
    """
    Document -> wizard transformer wrapping a result cache.
    """

    def __init__(self, cache: Optional[CacheManager] = None) -> None:
        self._cache = cache if cache is not None else CacheManager()

    @property
    def cache(self) -> CacheManager:
        return self._cache

    def transform(
        self,
        snapshot,
        *,
        strategy: Optional[TransformationStrategy] = None,
        extraction_ms: float = 0.0,
        validation_ms: float = 0.0,
    ) -> TransformationResult:
        """
        Transform a document snapshot into wizard content.

        A forced ``strategy`` bypasses both strategy selection and the
        cache.
        """
        started = monotonic_ms()

        try:
            dataset = build_dataset(snapshot)

            key = None
            if strategy is None:
                key = fingerprint(snapshot)
                cached = self._cache.get(key)
                if cached is not None:
                    logger.debug("Transformation cache hit: %s", key)
                    return cached

            quality = compute_quality_score(dataset)
            warnings = quality_warnings(dataset)
            chosen = strategy or select_strategy(dataset)

            generation_started = monotonic_ms()
            generated = GENERATORS[chosen](dataset)
            transformation_ms = elapsed_ms(generation_started)

            total_ms = elapsed_ms(started) + extraction_ms + validation_ms
            success = generated.error is None

            result = TransformationResult(
                content=generated.content,
                is_completed=dataset.is_completed or bool(generated.content),
                strategy=chosen,
                metadata=TransformationMetadata(
                    container_count=len(dataset.containers),
                    paragraph_count=len(dataset.paragraphs),
                    assigned_paragraph_count=len(dataset.assigned),
                    unassigned_paragraph_count=len(dataset.unassigned),
                    total_content_length=len(generated.content),
                    processing_time_ms=total_ms,
                    warnings=warnings,
                    performance=PerformanceMetrics(
                        extraction_ms=extraction_ms,
                        validation_ms=validation_ms,
                        transformation_ms=transformation_ms,
                        total_ms=total_ms,
                        quality_score=quality,
                    ),
                    strategy=chosen,
                ),
                success=success,
                errors=[] if success else [generated.error],
                timestamp=now_ms(),
                quality_metrics=QualityMetrics(
                    overall_quality=quality,
                    content_length=len(generated.content),
                    processing_efficiency=min(100.0, max(0.0, 100 - total_ms / 10)),
                ),
                content_integrity_hash=compute_content_hash(generated.content),
            )

            if success and key is not None:
                self._cache.set(key, result)

            return result

        except Exception as exc:
            logger.warning("Forward transformation failed: %s", exc)
            return self._emergency_result(exc, elapsed_ms(started))

    @staticmethod
    def _emergency_result(exc: Exception, duration_ms: float) -> TransformationResult:
        message = str(exc) or type(exc).__name__
        return TransformationResult(
            content="",
            is_completed=False,
            strategy=TransformationStrategy.EMERGENCY_RECOVERY,
            metadata=TransformationMetadata(
                processing_time_ms=duration_ms,
                strategy=TransformationStrategy.EMERGENCY_RECOVERY,
            ),
            success=False,
            errors=[message],
            timestamp=now_ms(),
            content_integrity_hash=ERROR_HASH,
        )
