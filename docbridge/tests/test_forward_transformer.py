import pytest

from docbridge.app.schemas.transformation import TransformationStrategy
from docbridge.app.transform.cache import CacheManager
from docbridge.app.transform.forward import (
    ForwardTransformer,
    build_dataset,
    compute_quality_score,
    select_strategy,
)
from docbridge.app.utils.hashing import ERROR_HASH, compute_content_hash
from docbridge.tests.fakes import container, make_snapshot, paragraph


def test_round_trip_single_section():
    snapshot = make_snapshot(
        containers=[container("c1", "Intro")],
        paragraphs=[paragraph("p1", "Hello world", "c1")],
    )

    result = ForwardTransformer().transform(snapshot)

    assert result.success is True
    assert result.strategy == TransformationStrategy.REBUILD_FROM_CONTAINERS
    assert result.content == "## Intro\nHello world"
    assert result.content_integrity_hash == compute_content_hash(result.content)


def test_empty_snapshot_fails_with_paragraph_fallback():
    result = ForwardTransformer().transform(make_snapshot())

    assert result.success is False
    assert result.strategy == TransformationStrategy.PARAGRAPH_FALLBACK
    assert result.content == ""
    assert result.errors


def test_long_existing_content_is_reused_trimmed():
    text = "x" * 150
    snapshot = make_snapshot(
        containers=[container("c1", "Intro")],
        paragraphs=[paragraph("p1", "Hello", "c1")],
        content=f"  {text}  ",
    )

    result = ForwardTransformer().transform(snapshot)

    assert result.strategy == TransformationStrategy.EXISTING_CONTENT
    assert result.content == text


@pytest.mark.parametrize(
    "containers, paragraphs, content, expected",
    [
        ([], [paragraph("p1", "Loose")], "", TransformationStrategy.HYBRID_APPROACH),
        ([], [], "some content", TransformationStrategy.HYBRID_APPROACH),
        (
            [container("c1", "Intro")],
            [paragraph("p1", "Hi", "c1"), paragraph("p2", "Loose")],
            "",
            TransformationStrategy.REBUILD_FROM_CONTAINERS,
        ),
        ([container("c1", "Intro")], [], "short", TransformationStrategy.PARAGRAPH_FALLBACK),
    ],
)
def test_strategy_selection_is_deterministic(containers, paragraphs, content, expected):
    dataset = build_dataset(
        make_snapshot(containers=containers, paragraphs=paragraphs, content=content)
    )

    assert select_strategy(dataset) == expected
    assert select_strategy(dataset) == expected


def test_hybrid_combines_existing_sections_and_loose_paragraphs():
    snapshot = make_snapshot(
        paragraphs=[paragraph("p2", "second", order=2), paragraph("p1", "first", order=1)],
        content="Preamble",
    )

    result = ForwardTransformer().transform(snapshot)

    assert result.strategy == TransformationStrategy.HYBRID_APPROACH
    assert result.content == "Preamble\n\nfirst\n\nsecond"


def test_forced_strategy_bypasses_selection_and_cache():
    cache = CacheManager()
    transformer = ForwardTransformer(cache)
    snapshot = make_snapshot(
        containers=[container("c1", "Intro")],
        paragraphs=[paragraph("p1", "Hello world", "c1"), paragraph("p2", "Loose")],
    )

    result = transformer.transform(
        snapshot, strategy=TransformationStrategy.PARAGRAPH_FALLBACK
    )

    assert result.strategy == TransformationStrategy.PARAGRAPH_FALLBACK
    assert result.content == "Loose"
    assert len(cache) == 0


def test_cache_hit_returns_same_object():
    transformer = ForwardTransformer()
    snapshot = make_snapshot(
        containers=[container("c1", "Intro")],
        paragraphs=[paragraph("p1", "Hello world", "c1")],
    )

    first = transformer.transform(snapshot)
    second = transformer.transform(snapshot)

    assert second is first
    assert transformer.cache.statistics().hits == 1


def test_cache_miss_after_invalidation_yields_identical_content():
    transformer = ForwardTransformer()
    snapshot = make_snapshot(
        containers=[container("c1", "Intro")],
        paragraphs=[paragraph("p1", "Hello world", "c1")],
    )

    first = transformer.transform(snapshot)
    transformer.cache.invalidate_all()
    second = transformer.transform(snapshot)

    assert second is not first
    assert second.content == first.content
    assert second.strategy == first.strategy


def test_failures_are_not_cached():
    transformer = ForwardTransformer()

    transformer.transform(make_snapshot())

    assert len(transformer.cache) == 0


def test_non_snapshot_yields_emergency_result():
    result = ForwardTransformer().transform({"containers": []})

    assert result.success is False
    assert result.strategy == TransformationStrategy.EMERGENCY_RECOVERY
    assert result.content_integrity_hash == ERROR_HASH
    assert "not a document snapshot" in result.errors[0]


def test_quality_score_is_bounded_int():
    many = make_snapshot(
        containers=[container(f"c{i}", f"S{i}") for i in range(10)],
        paragraphs=[paragraph(f"p{i}", "text", "c0") for i in range(20)],
        content="x" * 5000,
    )

    high = compute_quality_score(build_dataset(many))
    low = compute_quality_score(build_dataset(make_snapshot()))

    assert isinstance(high, int)
    assert high == 100
    assert low == 0

    result = ForwardTransformer().transform(many)
    assert 0 <= result.quality_metrics.overall_quality <= 100
