from docbridge.app.extraction.document_extractor import DocumentSnapshotExtractor
from docbridge.app.extraction.external_data import (
    assess_external_data_quality,
    external_data_passes_preconditions,
    generate_snapshot_from_external_data,
)
from docbridge.app.extraction.wizard_extractor import WizardSnapshotExtractor
from docbridge.app.schemas.document import FallbackSnapshot, ProcessingFlag, ValidSnapshot
from docbridge.app.schemas.operation import ExternalData
from docbridge.app.schemas.wizard import REQUIRED_FORM_FIELDS, default_form_values
from docbridge.app.utils.hashing import compute_content_hash
from docbridge.tests.fakes import (
    BrokenStore,
    FakeDocumentStore,
    FakeUiStore,
    FakeWizardStore,
    ReadOnlyDocumentStore,
    raw_container,
    raw_paragraph,
    wizard_with_editor,
)


# ----------------------------------------------------------------------
# Document store
# ----------------------------------------------------------------------

def test_extract_regenerates_missing_content_in_order():
    store = FakeDocumentStore(
        containers=[
            raw_container("c2", "Second", 2),
            raw_container("c1", "First", 1),
        ],
        paragraphs=[
            raw_paragraph("p2", "  beta  ", "c1", order=2),
            raw_paragraph("p1", "alpha", "c1", order=1),
            raw_paragraph("p3", "gamma", "c2", order=1),
            raw_paragraph("p4", "loose", None, order=1),
        ],
    )

    snapshot = DocumentSnapshotExtractor(store, FakeUiStore()).extract()

    assert isinstance(snapshot, ValidSnapshot)
    assert snapshot.flattened_content == (
        "## First\nalpha\nbeta\n\n## Second\ngamma\n\nloose"
    )
    assert snapshot.metadata.integrity_hash == compute_content_hash(
        snapshot.flattened_content
    )
    assert snapshot.metadata.additional_metrics.container_count == 2
    assert snapshot.metadata.additional_metrics.paragraph_count == 4
    assert ProcessingFlag.VALIDATION_PASSED in snapshot.metadata.processing_flags


def test_extract_keeps_stored_content_verbatim():
    store = FakeDocumentStore(
        containers=[raw_container("c1", "Intro")],
        paragraphs=[raw_paragraph("p1", "Hello world", "c1")],
        completed_content="precomputed",
        is_completed=True,
    )

    snapshot = DocumentSnapshotExtractor(store, FakeUiStore()).extract()

    assert snapshot.flattened_content == "precomputed"
    assert snapshot.is_completed is True


def test_extract_drops_malformed_entries():
    store = FakeDocumentStore(
        containers=[raw_container("c1", "Intro"), {"id": 5}],
        paragraphs=[raw_paragraph("p1", "Hello", "c1"), {"content": "orphan"}],
    )

    snapshot = DocumentSnapshotExtractor(store, FakeUiStore()).extract()

    assert [c.id for c in snapshot.containers] == ["c1"]
    assert [p.id for p in snapshot.paragraphs] == ["p1"]


def test_extract_reads_ui_cursor():
    ui = FakeUiStore(
        active_paragraph_id="p1",
        selected_paragraph_ids=["p1", 7, "p2"],
        is_preview_open=True,
    )

    snapshot = DocumentSnapshotExtractor(FakeDocumentStore(), ui).extract()

    assert snapshot.active_paragraph_id == "p1"
    assert snapshot.selected_paragraph_ids == ["p1", "p2"]
    assert snapshot.is_preview_open is True


def test_broken_ui_store_uses_defaults():
    snapshot = DocumentSnapshotExtractor(FakeDocumentStore(), BrokenStore()).extract()

    assert snapshot.active_paragraph_id is None
    assert snapshot.selected_paragraph_ids == []


def test_unreadable_document_store_yields_none():
    assert DocumentSnapshotExtractor(BrokenStore(), FakeUiStore()).extract() is None
    assert (
        DocumentSnapshotExtractor(ReadOnlyDocumentStore("nope"), FakeUiStore()).extract()
        is None
    )


def test_content_generation_failure_yields_fallback(monkeypatch):
    import docbridge.app.extraction.document_extractor as extractor_module

    def explode(*args, **kwargs):
        raise ValueError("boom")

    monkeypatch.setattr(extractor_module, "build_document_content", explode)

    store = FakeDocumentStore(containers=[raw_container("c1", "Intro")])
    snapshot = DocumentSnapshotExtractor(store, FakeUiStore()).extract()

    assert isinstance(snapshot, FallbackSnapshot)
    assert snapshot.kind == "fallback"
    assert snapshot.containers == []
    assert ProcessingFlag.FALLBACK_MODE in snapshot.metadata.processing_flags


# ----------------------------------------------------------------------
# External data
# ----------------------------------------------------------------------

def test_external_quality_scores_valid_share():
    data = ExternalData(
        containers=[raw_container("c1", "Intro"), {"bad": True}],
        paragraphs=[raw_paragraph("p1", "Hello", "c1")],
    )

    quality = assess_external_data_quality(data)

    assert quality.quality_score == 75
    assert quality.is_quality_valid is True
    assert quality.valid_container_count == 1


def test_low_quality_with_one_valid_entity_still_passes_gate():
    data = ExternalData(
        containers=[{"bad": 1}, {"bad": 2}, {"bad": 3}],
        paragraphs=[raw_paragraph("p1", "Hello", None), {"bad": 4}, {"bad": 5}],
    )

    quality = assess_external_data_quality(data)

    assert quality.is_quality_valid is False
    assert external_data_passes_preconditions(quality) is True


def test_entirely_invalid_external_data_fails_gate():
    data = ExternalData(containers=[{"bad": 1}], paragraphs=[{"bad": 2}])

    quality = assess_external_data_quality(data)

    assert quality.quality_score == 0
    assert external_data_passes_preconditions(quality) is False


def test_external_snapshot_is_flagged():
    data = ExternalData(
        containers=[raw_container("c1", "Intro")],
        paragraphs=[raw_paragraph("p1", "Hello world", "c1")],
    )

    snapshot = generate_snapshot_from_external_data(data)

    assert snapshot.flattened_content == "## Intro\nHello world\n"
    assert snapshot.is_completed is True
    assert ProcessingFlag.EXTERNAL_DATA_SOURCE in snapshot.metadata.processing_flags


# ----------------------------------------------------------------------
# Wizard store
# ----------------------------------------------------------------------

def test_wizard_extract_substitutes_default_form_values():
    store = FakeWizardStore(form_values="garbage", current_step="3")

    snapshot = WizardSnapshotExtractor(store).extract()

    assert snapshot.form_values == default_form_values()
    assert snapshot.current_step == 0
    assert snapshot.metadata["total_steps"] == 5


def test_wizard_extract_unreadable_store_yields_none():
    assert WizardSnapshotExtractor(BrokenStore()).extract() is None


def test_editor_content_reads_form_values():
    extractor = WizardSnapshotExtractor(wizard_with_editor("Draft", True))

    editor = extractor.get_editor_content()

    assert editor.content == "Draft"
    assert editor.is_completed is True


def test_form_completeness_lists_missing_fields():
    extractor = WizardSnapshotExtractor(
        wizard_with_editor("Draft", title="T", nickname="  ")
    )

    completeness = extractor.check_form_completeness()

    assert completeness.is_complete is False
    assert "title" not in completeness.missing_fields
    assert "nickname" in completeness.missing_fields
    assert "editorCompletedContent" not in completeness.missing_fields
    assert completeness.completion_percentage == round(
        2 / len(REQUIRED_FORM_FIELDS) * 100
    )
