import pytest

from docbridge.app.schemas.wizard import EDITOR_COMPLETED_FIELD, EDITOR_CONTENT_FIELD
from docbridge.app.transform.forward import ForwardTransformer
from docbridge.app.transform.reverse import ReverseTransformer
from docbridge.app.update.document_updater import DocumentStateUpdater
from docbridge.app.update.wizard_updater import WizardStateUpdater
from docbridge.tests.fakes import (
    FakeDocumentStore,
    FakeWizardStore,
    ForgetfulWizardStore,
    FormOnlyWizardStore,
    RaisingWizardStore,
    ReadOnlyDocumentStore,
    ReadOnlyWizardStore,
    container,
    make_snapshot,
    make_wizard_snapshot,
    paragraph,
)

pytestmark = pytest.mark.anyio


def _forward_result():
    return ForwardTransformer().transform(
        make_snapshot(
            containers=[container("c1", "Intro")],
            paragraphs=[paragraph("p1", "Hello world", "c1")],
        )
    )


def _updater(store, **kwargs) -> WizardStateUpdater:
    kwargs.setdefault("settle_delay_s", 0)
    return WizardStateUpdater(store, **kwargs)


# ----------------------------------------------------------------------
# Wizard store
# ----------------------------------------------------------------------

async def test_apply_writes_both_layers():
    store = FakeWizardStore()
    result = _forward_result()

    assert await _updater(store).apply(result) is True

    state = store.get_state()
    assert state["editorCompletedContent"] == "## Intro\nHello world"
    assert state["isEditorCompleted"] is True
    assert state["formValues"][EDITOR_CONTENT_FIELD] == "## Intro\nHello world"
    assert state["formValues"][EDITOR_COMPLETED_FIELD] is True


async def test_form_layer_alone_counts_as_success():
    store = FormOnlyWizardStore()

    assert await _updater(store).apply(_forward_result()) is True
    assert store.state["formValues"][EDITOR_CONTENT_FIELD] == "## Intro\nHello world"


async def test_store_without_setters_is_not_updated():
    assert await _updater(ReadOnlyWizardStore()).apply(_forward_result()) is False


async def test_raising_setter_returns_false():
    assert await _updater(RaisingWizardStore()).apply(_forward_result()) is False


async def test_unverified_write_returns_false():
    store = ForgetfulWizardStore()

    assert await _updater(store).apply(_forward_result()) is False
    assert "update_editor_content" in store.calls


async def test_failed_result_is_refused():
    store = FakeWizardStore()
    failed = ForwardTransformer().transform(make_snapshot())

    assert await _updater(store).apply(failed) is False
    assert store.calls == []


async def test_apply_times_out():
    updater = WizardStateUpdater(FakeWizardStore(), settle_delay_s=1.0, timeout_s=0.05)

    assert await updater.apply(_forward_result()) is False


async def test_update_form_field_falls_back_to_set_form_values():
    class ValuesOnlyStore(FakeWizardStore):
        update_form_value = None

    store = ValuesOnlyStore()

    assert _updater(store).update_form_field("title", "New title") is True
    assert store.state["formValues"]["title"] == "New title"
    assert store.calls == ["set_form_values"]


async def test_update_form_field_prefers_single_field_setter():
    store = FakeWizardStore()

    assert _updater(store).update_form_field("title", "T") is True
    assert store.calls == ["update_form_value:title"]


# ----------------------------------------------------------------------
# Document store
# ----------------------------------------------------------------------

def _reverse_result(content: str = "Body text"):
    snapshot = make_wizard_snapshot(
        form_values={EDITOR_CONTENT_FIELD: content, EDITOR_COMPLETED_FIELD: True}
    )
    return ReverseTransformer().transform(snapshot)


async def test_document_updater_writes_content_and_flag():
    store = FakeDocumentStore()
    updater = DocumentStateUpdater(store)

    assert await updater.apply(_reverse_result()) is True

    current = updater.current_state()
    assert current.content == "Body text"
    assert current.is_completed is True


async def test_document_updater_requires_both_setters():
    store = ReadOnlyDocumentStore({"containers": []})

    assert await DocumentStateUpdater(store).apply(_reverse_result()) is False


async def test_document_updater_refuses_failed_result():
    store = FakeDocumentStore()
    failed = ReverseTransformer().transform(None)

    assert await DocumentStateUpdater(store).apply(failed) is False
    assert "completedContent" not in store.state
