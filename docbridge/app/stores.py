"""
Interfaces of the external store collaborators.

The bridge does not own any store. It reads current state through
``get_state()`` and writes through optional setter methods that a store
may or may not expose. Setters are discovered at call time with
``getattr``; a store exposing none of them is valid and simply cannot be
written to.

Raw state keys (camelCase) consumed by the bridge:

Document store:
    containers, paragraphs, isCompleted, completedContent

UI store:
    activeParagraphId, selectedParagraphIds, isPreviewOpen

Wizard store:
    formValues, currentStep, progressWidth, showPreview,
    editorCompletedContent, isEditorCompleted
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol


class DocumentStore(Protocol):
    """
    Optional setters: ``set_completed_content(str)``,
    ``set_is_completed(bool)``.
    """

    def get_state(self) -> Mapping[str, Any]:
        ...


class UiStore(Protocol):
    def get_state(self) -> Mapping[str, Any]:
        ...


class WizardStore(Protocol):
    """
    Optional setters: ``update_editor_content(str)``,
    ``set_editor_completed(bool)``, ``update_form_value(field, value)``,
    ``set_form_values(mapping)``.
    """

    def get_state(self) -> Mapping[str, Any]:
        ...


class PersistedKeyStore(Protocol):
    """
    Key/value persistence the cache may clean up on full invalidation.
    """

    def keys(self) -> Iterable[str]:
        ...

    def remove(self, key: str) -> None:
        ...


def find_setter(store: Any, name: str):
    """
    Return the bound setter ``name`` on ``store`` if it is callable.
    """
    candidate = getattr(store, name, None)
    return candidate if callable(candidate) else None
