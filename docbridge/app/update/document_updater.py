"""
Write-back of reverse transformation results into the document store.

Unlike the wizard side, both setters are mandatory: a reverse write is
successful only when content and completion flag were both written.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from docbridge.app.schemas.transformation import ReverseTransformationResult
from docbridge.app.schemas.wizard import EditorContent
from docbridge.app.stores import DocumentStore, find_setter
from docbridge.app.utils.type_guards import to_bool, to_str

logger = logging.getLogger(__name__)

CONTENT_SETTER = "set_completed_content"
COMPLETION_SETTER = "set_is_completed"


class DocumentStateUpdater:
    def __init__(self, document_store: DocumentStore) -> None:
        self._store = document_store

    async def apply(self, result: ReverseTransformationResult) -> bool:
        if not (
            isinstance(result, ReverseTransformationResult)
            and result.success is True
        ):
            logger.warning("Refusing to apply an invalid or failed reverse result")
            return False

        content_written = self._call(CONTENT_SETTER, result.content)
        completion_written = self._call(COMPLETION_SETTER, result.is_completed)

        return content_written and completion_written

    def current_state(self) -> Optional[EditorContent]:
        try:
            state = self._store.get_state()
        except Exception as exc:
            logger.warning("Document store read failed: %s", exc)
            return None

        if not isinstance(state, Mapping):
            return None

        return EditorContent(
            content=to_str(state.get("completedContent")),
            is_completed=to_bool(state.get("isCompleted"), False),
        )

    def _call(self, name: str, value: Any) -> bool:
        setter = find_setter(self._store, name)
        if setter is None:
            logger.warning("Document store exposes no %s setter", name)
            return False

        try:
            setter(value)
        except Exception as exc:
            logger.warning("Document store %s failed: %s", name, exc)
            return False

        return True
