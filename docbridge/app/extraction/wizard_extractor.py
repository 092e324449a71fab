"""
Wizard snapshot extraction.

Mirror of the document extractor for the reverse direction. The wizard
store's form values are open-ended, so only their container type is
checked here; individual fields are read defensively by consumers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from docbridge.app.schemas.wizard import (
    DEFAULT_TOTAL_STEPS,
    EDITOR_COMPLETED_FIELD,
    EDITOR_CONTENT_FIELD,
    REQUIRED_FORM_FIELDS,
    EditorContent,
    FormCompleteness,
    WizardSnapshot,
    default_form_values,
)
from docbridge.app.stores import WizardStore
from docbridge.app.utils.timing import now_ms
from docbridge.app.utils.type_guards import to_bool, to_number, to_str

logger = logging.getLogger(__name__)


class WizardSnapshotExtractor:
    def __init__(self, wizard_store: WizardStore) -> None:
        self._wizard_store = wizard_store

    def extract(self) -> Optional[WizardSnapshot]:
        """
        Read the wizard store into a WizardSnapshot.

        Returns None when the store raises or does not return a mapping.
        """
        try:
            raw_state = self._wizard_store.get_state()
        except Exception as exc:
            logger.warning("Wizard store read failed: %s", exc)
            return None

        if not isinstance(raw_state, Mapping):
            logger.warning(
                "Wizard store returned %s instead of a mapping",
                type(raw_state).__name__,
            )
            return None

        raw_form_values = raw_state.get("formValues")
        if isinstance(raw_form_values, Mapping):
            form_values: Dict[str, Any] = dict(raw_form_values)
        else:
            form_values = default_form_values()

        current_step = int(to_number(raw_state.get("currentStep"), 0))
        editor_content = to_str(form_values.get(EDITOR_CONTENT_FIELD))

        return WizardSnapshot(
            current_step=current_step,
            form_values=form_values,
            progress_width=to_number(raw_state.get("progressWidth"), 0),
            show_preview=to_bool(raw_state.get("showPreview"), False),
            editor_completed_content=to_str(
                raw_state.get("editorCompletedContent")
            ),
            is_editor_completed=to_bool(raw_state.get("isEditorCompleted"), False),
            snapshot_timestamp=now_ms(),
            metadata={
                "current_step": current_step,
                "total_steps": DEFAULT_TOTAL_STEPS,
                "has_form_values": bool(form_values),
                "editor_content_length": len(editor_content),
            },
        )

    def get_editor_content(self) -> EditorContent:
        """
        Editor content and completion flag as stored in the form values.
        """
        snapshot = self.extract()
        if snapshot is None:
            return EditorContent()

        values = {**default_form_values(), **snapshot.form_values}

        return EditorContent(
            content=to_str(values.get(EDITOR_CONTENT_FIELD)),
            is_completed=to_bool(values.get(EDITOR_COMPLETED_FIELD), False),
        )

    def check_form_completeness(self) -> FormCompleteness:
        snapshot = self.extract()
        if snapshot is None:
            return FormCompleteness(
                is_complete=False,
                completion_percentage=0,
                missing_fields=list(REQUIRED_FORM_FIELDS),
            )

        missing = [
            field
            for field in REQUIRED_FORM_FIELDS
            if _is_blank(snapshot.form_values.get(field))
        ]
        completed = len(REQUIRED_FORM_FIELDS) - len(missing)

        return FormCompleteness(
            is_complete=not missing,
            completion_percentage=round(completed / len(REQUIRED_FORM_FIELDS) * 100),
            missing_fields=missing,
        )


def _is_blank(value: Any) -> bool:
    if isinstance(value, str):
        return not value.strip()
    return not value
