"""
Write-back of forward transformation results into the wizard store.

IMPORTANT:
- Setters are discovered per call. Any subset may be missing.
- ``apply`` returns False (never raises) when no setter exists, a setter
  raises, verification fails, or the deadline passes.
- Verification succeeds if EITHER the store-level fields OR the
  form-values fields hold the written values. A partial write where only
  one layer landed is therefore reported as success.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import anyio

from docbridge.app.config import BridgeConfig
from docbridge.app.schemas.transformation import TransformationResult
from docbridge.app.schemas.wizard import EDITOR_COMPLETED_FIELD, EDITOR_CONTENT_FIELD
from docbridge.app.stores import WizardStore, find_setter

logger = logging.getLogger(__name__)

CONTENT_SETTER = "update_editor_content"
COMPLETION_SETTER = "set_editor_completed"
FIELD_SETTER = "update_form_value"
FORM_VALUES_SETTER = "set_form_values"


class WizardStateUpdater:
    def __init__(
        self,
        wizard_store: WizardStore,
        *,
        settle_delay_s: float = 0.2,
        timeout_s: float = 10.0,
    ) -> None:
        self._store = wizard_store
        self._settle_delay_s = settle_delay_s
        self._timeout_s = timeout_s

    @classmethod
    def from_config(
        cls, wizard_store: WizardStore, config: BridgeConfig
    ) -> "WizardStateUpdater":
        return cls(
            wizard_store,
            settle_delay_s=config.update_settle_delay_s,
            timeout_s=config.update_timeout_s,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def validate_result(result: Any) -> bool:
        return (
            isinstance(result, TransformationResult)
            and isinstance(result.content, str)
            and isinstance(result.is_completed, bool)
            and result.success is True
        )

    async def apply(self, result: TransformationResult) -> bool:
        """
        Write ``result`` into the wizard store and verify it landed.
        """
        if not self.validate_result(result):
            logger.warning("Refusing to apply an invalid or failed result")
            return False

        with anyio.move_on_after(self._timeout_s):
            if not self._write(result):
                return False

            await anyio.sleep(self._settle_delay_s)
            return self._verify(result)

        logger.warning("Wizard update timed out after %.2fs", self._timeout_s)
        return False

    def update_form_field(self, field: str, value: Any) -> bool:
        """
        Set a single form field, falling back to replacing the whole
        form-values mapping.
        """
        try:
            field_setter = find_setter(self._store, FIELD_SETTER)
            if field_setter is not None:
                field_setter(field, value)
                return True

            values_setter = find_setter(self._store, FORM_VALUES_SETTER)
            if values_setter is not None:
                state = self._store.get_state()
                current = state.get("formValues") if isinstance(state, Mapping) else None
                merged = dict(current) if isinstance(current, Mapping) else {}
                merged[field] = value
                values_setter(merged)
                return True
        except Exception as exc:
            logger.warning("Form field update failed for %s: %s", field, exc)
            return False

        logger.warning("Wizard store exposes no form field setter")
        return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _write(self, result: TransformationResult) -> bool:
        content_setter = find_setter(self._store, CONTENT_SETTER)
        completion_setter = find_setter(self._store, COMPLETION_SETTER)
        field_setter = find_setter(self._store, FIELD_SETTER)

        if content_setter is None and completion_setter is None and field_setter is None:
            logger.warning("Wizard store exposes no update setters")
            return False

        try:
            if content_setter is not None:
                content_setter(result.content)
            if completion_setter is not None:
                completion_setter(result.is_completed)
            if field_setter is not None:
                field_setter(EDITOR_CONTENT_FIELD, result.content)
                field_setter(EDITOR_COMPLETED_FIELD, result.is_completed)
        except Exception as exc:
            logger.warning("Wizard store write failed: %s", exc)
            return False

        return True

    def _verify(self, result: TransformationResult) -> bool:
        try:
            state = self._store.get_state()
        except Exception as exc:
            logger.warning("Wizard store re-read failed: %s", exc)
            return False

        if not isinstance(state, Mapping):
            return False

        store_level_matches = (
            state.get("editorCompletedContent") == result.content
            and state.get("isEditorCompleted") == result.is_completed
        )

        form_values = state.get("formValues")
        form_level_matches = (
            isinstance(form_values, Mapping)
            and form_values.get(EDITOR_CONTENT_FIELD) == result.content
            and form_values.get(EDITOR_COMPLETED_FIELD) == result.is_completed
        )

        if not (store_level_matches or form_level_matches):
            logger.warning("Wizard store does not reflect the written values")
            return False

        return True
