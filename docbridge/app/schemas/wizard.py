"""
Wizard-side snapshot schemas.

The wizard store keeps its values in a loosely typed form-values mapping.
Form values stay a plain dict here: the key set is owned by the wizard
and is open-ended from the bridge's point of view. Only the two fields the
bridge writes (``editorCompletedContent`` and ``isEditorCompleted``) are
read by name.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

EDITOR_CONTENT_FIELD = "editorCompletedContent"
EDITOR_COMPLETED_FIELD = "isEditorCompleted"

DEFAULT_TOTAL_STEPS = 5


def default_form_values() -> Dict[str, Any]:
    """
    Form values used when the wizard store holds no usable mapping.
    """
    return {
        "userImage": "",
        "nickname": "",
        "emailPrefix": "",
        "emailDomain": "",
        "bio": "",
        "title": "",
        "description": "",
        "tags": "",
        "content": "",
        "media": [],
        "mainImage": None,
        "sliderImages": [],
        EDITOR_CONTENT_FIELD: "",
        EDITOR_COMPLETED_FIELD: False,
    }


REQUIRED_FORM_FIELDS = (
    "userImage",
    "nickname",
    "emailPrefix",
    "emailDomain",
    "bio",
    "title",
    "description",
    "tags",
    "content",
    "mainImage",
    EDITOR_CONTENT_FIELD,
)


class WizardSnapshot(BaseModel):
    """
    Immutable point-in-time read of the wizard store.
    """

    current_step: int = Field(..., description="1-based wizard step")
    form_values: Dict[str, Any] = Field(default_factory=dict)

    progress_width: float = 0
    show_preview: bool = False

    editor_completed_content: str = Field(
        "",
        description="Store-level copy of the editor content",
    )
    is_editor_completed: bool = Field(
        False,
        description="Store-level copy of the editor completion flag",
    )

    snapshot_timestamp: int = Field(..., description="Epoch milliseconds")

    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Open-ended extraction metadata",
    )

    model_config = ConfigDict(frozen=True, extra="forbid")


class EditorContent(BaseModel):
    content: str = ""
    is_completed: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")


class FormCompleteness(BaseModel):
    """
    Progress summary over the required wizard fields.
    """

    is_complete: bool
    completion_percentage: int = Field(..., ge=0, le=100)
    missing_fields: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")
