"""
Runtime structural checks and safe coercions for untyped store data.

Store collaborators hand back plain mappings whose shape is not enforced
anywhere upstream. Everything read from a store passes through the guards
in this module exactly once, at the extraction boundary, before it is
converted into typed snapshot records.

IMPORTANT:
- Guards never raise. Malformed input returns False.
- Converters never raise. Malformed input returns the supplied fallback.
- Raw store keys are camelCase (``containerId``); typed records are
  snake_case (``container_id``).
"""

from __future__ import annotations

import math
from typing import Any, Callable, List, Mapping, Optional, TypeVar

from docbridge.app.schemas.document import Container, ParagraphBlock

T = TypeVar("T")

MAX_CONTAINER_NAME_LENGTH = 100
MAX_PARAGRAPH_CONTENT_LENGTH = 10_000


# ---------------------------------------------------------------------------
# Primitive checks
# ---------------------------------------------------------------------------

def is_number(value: Any) -> bool:
    # bool is an int subclass and never a valid ordering key
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


# ---------------------------------------------------------------------------
# Raw entity guards (extraction boundary)
# ---------------------------------------------------------------------------

def is_raw_container(candidate: Any) -> bool:
    """
    Return True if ``candidate`` is a mapping shaped like a container.

    Requires a non-empty string ``id``, a non-empty string ``name`` and a
    numeric ``order``.
    """
    if not isinstance(candidate, Mapping):
        return False

    return (
        is_non_empty_string(candidate.get("id"))
        and is_non_empty_string(candidate.get("name"))
        and is_number(candidate.get("order"))
    )


def is_raw_paragraph(candidate: Any) -> bool:
    """
    Return True if ``candidate`` is a mapping shaped like a paragraph block.

    The ``containerId`` key must be present; its value is either None
    (unassigned) or a string.
    """
    if not isinstance(candidate, Mapping):
        return False

    if "containerId" not in candidate:
        return False

    container_id = candidate["containerId"]

    return (
        is_non_empty_string(candidate.get("id"))
        and isinstance(candidate.get("content"), str)
        and is_number(candidate.get("order"))
        and (container_id is None or isinstance(container_id, str))
    )


# ---------------------------------------------------------------------------
# Strict entity guards (validator)
# ---------------------------------------------------------------------------

def is_strict_container(container: Container) -> bool:
    return (
        len(container.id) > 0
        and 0 < len(container.name) <= MAX_CONTAINER_NAME_LENGTH
        and math.isfinite(container.order)
        and container.order >= 0
    )


def is_strict_paragraph(paragraph: ParagraphBlock) -> bool:
    return (
        len(paragraph.id) > 0
        and len(paragraph.content) <= MAX_PARAGRAPH_CONTENT_LENGTH
        and math.isfinite(paragraph.order)
        and paragraph.order >= 0
        and (paragraph.container_id is None or len(paragraph.container_id) > 0)
    )


# ---------------------------------------------------------------------------
# Safe converters
# ---------------------------------------------------------------------------

def to_str(value: Any, fallback: str = "") -> str:
    return value if isinstance(value, str) else fallback


def to_bool(value: Any, fallback: bool = False) -> bool:
    return value if isinstance(value, bool) else fallback


def to_number(value: Any, fallback: float = 0) -> float:
    if not is_number(value) or (isinstance(value, float) and math.isnan(value)):
        return fallback
    return value


def to_optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def to_list(value: Any, guard: Callable[[Any], bool]) -> List[Any]:
    """
    Return the elements of ``value`` that satisfy ``guard``.

    Non-list input yields an empty list.
    """
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if guard(item)]


def to_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


# ---------------------------------------------------------------------------
# Boundary parsers
# ---------------------------------------------------------------------------

def parse_container(raw: Mapping[str, Any]) -> Container:
    return Container(id=raw["id"], name=raw["name"], order=raw["order"])


def parse_paragraph(raw: Mapping[str, Any]) -> ParagraphBlock:
    return ParagraphBlock(
        id=raw["id"],
        content=raw["content"],
        order=raw["order"],
        container_id=raw["containerId"],
    )


def parse_containers(value: Any) -> List[Container]:
    """
    Filter raw container entries and convert the survivors to records.
    """
    return [parse_container(raw) for raw in to_list(value, is_raw_container)]


def parse_paragraphs(value: Any) -> List[ParagraphBlock]:
    """
    Filter raw paragraph entries and convert the survivors to records.
    """
    return [parse_paragraph(raw) for raw in to_list(value, is_raw_paragraph)]
