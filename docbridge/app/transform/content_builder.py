"""
Flattened-content generation from containers and paragraph blocks.

These functions are the single definition of how structured document data
becomes flattened text. The extractor uses them to regenerate missing
content and the forward transformer uses them for its strategies, so both
always agree on ordering.

Ordering rules:
- containers are sorted by ``order``
- paragraphs inside a container are sorted by ``order``
- paragraph content is trimmed and empty paragraphs are skipped
- containers without any assigned paragraph emit nothing
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from docbridge.app.schemas.document import Container, ParagraphBlock


def _sorted_by_order(items: Iterable) -> list:
    # sorted() is stable, so equal orders keep store order
    return sorted(items, key=lambda item: item.order)


def assigned_to(
    container: Container,
    paragraphs: Sequence[ParagraphBlock],
) -> List[ParagraphBlock]:
    return _sorted_by_order(
        p for p in paragraphs if p.container_id == container.id
    )


def unassigned(paragraphs: Sequence[ParagraphBlock]) -> List[ParagraphBlock]:
    return _sorted_by_order(p for p in paragraphs if p.container_id is None)


def build_sectioned_lines(
    containers: Sequence[Container],
    paragraphs: Sequence[ParagraphBlock],
) -> List[str]:
    """
    Emit ``## name`` followed by trimmed paragraph lines and a blank
    separator for every container that has assigned paragraphs.
    """
    lines: List[str] = []

    for container in _sorted_by_order(containers):
        members = assigned_to(container, paragraphs)
        if not members:
            continue

        lines.append(f"## {container.name}")
        for paragraph in members:
            text = paragraph.content.strip()
            if text:
                lines.append(text)
        lines.append("")

    return lines


def build_from_containers(
    containers: Sequence[Container],
    paragraphs: Sequence[ParagraphBlock],
) -> str:
    """
    REBUILD_FROM_CONTAINERS rendering, trimmed.
    """
    return "\n".join(build_sectioned_lines(containers, paragraphs)).strip()


def build_from_unassigned(paragraphs: Sequence[ParagraphBlock]) -> str:
    """
    PARAGRAPH_FALLBACK rendering: unassigned paragraphs separated by a
    blank line.
    """
    texts = [p.content.strip() for p in unassigned(paragraphs)]
    return "\n\n".join(text for text in texts if text)


def build_document_content(
    containers: Sequence[Container],
    paragraphs: Sequence[ParagraphBlock],
) -> str:
    """
    Full flattened document: sectioned containers, then unassigned
    paragraphs one per line.

    Used to regenerate content a store did not precompute.
    """
    lines = build_sectioned_lines(containers, paragraphs)

    for paragraph in unassigned(paragraphs):
        text = paragraph.content.strip()
        if text:
            lines.append(text)

    return "\n".join(lines)
