from docbridge.app.schemas.transformation import TransformationStrategy
from docbridge.app.schemas.wizard import (
    EDITOR_COMPLETED_FIELD,
    EDITOR_CONTENT_FIELD,
    default_form_values,
)
from docbridge.app.transform.reverse import (
    ReverseTransformer,
    analyze_content_quality,
    enhance_structure,
)
from docbridge.tests.fakes import make_wizard_snapshot


def _snapshot(content: str, is_completed: bool = True, **extra):
    return make_wizard_snapshot(
        form_values={
            **default_form_values(),
            EDITOR_CONTENT_FIELD: content,
            EDITOR_COMPLETED_FIELD: is_completed,
            **extra,
        }
    )


def test_quality_scoring_components():
    plain = analyze_content_quality("one two three")
    rich = analyze_content_quality("# Heading\n- item one\n" + "word " * 30)

    assert plain.word_count == 3
    assert plain.quality_score == 6
    assert plain.has_markdown_syntax is False

    assert rich.has_markdown_syntax is True
    assert rich.has_structured_content is True
    assert rich.quality_score == min(rich.word_count * 2, 40) + 20 + 20 + 10


def test_short_plain_content_uses_paragraph_fallback():
    result = ReverseTransformer().transform(_snapshot("  Just a short note.  "))

    assert result.success is True
    assert result.strategy == TransformationStrategy.PARAGRAPH_FALLBACK
    assert result.content == "Just a short note."
    assert result.is_completed is True
    assert result.data_integrity_validation is True


def test_long_high_quality_content_is_kept():
    body = "# Title\n" + " ".join(f"word{i}" for i in range(60))

    result = ReverseTransformer().transform(_snapshot(body))

    assert result.strategy == TransformationStrategy.EXISTING_CONTENT
    assert result.content == body.strip()


def test_structured_content_gets_heading():
    body = (
        "This first line is definitely longer than thirty characters\n"
        "  - bullet one  \n"
        "\n"
        "- bullet two with more words to pass the length bar"
    )

    result = ReverseTransformer().transform(_snapshot(body))

    assert result.strategy == TransformationStrategy.REBUILD_FROM_CONTAINERS
    lines = result.content.split("\n")
    assert lines[0] == "## This first line is definitely longer than thirty characters"
    assert lines[1] == "- bullet one"
    assert lines[2] == ""


def test_enhance_structure_keeps_existing_heading():
    text = "# Already a heading that is quite long indeed\nbody"

    assert enhance_structure(text) == text


def test_form_metadata_is_reported():
    result = ReverseTransformer().transform(
        _snapshot("Note", title="My title", description="About")
    )

    assert result.content_metadata.has_title is True
    assert result.content_metadata.has_description is True
    assert result.content_metadata.form_metadata_count >= 2


def test_missing_snapshot_fails_without_raising():
    result = ReverseTransformer().transform(None)

    assert result.success is False
    assert result.strategy == TransformationStrategy.PARAGRAPH_FALLBACK
    assert result.content == ""
    assert result.errors
    assert ReverseTransformer.validate_result(result) is True


def test_empty_editor_content_succeeds_with_empty_content():
    result = ReverseTransformer().transform(_snapshot("", is_completed=False))

    assert result.success is True
    assert result.content == ""
    assert result.data_integrity_validation is False
