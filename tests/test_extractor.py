"""Tests for narration text extraction."""

from speak_docs.extractor import clean_text, extract_text


def test_scenario_document(scenario_doc):
    """Front matter dropped, emphasis flattened, adjacent blocks one line apart."""
    assert extract_text(scenario_doc) == "Hi\nSome text."


def test_heading_and_code_block():
    """Code blocks are not narrated."""
    text = "# Setup\n\n```bash\nnpm install\n```\n"
    assert extract_text(text) == "Setup"


def test_blank_line_between_separated_blocks():
    """A source gap between blocks is kept as one blank line."""
    text = "# Title\n\nFirst paragraph.\n\n\n\nSecond paragraph.\n"
    assert extract_text(text) == "Title\n\nFirst paragraph.\n\nSecond paragraph."


def test_imports_and_components_dropped():
    """ESM statements and component subtrees vanish."""
    text = (
        "import { Card } from '/snippets/card.jsx';\n\n"
        "<Card title=\"Skip me\">\n  Nested text.\n</Card>\n\n"
        "Visible prose.\n"
    )
    assert extract_text(text) == "Visible prose."


def test_links_and_images_keep_visible_text():
    """Link targets are dropped; image alt text is kept."""
    text = "Read [the guide](https://example.com/guide) and ![a diagram](d.png).\n"
    assert extract_text(text) == "Read the guide and a diagram."


def test_image_without_alt_contributes_nothing():
    """An image with no alt text leaves no trace."""
    assert extract_text("![](logo.png)\n\nHello.\n") == "Hello."


def test_inline_code_kept():
    """Inline code keeps its literal text."""
    assert extract_text("Run `make build` now.\n") == "Run make build now."


def test_expressions_dropped():
    """Inline and flow expressions are not narrated."""
    text = "{/* note */}\n\nHello world.{props.suffix}\n"
    assert extract_text(text) == "Hello world."


def test_list_items_one_per_line():
    """Each list item is its own line."""
    assert extract_text("- First\n- Second\n") == "First\nSecond"


def test_table_cells_joined():
    """Table rows become lines with cells joined by commas."""
    text = "| Name | Role |\n|------|------|\n| Ada | Admin |\n"
    assert extract_text(text) == "Name, Role\nAda, Admin"


def test_blockquote_content():
    """Blockquotes contribute their text."""
    assert extract_text("> Quoted wisdom.\n") == "Quoted wisdom."


def test_only_front_matter_is_empty():
    """Nothing narratable yields an empty string."""
    assert extract_text("---\ntitle: Empty\n---\n") == ""


def test_extraction_is_deterministic(scenario_doc):
    """Same input, same output."""
    assert extract_text(scenario_doc) == extract_text(scenario_doc)


# --- Cleanup ---

def test_deeply_nested_list():
    """Nesting deeper than the recursion limit still extracts."""
    assert extract_text("- " * 300 + "x\n").endswith("x")


def test_deeply_nested_emphasis():
    """Thousands of emphasis markers never raise."""
    assert "a" in extract_text("*" * 3000 + "a" + "*" * 3000)


def test_crlf_matches_lf():
    """Line endings do not change the narrated text."""
    assert extract_text("# Hi\r\n\r\nSome text.\r\n") == extract_text("# Hi\n\nSome text.\n")


def test_clean_text_unescapes():
    """Markdown escapes are resolved."""
    assert clean_text(r"1 \* 2 \[x\]") == "1 * 2 [x]"


def test_clean_text_orphaned_punctuation():
    """Commas and colons left by removed nodes are collapsed."""
    assert clean_text("a, , b") == "a, b"
    assert clean_text("Note: .") == "Note."
    assert clean_text("Options: , fast") == "Options, fast"


def test_clean_text_collapses_newlines():
    """Never three newlines in a row."""
    assert clean_text("a\n\n\n\nb") == "a\n\nb"
