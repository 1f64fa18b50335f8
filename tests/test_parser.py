"""Tests for the MDX document parser."""

import logging
from unittest.mock import patch

from speak_docs.models import (
    CODE_BLOCK,
    COMPONENT,
    ESM,
    EXPRESSION,
    FRONT_MATTER,
    HEADING,
    INLINE_CODE,
    LINK,
    LIST,
    LIST_ITEM,
    PARAGRAPH,
    TABLE,
    ExpressionValue,
    LiteralValue,
)
from speak_docs.parser import _Parser, parse, parse_tag


def _kinds(nodes):
    return [n.kind for n in nodes]


# --- Blocks ---

def test_front_matter_heading_paragraph(scenario_doc):
    """Front matter, heading and paragraph become top-level nodes."""
    tree = parse(scenario_doc)
    assert _kinds(tree.children) == [FRONT_MATTER, HEADING, PARAGRAPH]
    assert tree.children[0].value == "title: X"
    heading = tree.children[1]
    assert heading.depth == 2
    assert heading.position.start_line == 4
    assert tree.children[2].position.start_line == 5


def test_multiline_esm():
    """Import statement with open braces spans several lines."""
    text = "import {\n  Card,\n  Tabs\n} from 'mintlify';\n\n# Title\n"
    tree = parse(text)
    assert _kinds(tree.children) == [ESM, HEADING]
    assert tree.children[0].position.start_line == 1
    assert tree.children[0].position.end_line == 4


def test_consecutive_imports_are_separate():
    """Each single-line import is its own statement."""
    text = "import A from './a';\nimport B from './b';\n"
    tree = parse(text)
    assert _kinds(tree.children) == [ESM, ESM]
    assert tree.children[1].position.end_line == 2


def test_fenced_code_block():
    """Fenced code keeps its content and info string."""
    tree = parse("```js\nconst a = {b};\n```\n")
    node = tree.children[0]
    assert node.kind == CODE_BLOCK
    assert node.value == "const a = {b};"
    assert node.name == "js"


def test_flow_expression_skips_braces_in_comments():
    """A closing brace inside a block comment does not end the expression."""
    tree = parse("{/* a } b */}\n")
    node = tree.children[0]
    assert node.kind == EXPRESSION
    assert node.value == "/* a } b */"


def test_table_rows_and_cells():
    """Delimiter row is dropped; header and body rows keep their cells."""
    tree = parse("| A | B |\n|---|---|\n| 1 | 2 |\n")
    table = tree.children[0]
    assert table.kind == TABLE
    assert len(table.children) == 2
    assert all(len(row.children) == 2 for row in table.children)


def test_list_items():
    """Bullet list yields one item per marker."""
    tree = parse("- one\n- two\n")
    lst = tree.children[0]
    assert lst.kind == LIST
    assert _kinds(lst.children) == [LIST_ITEM, LIST_ITEM]


# --- Components ---

def test_component_attribute_variants():
    """Quoted, braced and boolean attributes decode to their variants."""
    text = '<Card title="Hi" data={[{"a": "}"}]} open />\n'
    tree = parse(text)
    card = tree.children[0]
    assert card.kind == COMPONENT
    assert card.name == "Card"
    assert card.attribute("title").value == LiteralValue("Hi")
    assert card.attribute("data").value == ExpressionValue('[{"a": "}"}]')
    assert card.attribute("open").value is None


def test_attribute_span_addresses_source():
    """The recorded span covers the braces of an expression value."""
    text = "# T\n\n<Card data={[1, 2]} />\n"
    card = parse(text).children[1]
    start, end = card.attribute("data").span
    assert text[start:end] == "{[1, 2]}"


def test_multiline_component_tag():
    """A self-closing tag may span several lines."""
    text = '<Player voices={[\n    {"id": "v1"}\n  ]} />\n\nAfter.\n'
    tree = parse(text)
    assert _kinds(tree.children) == [COMPONENT, PARAGRAPH]
    assert tree.children[0].position.end_line == 3


def test_nested_components():
    """Block components parse their children recursively."""
    text = '<Tabs>\n  <Tab title="A">\n    Hello\n  </Tab>\n</Tabs>\n'
    tabs = parse(text).children[0]
    assert tabs.name == "Tabs"
    tab = tabs.children[0]
    assert tab.kind == COMPONENT
    assert tab.name == "Tab"
    assert tab.children[0].kind == PARAGRAPH


# --- Inline ---

def test_inline_link_and_code():
    """Links keep their target; code spans keep their literal text."""
    paragraph = parse("See [docs](https://x.com) and `a{b}` here.\n").children[0]
    link = next(n for n in paragraph.children if n.kind == LINK)
    assert link.value == "https://x.com"
    code = next(n for n in paragraph.children if n.kind == INLINE_CODE)
    assert code.value == "a{b}"


def test_inline_expression():
    """Text expressions are lifted out of the paragraph."""
    paragraph = parse("Hello {name} world\n").children[0]
    expr = next(n for n in paragraph.children if n.kind == EXPRESSION)
    assert expr.value == "name"


def test_inline_component():
    """JSX inside a paragraph becomes a component node."""
    paragraph = parse('Click <Icon name="x" /> now.\n').children[0]
    icon = next(n for n in paragraph.children if n.kind == COMPONENT)
    assert icon.name == "Icon"


# --- Robustness ---

def test_parser_is_total():
    """Unbalanced tags and braces never raise."""
    tree = parse("<Unclosed\n{ not closed\n</Stray>\n```\nopen fence")
    assert tree.kind == "root"


@patch.object(_Parser, "parse", side_effect=RecursionError)
def test_too_deep_falls_back_to_text(mock_parse, caplog):
    """Runaway nesting degrades to one paragraph of source text."""
    with caplog.at_level(logging.WARNING):
        tree = parse("# Hi\r\n\r\nBody.\r\n")
    assert _kinds(tree.children) == [PARAGRAPH]
    assert tree.children[0].children[0].value == "# Hi\n\nBody.\n"
    assert "nested too deeply" in caplog.text


def test_positions_non_decreasing():
    """Pre-order walk visits positions in document order."""
    text = (
        "---\na: 1\n---\nimport X from './x';\n\n# One\n\nPara {expr}.\n\n"
        "<Card>\n  Inside.\n</Card>\n\n- item\n\n```\ncode\n```\n"
    )
    offsets = [n.position.start_offset for n in parse(text).walk() if n.position is not None]
    assert offsets == sorted(offsets)


def test_parse_tag():
    """Single tag parser reports name, end and self-closing."""
    text = '<Note kind="tip" />rest'
    tag = parse_tag(text)
    assert tag.name == "Note"
    assert tag.self_closing
    assert text[tag.end:] == "rest"
    assert parse_tag("not a tag") is None
