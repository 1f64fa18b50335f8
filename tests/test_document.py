"""Tests for the document buffer."""

from speak_docs.document import Document
from speak_docs.models import HEADING, PARAGRAPH


def test_text_round_trip():
    """Lines join back to the original text."""
    text = "# A\n\nB\n"
    assert Document(text).text == text


def test_crlf_rendered_back():
    """Edits work on LF text; render restores CRLF."""
    doc = Document("a\r\nb\r\n")
    assert doc.text == "a\nb\n"
    doc.splice(1, 0, ["x"])
    assert doc.render() == "a\r\nx\r\nb\r\n"


def test_tree_refreshes_after_splice():
    """Editing drops the cached tree."""
    doc = Document("# A\n")
    assert [n.kind for n in doc.tree.children] == [HEADING]
    doc.splice(1, 0, ["", "Para."])
    assert [n.kind for n in doc.tree.children] == [HEADING, PARAGRAPH]


def test_replace_span():
    """Character ranges are replaced across line boundaries."""
    doc = Document("one\ntwo\nthree")
    doc.replace_span(2, 6, "E\nT")
    assert doc.text == "onE\nTo\nthree"
    assert doc.lines == ["onE", "To", "three"]


def test_drop_lines_absorbs_blank():
    """Removing a block between blank lines leaves a single blank."""
    doc = Document("a\n\nblock\n\nb")
    doc.drop_lines(2, 2)
    assert doc.text == "a\n\nb"


def test_drop_lines_keeps_needed_blank():
    """A blank line is kept when the line above is not blank."""
    doc = Document("a\nblock\n\nb")
    doc.drop_lines(1, 1)
    assert doc.text == "a\n\nb"
