"""Tests for data models."""

from speak_docs.models import (
    COMPONENT,
    TEXT,
    Attribute,
    ExpressionValue,
    NarrationBlock,
    Node,
    Voice,
)


def test_voice_to_dict_omits_empty_url():
    """Voices without a URL serialize id and name only."""
    assert Voice(id="v1", name="A").to_dict() == {"id": "v1", "name": "A"}
    assert Voice(id="v1", name="A", url="u").to_dict() == {"id": "v1", "name": "A", "url": "u"}


def test_narration_block_voice_ids():
    """Voice ids follow declared order."""
    block = NarrationBlock(fingerprint="abc", voices=[Voice("b", "B"), Voice("a", "A")])
    assert block.voice_ids == ["b", "a"]


def test_node_walk_preorder():
    """Walk yields parents before children, left to right."""
    leaf1 = Node(kind=TEXT, value="x")
    leaf2 = Node(kind=TEXT, value="y")
    root = Node(kind=COMPONENT, children=[Node(kind=COMPONENT, children=[leaf1]), leaf2])
    assert [n.value for n in root.walk() if n.kind == TEXT] == ["x", "y"]
    assert next(root.walk()) is root


def test_node_attribute_lookup():
    """Attributes are found by name."""
    node = Node(kind=COMPONENT, attributes=[Attribute("voices", ExpressionValue("[]"))])
    assert node.attribute("voices").value == ExpressionValue("[]")
    assert node.attribute("missing") is None
