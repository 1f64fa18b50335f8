"""Data models for document structure and narration records."""

from dataclasses import dataclass, field

# Node kinds
ROOT = "root"
TEXT = "text"
HEADING = "heading"
PARAGRAPH = "paragraph"
LIST = "list"
LIST_ITEM = "list_item"
TABLE = "table"
TABLE_ROW = "table_row"
TABLE_CELL = "table_cell"
CODE_BLOCK = "code_block"
INLINE_CODE = "inline_code"
LINK = "link"
IMAGE = "image"
EXPRESSION = "expression"
COMPONENT = "component"
FRONT_MATTER = "front_matter"
ESM = "esm"
RAW = "raw"
EMPHASIS = "emphasis"
STRONG = "strong"
DELETE = "delete"
BREAK = "break"
BLOCKQUOTE = "blockquote"

# Processing statuses
GENERATED = "generated"
SKIPPED = "skipped"
DRY_RUN = "dry_run"
FAILED = "failed"


@dataclass
class Position:
    start_line: int      # 1-based
    end_line: int        # 1-based, inclusive
    start_offset: int
    end_offset: int      # exclusive


@dataclass
class LiteralValue:
    """Quoted attribute value: title="Intro"."""
    value: str


@dataclass
class ExpressionValue:
    """Brace-wrapped attribute value: voices={[...]}. Holds the inner source."""
    source: str


@dataclass
class Attribute:
    name: str
    value: LiteralValue | ExpressionValue | None = None   # None for boolean attributes
    span: tuple[int, int] | None = None                   # source offsets of the value


@dataclass
class Node:
    kind: str
    children: list["Node"] = field(default_factory=list)
    value: str = ""      # text, code, expression source or link target
    name: str = ""       # component tag name
    attributes: list[Attribute] = field(default_factory=list)
    position: Position | None = None
    depth: int = 0       # heading level

    def walk(self):
        """Yield this node and all descendants in document order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def attribute(self, name: str) -> Attribute | None:
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None


@dataclass
class Voice:
    id: str
    name: str
    url: str = ""

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name}
        if self.url:
            data["url"] = self.url
        return data


@dataclass
class NarrationBlock:
    fingerprint: str | None
    voices: list[Voice]

    @property
    def voice_ids(self) -> list[str]:
        return [v.id for v in self.voices]


@dataclass
class ProcessingResult:
    file: str
    status: str                  # "generated", "skipped", "dry_run" or "failed"
    voices: list[Voice] = field(default_factory=list)
    reason: str = ""
    error: str = ""
