"""A document buffer shared by tree-based edits and line splices."""

from speak_docs.models import Node
from speak_docs.parser import parse


class Document:
    """One MDX source held as a list of lines, with a tree parsed on demand.

    Lines are kept without their endings. `text` joins them with "\\n" and is
    what node positions address; `render()` restores the source's own line
    ending, so a CRLF file stays CRLF after edits.

    Any edit drops the cached tree, so callers editing by position must work
    back to front or re-read the tree after each edit.
    """

    def __init__(self, text: str):
        self.newline = "\r\n" if "\r\n" in text else "\n"
        self.lines = text.replace("\r\n", "\n").split("\n")
        self._tree = None

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def tree(self) -> Node:
        if self._tree is None:
            self._tree = parse(self.text)
        return self._tree

    def render(self) -> str:
        return self.newline.join(self.lines)

    def splice(self, index: int, delete: int = 0, insert: list[str] | tuple = ()) -> None:
        """Replace `delete` lines at 0-based `index` with `insert`."""
        self.lines[index:index + delete] = list(insert)
        self._tree = None

    def replace_span(self, start: int, end: int, replacement: str) -> None:
        """Replace the character range [start, end) of the text."""
        text = self.text
        self.lines = (text[:start] + replacement + text[end:]).split("\n")
        self._tree = None

    def drop_lines(self, first: int, last: int) -> None:
        """Delete 0-based lines first..last, absorbing one now-redundant blank line."""
        lines = self.lines
        before_blank = first == 0 or not lines[first - 1].strip()
        if before_blank and last + 1 < len(lines) and not lines[last + 1].strip():
            last += 1
        self.splice(first, last - first + 1)
