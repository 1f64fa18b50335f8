"""Parse MDX documents into a structural tree with source positions.

Block structure (front matter, ESM, JSX components, expressions, fences,
tables, lists, headings) is recognized by a line scanner that understands
MDX. Inline markdown is handed to markdown-it-py after JSX tags and
expressions have been cut out and replaced with placeholders, so braces and
tags never confuse the markdown grammar.

The parser is total: spans it cannot make sense of become raw nodes or plain
paragraph text instead of raising.
"""

import bisect
import logging
import re
from dataclasses import dataclass, field

from markdown_it import MarkdownIt
from markdown_it.common.utils import normalizeReference

from speak_docs.models import (
    Attribute,
    ExpressionValue,
    LiteralValue,
    Node,
    Position,
    ROOT,
    TEXT,
    HEADING,
    PARAGRAPH,
    LIST,
    LIST_ITEM,
    TABLE,
    TABLE_ROW,
    TABLE_CELL,
    CODE_BLOCK,
    INLINE_CODE,
    LINK,
    IMAGE,
    EXPRESSION,
    COMPONENT,
    FRONT_MATTER,
    ESM,
    RAW,
    EMPHASIS,
    STRONG,
    DELETE,
    BREAK,
    BLOCKQUOTE,
)

logger = logging.getLogger(__name__)

_MD = MarkdownIt("commonmark", {"html": False}).enable("strikethrough")

_FRONT_MATTER_RE = re.compile(r"---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?=\r?\n|$)", re.DOTALL)
_ESM_RE = re.compile(
    r"(?:import\s*[\w$*{'\"]|export\s+(?:default|const|let|var|function|class|async|type|interface)\b|export\s*[{*])"
)
_FENCE_RE = re.compile(r"(`{3,}|~{3,})(.*)$")
_HEADING_RE = re.compile(r"(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*")
_SETEXT_RE = re.compile(r"(?:=+|-+)[ \t]*")
_THEMATIC_RE = re.compile(r"(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})")
_LIST_RE = re.compile(r"([*+-]|\d{1,9}[.)])(?:[ \t]+|$)")
_TABLE_DELIM_RE = re.compile(r"\|?[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|?[ \t]*")
_DEFINITION_RE = re.compile(r"\[[^\]]+\]:[ \t]*\S+.*")
_DEFINITION_LINE_RE = re.compile(r"^[ ]{0,3}\[([^\]]+)\]:[ \t]*<?([^\s>]+)>?", re.MULTILINE)
_BLOCK_TAG_RE = re.compile(r"</?(?:[A-Za-z]|>)")
_TAG_NAME_RE = re.compile(r"[A-Za-z][\w.-]*")
_ATTR_NAME_RE = re.compile(r"[A-Za-z_$][\w:.$-]*")
_PLACEHOLDER_RE = re.compile("\ue000(\\d+)\ue001")

# markdown-it token prefixes mapped to container node kinds
_INLINE_KINDS = {
    "em": EMPHASIS,
    "strong": STRONG,
    "s": DELETE,
    "link": LINK,
}


@dataclass
class _Tag:
    name: str
    start: int
    end: int
    closing: bool = False
    self_closing: bool = False
    attributes: list[Attribute] = field(default_factory=list)


def _skip_string(text: str, i: int, end: int) -> int:
    """Return the offset just past the JS string literal starting at i, or -1."""
    quote = text[i]
    j = i + 1
    while j < end:
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            return j + 1
        if ch == "\n" and quote != "`":
            return -1
        j += 1
    return -1


def _scan_braces(text: str, i: int, end: int) -> int:
    """Return the offset just past the brace matching text[i], or -1.

    Braces inside JS strings and block comments do not count.
    """
    depth = 0
    j = i
    while j < end:
        ch = text[j]
        if ch in "\"'`":
            j = _skip_string(text, j, end)
            if j < 0:
                return -1
            continue
        if text.startswith("/*", j):
            k = text.find("*/", j + 2, end)
            if k < 0:
                return -1
            j = k + 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return j + 1
        j += 1
    return -1


def _skip_ws(text: str, j: int, end: int) -> int:
    while j < end and text[j] in " \t\r\n":
        j += 1
    return j


def _parse_tag(text: str, i: int, end: int) -> _Tag | None:
    """Parse a JSX tag starting at text[i] == "<". Returns None if it is not one."""
    j = i + 1
    closing = False
    if j < end and text[j] == "/":
        closing = True
        j += 1
    if j < end and text[j] == ">":
        return _Tag(name="", start=i, end=j + 1, closing=closing)

    m = _TAG_NAME_RE.match(text, j, end)
    if not m:
        return None
    tag = _Tag(name=m.group(0), start=i, end=i, closing=closing)
    j = m.end()
    if j >= end or text[j] not in " \t\r\n/>":
        return None

    while True:
        j = _skip_ws(text, j, end)
        if j >= end:
            return None
        if text.startswith("/>", j):
            tag.self_closing = True
            j += 2
            break
        if text[j] == ">":
            j += 1
            break
        if closing:
            return None

        # Spread attribute: {...props}
        if text[j] == "{":
            k = _scan_braces(text, j, end)
            if k < 0:
                return None
            tag.attributes.append(Attribute(
                name="...",
                value=ExpressionValue(text[j + 1:k - 1]),
                span=(j, k),
            ))
            j = k
            continue

        m = _ATTR_NAME_RE.match(text, j, end)
        if not m:
            return None
        name = m.group(0)
        j = _skip_ws(text, m.end(), end)
        if j < end and text[j] == "=":
            j = _skip_ws(text, j + 1, end)
            if j >= end:
                return None
            if text[j] in "\"'":
                k = text.find(text[j], j + 1, end)
                if k < 0:
                    return None
                tag.attributes.append(Attribute(name, LiteralValue(text[j + 1:k]), (j, k + 1)))
                j = k + 1
            elif text[j] == "{":
                k = _scan_braces(text, j, end)
                if k < 0:
                    return None
                tag.attributes.append(Attribute(name, ExpressionValue(text[j + 1:k - 1]), (j, k)))
                j = k
            else:
                return None
        else:
            tag.attributes.append(Attribute(name))

    tag.end = j
    return tag


class _Parser:
    def __init__(self, text: str, env: dict | None = None):
        self.text = text
        self.line_starts = [0] + [m.end() for m in re.finditer("\n", text)]
        # markdown-it environment carrying link reference definitions
        self.env = env if env is not None else self._collect_references()

    # --- Offsets and lines ---

    def line_of(self, offset: int) -> int:
        """1-based line number containing offset."""
        return bisect.bisect_right(self.line_starts, offset)

    def position(self, start: int, end: int) -> Position:
        return Position(
            start_line=self.line_of(start),
            end_line=self.line_of(max(start, end - 1)),
            start_offset=start,
            end_offset=end,
        )

    def _line(self, pos: int, end: int) -> tuple[int, int]:
        """Return (end of the line starting at pos, start of the next line)."""
        k = self.text.find("\n", pos, end)
        if k < 0:
            return end, end
        return k, k + 1

    def _rest_blank(self, pos: int, end: int) -> bool:
        line_end, _ = self._line(pos, end)
        return not self.text[pos:line_end].strip()

    def _collect_references(self) -> dict:
        refs = {}
        for m in _DEFINITION_LINE_RE.finditer(self.text):
            label = normalizeReference(m.group(1))
            if label and label not in refs:
                refs[label] = {"href": m.group(2), "title": ""}
        return {"references": refs}

    # --- Blocks ---

    def parse(self) -> Node:
        children = self.parse_blocks(0, len(self.text), top_level=True)
        return Node(kind=ROOT, children=children, position=self.position(0, len(self.text)))

    def parse_blocks(self, start: int, end: int, top_level: bool = False) -> list[Node]:
        text = self.text
        nodes = []
        pos = start

        if top_level and start == 0:
            m = _FRONT_MATTER_RE.match(text, 0, end)
            if m:
                nodes.append(Node(kind=FRONT_MATTER, value=m.group(1) or "", position=self.position(0, m.end())))
                pos = m.end()

        while pos < end:
            line_end, next_pos = self._line(pos, end)
            line = text[pos:line_end]
            stripped = line.strip()
            if not stripped:
                pos = next_pos
                continue
            indent = len(line) - len(line.lstrip())
            first = pos + indent

            result = None
            if top_level and indent == 0 and _ESM_RE.match(line):
                result = self._esm(pos, end)
            elif indent < 4 and _FENCE_RE.match(stripped):
                result = self._fence(pos, first, end, stripped)
            elif stripped.startswith("<!--"):
                result = self._comment(first, end)
            elif stripped.startswith("{"):
                result = self._flow_expression(first, end)
            elif _BLOCK_TAG_RE.match(stripped):
                result = self._flow_component(first, end)
            elif indent < 4 and _HEADING_RE.fullmatch(stripped):
                result = self._heading(first, line_end, next_pos, stripped)
            elif indent < 4 and _THEMATIC_RE.fullmatch(stripped):
                result = Node(kind=RAW, value=stripped, position=self.position(first, line_end)), next_pos
            elif "|" in stripped and self._is_table(next_pos, end):
                result = self._table(pos, end)
            elif indent < 4 and stripped.startswith(">"):
                result = self._blockquote(pos, end)
            elif indent < 4 and _LIST_RE.match(stripped):
                result = self._list(pos, end)
            elif indent < 4 and _DEFINITION_RE.fullmatch(stripped):
                result = Node(kind=RAW, value=stripped, position=self.position(first, line_end)), next_pos

            if result is None:
                result = self._paragraph(pos, end)

            node, pos = result
            nodes.append(node)

        return nodes

    def _esm(self, pos: int, end: int) -> tuple[Node, int]:
        """ESM runs to the first newline with balanced brackets, or a blank line."""
        text = self.text
        depth = 0
        j = pos
        stop = end
        while j < end:
            ch = text[j]
            if ch in "\"'`":
                k = _skip_string(text, j, end)
                if k < 0:
                    stop, _ = self._line(j, end)
                    break
                j = k
                continue
            if ch in "({[":
                depth += 1
            elif ch in ")}]":
                depth = max(0, depth - 1)
            elif ch == "\n":
                if depth == 0 or self._rest_blank(j + 1, end):
                    stop = j
                    break
            j += 1
        node = Node(kind=ESM, value=text[pos:stop].rstrip(), position=self.position(pos, stop))
        return node, stop

    def _fence(self, pos: int, first: int, end: int, stripped: str) -> tuple[Node, int]:
        m = _FENCE_RE.match(stripped)
        fence = m.group(1)
        info = m.group(2).strip()
        _, code_start = self._line(pos, end)
        p = code_start
        while p < end:
            line_end, next_pos = self._line(p, end)
            candidate = self.text[p:line_end].strip()
            if candidate.startswith(fence[0] * len(fence)) and not candidate.lstrip(fence[0]).strip():
                code = self.text[code_start:p].rstrip("\n")
                node = Node(kind=CODE_BLOCK, value=code, name=info, position=self.position(first, line_end))
                return node, next_pos
            p = next_pos
        # Unclosed fence runs to the end of the container
        code = self.text[code_start:end]
        return Node(kind=CODE_BLOCK, value=code, name=info, position=self.position(first, end)), end

    def _comment(self, first: int, end: int) -> tuple[Node, int] | None:
        k = self.text.find("-->", first, end)
        if k < 0:
            return None
        return Node(kind=RAW, value=self.text[first:k + 3], position=self.position(first, k + 3)), k + 3

    def _flow_expression(self, first: int, end: int) -> tuple[Node, int] | None:
        k = _scan_braces(self.text, first, end)
        if k < 0 or not self._rest_blank(k, end):
            return None
        node = Node(kind=EXPRESSION, value=self.text[first + 1:k - 1], position=self.position(first, k))
        return node, k

    def _flow_component(self, first: int, end: int) -> tuple[Node, int] | None:
        tag = _parse_tag(self.text, first, end)
        if tag is None:
            return None
        if tag.closing:
            # Stray closing tag
            return Node(kind=RAW, value=self.text[first:tag.end], position=self.position(first, tag.end)), tag.end
        if tag.self_closing:
            if not self._rest_blank(tag.end, end):
                return None
            node = Node(
                kind=COMPONENT,
                name=tag.name,
                attributes=tag.attributes,
                position=self.position(first, tag.end),
            )
            return node, tag.end

        close = self._find_closing(tag.name, tag.end, end)
        if close is None:
            # Unclosed tag: drop the tag itself, keep parsing what follows
            return Node(kind=RAW, value=self.text[first:tag.end], position=self.position(first, tag.end)), tag.end
        close_start, close_end = close
        if not self._rest_blank(close_end, end):
            return None

        if "\n" in self.text[tag.end:close_start]:
            children = self.parse_blocks(tag.end, close_start)
        else:
            children = self.parse_inline(tag.end, close_start)
        node = Node(
            kind=COMPONENT,
            name=tag.name,
            attributes=tag.attributes,
            children=children,
            position=self.position(first, close_end),
        )
        return node, close_end

    def _find_closing(self, name: str, start: int, end: int) -> tuple[int, int] | None:
        """Find the closing tag matching an open tag, honoring nesting."""
        if name:
            pattern = re.compile(r"<(/?)" + re.escape(name) + r"(?=[\s/>])")
        else:
            pattern = re.compile(r"<(/?)>")
        depth = 1
        pos = start
        while True:
            m = pattern.search(self.text, pos, end)
            if not m:
                return None
            if m.group(1):
                gt = self.text.find(">", m.end() - 1 if not name else m.end(), end)
                if gt < 0:
                    return None
                depth -= 1
                if depth == 0:
                    return m.start(), gt + 1
                pos = gt + 1
                continue
            tag = _parse_tag(self.text, m.start(), end)
            if tag is None:
                pos = m.end()
                continue
            if not tag.self_closing:
                depth += 1
            pos = tag.end

    def _heading(self, first: int, line_end: int, next_pos: int, stripped: str) -> tuple[Node, int]:
        m = _HEADING_RE.fullmatch(stripped)
        children = []
        if m.group(2):
            children = self.parse_inline(first + m.start(2), first + m.end(2))
        node = Node(kind=HEADING, depth=len(m.group(1)), children=children, position=self.position(first, line_end))
        return node, next_pos

    def _is_table(self, next_pos: int, end: int) -> bool:
        if next_pos >= end:
            return False
        line_end, _ = self._line(next_pos, end)
        delim = self.text[next_pos:line_end].strip()
        return "-" in delim and bool(_TABLE_DELIM_RE.fullmatch(delim))

    def _table(self, pos: int, end: int) -> tuple[Node, int]:
        rows = []
        start = pos
        last_end = pos
        row_index = 0
        while pos < end:
            line_end, next_pos = self._line(pos, end)
            line = self.text[pos:line_end]
            if not line.strip() or (row_index > 1 and "|" not in line):
                break
            if row_index != 1:  # delimiter row
                rows.append(self._table_row(pos, line_end))
            last_end = line_end
            row_index += 1
            pos = next_pos
        first = start + len(self.text[start:last_end]) - len(self.text[start:last_end].lstrip())
        return Node(kind=TABLE, children=rows, position=self.position(first, last_end)), pos

    def _table_row(self, pos: int, line_end: int) -> Node:
        text = self.text
        line = text[pos:line_end]
        lead = len(line) - len(line.lstrip())
        s = pos + lead
        e = pos + len(line.rstrip())
        if s < e and text[s] == "|":
            s += 1
        if e > s and text[e - 1] == "|" and text[e - 2] != "\\":
            e -= 1

        cells = []
        cell_start = s
        j = s
        while j <= e:
            if j == e or (text[j] == "|" and text[j - 1] != "\\"):
                raw = text[cell_start:j]
                cs = cell_start + len(raw) - len(raw.lstrip())
                ce = cell_start + len(raw.rstrip())
                children = self.parse_inline(cs, ce) if cs < ce else []
                cells.append(Node(kind=TABLE_CELL, children=children))
                cell_start = j + 1
            j += 1
        return Node(kind=TABLE_ROW, children=cells, position=self.position(pos + lead, line_end))

    def _blockquote(self, pos: int, end: int) -> tuple[Node, int]:
        segments = []
        start = pos
        while pos < end:
            line_end, next_pos = self._line(pos, end)
            line = self.text[pos:line_end]
            stripped = line.strip()
            if not stripped:
                break
            indent = len(line) - len(line.lstrip())
            if stripped.startswith(">"):
                s = pos + indent + 1
                if s < line_end and self.text[s] == " ":
                    s += 1
                segments.append((s, line_end))
            elif segments and not self._interrupts(stripped):
                segments.append((pos + indent, line_end))
            else:
                break
            pos = next_pos
        first = start + len(self.text[start:segments[-1][1]]) - len(self.text[start:segments[-1][1]].lstrip())
        node = Node(kind=BLOCKQUOTE, children=self._sub_parse(segments), position=self.position(first, segments[-1][1]))
        return node, pos

    def _list(self, pos: int, end: int) -> tuple[Node, int]:
        text = self.text
        items = []
        start = pos
        base = None
        ordered = False
        last_end = pos

        while pos < end:
            line_end, next_pos = self._line(pos, end)
            line = text[pos:line_end]
            indent = len(line) - len(line.lstrip())
            m = _LIST_RE.match(line, indent)
            if not m or (base is not None and indent > base + 3):
                break
            if base is None:
                base = indent
                ordered = m.group(1)[0].isdigit()
            content_width = m.end()
            segments = [(pos + m.end(), line_end)]
            item_start = pos + indent
            item_end = line_end
            p = next_pos
            while p < end:
                le, np = self._line(p, end)
                current = text[p:le]
                if not current.strip():
                    q = np
                    while q < end and self._rest_blank(q, end):
                        _, q = self._line(q, end)
                    if q >= end:
                        break
                    nle, _ = self._line(q, end)
                    following = text[q:nle]
                    if len(following) - len(following.lstrip()) <= base:
                        break
                    segments.append((p, p))
                    p = np
                    continue
                ind = len(current) - len(current.lstrip())
                if ind <= base and (_LIST_RE.match(current, ind) or self._interrupts(current.strip())):
                    break
                segments.append((p + min(ind, content_width), le))
                item_end = le
                p = np

            items.append(Node(
                kind=LIST_ITEM,
                children=self._sub_parse(segments),
                position=self.position(item_start, item_end),
            ))
            last_end = item_end
            pos = p

            # Blank lines between items belong to the list only if another item follows
            q = pos
            while q < end and self._rest_blank(q, end):
                _, q = self._line(q, end)
            if q < end and q != pos:
                le, _ = self._line(q, end)
                following = text[q:le]
                ind = len(following) - len(following.lstrip())
                if _LIST_RE.match(following, ind) and ind <= base + 3:
                    pos = q
                    continue
                break

        first = start + (len(text[start:last_end]) - len(text[start:last_end].lstrip()))
        node = Node(
            kind=LIST,
            value="ordered" if ordered else "",
            children=items,
            position=self.position(first, last_end),
        )
        return node, pos

    def _interrupts(self, stripped: str) -> bool:
        """Whether a line starts a new block even without a blank line before it."""
        if _FENCE_RE.match(stripped) or _HEADING_RE.fullmatch(stripped):
            return True
        if stripped.startswith((">", "<!--")):
            return True
        if _THEMATIC_RE.fullmatch(stripped) and not _SETEXT_RE.fullmatch(stripped):
            return True
        m = _LIST_RE.match(stripped)
        if m and stripped[m.end():].strip():
            marker = m.group(1)
            return not marker[0].isdigit() or marker[:-1] == "1"
        return False

    def _paragraph(self, pos: int, end: int) -> tuple[Node, int]:
        text = self.text
        line_end, next_pos = self._line(pos, end)
        first = pos + len(text[pos:line_end]) - len(text[pos:line_end].lstrip())
        last_end = line_end
        p = next_pos
        while p < end:
            le, np = self._line(p, end)
            stripped = text[p:le].strip()
            if not stripped:
                break
            if _SETEXT_RE.fullmatch(stripped):
                children = self.parse_inline(first, last_end)
                depth = 1 if stripped[0] == "=" else 2
                node = Node(kind=HEADING, depth=depth, children=children, position=self.position(first, le))
                return node, np
            if self._interrupts(stripped):
                break
            last_end = le
            p = np
        last_end = first + len(text[first:last_end].rstrip())
        node = Node(kind=PARAGRAPH, children=self.parse_inline(first, last_end), position=self.position(first, last_end))
        return node, p

    def _sub_parse(self, segments: list[tuple[int, int]]) -> list[Node]:
        """Parse non-contiguous line segments (list items, blockquotes) as blocks.

        Positions in the result are mapped back onto this document.
        """
        if not segments:
            return []
        sub_text = "\n".join(self.text[s:e] for s, e in segments)
        sub = _Parser(sub_text, env=self.env)
        children = sub.parse_blocks(0, len(sub_text))

        def to_orig(offset: int) -> int:
            i = bisect.bisect_right(sub.line_starts, offset) - 1
            i = min(i, len(segments) - 1)
            return segments[i][0] + (offset - sub.line_starts[i])

        def to_orig_end(offset: int) -> int:
            if offset <= 0:
                return to_orig(0)
            return to_orig(offset - 1) + 1

        for child in children:
            for node in child.walk():
                if node.position is not None:
                    s = to_orig(node.position.start_offset)
                    e = to_orig_end(node.position.end_offset)
                    node.position = self.position(s, max(s, e))
                for attr in node.attributes:
                    if attr.span is not None:
                        attr.span = (to_orig(attr.span[0]), to_orig_end(attr.span[1]))
        return children

    # --- Inline ---

    def parse_inline(self, start: int, end: int) -> list[Node]:
        """Parse inline content, lifting out JSX tags and expressions first."""
        text = self.text
        specials = []
        parts = []
        i = start
        last = start
        while i < end:
            ch = text[i]
            if ch == "\\":
                i += 2
                continue
            if ch == "`":
                run = 1
                while i + run < end and text[i + run] == "`":
                    run += 1
                close = self._find_backticks(i + run, end, run)
                i = close + run if close >= 0 else i + run
                continue

            node = None
            stop = i
            if ch == "{":
                k = _scan_braces(text, i, end)
                if k > 0:
                    node = Node(kind=EXPRESSION, value=text[i + 1:k - 1], position=self.position(i, k))
                    stop = k
            elif ch == "<":
                tag = _parse_tag(text, i, end)
                if tag is not None:
                    node, stop = self._inline_component(tag, end)

            if node is None:
                i += 1
                continue
            parts.append(text[last:i])
            parts.append(f"\ue000{len(specials)}\ue001")
            specials.append(node)
            i = last = stop

        parts.append(text[last:end])
        source = "".join(parts)
        tokens = _MD.parseInline(source, dict(self.env))
        if not tokens or tokens[0].children is None:
            return self._with_specials(source, specials)
        return self._convert(tokens[0].children, specials)

    def _inline_component(self, tag: _Tag, end: int) -> tuple[Node, int]:
        if tag.closing:
            return Node(kind=RAW, value=self.text[tag.start:tag.end], position=self.position(tag.start, tag.end)), tag.end
        children = []
        stop = tag.end
        if not tag.self_closing:
            close = self._find_closing(tag.name, tag.end, end)
            if close is not None:
                children = self.parse_inline(tag.end, close[0])
                stop = close[1]
        node = Node(
            kind=COMPONENT,
            name=tag.name,
            attributes=tag.attributes,
            children=children,
            position=self.position(tag.start, stop),
        )
        return node, stop

    def _find_backticks(self, pos: int, end: int, run: int) -> int:
        text = self.text
        while True:
            k = text.find("`" * run, pos, end)
            if k < 0:
                return -1
            after = k + run
            if (after >= end or text[after] != "`") and text[k - 1] != "`":
                return k
            while after < end and text[after] == "`":
                after += 1
            pos = after

    def _convert(self, tokens, specials: list[Node]) -> list[Node]:
        """Turn markdown-it inline tokens into nodes."""
        root = Node(kind=PARAGRAPH)
        stack = [root]
        for tok in tokens:
            kind = tok.type
            if kind in ("text", "text_special"):
                stack[-1].children.extend(self._with_specials(tok.content, specials))
            elif kind in ("softbreak", "hardbreak"):
                stack[-1].children.append(Node(kind=BREAK, value="\n"))
            elif kind == "code_inline":
                stack[-1].children.append(Node(kind=INLINE_CODE, value=tok.content))
            elif kind == "image":
                alt = self._convert(tok.children or [], specials)
                stack[-1].children.append(Node(kind=IMAGE, value=tok.attrGet("src") or "", children=alt))
            elif kind.endswith("_open") and kind[:-5] in _INLINE_KINDS:
                node = Node(kind=_INLINE_KINDS[kind[:-5]])
                if node.kind == LINK:
                    node.value = tok.attrGet("href") or ""
                stack[-1].children.append(node)
                stack.append(node)
            elif kind.endswith("_close") and kind[:-6] in _INLINE_KINDS:
                if len(stack) > 1:
                    stack.pop()
            else:
                stack[-1].children.append(Node(kind=RAW, value=tok.content))
        return root.children

    def _with_specials(self, content: str, specials: list[Node]) -> list[Node]:
        """Split text around placeholders, re-inserting the lifted nodes."""
        nodes = []
        last = 0
        for m in _PLACEHOLDER_RE.finditer(content):
            if m.start() > last:
                nodes.append(Node(kind=TEXT, value=content[last:m.start()]))
            index = int(m.group(1))
            if index < len(specials):
                nodes.append(specials[index])
            last = m.end()
        if last < len(content):
            nodes.append(Node(kind=TEXT, value=content[last:]))
        return nodes


def parse(text: str) -> Node:
    """Parse an MDX document into a tree rooted at a "root" node.

    CRLF line endings are read as LF; positions address that form. A document
    nested too deeply for the recursive descent comes back as one plain
    paragraph holding the whole source.
    """
    parser = _Parser(text.replace("\r\n", "\n"))
    try:
        return parser.parse()
    except RecursionError:
        logger.warning("Document nested too deeply to parse, reading it as plain text")
    position = parser.position(0, len(parser.text))
    text_node = Node(kind=TEXT, value=parser.text, position=position)
    paragraph = Node(kind=PARAGRAPH, children=[text_node], position=position)
    return Node(kind=ROOT, children=[paragraph], position=position)


def parse_tag(text: str, start: int = 0) -> _Tag | None:
    """Parse a single JSX tag starting at text[start]."""
    if not text.startswith("<", start):
        return None
    return _parse_tag(text, start, len(text))
