"""Extract clean, TTS-friendly text from MDX documents."""

import logging
import re

from speak_docs.models import (
    Node,
    TEXT,
    HEADING,
    PARAGRAPH,
    LIST,
    LIST_ITEM,
    TABLE,
    TABLE_CELL,
    INLINE_CODE,
    LINK,
    IMAGE,
    EMPHASIS,
    STRONG,
    DELETE,
    BREAK,
    BLOCKQUOTE,
)
from speak_docs.parser import parse

logger = logging.getLogger(__name__)

# Markdown escapes left behind in text, e.g. "\*" or "\["
_ESCAPE_RE = re.compile(r"\\([*_`~\[\](){}#+\-.!|])")

# Orphaned punctuation left where components or links were removed
_CLEANUP_RULES = (
    (re.compile(r"[:,]\s*,"), ","),
    (re.compile(r",(\s*,)+"), ","),
    (re.compile(r":\s*,+\s*"), ": "),
    (re.compile(r":\s*\."), "."),
    (re.compile(r"\n{3,}"), "\n\n"),
)

_INLINE_CONTAINERS = {EMPHASIS, STRONG, DELETE, LINK, IMAGE}


def _inline_text(nodes: list[Node]) -> str:
    """Flatten inline nodes. Components, expressions and raw markup vanish."""
    parts = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        if node.kind in (TEXT, INLINE_CODE):
            parts.append(node.value)
        elif node.kind == BREAK:
            parts.append("\n")
        elif node.kind in _INLINE_CONTAINERS:
            # Links and images keep only their visible text
            stack.extend(reversed(node.children))
    return "".join(parts)


def _table_text(node: Node) -> str:
    rows = []
    for row in node.children:
        cells = [_inline_text(cell.children).strip() for cell in row.children if cell.kind == TABLE_CELL]
        if any(cells):
            rows.append(", ".join(cells))
    return "\n".join(rows)


def _block_text(node: Node) -> str:
    """Plain text for one block node; empty for anything not narrated."""
    if node.kind in (HEADING, PARAGRAPH):
        return _inline_text(node.children).strip()
    if node.kind == LIST:
        items = [_block_text(item) for item in node.children]
        return "\n".join(item for item in items if item)
    if node.kind in (LIST_ITEM, BLOCKQUOTE):
        return _join_blocks(node.children)
    if node.kind == TABLE:
        return _table_text(node)
    # Front matter, ESM, components, expressions, code and raw markup
    return ""


def _join_blocks(nodes: list[Node]) -> str:
    """Join block texts, keeping a blank line wherever the source had a gap."""
    out = ""
    previous = None
    for node in nodes:
        text = _block_text(node)
        if not text:
            continue
        if previous is not None:
            gap = 0
            if node.position is not None and previous.position is not None:
                gap = node.position.start_line - previous.position.end_line
            out += "\n\n" if gap > 1 else "\n"
        out += text
        previous = node
    return out


def clean_text(text: str) -> str:
    """String-level cleanup applied after the tree has been flattened."""
    text = _ESCAPE_RE.sub(r"\1", text)
    for pattern, replacement in _CLEANUP_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def extract_text(mdx_content: str) -> str:
    """Extract clean text from MDX content for TTS.

    Front matter, import/export statements, JSX components and expressions
    are dropped as whole subtrees; links and images keep their visible text;
    code blocks are not narrated. Returns an empty string when nothing is left.
    """
    tree = parse(mdx_content)
    try:
        text = _join_blocks(tree.children)
    except RecursionError:
        logger.warning("Document nested too deeply to flatten, narrating its raw text")
        text = mdx_content.replace("\r\n", "\n")
    return clean_text(text)
