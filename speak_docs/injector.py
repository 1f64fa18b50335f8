"""Locate, inject and remove the narration block inside an MDX document.

A narration block is a hash annotation expression followed by the player
component:

    {/* speak-mintlify-hash: <fingerprint> */}
    <AudioTranscript voices={[...]} />

Edits go through a Document so tree-based span splices and plain line
splices work on the same buffer.
"""

import json
import logging
import re

from speak_docs.constants import (
    DEFAULT_COMPONENT_IMPORT,
    DEFAULT_COMPONENT_NAME,
    HASH_MARKER,
    PAYLOAD_INDENT,
    VOICES_ATTRIBUTE,
)
from speak_docs.document import Document
from speak_docs.models import (
    BLOCKQUOTE,
    BREAK,
    COMPONENT,
    ESM,
    EXPRESSION,
    FRONT_MATTER,
    HEADING,
    LIST,
    PARAGRAPH,
    TABLE,
    TEXT,
    ExpressionValue,
    LiteralValue,
    NarrationBlock,
    Node,
    Voice,
)
from speak_docs.parser import parse, parse_tag

logger = logging.getLogger(__name__)

HASH_RE = re.compile(r"/\*\s*" + re.escape(HASH_MARKER) + r":\s*([a-f0-9]+)\s*\*/")

# Placement of the player component
ABSENT = "absent"
WELL_PLACED = "well_placed"
MISPLACED = "misplaced"

# Injection outcomes
NOOP = "noop"
INSERTED = "inserted"
REPLACED = "replaced"
RELOCATED = "relocated"

# Top-level blocks that are narrated, or that hold narrated content
_CONTENT_BLOCKS = (HEADING, PARAGRAPH, LIST, BLOCKQUOTE, TABLE, COMPONENT)


def hash_annotation(digest: str) -> str:
    return f"{{/* {HASH_MARKER}: {digest} */}}"


def format_voices(voices: list[Voice]) -> str:
    """JSON voice payload with continuation lines indented under the tag."""
    payload = json.dumps([v.to_dict() for v in voices], indent=2, ensure_ascii=False)
    lines = payload.split("\n")
    return "\n".join([lines[0]] + [PAYLOAD_INDENT + line for line in lines[1:]])


def component_tag(voices: list[Voice], name: str = DEFAULT_COMPONENT_NAME) -> str:
    return f"<{name} {VOICES_ATTRIBUTE}={{{format_voices(voices)}}} />"


def import_statement(name: str = DEFAULT_COMPONENT_NAME, path: str = DEFAULT_COMPONENT_IMPORT) -> str:
    return f"import {{ {name} }} from '{path}';"


def decode_voices(value: LiteralValue | ExpressionValue | None) -> list[Voice]:
    """Decode a voices attribute value. Undecodable payloads yield no voices."""
    if value is None:
        return []
    if isinstance(value, LiteralValue):
        source = value.value
    elif isinstance(value, ExpressionValue):
        source = value.source
    else:
        raise TypeError(f"Unknown attribute value: {value!r}")

    try:
        data = json.loads(source)
    except json.JSONDecodeError as e:
        logger.warning("Malformed voices payload (%s), ignoring", e)
        return []
    if not isinstance(data, list):
        logger.warning("Voices payload is not a list, ignoring")
        return []

    voices = []
    for item in data:
        if not isinstance(item, dict) or not item.get("id"):
            logger.warning("Skipping malformed voice entry: %r", item)
            continue
        voices.append(Voice(
            id=str(item["id"]),
            name=str(item.get("name", "")),
            url=str(item.get("url", "")),
        ))
    return voices


def _is_hash_annotation(node: Node) -> bool:
    return node.kind == EXPRESSION and HASH_RE.search(node.value) is not None


def _find_components(tree: Node, name: str) -> list[tuple[Node, list[Node]]]:
    """Every component called `name`, paired with its ancestor chain."""
    found = []
    stack = [(tree, [])]
    while stack:
        node, ancestors = stack.pop()
        if node.kind == COMPONENT and node.name == name:
            found.append((node, ancestors))
            continue
        chain = ancestors + [node]
        stack.extend((child, chain) for child in reversed(node.children))
    return found


def _annotation_before(node: Node, parent: Node) -> Node | None:
    """The hash annotation directly preceding node among its siblings."""
    index = next(i for i, child in enumerate(parent.children) if child is node)
    for sibling in reversed(parent.children[:index]):
        if _is_hash_annotation(sibling):
            return sibling
        if sibling.kind == BREAK or (sibling.kind == TEXT and not sibling.value.strip()):
            continue
        return None
    return None


def _imports_component(source: str, name: str) -> bool:
    pattern = (
        r"\bimport\s+(?:" + re.escape(name) + r"\b"
        r"|[\w$]*\s*,?\s*\{[^}]*\b" + re.escape(name) + r"\b[^}]*\})"
    )
    return re.search(pattern, source) is not None


def locate_narration_block(content: str, component_name: str = DEFAULT_COMPONENT_NAME) -> NarrationBlock | None:
    """Find the embedded fingerprint and voice list, or None when there are no voices."""
    tree = parse(content)

    digest = None
    for node in tree.walk():
        if node.kind == EXPRESSION:
            m = HASH_RE.search(node.value)
            if m:
                digest = m.group(1)
                break

    voices = []
    for node, _ in _find_components(tree, component_name):
        attr = node.attribute(VOICES_ATTRIBUTE)
        if attr is not None:
            voices = decode_voices(attr.value)
            break

    if not voices:
        return None
    return NarrationBlock(fingerprint=digest, voices=voices)


def classify_placement(document: Document, component_name: str = DEFAULT_COMPONENT_NAME) -> str:
    """absent, well_placed, or misplaced when nested inside another component."""
    matches = _find_components(document.tree, component_name)
    if not matches:
        return ABSENT
    for _, ancestors in matches:
        if any(a.kind == COMPONENT and a.name != component_name for a in ancestors):
            return MISPLACED
    return WELL_PLACED


def _drop_node(document: Document, node: Node) -> None:
    """Delete a node's source, whole lines where it stands alone."""
    pos = node.position
    first, last = pos.start_line - 1, pos.end_line - 1
    source = document.text[pos.start_offset:pos.end_offset]
    if "\n".join(document.lines[first:last + 1]).strip() == source.strip():
        document.drop_lines(first, last)
    else:
        document.replace_span(pos.start_offset, pos.end_offset, "")


def _remove_stray_annotations(document: Document) -> None:
    nodes = [n for n in document.tree.walk() if _is_hash_annotation(n) and n.position is not None]
    for node in reversed(nodes):
        _drop_node(document, node)


def _import_anchor(tree: Node, name: str) -> tuple[int, bool]:
    """Line after the last ESM statement (or front matter), and whether name is imported."""
    front_matter_end = 0
    last_import_end = 0
    has_import = False
    for node in tree.children:
        if node.kind == FRONT_MATTER:
            front_matter_end = node.position.end_line
        elif node.kind == ESM:
            last_import_end = node.position.end_line
            if _imports_component(node.value, name):
                has_import = True
    return last_import_end or front_matter_end, has_import


def _insert(
    document: Document,
    voices: list[Voice],
    digest: str,
    name: str,
    import_path: str,
    after_imports: bool = False,
) -> None:
    tree = document.tree
    import_pos, has_import = _import_anchor(tree, name)

    # The block goes before the first narrated block, never between two of them
    first_content = 0
    for node in tree.children:
        if node.kind in _CONTENT_BLOCKS and node.position is not None:
            first_content = node.position.start_line
            break

    if after_imports or not first_content:
        component_pos = import_pos
    else:
        component_pos = first_content - 1

    if not has_import:
        document.splice(import_pos, 0, [import_statement(name, import_path)])
        if component_pos >= import_pos:
            component_pos += 1

    block = [hash_annotation(digest)] + component_tag(voices, name).split("\n")
    lines = document.lines
    if component_pos > 0 and lines[component_pos - 1].strip():
        block.insert(0, "")
    if component_pos < len(lines) and lines[component_pos].strip():
        block.append("")
    document.splice(component_pos, 0, block)


def _full_lines(text: str, start: int, end: int) -> tuple[int, int]:
    """Widen [start, end) to whole lines, trailing newline included."""
    line_start = text.rfind("\n", 0, start) + 1
    line_end = text.find("\n", end)
    return line_start, len(text) if line_end < 0 else line_end + 1


def _replace_in_place(document: Document, voices: list[Voice], digest: str, name: str, import_path: str) -> None:
    matches = _find_components(document.tree, name)
    text = document.text
    edits = []

    target, ancestors = matches[0]
    parent = ancestors[-1]
    attr = target.attribute(VOICES_ATTRIBUTE)
    if attr is not None and attr.span is not None:
        edits.append((attr.span[0], attr.span[1], "{" + format_voices(voices) + "}"))
    else:
        edits.append((target.position.start_offset, target.position.end_offset, component_tag(voices, name)))

    annotation = _annotation_before(target, parent)
    if annotation is not None:
        edits.append((annotation.position.start_offset, annotation.position.end_offset, hash_annotation(digest)))
    else:
        start = target.position.start_offset
        edits.append((start, start, hash_annotation(digest) + "\n"))

    for duplicate, dup_ancestors in matches[1:]:
        start = duplicate.position.start_offset
        dup_annotation = _annotation_before(duplicate, dup_ancestors[-1])
        if dup_annotation is not None:
            start = dup_annotation.position.start_offset
        line_start, line_end = _full_lines(text, start, duplicate.position.end_offset)
        # Swallow the blank line that separated the duplicate from what follows
        if (line_start == 0 or text[:line_start].endswith("\n\n")) and text.startswith("\n", line_end):
            line_end += 1
        edits.append((line_start, line_end, ""))

    for start, end, replacement in sorted(edits, key=lambda e: (e[0], e[1]), reverse=True):
        document.replace_span(start, end, replacement)

    import_pos, has_import = _import_anchor(document.tree, name)
    if not has_import:
        document.splice(import_pos, 0, [import_statement(name, import_path)])


def _remove_components(document: Document, name: str) -> None:
    """Remove every usage of the component, however nested.

    Only parsed component nodes are touched, so the same tag quoted in a
    code block or inline code stays put. Annotations are left for
    _remove_stray_annotations.
    """
    matches = _find_components(document.tree, name)
    for node, _ in reversed(matches):
        if node.position is not None:
            _drop_node(document, node)


def inject_with_outcome(
    content: str,
    voices: list[Voice],
    digest: str,
    component_name: str = DEFAULT_COMPONENT_NAME,
    component_import: str = DEFAULT_COMPONENT_IMPORT,
) -> tuple[str, str]:
    """Insert, replace or relocate the narration block. Returns (text, outcome)."""
    document = Document(content)
    placement = classify_placement(document, component_name)

    if placement == MISPLACED:
        _remove_components(document, component_name)
        _remove_stray_annotations(document)
        _insert(document, voices, digest, component_name, component_import, after_imports=True)
        outcome = RELOCATED
    elif placement == WELL_PLACED:
        _replace_in_place(document, voices, digest, component_name, component_import)
        outcome = REPLACED
    else:
        _remove_stray_annotations(document)
        _insert(document, voices, digest, component_name, component_import)
        outcome = INSERTED

    text = document.render()
    if text == content:
        outcome = NOOP
    return text, outcome


def inject_narration(
    content: str,
    voices: list[Voice],
    digest: str,
    component_name: str = DEFAULT_COMPONENT_NAME,
    component_import: str = DEFAULT_COMPONENT_IMPORT,
) -> str:
    text, _ = inject_with_outcome(content, voices, digest, component_name, component_import)
    return text


def remove_component(content: str, component_name: str = DEFAULT_COMPONENT_NAME) -> str:
    """Strip the component import, every hash annotation and every usage."""
    name = re.escape(component_name)
    import_re = re.compile(
        r"^[ \t]*import\s+\{\s*" + name + r"\s*\}\s+from\s+['\"][^'\"]+['\"];?[ \t]*(?:\r?\n)?",
        re.MULTILINE,
    )
    annotation_re = re.compile(
        r"\{/\*\s*" + re.escape(HASH_MARKER) + r":\s*[a-f0-9]*\s*\*/\}[ \t]*(?:\r?\n)?"
    )
    text = import_re.sub("", content)
    text = annotation_re.sub("", text)

    open_re = re.compile(r"<" + name + r"(?=[\s/>])")
    close_re = re.compile(r"</" + name + r"\s*>")
    trailing_re = re.compile(r"[ \t]*(?:\r?\n)?")
    parts = []
    pos = 0
    search_from = 0
    while True:
        m = open_re.search(text, search_from)
        if not m:
            break
        tag = parse_tag(text, m.start())
        if tag is None:
            search_from = m.end()
            continue
        end = tag.end
        if not tag.self_closing:
            close = close_re.search(text, end)
            if close:
                end = close.end()
        end = trailing_re.match(text, end).end()
        newline = "\r\n" if text.startswith("\r\n", end) else "\n"
        if (m.start() == 0 or text[:m.start()].endswith(newline * 2)) and text.startswith(newline, end):
            end += len(newline)
        parts.append(text[pos:m.start()])
        pos = search_from = end
    parts.append(text[pos:])
    return "".join(parts)
