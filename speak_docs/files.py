"""Document discovery, exclusion patterns and whole-file IO."""

import fnmatch
import glob
import logging
import os

from speak_docs.constants import DEFAULT_IGNORE_PATTERNS, DEFAULT_PATTERN, IGNORE_FILENAME

logger = logging.getLogger(__name__)


def load_ignore_patterns(directory: str) -> tuple[str, ...]:
    """Default exclusions plus the globs listed in .speakignore, if present."""
    ignore_path = os.path.join(directory, IGNORE_FILENAME)
    if not os.path.exists(ignore_path):
        return DEFAULT_IGNORE_PATTERNS
    with open(ignore_path, encoding="utf-8") as f:
        user_patterns = [
            line.strip() for line in f
            if line.strip() and not line.strip().startswith("#")
        ]
    logger.debug("Loaded %d pattern(s) from %s", len(user_patterns), ignore_path)
    return DEFAULT_IGNORE_PATTERNS + tuple(user_patterns)


def is_ignored(rel_path: str, patterns: tuple[str, ...]) -> bool:
    return any(fnmatch.fnmatch(rel_path, pattern) for pattern in patterns)


def find_documents(
    directory: str,
    pattern: str = DEFAULT_PATTERN,
    ignore_patterns: tuple[str, ...] = DEFAULT_IGNORE_PATTERNS,
) -> list[str]:
    """Sorted document paths relative to directory, posix separators."""
    matches = glob.glob(os.path.join(directory, pattern), recursive=True)
    documents = []
    for path in matches:
        if not os.path.isfile(path):
            continue
        rel_path = os.path.relpath(path, directory).replace(os.sep, "/")
        if is_ignored(rel_path, ignore_patterns):
            continue
        documents.append(rel_path)
    return sorted(documents)


def read_document(directory: str, rel_path: str) -> str:
    """Read a document with its line endings untouched."""
    with open(os.path.join(directory, rel_path), encoding="utf-8", newline="") as f:
        return f.read()


def write_document(directory: str, rel_path: str, content: str) -> None:
    with open(os.path.join(directory, rel_path), "w", encoding="utf-8", newline="") as f:
        f.write(content)
