"""Find and delete stored audio no longer referenced by any document."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from speak_docs.config import Settings
from speak_docs.files import find_documents, read_document
from speak_docs.injector import locate_narration_block
from speak_docs.storage import S3Storage

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    documents: int = 0
    referenced: set[str] = field(default_factory=set)
    stored: list[str] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)
    deleted: int = 0


def collect_referenced_keys(
    contents: Iterable[str],
    component_name: str,
    key_from_url: Callable[[str], str],
) -> set[str]:
    """Storage keys behind every voice URL in every narration block."""
    keys = set()
    for content in contents:
        block = locate_narration_block(content, component_name)
        if block is None:
            continue
        for voice in block.voices:
            if voice.url:
                keys.add(key_from_url(voice.url))
    return keys


def find_orphans(stored_keys: Iterable[str], referenced_keys: set[str]) -> list[str]:
    return sorted(set(stored_keys) - set(referenced_keys))


def reconcile(
    directory: str,
    settings: Settings,
    storage: S3Storage,
    ignore_patterns: tuple[str, ...],
) -> ReconcileReport:
    """Compare stored audio with document references and delete the orphans.

    Under dry run nothing is deleted. Running twice is harmless: the second
    run finds no orphans.
    """
    documents = find_documents(directory, settings.pattern, ignore_patterns)
    report = ReconcileReport(documents=len(documents))
    report.referenced = collect_referenced_keys(
        (read_document(directory, doc_path) for doc_path in documents),
        settings.component_name,
        storage.key_from_url,
    )
    report.stored = storage.list_objects()
    report.orphans = find_orphans(report.stored, report.referenced)
    logger.debug(
        "%d referenced, %d stored, %d orphaned",
        len(report.referenced), len(report.stored), len(report.orphans),
    )

    if report.orphans and not settings.dry_run:
        report.deleted = storage.delete_objects(report.orphans)
    return report
