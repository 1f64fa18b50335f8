"""Per-document generate flow: extract, compare, synthesize, upload, inject."""

import asyncio
import difflib
import logging
import sys

from speak_docs.config import Settings
from speak_docs.extractor import extract_text
from speak_docs.files import find_documents, read_document, write_document
from speak_docs.fingerprint import fingerprint, has_changed
from speak_docs.injector import inject_narration, inject_with_outcome, locate_narration_block
from speak_docs.models import DRY_RUN, FAILED, GENERATED, SKIPPED, ProcessingResult, Voice
from speak_docs.storage import S3Storage, StorageError
from speak_docs.tts import TTSError, synthesize

logger = logging.getLogger(__name__)


async def _narrate_voice(text: str, voice: Voice, doc_path: str, storage: S3Storage, rate: str) -> Voice:
    audio = await synthesize(text, voice.id, rate=rate)
    key = storage.key_for(doc_path, voice.id)
    url = await asyncio.to_thread(storage.put_object, key, audio)
    return Voice(id=voice.id, name=voice.name, url=url)


async def narrate_all(text: str, voices: list[Voice], doc_path: str, storage: S3Storage, rate: str) -> list[Voice]:
    """Synthesize and upload every voice concurrently. Order follows voices."""
    results = await asyncio.gather(
        *(_narrate_voice(text, voice, doc_path, storage, rate) for voice in voices)
    )
    return list(results)


def preview_voices(settings: Settings, doc_path: str, storage: S3Storage) -> list[Voice]:
    """Voice records with the URLs a real run would produce."""
    return [
        Voice(id=v.id, name=v.name, url=storage.public_url_for(storage.key_for(doc_path, v.id)))
        for v in settings.voices
    ]


def unified_diff(doc_path: str, before: str, after: str) -> list[str]:
    lines = difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=doc_path,
        tofile=doc_path,
    )
    return [line.rstrip("\n") for line in lines]


def process_document(directory: str, doc_path: str, settings: Settings, storage: S3Storage) -> ProcessingResult:
    """Run the generate flow for one document.

    Failures are recorded on the result rather than raised, so one bad
    document never stops the batch.
    """
    try:
        content = read_document(directory, doc_path)
        text = extract_text(content)
        if not text:
            print(f"  [skip] {doc_path}: no extractable text")
            return ProcessingResult(file=doc_path, status=SKIPPED, reason="No extractable text")

        digest = fingerprint(text)
        if settings.verbose:
            print(f"\n  --- Extracted text for {doc_path} ({len(text)} chars) ---")
            print(text)
            print(f"  --- Hash: {digest} ---\n")

        existing = locate_narration_block(content, settings.component_name)
        if not has_changed(digest, existing, list(settings.voice_ids)):
            print(f"  [skip] {doc_path}: content unchanged")
            return ProcessingResult(file=doc_path, status=SKIPPED, voices=existing.voices, reason="Content unchanged")

        if settings.dry_run:
            voices = preview_voices(settings, doc_path, storage)
            updated = inject_narration(content, voices, digest, settings.component_name, settings.component_import)
            print(f"  [dry run] {doc_path}")
            for line in unified_diff(doc_path, content, updated):
                print(f"    {line}")
            return ProcessingResult(file=doc_path, status=DRY_RUN, voices=voices, reason="Dry run")

        print(f"  Generating {doc_path} ({len(settings.voice_ids)} voice(s))...")
        voices = asyncio.run(narrate_all(text, settings.voices, doc_path, storage, settings.rate))
        updated, outcome = inject_with_outcome(
            content, voices, digest, settings.component_name, settings.component_import
        )
        write_document(directory, doc_path, updated)
        logger.debug("%s: narration block %s", doc_path, outcome)
        return ProcessingResult(file=doc_path, status=GENERATED, voices=voices)
    except (OSError, UnicodeDecodeError, TTSError, StorageError) as e:
        print(f"  Failed {doc_path}: {e}", file=sys.stderr)
        return ProcessingResult(file=doc_path, status=FAILED, error=str(e))
    except Exception as e:
        logger.exception("Unexpected error processing %s", doc_path)
        print(f"  Failed {doc_path}: {e}", file=sys.stderr)
        return ProcessingResult(file=doc_path, status=FAILED, error=str(e))


def summarize(results: list[ProcessingResult]) -> dict:
    """Tally results. Dry runs count as skipped."""
    return {
        "generated": sum(1 for r in results if r.status == GENERATED),
        "skipped": sum(1 for r in results if r.status in (SKIPPED, DRY_RUN)),
        "failed": sum(1 for r in results if r.status == FAILED),
    }


def print_summary(results: list[ProcessingResult], verbose: bool = False) -> None:
    counts = summarize(results)
    print("\nSummary:")
    print(f"  Generated: {counts['generated']}")
    print(f"  Skipped:   {counts['skipped']}")
    if counts["failed"]:
        print(f"  Failed:    {counts['failed']}")

    if verbose:
        print("\nDetails:")
        for r in results:
            if r.status == FAILED:
                print(f"  {r.file}: {r.error}")
            elif r.status == GENERATED:
                print(f"  {r.file}: {len(r.voices)} voice(s) generated")
            else:
                print(f"  {r.file}: {r.reason}")


def generate(
    directory: str,
    settings: Settings,
    storage: S3Storage,
    ignore_patterns: tuple[str, ...],
) -> list[ProcessingResult]:
    """Process every matching document in order and print a summary."""
    documents = find_documents(directory, settings.pattern, ignore_patterns)
    if not documents:
        print(f"No documents found matching pattern: {settings.pattern}")
        return []

    print(f"Found {len(documents)} document(s)")
    results = [process_document(directory, doc_path, settings, storage) for doc_path in documents]
    print_summary(results, verbose=settings.verbose)
    return results
