"""Content fingerprints and change detection against the embedded record."""

import hashlib

from speak_docs.models import NarrationBlock


def fingerprint(text: str) -> str:
    """SHA-256 hex digest of the UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def voices_match(recorded_ids: list[str], requested_ids: list[str]) -> bool:
    """Same size and every requested id recorded. Order does not matter."""
    return len(recorded_ids) == len(requested_ids) and all(
        voice_id in recorded_ids for voice_id in requested_ids
    )


def has_changed(
    new_digest: str,
    existing: NarrationBlock | None,
    requested_voice_ids: list[str],
) -> bool:
    """Whether a document needs its narration regenerated.

    Unchanged only when a block exists, its fingerprint equals new_digest,
    and it records exactly the requested voice set.
    """
    if existing is None:
        return True
    if existing.fingerprint != new_digest:
        return True
    return not voices_match(existing.voice_ids, requested_voice_ids)
