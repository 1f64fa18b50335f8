"""TTS synthesis via edge-tts with retry logic."""

import asyncio
import logging

import edge_tts

from speak_docs.constants import TTS_RATE, TTS_RETRY_BASE_DELAY, TTS_RETRY_COUNT

logger = logging.getLogger(__name__)


class TTSError(Exception):
    """Synthesis failed after every retry."""


async def _stream_audio(text: str, voice: str, rate: str) -> bytes:
    communicate = edge_tts.Communicate(text, voice, rate=rate)
    chunks = []
    async for chunk in communicate.stream():
        if chunk["type"] == "audio":
            chunks.append(chunk["data"])
    return b"".join(chunks)


async def synthesize(text: str, voice: str, rate: str = TTS_RATE) -> bytes:
    """Synthesize text to MP3 bytes with retry logic.

    Retries on network errors, service errors, or empty audio, backing off
    exponentially between attempts. Rate is a relative string like "-10%".
    """
    last_error = None
    for attempt in range(TTS_RETRY_COUNT):
        try:
            audio = await _stream_audio(text, voice, rate)
            if audio:
                return audio

            # Empty stream counts as a failure
            last_error = TTSError(f"TTS produced no audio for voice {voice}")
        except Exception as e:
            last_error = e
        logger.warning("TTS attempt %d/%d for %s failed: %s", attempt + 1, TTS_RETRY_COUNT, voice, last_error)

        # Exponential backoff
        if attempt < TTS_RETRY_COUNT - 1:
            delay = TTS_RETRY_BASE_DELAY * (2 ** attempt)
            await asyncio.sleep(delay)

    raise TTSError(f"Synthesis with voice {voice} failed after {TTS_RETRY_COUNT} attempts: {last_error}") from last_error
