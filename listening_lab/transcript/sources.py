"""Resolve transcript segments from stored transcript documents.

A transcript document may carry sentence-level segments, coarser recognizer
segments, per-page segments, or only page text. The first non-empty source
wins; page text is split into sentences as the last resort, which yields
untimed segments.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from listening_lab.transcript.models import TranscriptSegment, normalise_segments

logger = logging.getLogger(__name__)

__all__ = [
    "TranscriptLoadError",
    "split_sentences",
    "page_text",
    "resolve_transcript_segments",
    "load_transcript",
]

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class TranscriptLoadError(ValueError):
    """Raised when a transcript file cannot be read or parsed."""


def split_sentences(text: str) -> list[str]:
    """Split text after ``.``, ``!`` or ``?`` followed by whitespace.

    Args:
        text: Running text.

    Returns:
        list[str]: Non-empty, stripped sentences.
    """
    if not text:
        return []
    return [sentence.strip() for sentence in _SENTENCE_BOUNDARY.split(text) if sentence.strip()]


def page_text(page: Mapping[str, Any] | None) -> str:
    """Return the display text of a page: adapted, then original, then raw text."""
    if not isinstance(page, Mapping):
        return ""
    for key in ("adaptedText", "originalText", "text"):
        value = page.get(key)
        if value:
            return str(value)
    return ""


def resolve_transcript_segments(
    document: Mapping[str, Any] | None,
    pages: Sequence[Mapping[str, Any]] | None = None,
) -> list[TranscriptSegment]:
    """Pick the best available segment list for a transcript.

    Precedence: ``sentenceSegments``, then ``segments`` of the document, then
    the concatenated ``transcriptSegments`` of each page, then the sentences
    of the joined page text.

    Args:
        document: Transcript document (may be ``None``).
        pages: Page documents; defaults to ``document["pages"]``.

    Returns:
        list[TranscriptSegment]: Normalised segments, possibly empty.
    """
    if not isinstance(document, Mapping):
        document = {}
    if pages is None:
        pages = document.get("pages")
    if not isinstance(pages, Sequence) or isinstance(pages, (str, bytes)):
        pages = []
    pages = [page for page in pages if isinstance(page, Mapping)]

    for key in ("sentenceSegments", "segments"):
        segments = normalise_segments(document.get(key))
        if segments:
            logger.debug(f"Using {len(segments)} transcript segments from '{key}'")
            return segments

    page_segments: list[TranscriptSegment] = []
    for page in pages:
        page_segments.extend(normalise_segments(page.get("transcriptSegments")))
    if page_segments:
        logger.debug(f"Using {len(page_segments)} transcript segments from pages")
        return page_segments

    joined = " ".join(page_text(page) for page in pages)
    sentences = split_sentences(joined)
    logger.debug(f"Falling back to {len(sentences)} untimed sentence segments")
    return [TranscriptSegment(text=sentence) for sentence in sentences]


def load_transcript(path: Path) -> list[TranscriptSegment]:
    """Load transcript segments from a JSON file.

    The file may contain either a bare list of ``{start, end, text}`` objects
    or a transcript document understood by :func:`resolve_transcript_segments`.

    Args:
        path: JSON file to read.

    Returns:
        list[TranscriptSegment]: Normalised segments.

    Raises:
        TranscriptLoadError: If the file is unreadable, is not valid JSON, or
            has an unsupported top-level type.
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise TranscriptLoadError(f"Cannot read transcript '{path}': {exc}") from exc
    except UnicodeDecodeError as exc:
        raise TranscriptLoadError(f"Transcript '{path}' is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise TranscriptLoadError(f"Transcript '{path}' is not valid JSON: {exc}") from exc

    if isinstance(payload, list):
        return normalise_segments(payload)
    if isinstance(payload, dict):
        return resolve_transcript_segments(payload)
    raise TranscriptLoadError(
        f"Transcript '{path}' must contain a list or an object, got {type(payload).__name__}"
    )
