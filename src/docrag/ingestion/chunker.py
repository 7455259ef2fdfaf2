"""Sentence-packing chunker producing bounded, overlapping text chunks.

Pipeline
--------
1. Normalise whitespace and repair spaces lost during extraction.
2. Split into sentences (locale-aware abbreviations).
3. Greedily pack sentences while the chunk stays within ``max_chars``;
   a sentence longer than ``max_chars`` is split on word boundaries.
4. Merge a final chunk shorter than ``min_chars`` into its predecessor when
   the result stays within the hard ceiling.
5. Prefix every chunk after the first with the trailing words of the
   previous one (about ``overlap`` characters), shrunk to fit the ceiling.

No chunk is ever longer than ``hard_ceiling`` characters.
"""

from __future__ import annotations

from langchain_text_splitters import RecursiveCharacterTextSplitter

from docrag.ingestion.text import normalize_text, split_sentences
from docrag.profiles.models import HARD_CHUNK_CEILING, ChunkingSettings


def _split_words(sentence: str, max_chars: int) -> list[str]:
    """Split an oversized sentence on spaces; words longer than *max_chars* are cut."""
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=max_chars,
        chunk_overlap=0,
        length_function=len,
        separators=[" ", ""],
        keep_separator=False,
    )
    return [piece for piece in splitter.split_text(sentence) if piece]


def _pack(sentences: list[str], target_chars: int, max_chars: int) -> list[str]:
    chunks: list[str] = []
    buffer = ""
    for sentence in sentences:
        if len(sentence) > max_chars:
            if buffer:
                chunks.append(buffer)
            pieces = _split_words(sentence, max_chars)
            chunks.extend(pieces[:-1])
            buffer = pieces[-1] if pieces else ""
            continue

        candidate = f"{buffer} {sentence}" if buffer else sentence
        if len(candidate) <= max_chars:
            buffer = candidate
        else:
            chunks.append(buffer)
            buffer = sentence

        if len(buffer) >= target_chars:
            chunks.append(buffer)
            buffer = ""

    if buffer:
        chunks.append(buffer)
    return chunks


def _merge_short_tail(chunks: list[str], min_chars: int, hard_ceiling: int) -> list[str]:
    if len(chunks) < 2 or len(chunks[-1]) >= min_chars:
        return chunks
    merged = f"{chunks[-2]} {chunks[-1]}"
    if len(merged) > hard_ceiling:
        return chunks
    return [*chunks[:-2], merged]


def build_word_overlap(previous: str, overlap_chars: int, room: int) -> str:
    """Return the trailing words of *previous* totalling about *overlap_chars*.

    Words are taken from the end until the budget is reached; the first word
    is always taken when it fits. Nothing longer than *room* is returned.
    """
    if overlap_chars <= 0 or room <= 0:
        return ""
    selected: list[str] = []
    total = 0
    for word in reversed(previous.split()):
        cost = len(word) + (1 if selected else 0)
        if selected and total + cost > overlap_chars:
            break
        if total + cost > room:
            break
        selected.append(word)
        total += cost
        if total >= overlap_chars:
            break
    return " ".join(reversed(selected))


def _add_overlap(chunks: list[str], overlap_chars: int, hard_ceiling: int) -> list[str]:
    result = chunks[:1]
    for previous, chunk in zip(chunks, chunks[1:]):
        # one character is reserved for the joining space
        prefix = build_word_overlap(previous, overlap_chars, hard_ceiling - len(chunk) - 1)
        result.append(f"{prefix} {chunk}" if prefix else chunk)
    return result


def chunk_text(
    text: str,
    min_chars: int = 300,
    target_chars: int = 800,
    max_chars: int = 1000,
    overlap: int = 150,
    *,
    locale: str = "en",
    hard_ceiling: int = HARD_CHUNK_CEILING,
) -> list[str]:
    """Split *text* into ordered, bounded, overlapping chunks.

    Parameters
    ----------
    text:
        Raw extracted text.
    min_chars:
        A final chunk shorter than this is merged into the previous one.
    target_chars:
        A chunk is closed as soon as it reaches this length.
    max_chars:
        Upper bound for packed chunks before overlap; clamped to *hard_ceiling*.
    overlap:
        Approximate number of characters repeated from the previous chunk.
        ``0`` disables overlap.
    locale:
        Language used for sentence-boundary detection (``"en"``, ``"it"`` ...).

    Returns
    -------
    list[str]
        Empty for blank input; otherwise non-empty chunks, none longer than
        *hard_ceiling*.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    normalized = normalize_text(text)
    if not normalized:
        return []

    max_chars = min(max_chars, hard_ceiling)
    target_chars = max(1, min(target_chars, max_chars))

    chunks = _pack(split_sentences(normalized, locale), target_chars, max_chars)
    chunks = _merge_short_tail(chunks, min_chars, hard_ceiling)
    if overlap > 0:
        chunks = _add_overlap(chunks, overlap, hard_ceiling)
    return chunks


def chunk_with_settings(text: str, settings: ChunkingSettings) -> list[str]:
    """Run :func:`chunk_text` with a profile's chunk sizing."""
    return chunk_text(
        text,
        settings.min,
        settings.target,
        settings.max,
        settings.overlap,
        locale=settings.locale,
    )
