"""Keyword-overlap answers used in test mode and when the backend is unreachable.

No model is called: the question is reduced to keywords, chunks containing any
of them are fetched with a plain ``LIKE`` search and listed as excerpts.
"""

from __future__ import annotations

import re

from docrag.storage.repository import ChunkRow

EXCERPT_LENGTH = 300
MIN_KEYWORD_LENGTH = 3

_NON_WORD = re.compile(r"[\W_]+")


def build_keywords(text: str) -> list[str]:
    """Lower-cased, punctuation-free tokens of at least three characters, deduplicated in order."""
    tokens = _NON_WORD.sub(" ", text.lower()).split()
    return list(dict.fromkeys(t for t in tokens if len(t) >= MIN_KEYWORD_LENGTH))


def _format_excerpts(rows: list[ChunkRow]) -> str:
    lines: list[str] = []
    for row in rows:
        excerpt = row.content[:EXCERPT_LENGTH].replace("\n", " ")
        lines.append(f"- Source: {row.file_path} (chunk {row.chunk_index})\n  Excerpt: {excerpt}…\n\n")
    return "".join(lines)


def answer_in_test_mode(question: str, rows: list[ChunkRow]) -> str:
    if not rows:
        return f"[TEST MODE] No indexed document seems to match the question.\n\nQuestion: {question}"
    return (
        "[TEST MODE] No AI service is being called.\n"
        "These excerpts look relevant:\n\n" + _format_excerpts(rows)
    )


def answer_in_offline_fallback(rows: list[ChunkRow], error: Exception) -> str:
    if not rows:
        return (
            "The AI service is unreachable and nothing in the local documents matches your question.\n"
            f"Technical detail: {error}"
        )
    return (
        "The AI service is unreachable right now, but these excerpts from the local documents may help:\n\n"
        + _format_excerpts(rows)
        + f"\n(Technical detail: {error})"
    )

