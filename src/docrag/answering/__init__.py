"""
Answering — grounded answers from the retrieved chunks.

Public surface
--------------
- :class:`QueryOrchestrator` — ``ask`` / ``ask_stream``.
- :class:`Answer`, :class:`AnswerStream` — results.
"""

from docrag.answering.excerpts import build_keywords
from docrag.answering.orchestrator import (
    NO_RELEVANT_INFORMATION,
    Answer,
    AnswerStream,
    QueryOrchestrator,
    build_context,
)

__all__ = [
    "NO_RELEVANT_INFORMATION",
    "Answer",
    "AnswerStream",
    "QueryOrchestrator",
    "build_context",
    "build_keywords",
]
