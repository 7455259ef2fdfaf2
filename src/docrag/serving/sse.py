"""Server-Sent Events framing for streamed answers.

Wire format: ``data: <json>\\n\\n`` per event. Zero or more
``{"chunk": "..."}`` events are followed by exactly one terminal event,
``{"done": true, "sources": [...]}`` or ``{"error": "..."}``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any

from docrag.answering.orchestrator import AnswerStream

logger = logging.getLogger(__name__)


def sse_event(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def answer_events(stream: AnswerStream) -> Iterator[str]:
    """Encode an :class:`AnswerStream` as SSE events, ending with ``done`` or ``error``."""
    try:
        for fragment in stream:
            yield sse_event({"chunk": fragment})
    except Exception as exc:  # the response has started; report in-band
        logger.exception("Streaming answer failed")
        yield sse_event({"error": str(exc) or type(exc).__name__})
        return
    yield sse_event({"done": True, "sources": [s.model_dump() for s in stream.sources]})
