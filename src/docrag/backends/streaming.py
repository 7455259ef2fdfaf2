"""Incremental frame parsing for streamed HTTP responses.

Ollama streams newline-delimited JSON over raw HTTP. Network reads do not
respect frame boundaries, so partial frames are buffered until their newline
arrives; blank keep-alive lines are dropped.
"""

from __future__ import annotations

import codecs
import json
from collections.abc import Iterable, Iterator
from typing import Any


def iter_lines(chunks: Iterable[bytes | str]) -> Iterator[str]:
    """Re-assemble arbitrary byte/str chunks into complete lines (without ``\\r\\n``)."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    for chunk in chunks:
        if not chunk:
            continue
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        while True:
            newline = buffer.find("\n")
            if newline < 0:
                break
            line, buffer = buffer[:newline], buffer[newline + 1 :]
            yield line.rstrip("\r")
    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer.rstrip("\r")


def iter_ndjson(chunks: Iterable[bytes | str]) -> Iterator[dict[str, Any]]:
    """Yield one JSON object per non-blank line.

    Raises :class:`ValueError` on a line that is not a JSON object.
    """
    for line in iter_lines(chunks):
        line = line.strip()
        if not line:
            continue
        obj = json.loads(line)
        if not isinstance(obj, dict):
            raise ValueError(f"expected a JSON object per line, got {type(obj).__name__}")
        yield obj

