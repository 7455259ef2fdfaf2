"""Ollama adapter — local model server over its native HTTP API.

Endpoints used: ``/api/embed`` (batch-capable embeddings), ``/api/chat``
(chat, streamed as newline-delimited JSON) and ``/api/tags`` (health).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any

import requests

from docrag.backends.base import BackendClient
from docrag.backends.http import post_json, read_json
from docrag.backends.prompts import build_chat_messages, to_role_dicts
from docrag.backends.streaming import iter_ndjson
from docrag.errors import BackendTransportError

logger = logging.getLogger(__name__)


class OllamaBackend(BackendClient):
    """Talks to an Ollama server.

    Parameters
    ----------
    host:
        Base URL of the server, e.g. ``http://localhost:11434``.
    embed_timeout / chat_timeout:
        Per-request timeouts in seconds.
    """

    name = "ollama"

    def __init__(
        self,
        *,
        host: str,
        chat_model: str,
        embed_model: str,
        dimension: int,
        batch_size: int = 4,
        embed_timeout: float = 120.0,
        chat_timeout: float = 120.0,
    ) -> None:
        super().__init__(chat_model=chat_model, embed_model=embed_model, dimension=dimension, batch_size=batch_size)
        self.host = host.rstrip("/")
        self.embed_timeout = embed_timeout
        self.chat_timeout = chat_timeout

    # -- embeddings -----------------------------------------------------------

    def embed(self, text: str) -> list[float] | None:
        text = (text or "").strip()
        if not text:
            return None
        return self._embed_batch([text])[0]

    def embed_many(self, texts: Sequence[str]) -> list[list[float] | None]:
        results: list[list[float] | None] = [None] * len(texts)
        for start, group in self._batches(texts, self.batch_size):
            positions = [start + i for i, t in enumerate(group) if (t or "").strip()]
            inputs = [texts[p].strip() for p in positions]
            if not inputs:
                continue
            for position, vector in zip(positions, self._embed_batch(inputs)):
                results[position] = vector
        return results

    def _embed_batch(self, inputs: list[str]) -> list[list[float]]:
        resp = post_json(
            self.name,
            f"{self.host}/api/embed",
            {"model": self.embed_model, "input": inputs},
            timeout=self.embed_timeout,
        )
        data = read_json(self.name, resp)
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list) or len(embeddings) != len(inputs):
            raise BackendTransportError(self.name, "unexpected /api/embed response (missing or short 'embeddings')")
        return [self._to_vector(vector) for vector in embeddings]

    def _to_vector(self, raw: Any) -> list[float]:
        if not isinstance(raw, list):
            raise BackendTransportError(self.name, "embedding is not an array")
        try:
            return [float(v) for v in raw]
        except (TypeError, ValueError) as exc:
            raise BackendTransportError(self.name, f"embedding holds a non-numeric value: {exc}") from exc

    # -- chat -----------------------------------------------------------------

    def _message_content(self, frame: dict[str, Any]) -> str:
        """``message.content`` of a chat reply or stream frame, validated."""
        if "error" in frame:
            raise BackendTransportError(self.name, str(frame["error"]))
        message = frame.get("message") or {}
        if not isinstance(message, dict):
            raise BackendTransportError(self.name, f"unexpected 'message' of type {type(message).__name__}")
        content = message.get("content") or ""
        if not isinstance(content, str):
            raise BackendTransportError(self.name, f"unexpected 'content' of type {type(content).__name__}")
        return content

    def _chat_payload(self, question: str, context: str, *, stream: bool) -> dict[str, Any]:
        return {
            "model": self.chat_model,
            "messages": to_role_dicts(build_chat_messages(question, context)),
            "stream": stream,
        }

    def chat(self, question: str, context: str, source_note: str | None = None) -> str:
        resp = post_json(
            self.name,
            f"{self.host}/api/chat",
            self._chat_payload(question, context, stream=False),
            timeout=self.chat_timeout,
        )
        answer = self._message_content(read_json(self.name, resp))
        return self.with_source_note(answer, source_note)

    def chat_stream(self, question: str, context: str, source_note: str | None = None) -> Iterator[str]:
        resp = post_json(
            self.name,
            f"{self.host}/api/chat",
            self._chat_payload(question, context, stream=True),
            timeout=self.chat_timeout,
            stream=True,
        )
        try:
            for frame in iter_ndjson(resp.iter_content(chunk_size=None)):
                fragment = self._message_content(frame)
                if fragment:
                    yield fragment
                if frame.get("done"):
                    break
        except (requests.RequestException, ValueError) as exc:
            raise BackendTransportError(self.name, f"stream interrupted: {exc}") from exc
        finally:
            resp.close()

        if source_note:
            yield f"\n\n{source_note}"

    def health_check(self) -> bool:
        try:
            resp = requests.get(f"{self.host}/api/tags", timeout=5)
            return resp.ok
        except requests.RequestException:
            logger.warning("Ollama health-check failed", exc_info=True)
            return False
