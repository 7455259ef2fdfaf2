"""OpenAI adapter built on ``langchain_openai``.

``openai_base_url`` may point at any OpenAI-compatible endpoint (vLLM,
LiteLLM, Azure gateways...); ``ChatOpenAI`` works unchanged against those.
Clients are created lazily so that building the adapter never performs I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any

import openai
from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from docrag.backends.base import BackendClient
from docrag.backends.prompts import build_chat_messages
from docrag.errors import BackendTransportError

logger = logging.getLogger(__name__)

MAX_TOKENS = 400


def _content_text(content: Any) -> str:
    """Flatten a LangChain message content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(p if isinstance(p, str) else str(p.get("text", "")) for p in content)
    return str(content or "")


class OpenAIBackend(BackendClient):
    """OpenAI chat completions + embeddings."""

    name = "openai"

    def __init__(
        self,
        *,
        api_key: str,
        chat_model: str,
        embed_model: str,
        dimension: int,
        base_url: str = "",
        batch_size: int = 4,
        embed_timeout: float = 120.0,
        chat_timeout: float = 120.0,
    ) -> None:
        super().__init__(chat_model=chat_model, embed_model=embed_model, dimension=dimension, batch_size=batch_size)
        self.api_key = api_key
        self.base_url = base_url
        self.embed_timeout = embed_timeout
        self.chat_timeout = chat_timeout
        self._llm: ChatOpenAI | None = None
        self._embedder: OpenAIEmbeddings | None = None

    # -- lazy clients ---------------------------------------------------------

    def _client_kwargs(self, timeout: float) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            # LangChain requires a non-empty key even for keyless gateways.
            "api_key": self.api_key or "EMPTY",
            "timeout": timeout,
            "max_retries": 0,
        }
        if self.base_url:
            logger.info("Using OpenAI-compatible endpoint: %s", self.base_url)
            kwargs["base_url"] = self.base_url
        return kwargs

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=self.chat_model,
                temperature=0.0,
                max_tokens=MAX_TOKENS,
                **self._client_kwargs(self.chat_timeout),
            )
        return self._llm

    @property
    def embedder(self) -> OpenAIEmbeddings:
        if self._embedder is None:
            kwargs = self._client_kwargs(self.embed_timeout)
            # Only the text-embedding-3 family accepts a shortened output size.
            if self.embed_model.startswith("text-embedding-3"):
                kwargs["dimensions"] = self.embedding_dimension
            self._embedder = OpenAIEmbeddings(
                model=self.embed_model,
                chunk_size=self.batch_size,
                check_embedding_ctx_length=False,
                **kwargs,
            )
        return self._embedder

    # -- embeddings -----------------------------------------------------------

    def embed(self, text: str) -> list[float] | None:
        text = (text or "").strip()
        if not text:
            return None
        try:
            vector = self.embedder.embed_query(text)
        except (openai.OpenAIError, ValueError) as exc:
            raise BackendTransportError(self.name, f"embedding request failed: {exc}") from exc
        return [float(v) for v in vector]

    def embed_many(self, texts: Sequence[str]) -> list[list[float] | None]:
        results: list[list[float] | None] = [None] * len(texts)
        positions = [i for i, t in enumerate(texts) if (t or "").strip()]
        if not positions:
            return results
        try:
            vectors = self.embedder.embed_documents([texts[p].strip() for p in positions])
        except (openai.OpenAIError, ValueError) as exc:
            raise BackendTransportError(self.name, f"embedding request failed: {exc}") from exc
        if len(vectors) != len(positions):
            raise BackendTransportError(self.name, "embedding response has the wrong number of vectors")
        for position, vector in zip(positions, vectors):
            results[position] = [float(v) for v in vector]
        return results

    # -- chat -----------------------------------------------------------------

    def chat(self, question: str, context: str, source_note: str | None = None) -> str:
        try:
            response = self.llm.invoke(build_chat_messages(question, context))
        except (openai.OpenAIError, ValueError) as exc:
            raise BackendTransportError(self.name, f"chat request failed: {exc}") from exc
        return self.with_source_note(_content_text(response.content), source_note)

    def chat_stream(self, question: str, context: str, source_note: str | None = None) -> Iterator[str]:
        try:
            for chunk in self.llm.stream(build_chat_messages(question, context)):
                fragment = _content_text(chunk.content)
                if fragment:
                    yield fragment
        except (openai.OpenAIError, ValueError) as exc:
            raise BackendTransportError(self.name, f"stream interrupted: {exc}") from exc

        if source_note:
            yield f"\n\n{source_note}"
