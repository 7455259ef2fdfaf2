"""Google Gemini adapter built on the ``google-genai`` SDK.

The client is created lazily so that building the adapter never performs I/O.
SDK, transport and payload-shape failures all surface as
:class:`~docrag.errors.BackendTransportError`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from docrag.backends.base import BackendClient
from docrag.backends.prompts import GROUNDED_SYSTEM, GROUNDED_USER
from docrag.errors import BackendTransportError
from docrag.vectors import l2_normalize

logger = logging.getLogger(__name__)

# Output size of each embedding model when no output dimensionality is requested.
NATIVE_DIMENSIONS: dict[str, int] = {
    "gemini-embedding-001": 3072,
    "text-embedding-004": 768,
}
_DEFAULT_NATIVE_DIMENSION = 3072

MAX_OUTPUT_TOKENS = 800

_SDK_ERRORS = (genai_errors.APIError, httpx.HTTPError, ValueError, TypeError, AttributeError)


def _response_text(response: Any) -> str:
    """Text of a generate-content response or stream chunk (empty when it has none)."""
    text = getattr(response, "text", None) or ""
    if not isinstance(text, str):
        raise TypeError(f"response text is a {type(text).__name__}")
    return text


class GeminiBackend(BackendClient):
    """Gemini chat + embeddings.

    Gemini only returns unit-length vectors at the native dimension; truncated
    outputs (``output_dimensionality`` smaller than native) are L2-normalised
    here so cosine and dot-product scores stay comparable.
    """

    name = "gemini"

    def __init__(
        self,
        *,
        api_key: str,
        chat_model: str,
        embed_model: str,
        dimension: int,
        batch_size: int = 4,
        embed_timeout: float = 120.0,
        chat_timeout: float = 120.0,
    ) -> None:
        super().__init__(chat_model=chat_model, embed_model=embed_model, dimension=dimension, batch_size=batch_size)
        self.api_key = api_key
        self.embed_timeout = embed_timeout
        self.chat_timeout = chat_timeout
        self._client: genai.Client | None = None

    # -- lazy client ----------------------------------------------------------

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @staticmethod
    def _http_options(timeout: float) -> types.HttpOptions:
        # The SDK takes milliseconds.
        return types.HttpOptions(timeout=int(timeout * 1000))

    @property
    def native_dimension(self) -> int:
        return NATIVE_DIMENSIONS.get(self.embed_model, _DEFAULT_NATIVE_DIMENSION)

    # -- embeddings -----------------------------------------------------------

    def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        try:
            result = self.client.models.embed_content(
                model=self.embed_model,
                contents=texts,
                config=types.EmbedContentConfig(
                    output_dimensionality=self.embedding_dimension,
                    http_options=self._http_options(self.embed_timeout),
                ),
            )
            embeddings = list(result.embeddings or [])
        except _SDK_ERRORS as exc:
            raise BackendTransportError(self.name, f"embedding request failed: {exc}") from exc
        if len(embeddings) != len(texts):
            raise BackendTransportError(self.name, "embedding response has the wrong number of vectors")
        return [self._finish_vector(getattr(item, "values", None)) for item in embeddings]

    def _finish_vector(self, values: Any) -> list[float]:
        if not isinstance(values, list):
            raise BackendTransportError(self.name, "embedding response carries no values")
        try:
            vector = [float(v) for v in values]
        except (TypeError, ValueError) as exc:
            raise BackendTransportError(self.name, f"embedding holds a non-numeric value: {exc}") from exc
        if self.embedding_dimension < self.native_dimension:
            vector = l2_normalize(vector)
        return vector

    def embed(self, text: str) -> list[float] | None:
        text = (text or "").strip()
        if not text:
            return None
        return self._embed_texts([text])[0]

    def embed_many(self, texts: Sequence[str]) -> list[list[float] | None]:
        results: list[list[float] | None] = [None] * len(texts)
        for start, group in self._batches(texts, self.batch_size):
            positions = [start + i for i, t in enumerate(group) if (t or "").strip()]
            if not positions:
                continue
            vectors = self._embed_texts([texts[p].strip() for p in positions])
            for position, vector in zip(positions, vectors):
                results[position] = vector
        return results

    # -- chat -----------------------------------------------------------------

    def _chat_request(self, question: str, context: str) -> dict[str, Any]:
        return {
            "model": self.chat_model,
            "contents": GROUNDED_USER.format(context=context, question=question),
            "config": types.GenerateContentConfig(
                system_instruction=GROUNDED_SYSTEM,
                max_output_tokens=MAX_OUTPUT_TOKENS,
                http_options=self._http_options(self.chat_timeout),
            ),
        }

    def chat(self, question: str, context: str, source_note: str | None = None) -> str:
        try:
            response = self.client.models.generate_content(**self._chat_request(question, context))
            answer = _response_text(response)
        except _SDK_ERRORS as exc:
            raise BackendTransportError(self.name, f"chat request failed: {exc}") from exc
        return self.with_source_note(answer, source_note)

    def chat_stream(self, question: str, context: str, source_note: str | None = None) -> Iterator[str]:
        try:
            for chunk in self.client.models.generate_content_stream(**self._chat_request(question, context)):
                fragment = _response_text(chunk)
                if fragment:
                    yield fragment
        except _SDK_ERRORS as exc:
            raise BackendTransportError(self.name, f"stream interrupted: {exc}") from exc

        if source_note:
            yield f"\n\n{source_note}"
