"""Abstract base class for embedding / chat providers.

Adding a provider only requires subclassing :class:`BackendClient` and
implementing :meth:`embed`, :meth:`chat` and :meth:`chat_stream`, then
registering the adapter in :mod:`docrag.backends.factory`.

Adapters never retry and never swallow errors: transport and protocol
failures surface as :class:`~docrag.errors.BackendTransportError` and the
fallback policy is decided by the caller (indexer / query orchestrator).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence

from docrag.errors import DimensionMismatchError


class BackendClient(ABC):
    """Uniform contract over interchangeable embedding/chat providers.

    Parameters
    ----------
    chat_model:
        Generative model identifier.
    embed_model:
        Embedding model identifier.
    dimension:
        Configured embedding length. Fixed per model and known in advance.
    batch_size:
        Maximum number of texts sent per embedding request by :meth:`embed_many`.
    """

    #: Backend tag, as used in profile configuration.
    name: str = "base"

    def __init__(self, *, chat_model: str, embed_model: str, dimension: int, batch_size: int = 4) -> None:
        self.chat_model = chat_model
        self.embed_model = embed_model
        self._dimension = dimension
        self.batch_size = max(1, batch_size)

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def embed(self, text: str) -> list[float] | None:
        """Embed one text.

        Returns ``None`` only for empty / whitespace-only input. The vector
        length is validated by the caller against :meth:`get_embedding_dimension`.
        """
        ...

    @abstractmethod
    def chat(self, question: str, context: str, source_note: str | None = None) -> str:
        """Answer *question* from *context* only; append *source_note* when non-empty."""
        ...

    @abstractmethod
    def chat_stream(self, question: str, context: str, source_note: str | None = None) -> Iterator[str]:
        """Yield answer fragments in arrival order.

        After the provider signals completion, yields *source_note* one final
        time when it is non-empty. The returned generator is lazy, finite and
        not restartable.
        """
        ...

    # -- optional overrides ---------------------------------------------------

    def embed_many(self, texts: Sequence[str]) -> list[list[float] | None]:
        """Embed several texts, preserving order. Blank texts map to ``None``.

        The default implementation calls :meth:`embed` once per text.
        Providers with a native batch endpoint override it.
        """
        return [self.embed(text) for text in texts]

    def health_check(self) -> bool:
        """Return ``True`` when the provider is reachable. Optional — assumes yes."""
        return True

    # -- shared helpers -------------------------------------------------------

    def get_embedding_dimension(self) -> int:
        return self._dimension

    @property
    def embedding_dimension(self) -> int:
        return self._dimension

    def validate_dimension(self, vector: Sequence[float]) -> list[float]:
        """Return *vector* as floats, raising when its length is not the configured one."""
        if len(vector) != self._dimension:
            raise DimensionMismatchError(self.name, self._dimension, len(vector))
        return [float(v) for v in vector]

    @staticmethod
    def with_source_note(answer: str, source_note: str | None) -> str:
        if source_note:
            return f"{answer}\n\n{source_note}"
        return answer

    @staticmethod
    def _batches(items: Sequence[str], size: int) -> Iterator[tuple[int, Sequence[str]]]:
        for start in range(0, len(items), size):
            yield start, items[start : start + size]

    def __repr__(self) -> str:  # noqa: D105
        return f"{type(self).__name__}(chat_model={self.chat_model!r}, embed_model={self.embed_model!r}, dimension={self._dimension})"
