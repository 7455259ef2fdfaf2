"""Abstract base class for similarity indexes.

The corpus tables are always the source of truth. An index either reads them
directly (:class:`~docrag.retrieval.sql_store.SqlRetrievalStore`) or mirrors
them, in which case the indexer pushes every committed file through
:meth:`RetrievalStore.sync_file` and every removal through
:meth:`RetrievalStore.remove_file`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from docrag.retrieval.models import RetrievedChunk


@dataclass(frozen=True)
class IndexedChunk:
    """A chunk as written by the indexer, handed to mirrored indexes."""

    chunk_index: int
    content: str
    embedding: list[float]
    searchable: bool


class RetrievalStore(ABC):
    """Top-K cosine similarity over stored chunks."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def query(self, vector: Sequence[float], *, top_k: int, min_score: float) -> list[RetrievedChunk]:
        """Return the chunks most similar to *vector*.

        Only searchable chunks are ranked. Results have a similarity strictly
        greater than *min_score*, are sorted by non-increasing similarity and
        hold at most *top_k* rows. Read-only.
        """
        ...

    # -- optional overrides ---------------------------------------------------

    def sync_file(self, path: str, chunks: Sequence[IndexedChunk]) -> None:
        """Replace the chunks stored for *path*. No-op for indexes reading the corpus tables."""

    def remove_file(self, path: str) -> None:
        """Forget every chunk of *path*."""

    def reset(self) -> None:
        """Forget everything."""

    def health_check(self) -> bool:
        return True
