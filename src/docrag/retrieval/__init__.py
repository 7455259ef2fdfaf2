"""
Retrieval — top-K similarity search over indexed chunks.

Public surface
--------------
- :class:`RetrievalStore` — abstract similarity index.
- :class:`SqlRetrievalStore` — cosine ranking over the corpus tables.
- :class:`ChromaRetrievalStore` — Chroma mirror (imported lazily).
- :func:`build_retrieval_store` — pick one from settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from docrag.errors import ConfigurationError
from docrag.retrieval.base import IndexedChunk, RetrievalStore
from docrag.retrieval.models import RetrievedChunk, SourceRef, format_similarity, make_preview
from docrag.retrieval.sql_store import SqlRetrievalStore

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from docrag.config import Settings

__all__ = [
    "ChromaRetrievalStore",
    "IndexedChunk",
    "RetrievalStore",
    "RetrievedChunk",
    "SourceRef",
    "SqlRetrievalStore",
    "build_retrieval_store",
    "format_similarity",
    "make_preview",
]


def build_retrieval_store(settings: Settings, session_factory: sessionmaker[Session]) -> RetrievalStore:
    """Return the index selected by ``settings.retrieval_backend``."""
    backend = settings.retrieval_backend.strip().lower()
    if backend == "sql":
        return SqlRetrievalStore(session_factory)
    if backend == "chroma":
        # chromadb is heavy; import only when selected
        from docrag.retrieval.chroma_store import ChromaRetrievalStore

        return ChromaRetrievalStore(
            settings.chroma_collection,
            host=settings.chroma_host,
            port=settings.chroma_port,
        )
    raise ConfigurationError(f"Unknown retrieval backend {settings.retrieval_backend!r} (expected 'sql' or 'chroma')")


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaRetrievalStore to avoid pulling in chromadb at import time."""
    if name == "ChromaRetrievalStore":
        from docrag.retrieval.chroma_store import ChromaRetrievalStore

        return ChromaRetrievalStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
