"""Chroma implementation of the similarity index."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import chromadb

from docrag.retrieval.base import IndexedChunk, RetrievalStore
from docrag.retrieval.models import RetrievedChunk

logger = logging.getLogger(__name__)


def _chunk_id(path: str, chunk_index: int) -> str:
    return f"{path}#{chunk_index}"


class ChromaRetrievalStore(RetrievalStore):
    """Chroma-backed index mirrored from the corpus tables.

    The collection uses the cosine space, so Chroma distances convert to
    similarities as ``1 - distance``.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host / port:
        Chroma server address; ignored when *client* is given.
    client:
        Pre-built Chroma client (in-process clients, tests).
    """

    def __init__(
        self,
        collection_name: str,
        *,
        host: str = "localhost",
        port: int = 8000,
        client: Any | None = None,
    ) -> None:
        self.collection_name = collection_name
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        self._collection = self._open_collection()

    def _open_collection(self) -> Any:
        return self._client.get_or_create_collection(self.collection_name, metadata={"hnsw:space": "cosine"})

    # -- RetrievalStore overrides ---------------------------------------------

    def query(self, vector: Sequence[float], *, top_k: int, min_score: float) -> list[RetrievedChunk]:
        if top_k <= 0:
            return []
        results = self._collection.query(
            query_embeddings=[list(vector)],
            n_results=top_k,
            where={"searchable": True},
            include=["documents", "metadatas", "distances"],
        )

        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        hits: list[RetrievedChunk] = []
        for content, meta, distance in zip(docs, metas, distances):
            similarity = 1.0 - float(distance)
            if similarity <= min_score:
                continue
            meta = meta or {}
            hits.append(
                RetrievedChunk(
                    content=content or "",
                    chunk_index=int(meta.get("chunk_index", 0)),
                    file_path=str(meta.get("file_path", "")),
                    similarity=similarity,
                )
            )
        hits.sort(key=lambda h: h.similarity, reverse=True)
        return hits[:top_k]

    def sync_file(self, path: str, chunks: Sequence[IndexedChunk]) -> None:
        self.remove_file(path)
        if not chunks:
            return
        self._collection.add(
            ids=[_chunk_id(path, c.chunk_index) for c in chunks],
            embeddings=[c.embedding for c in chunks],
            documents=[c.content for c in chunks],
            metadatas=[
                {"file_path": path, "chunk_index": c.chunk_index, "searchable": c.searchable} for c in chunks
            ],
        )
        logger.debug("Mirrored %d chunk(s) of %s to Chroma", len(chunks), path)

    def remove_file(self, path: str) -> None:
        self._collection.delete(where={"file_path": path})

    def reset(self) -> None:
        self._client.delete_collection(self.collection_name)
        self._collection = self._open_collection()

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
