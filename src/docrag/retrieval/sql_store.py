"""Similarity search computed over the corpus tables."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from sqlalchemy.orm import Session, sessionmaker

from docrag.retrieval.base import RetrievalStore
from docrag.retrieval.models import RetrievedChunk
from docrag.storage.repository import CorpusRepository
from docrag.vectors import cosine_similarity

logger = logging.getLogger(__name__)


class SqlRetrievalStore(RetrievalStore):
    """Brute-force cosine ranking of every searchable chunk.

    Embeddings are loaded and scored with numpy on each query. Rows whose
    length differs from the query vector (written under another profile) are
    ignored until the corpus is re-indexed.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def query(self, vector: Sequence[float], *, top_k: int, min_score: float) -> list[RetrievedChunk]:
        if top_k <= 0:
            return []
        with self._session_factory() as session:
            rows = CorpusRepository(session).searchable_chunks()

        dimension = len(vector)
        comparable = [row for row in rows if len(row[3]) == dimension]
        if len(comparable) < len(rows):
            logger.warning(
                "Ignoring %d chunk(s) whose embedding length differs from %d; re-index to include them",
                len(rows) - len(comparable),
                dimension,
            )
        if not comparable:
            return []

        scores = cosine_similarity(vector, [row[3] for row in comparable])
        # stable sort keeps storage order among equal scores
        order = np.argsort(-scores, kind="stable")
        hits: list[RetrievedChunk] = []
        for i in order:
            score = float(scores[i])
            if score <= min_score:
                break
            path, chunk_index, content, _ = comparable[i]
            hits.append(RetrievedChunk(content=content, chunk_index=chunk_index, file_path=path, similarity=score))
            if len(hits) >= top_k:
                break
        return hits
