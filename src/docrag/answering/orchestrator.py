"""Question answering over the indexed corpus.

``ask`` and ``ask_stream`` share one flow:

1. test mode → keyword excerpts, no model call;
2. resolve the backend (an unknown tag is fatal), embed the question and
   query the retrieval store;
3. no hit → fixed "no relevant information" answer;
4. build the context and call the chat model;
5. any failure while embedding, querying or chatting → keyword excerpts
   with the technical error (offline fallback) or the error message as the
   answer.
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterator

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, sessionmaker

from docrag.answering.excerpts import answer_in_offline_fallback, answer_in_test_mode, build_keywords
from docrag.backends.base import BackendClient
from docrag.backends.factory import BackendRegistry
from docrag.errors import DocRagError
from docrag.profiles.manager import ProfileManager
from docrag.profiles.models import RagProfile
from docrag.retrieval.base import RetrievalStore
from docrag.retrieval.models import RetrievedChunk, SourceRef, format_similarity
from docrag.storage.repository import ChunkRow, CorpusRepository

logger = logging.getLogger(__name__)

NO_RELEVANT_INFORMATION = "I could not find relevant information in the indexed documents."
NO_ANSWER = "I could not generate an answer."


class Answer(BaseModel):
    answer: str
    sources: list[SourceRef] = Field(default_factory=list)


def build_context(chunks: list[RetrievedChunk]) -> tuple[str, list[SourceRef]]:
    """Concatenate retrieved chunks into the model context and build their citations."""
    parts: list[str] = []
    sources: list[SourceRef] = []
    for chunk in chunks:
        parts.append(
            f"Source: {chunk.file_path} - chunk {chunk.chunk_index} - "
            f"similarity {format_similarity(chunk.similarity)}\n{chunk.content}\n\n"
        )
        sources.append(SourceRef.from_chunk(chunk))
    return "".join(parts), sources


class AnswerStream:
    """Lazy, single-use iterator of answer fragments.

    :attr:`sources` is filled once iteration has finished (empty in test,
    fallback and no-result modes).
    """

    def __init__(self, fragments: Generator[str, None, list[SourceRef]]) -> None:
        self._fragments = fragments
        self.sources: list[SourceRef] = []
        self.completed = False

    def __iter__(self) -> Iterator[str]:
        self.sources = yield from self._fragments
        self.completed = True


class QueryOrchestrator:
    """Answers questions with the profile active when each call starts.

    Parameters
    ----------
    profiles:
        Source of the active profile.
    backends:
        Adapter cache, one client per profile.
    store:
        Similarity index queried with the embedded question.
    session_factory:
        Sessions for keyword searches in test / fallback modes.
    """

    def __init__(
        self,
        profiles: ProfileManager,
        backends: BackendRegistry,
        store: RetrievalStore,
        session_factory: sessionmaker[Session],
    ) -> None:
        self._profiles = profiles
        self._backends = backends
        self._store = store
        self._session_factory = session_factory

    # -- public API -----------------------------------------------------------

    def ask(self, question: str) -> Answer:
        question = self._clean(question)
        profile = self._profiles.active()
        if profile.ai.test_mode:
            return Answer(answer=answer_in_test_mode(question, self._keyword_rows(question)))

        backend = self._backends.for_profile(profile)
        try:
            hits = self._retrieve(backend, profile, question)
            if not hits:
                return Answer(answer=NO_RELEVANT_INFORMATION)
            context, sources = build_context(hits)
            answer = backend.chat(question, context)
        except Exception as exc:
            return Answer(answer=self._failure_answer(question, profile, exc))
        return Answer(answer=answer or NO_ANSWER, sources=sources)

    def ask_stream(self, question: str) -> AnswerStream:
        """Stream the answer; nothing runs until the result is iterated."""
        question = self._clean(question)
        profile = self._profiles.active()
        backend = None if profile.ai.test_mode else self._backends.for_profile(profile)
        return AnswerStream(self._stream(question, profile, backend))

    # -- internals ------------------------------------------------------------

    def _stream(
        self, question: str, profile: RagProfile, backend: BackendClient | None
    ) -> Generator[str, None, list[SourceRef]]:
        if backend is None:
            yield answer_in_test_mode(question, self._keyword_rows(question))
            return []

        try:
            hits = self._retrieve(backend, profile, question)
        except Exception as exc:
            yield self._failure_answer(question, profile, exc)
            return []
        if not hits:
            yield NO_RELEVANT_INFORMATION
            return []

        context, sources = build_context(hits)
        emitted = False
        try:
            for fragment in backend.chat_stream(question, context):
                emitted = True
                yield fragment
        except Exception as exc:
            failure = self._failure_answer(question, profile, exc)
            yield f"\n\n{failure}" if emitted else failure
            return []
        return sources

    def _retrieve(self, backend: BackendClient, profile: RagProfile, question: str) -> list[RetrievedChunk]:
        vector = backend.embed(question)
        if vector is None:
            return []
        vector = backend.validate_dimension(vector)
        return self._store.query(
            vector,
            top_k=profile.retrieval.top_k,
            min_score=profile.retrieval.min_score,
        )

    def _failure_answer(self, question: str, profile: RagProfile, exc: Exception) -> str:
        if profile.ai.offline_fallback:
            logger.warning("AI backend unavailable, answering from keyword search: %s", exc, exc_info=True)
            return answer_in_offline_fallback(self._keyword_rows(question), exc)
        logger.error("AI backend call failed: %s", exc, exc_info=not isinstance(exc, DocRagError))
        return f"AI service call failed: {exc}"

    def _keyword_rows(self, question: str) -> list[ChunkRow]:
        with self._session_factory() as session:
            return CorpusRepository(session).keyword_search(build_keywords(question), fallback_text=question)

    @staticmethod
    def _clean(question: str) -> str:
        question = (question or "").strip()
        if not question:
            raise ValueError("The question must not be empty")
        return question
