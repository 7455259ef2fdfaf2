"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import pytest
from sqlalchemy.orm import Session, sessionmaker

from docrag.backends.base import BackendClient
from docrag.errors import BackendTransportError
from docrag.profiles.models import AiSettings, ChunkingSettings, RagProfile, RetrievalSettings
from docrag.storage.db import create_db_engine, init_db, make_session_factory


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fake backend for deterministic testing ──────────────────────────────


class FakeBackend(BackendClient):
    """In-memory backend returning canned vectors and answers.

    Texts missing from *vectors* embed to a constant unit-ish vector.
    """

    name = "fake"

    def __init__(
        self,
        dimension: int = 4,
        *,
        vectors: dict[str, list[float]] | None = None,
        fail_embed: bool = False,
        fail_chat: bool = False,
        answer: str = "model answer",
        fragments: Sequence[str] = ("Hel", "lo"),
    ) -> None:
        super().__init__(chat_model="fake-chat", embed_model="fake-embed", dimension=dimension, batch_size=2)
        self.vectors = vectors or {}
        self.fail_embed = fail_embed
        self.fail_chat = fail_chat
        self.answer = answer
        self.fragments = list(fragments)
        self.embed_calls = 0
        self.batch_calls = 0
        self.chat_calls: list[tuple[str, str]] = []

    def _vector(self, text: str) -> list[float]:
        return self.vectors.get(text, [1.0] + [0.0] * (self.embedding_dimension - 1))

    def embed(self, text: str) -> list[float] | None:
        self.embed_calls += 1
        if self.fail_embed:
            raise BackendTransportError(self.name, "connection refused")
        if not text.strip():
            return None
        return self._vector(text)

    def embed_many(self, texts: Sequence[str]) -> list[list[float] | None]:
        self.batch_calls += 1
        if self.fail_embed:
            raise BackendTransportError(self.name, "connection refused")
        return [self._vector(t) if t.strip() else None for t in texts]

    def chat(self, question: str, context: str, source_note: str | None = None) -> str:
        self.chat_calls.append((question, context))
        if self.fail_chat:
            raise BackendTransportError(self.name, "timeout")
        return self.with_source_note(self.answer, source_note)

    def chat_stream(self, question: str, context: str, source_note: str | None = None) -> Iterator[str]:
        self.chat_calls.append((question, context))
        if self.fail_chat:
            raise BackendTransportError(self.name, "timeout")
        yield from self.fragments
        if source_note:
            yield f"\n\n{source_note}"

    @property
    def total_embedding_calls(self) -> int:
        return self.embed_calls + self.batch_calls


def make_profile(
    name: str = "fake",
    *,
    dimension: int = 4,
    test_mode: bool = False,
    offline_fallback: bool = True,
    top_k: int = 5,
    min_score: float = 0.5,
    chunking: ChunkingSettings | None = None,
    backend: str = "ollama",
) -> RagProfile:
    return RagProfile(
        name=name,
        label=name.title(),
        backend=backend,
        ai=AiSettings(
            chat_model="fake-chat",
            embed_model="fake-embed",
            embed_dimension=dimension,
            test_mode=test_mode,
            offline_fallback=offline_fallback,
        ),
        chunking=chunking or ChunkingSettings(min=20, target=60, max=80, overlap=10),
        retrieval=RetrievalSettings(top_k=top_k, min_score=min_score),
    )


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def fake_backend() -> FakeBackend:
    return FakeBackend()
