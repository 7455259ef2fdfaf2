"""Unit tests for the query orchestrator and the keyword-excerpt answers."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeBackend, make_profile
from docrag.answering.excerpts import answer_in_offline_fallback, answer_in_test_mode, build_keywords
from docrag.answering.orchestrator import NO_RELEVANT_INFORMATION, QueryOrchestrator, build_context
from docrag.backends.factory import BackendRegistry
from docrag.backends.ollama_client import OllamaBackend
from docrag.config import Settings
from docrag.errors import BackendTransportError, UnknownBackendError
from docrag.profiles.loader import ProfileCatalog
from docrag.profiles.manager import ProfileManager
from docrag.profiles.models import RagProfile
from docrag.retrieval.models import RetrievedChunk
from docrag.retrieval.sql_store import SqlRetrievalStore
from docrag.storage.repository import ChunkRow, CorpusRepository

HIT = [1.0, 0.0, 0.0, 0.0]
MISS = [0.0, 1.0, 0.0, 0.0]


class _BrokenStreamBackend(FakeBackend):
    """Streams one fragment, then loses the connection."""

    def chat_stream(self, question: str, context: str, source_note: str | None = None) -> Iterator[str]:
        yield "Partial"
        raise BackendTransportError(self.name, "stream interrupted")


def _seed(session_factory, chunks: list[tuple[str, str, list[float]]]) -> None:
    with session_factory() as session:
        repo = CorpusRepository(session)
        by_path: dict[str, list] = {}
        for path, content, vector in chunks:
            by_path.setdefault(path, []).append((content, vector, True))
        for path, rows in by_path.items():
            repo.replace_chunks(repo.save_file(None, path=path, extension="md", content_hash="h", size=1), rows)
        session.commit()


def _orchestrator(session_factory, backend: FakeBackend, *profiles: RagProfile) -> tuple[QueryOrchestrator, ProfileManager]:
    profiles = profiles or (make_profile(),)
    catalog = ProfileCatalog(presets={p.name: p for p in profiles}, default_profile=profiles[0].name)
    manager = ProfileManager(catalog)
    registry = BackendRegistry(Settings(), factory=lambda profile, settings: backend)
    orchestrator = QueryOrchestrator(manager, registry, SqlRetrievalStore(session_factory), session_factory)
    return orchestrator, manager


# ── Excerpt answers ─────────────────────────────────────────────────────


class TestExcerpts:
    def test_build_keywords(self) -> None:
        assert build_keywords("Ciao, what is the RAG-engine? Ciao!") == ["ciao", "what", "the", "rag", "engine"]

    def test_test_mode_lists_excerpts(self) -> None:
        text = answer_in_test_mode("q", [ChunkRow("docs/a.md", 3, "line one\nline two")])
        assert text.startswith("[TEST MODE]")
        assert "- Source: docs/a.md (chunk 3)" in text
        assert "Excerpt: line one line two…" in text

    def test_test_mode_without_rows_echoes_question(self) -> None:
        assert answer_in_test_mode("where?", []).endswith("Question: where?")

    def test_excerpt_is_truncated(self) -> None:
        text = answer_in_test_mode("q", [ChunkRow("a.md", 0, "x" * 1000)])
        assert "x" * 300 + "…" in text
        assert "x" * 301 not in text

    def test_offline_fallback_carries_the_error(self) -> None:
        error = BackendTransportError("ollama", "connection refused")
        assert "connection refused" in answer_in_offline_fallback([], error)
        text = answer_in_offline_fallback([ChunkRow("a.md", 0, "ciao")], error)
        assert "a.md" in text
        assert text.endswith("(Technical detail: [ollama] connection refused)")


def test_build_context_format() -> None:
    chunk = RetrievedChunk(content="Body", chunk_index=1, file_path="a.md", similarity=0.876)
    context, sources = build_context([chunk])
    assert context == "Source: a.md - chunk 1 - similarity 0.88\nBody\n\n"
    assert sources[0].short_ref() == "[a.md§1]"


# ── ask ─────────────────────────────────────────────────────────────────


class TestAsk:
    def test_answers_from_retrieved_context(self, session_factory, fake_backend) -> None:
        _seed(session_factory, [("a.md", "Ciao means hello", HIT), ("b.md", "Unrelated", MISS)])
        orchestrator, _ = _orchestrator(session_factory, fake_backend)

        answer = orchestrator.ask("  What does ciao mean?  ")

        assert answer.answer == "model answer"
        assert [s.file for s in answer.sources] == ["a.md"]
        assert answer.sources[0].similarity_formatted == "1.00"
        question, context = fake_backend.chat_calls[0]
        assert question == "What does ciao mean?"
        assert "Source: a.md - chunk 0 - similarity 1.00" in context
        assert "Unrelated" not in context

    def test_no_hits_skips_chat(self, session_factory, fake_backend) -> None:
        _seed(session_factory, [("a.md", "Unrelated", MISS)])
        orchestrator, _ = _orchestrator(session_factory, fake_backend)

        answer = orchestrator.ask("anything")

        assert answer.answer == NO_RELEVANT_INFORMATION
        assert answer.sources == []
        assert fake_backend.chat_calls == []

    def test_test_mode_uses_keywords_only(self, session_factory, fake_backend) -> None:
        _seed(session_factory, [("greetings.md", "ciao a tutti", HIT)])
        orchestrator, _ = _orchestrator(session_factory, fake_backend, make_profile(test_mode=True))

        answer = orchestrator.ask("ciao")

        assert answer.answer.startswith("[TEST MODE]")
        assert "greetings.md" in answer.answer
        assert answer.sources == []
        assert fake_backend.total_embedding_calls == 0
        assert fake_backend.chat_calls == []

    def test_embedding_failure_falls_back_to_keywords(self, session_factory) -> None:
        _seed(session_factory, [("greetings.md", "ciao a tutti", HIT)])
        orchestrator, _ = _orchestrator(session_factory, FakeBackend(fail_embed=True))

        answer = orchestrator.ask("ciao")

        assert "unreachable" in answer.answer
        assert "greetings.md" in answer.answer
        assert "connection refused" in answer.answer
        assert answer.sources == []

    def test_chat_failure_without_fallback_returns_error_text(self, session_factory) -> None:
        _seed(session_factory, [("a.md", "ciao", HIT)])
        backend = FakeBackend(fail_chat=True)
        orchestrator, _ = _orchestrator(session_factory, backend, make_profile(offline_fallback=False))

        answer = orchestrator.ask("ciao")

        assert answer.answer == "AI service call failed: [fake] timeout"
        assert answer.sources == []

    def test_wrong_query_dimension_is_a_backend_error(self, session_factory) -> None:
        backend = FakeBackend(vectors={"ciao": [1.0, 0.0]})
        orchestrator, _ = _orchestrator(session_factory, backend, make_profile(offline_fallback=False))
        assert "dimension mismatch" in orchestrator.ask("ciao").answer

    def test_blank_question_rejected(self, session_factory, fake_backend) -> None:
        orchestrator, _ = _orchestrator(session_factory, fake_backend)
        with pytest.raises(ValueError):
            orchestrator.ask("   ")

    def test_uses_profile_active_at_call_time(self, session_factory, fake_backend) -> None:
        _seed(session_factory, [("a.md", "ciao", HIT)])
        orchestrator, manager = _orchestrator(
            session_factory, fake_backend, make_profile("live"), make_profile("offline", test_mode=True)
        )
        assert orchestrator.ask("ciao").answer == "model answer"
        manager.switch("offline", persist=False)
        assert orchestrator.ask("ciao").answer.startswith("[TEST MODE]")


# ── ask_stream ──────────────────────────────────────────────────────────


class TestAskStream:
    def test_fragments_then_sources(self, session_factory, fake_backend) -> None:
        _seed(session_factory, [("a.md", "ciao", HIT)])
        orchestrator, _ = _orchestrator(session_factory, fake_backend)

        stream = orchestrator.ask_stream("ciao")

        assert list(stream) == ["Hel", "lo"]
        assert stream.completed
        assert [s.short_ref() for s in stream.sources] == ["[a.md§0]"]

    def test_nothing_runs_before_iteration(self, session_factory, fake_backend) -> None:
        orchestrator, _ = _orchestrator(session_factory, fake_backend)
        stream = orchestrator.ask_stream("ciao")
        assert fake_backend.total_embedding_calls == 0
        assert not stream.completed

    def test_no_hits_single_fragment(self, session_factory, fake_backend) -> None:
        orchestrator, _ = _orchestrator(session_factory, fake_backend)
        stream = orchestrator.ask_stream("ciao")
        assert list(stream) == [NO_RELEVANT_INFORMATION]
        assert stream.sources == []

    def test_test_mode_single_fragment(self, session_factory, fake_backend) -> None:
        orchestrator, _ = _orchestrator(session_factory, fake_backend, make_profile(test_mode=True))
        fragments = list(orchestrator.ask_stream("ciao"))
        assert len(fragments) == 1
        assert fragments[0].startswith("[TEST MODE]")

    def test_failure_after_fragments_is_appended(self, session_factory) -> None:
        _seed(session_factory, [("a.md", "ciao", HIT)])
        orchestrator, _ = _orchestrator(session_factory, _BrokenStreamBackend(), make_profile(offline_fallback=False))

        stream = orchestrator.ask_stream("ciao")
        fragments = list(stream)

        assert fragments[0] == "Partial"
        assert fragments[1] == "\n\nAI service call failed: [fake] stream interrupted"
        assert stream.sources == []

    def test_embedding_failure_streams_fallback(self, session_factory) -> None:
        _seed(session_factory, [("a.md", "ciao", HIT)])
        orchestrator, _ = _orchestrator(session_factory, FakeBackend(fail_embed=True))
        fragments = list(orchestrator.ask_stream("ciao"))
        assert len(fragments) == 1
        assert "unreachable" in fragments[0]

    def test_blank_question_rejected_eagerly(self, session_factory, fake_backend) -> None:
        orchestrator, _ = _orchestrator(session_factory, fake_backend)
        with pytest.raises(ValueError):
            orchestrator.ask_stream("")


# ── Malformed provider payloads ─────────────────────────────────────────

OLLAMA_POST = "docrag.backends.http.requests.post"


def _ollama_response(json_data=None, *, chunks=None) -> MagicMock:
    resp = MagicMock(status_code=200, text="")
    resp.json.return_value = json_data
    resp.iter_content.return_value = chunks or []
    return resp


def _ollama_backend() -> OllamaBackend:
    return OllamaBackend(host="http://ollama:11434", chat_model="llama3", embed_model="bge-m3", dimension=4)


class _RawErrorBackend(FakeBackend):
    """Fails with a plain library exception instead of a backend error."""

    def embed(self, text: str) -> list[float] | None:
        raise TypeError("unsupported operand type(s)")


class TestMalformedPayloads:
    def test_non_numeric_embedding_falls_back_to_keywords(self, session_factory) -> None:
        _seed(session_factory, [("greetings.md", "ciao a tutti", HIT)])
        orchestrator, _ = _orchestrator(session_factory, _ollama_backend())

        with patch(OLLAMA_POST, return_value=_ollama_response({"embeddings": [[0.1, None, 0.0, 0.0]]})):
            answer = orchestrator.ask("what is ciao")

        assert "unreachable" in answer.answer
        assert "greetings.md" in answer.answer
        assert "non-numeric" in answer.answer
        assert answer.sources == []

    def test_string_chat_message_falls_back_to_keywords(self, session_factory) -> None:
        _seed(session_factory, [("greetings.md", "ciao a tutti", HIT)])
        orchestrator, _ = _orchestrator(session_factory, _ollama_backend())
        responses = [_ollama_response({"embeddings": [HIT]}), _ollama_response({"message": "oops"})]

        with patch(OLLAMA_POST, side_effect=responses):
            answer = orchestrator.ask("ciao")

        assert "unreachable" in answer.answer
        assert "unexpected 'message'" in answer.answer

    def test_malformed_stream_frame_is_appended_as_failure(self, session_factory) -> None:
        _seed(session_factory, [("a.md", "ciao", HIT)])
        orchestrator, _ = _orchestrator(session_factory, _ollama_backend(), make_profile(offline_fallback=False))
        frames = [b'{"message": {"content": "Hi"}}\n', b'{"message": "oops"}\n']
        responses = [_ollama_response({"embeddings": [HIT]}), _ollama_response(chunks=frames)]

        with patch(OLLAMA_POST, side_effect=responses):
            stream = orchestrator.ask_stream("ciao")
            fragments = list(stream)

        assert fragments[0] == "Hi"
        assert fragments[1].startswith("\n\nAI service call failed: [ollama] unexpected 'message'")
        assert stream.sources == []

    def test_raw_library_error_is_contained(self, session_factory) -> None:
        _seed(session_factory, [("greetings.md", "ciao a tutti", HIT)])
        orchestrator, _ = _orchestrator(session_factory, _RawErrorBackend())

        answer = orchestrator.ask("ciao")
        fragments = list(orchestrator.ask_stream("ciao"))

        assert "unsupported operand" in answer.answer
        assert "greetings.md" in answer.answer
        assert len(fragments) == 1
        assert "unsupported operand" in fragments[0]

    def test_unknown_backend_is_fatal(self, session_factory) -> None:
        def factory(profile, settings):
            raise UnknownBackendError("mistral", ["ollama", "openai", "gemini"])

        catalog = ProfileCatalog(presets={"p": make_profile("p")}, default_profile="p")
        orchestrator = QueryOrchestrator(
            ProfileManager(catalog),
            BackendRegistry(Settings(), factory=factory),
            SqlRetrievalStore(session_factory),
            session_factory,
        )

        with pytest.raises(UnknownBackendError):
            orchestrator.ask("ciao")
        with pytest.raises(UnknownBackendError):
            orchestrator.ask_stream("ciao")
