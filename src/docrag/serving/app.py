"""FastAPI application exposing the RAG engine as a REST API."""

from __future__ import annotations

import logging
import threading

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from docrag import __version__
from docrag.engine import RagEngine
from docrag.retrieval.models import SourceRef
from docrag.serving.sse import answer_events

logger = logging.getLogger(__name__)


# ── Request / Response schemas ────────────────────────────────────────
class ChatRequest(BaseModel):
    """Incoming question from the user."""

    question: str = ""


class ChatResponse(BaseModel):
    """Answer with its citations."""

    question: str
    answer: str
    sources: list[SourceRef] = Field(default_factory=list)


class SwitchProfileRequest(BaseModel):
    name: str


class DocumentOut(BaseModel):
    path: str
    extension: str | None
    size: int
    indexed_at: str
    chunks: int


# ── Dependencies ──────────────────────────────────────────────────────
_engine_lock = threading.Lock()


def get_engine(request: Request) -> RagEngine:
    """Return the app's engine, creating it from settings on first use."""
    state = request.app.state
    if getattr(state, "engine", None) is None:
        with _engine_lock:
            if getattr(state, "engine", None) is None:
                state.engine = RagEngine()
    return state.engine


def _require_question(body: ChatRequest) -> str:
    question = body.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="The question must not be empty.")
    return question


# ── App factory ───────────────────────────────────────────────────────
def create_app(engine: RagEngine | None = None) -> FastAPI:
    app = FastAPI(
        title="docrag API",
        version=__version__,
        description="Grounded question answering over an indexed document corpus.",
    )
    app.state.engine = engine

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness check."""
        return {"status": "ok"}

    @app.get("/engine/status")
    def engine_status(engine: RagEngine = Depends(get_engine)) -> dict:
        """Active profile, degraded-mode flags and backend / store reachability."""
        return engine.status()

    @app.post("/api/chat", response_model=ChatResponse)
    def chat(body: ChatRequest, engine: RagEngine = Depends(get_engine)) -> ChatResponse:
        question = _require_question(body)
        result = engine.orchestrator.ask(question)
        return ChatResponse(question=question, answer=result.answer, sources=result.sources)

    @app.post("/api/chat/stream")
    def chat_stream(body: ChatRequest, engine: RagEngine = Depends(get_engine)) -> StreamingResponse:
        question = _require_question(body)
        stream = engine.orchestrator.ask_stream(question)
        return StreamingResponse(
            answer_events(stream),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.get("/rag/profiles")
    def list_profiles(engine: RagEngine = Depends(get_engine)) -> dict:
        return {"active": engine.profiles.active_name, "profiles": engine.profiles.list_profiles()}

    @app.post("/rag/profiles/switch")
    def switch_profile(body: SwitchProfileRequest, engine: RagEngine = Depends(get_engine)) -> dict:
        if not engine.profiles.has_profile(body.name):
            raise HTTPException(status_code=404, detail=f"RAG profile {body.name!r} not found")
        engine.profiles.switch(body.name)
        return {**engine.status(), "schema": engine.schema_alignment()}

    @app.get("/documents", response_model=list[DocumentOut])
    def documents(
        path: str | None = None,
        limit: int = Query(default=50, ge=1, le=1000),
        engine: RagEngine = Depends(get_engine),
    ) -> list[DocumentOut]:
        return [
            DocumentOut(
                path=doc.path,
                extension=doc.extension,
                size=doc.size,
                indexed_at=doc.indexed_at.isoformat(),
                chunks=doc.chunks_count,
            )
            for doc in engine.list_documents(path, limit)
        ]

    return app


app = create_app()
