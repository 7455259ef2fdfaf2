"""RAG profile models — one named bundle of backend, chunking and retrieval tuning."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from docrag.errors import UnknownBackendError

# Absolute upper bound for a single chunk, independent of any profile's ``max``.
# Embedding backends reject oversized single inputs; the chunker never exceeds it.
HARD_CHUNK_CEILING = 1500


class BackendKind(str, Enum):
    """Backend tags a profile may name."""

    OLLAMA = "ollama"
    OPENAI = "openai"
    GEMINI = "gemini"


class AiSettings(BaseModel):
    """Model selection and degraded-mode flags.

    Attributes
    ----------
    chat_model:
        Generative model used to answer questions.
    embed_model:
        Model used to embed chunks and questions.
    embed_dimension:
        Length of every stored vector. Known in advance so vectors can be
        validated without a live call.
    test_mode:
        Skip every model call: placeholder vectors at index time, keyword
        excerpts at query time.
    offline_fallback:
        Degrade (placeholder vectors / keyword excerpts) instead of failing
        when a backend call errors.
    """

    model_config = ConfigDict(frozen=True)

    chat_model: str
    embed_model: str
    embed_dimension: int = Field(gt=0)
    test_mode: bool = False
    offline_fallback: bool = True


class ChunkingSettings(BaseModel):
    """Chunk sizing in characters, plus the language used for sentence splitting."""

    model_config = ConfigDict(frozen=True)

    min: int = Field(default=300, ge=0)
    target: int = Field(default=800, gt=0)
    max: int = Field(default=1000, gt=0)
    overlap: int = Field(default=150, ge=0)
    locale: str = "en"

    @model_validator(mode="after")
    def _check_bounds(self) -> ChunkingSettings:
        if not self.min <= self.target <= self.max:
            raise ValueError(f"chunking sizes must satisfy min <= target <= max (got {self.min}/{self.target}/{self.max})")
        if self.max > HARD_CHUNK_CEILING:
            raise ValueError(f"chunking max ({self.max}) exceeds the hard ceiling of {HARD_CHUNK_CEILING} characters")
        return self


class RetrievalSettings(BaseModel):
    """Top-K similarity query tuning."""

    model_config = ConfigDict(frozen=True)

    top_k: int = Field(default=5, ge=1)
    min_score: float = Field(default=0.55, ge=-1.0, le=1.0)


class RagProfile(BaseModel):
    """A named, immutable configuration bundle.

    Switching the active profile never migrates data: vectors written under a
    different ``embed_dimension`` stay as they are until an explicit re-index.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    label: str = ""
    backend: str
    ai: AiSettings
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)

    @field_validator("backend", mode="before")
    @classmethod
    def _known_backend(cls, value: object) -> str:
        # UnknownBackendError is not a ValueError, so pydantic lets it propagate.
        tag = str(value or "").strip().lower()
        try:
            return BackendKind(tag).value
        except ValueError:
            raise UnknownBackendError(str(value), [k.value for k in BackendKind]) from None

    @property
    def display_label(self) -> str:
        return self.label or self.name

    def summary(self) -> dict[str, str]:
        """Return the ``{"name", "label", "backend"}`` triple used by listings."""
        return {"name": self.name, "label": self.display_label, "backend": self.backend}
