"""Domain models for retrieval results and answer citations."""

from __future__ import annotations

from pydantic import BaseModel

PREVIEW_LENGTH = 240


def format_similarity(similarity: float) -> str:
    """Two-decimal display form of a similarity score (``0.8731`` → ``"0.87"``)."""
    return f"{similarity:.2f}"


def make_preview(text: str, max_length: int = PREVIEW_LENGTH) -> str:
    """Collapse whitespace and truncate to *max_length* characters, adding ``…`` when cut."""
    clean = " ".join(text.split())
    if len(clean) <= max_length:
        return clean
    return clean[:max_length] + "…"


class RetrievedChunk(BaseModel):
    """One row returned by a :class:`~docrag.retrieval.base.RetrievalStore` query."""

    content: str
    chunk_index: int
    file_path: str
    similarity: float


class SourceRef(BaseModel):
    """Citation attached to an answer.

    Attributes
    ----------
    file:
        Path of the source file, relative to the knowledge root.
    chunk:
        Zero-based chunk index within the file.
    similarity:
        Cosine similarity between the question and the chunk.
    similarity_formatted:
        ``similarity`` rounded for display.
    preview:
        Whitespace-collapsed start of the chunk content.
    """

    file: str
    chunk: int
    similarity: float
    similarity_formatted: str
    preview: str

    @classmethod
    def from_chunk(cls, chunk: RetrievedChunk) -> SourceRef:
        return cls(
            file=chunk.file_path,
            chunk=chunk.chunk_index,
            similarity=chunk.similarity,
            similarity_formatted=format_similarity(chunk.similarity),
            preview=make_preview(chunk.content),
        )

    def short_ref(self) -> str:
        """Return a compact ``[file§chunk]`` reference string."""
        return f"[{self.file}§{self.chunk}]"
