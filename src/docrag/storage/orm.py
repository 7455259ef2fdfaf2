"""SQLAlchemy 2.0 ORM models for the corpus store.

Tables:
    document_files  — one row per indexed path, with the content hash used
                      for change detection.
    document_chunks — the chunks of each file with their embedding vectors.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class DocumentFile(Base):
    """
    A file of the corpus, keyed by its path relative to the knowledge root.

    Attributes:
        path: Relative path with ``/`` separators, unique.
        extension: Lower-cased extension without the dot (``None`` when absent).
        content_hash: 64-bit content hash as 16 hex characters.
        size: Byte size at index time.
        indexed_at: Timestamp of the last successful index.
        chunks: Chunks of the file (cascade delete).
    """

    __tablename__ = "document_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path: Mapped[str] = mapped_column(String(1024), unique=True, nullable=False, index=True)
    extension: Mapped[str | None] = mapped_column(String(32), nullable=True)
    content_hash: Mapped[str | None] = mapped_column(String(32), nullable=True)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    indexed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    chunks: Mapped[list[DocumentChunk]] = relationship(
        back_populates="file",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DocumentChunk.chunk_index",
    )

    def __repr__(self) -> str:
        return f"<DocumentFile(id={self.id}, path='{self.path}')>"


class DocumentChunk(Base):
    """
    One chunk of a file with its embedding.

    Placeholder vectors (test mode, backend outage) are stored with
    ``searchable=False`` and never ranked.
    """

    __tablename__ = "document_chunks"
    __table_args__ = (UniqueConstraint("file_id", "chunk_index", name="uq_chunk_file_index"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("document_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float]] = mapped_column(JSON, nullable=False)
    searchable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    file: Mapped[DocumentFile] = relationship(back_populates="chunks")

    def __repr__(self) -> str:
        return f"<DocumentChunk(id={self.id}, file={self.file_id}, idx={self.chunk_index})>"
