"""Query helpers over the corpus tables."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from docrag.storage.orm import DocumentChunk, DocumentFile

logger = logging.getLogger(__name__)

KEYWORD_SEARCH_LIMIT = 5


@dataclass(frozen=True)
class ChunkRow:
    """A chunk detached from the session, as returned by searches."""

    file_path: str
    chunk_index: int
    content: str


@dataclass(frozen=True)
class FileListing:
    path: str
    extension: str | None
    size: int
    indexed_at: datetime
    chunks_count: int


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CorpusRepository:
    """Reads and writes :class:`DocumentFile` / :class:`DocumentChunk` rows.

    The repository never commits; the caller owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- files ----------------------------------------------------------------

    def find_file(self, path: str) -> DocumentFile | None:
        return self.session.scalar(select(DocumentFile).where(DocumentFile.path == path))

    def chunk_count(self, file: DocumentFile) -> int:
        if file.id is None:
            return 0
        return self.session.scalar(
            select(func.count(DocumentChunk.id)).where(DocumentChunk.file_id == file.id)
        ) or 0

    def save_file(
        self,
        file: DocumentFile | None,
        *,
        path: str,
        extension: str | None,
        content_hash: str | None,
        size: int,
    ) -> DocumentFile:
        """Create or update the file row and stamp it as indexed now."""
        if file is None:
            file = DocumentFile(path=path)
            self.session.add(file)
        file.extension = extension
        file.content_hash = content_hash
        file.size = size
        file.indexed_at = datetime.now(timezone.utc)
        self.session.flush()
        return file

    def replace_chunks(self, file: DocumentFile, chunks: list[tuple[str, list[float], bool]]) -> None:
        """Delete every chunk of *file* and insert *chunks* as ``(content, embedding, searchable)``."""
        self.session.execute(delete(DocumentChunk).where(DocumentChunk.file_id == file.id))
        self.session.add_all(
            DocumentChunk(
                file_id=file.id,
                chunk_index=index,
                content=content,
                embedding=embedding,
                searchable=searchable,
            )
            for index, (content, embedding, searchable) in enumerate(chunks)
        )
        self.session.flush()

    def list_files(self, path_filter: str | None = None, limit: int | None = None) -> list[FileListing]:
        """List indexed files ordered by path, optionally filtered by a path substring."""
        counts = (
            select(DocumentChunk.file_id, func.count(DocumentChunk.id).label("n"))
            .group_by(DocumentChunk.file_id)
            .subquery()
        )
        stmt = (
            select(DocumentFile, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.file_id == DocumentFile.id)
            .order_by(DocumentFile.path)
        )
        if path_filter:
            stmt = stmt.where(DocumentFile.path.like(f"%{_escape_like(path_filter)}%", escape="\\"))
        if limit:
            stmt = stmt.limit(limit)
        return [
            FileListing(
                path=file.path,
                extension=file.extension,
                size=file.size,
                indexed_at=file.indexed_at,
                chunks_count=int(n),
            )
            for file, n in self.session.execute(stmt)
        ]

    def remove_files_matching(self, pattern: str) -> list[str]:
        """Delete every file whose path matches the regular expression *pattern*.

        Raises :class:`re.error` for an invalid pattern.
        """
        regex = re.compile(pattern)
        removed: list[str] = []
        for file in self.session.scalars(select(DocumentFile).order_by(DocumentFile.path)):
            if regex.search(file.path):
                self.session.delete(file)
                removed.append(file.path)
        self.session.flush()
        return removed

    def reset(self) -> int:
        """Delete every chunk and file; return the number of files removed."""
        files = self.session.scalar(select(func.count(DocumentFile.id))) or 0
        self.session.execute(delete(DocumentChunk))
        self.session.execute(delete(DocumentFile))
        self.session.flush()
        return files

    # -- chunks ---------------------------------------------------------------

    def keyword_search(self, keywords: list[str], fallback_text: str = "", limit: int = KEYWORD_SEARCH_LIMIT) -> list[ChunkRow]:
        """Chunks whose lower-cased content contains any keyword (placeholders included).

        With no keywords, *fallback_text* is matched as a whole instead.
        """
        content = func.lower(DocumentChunk.content)
        if keywords:
            condition = or_(*(content.like(f"%{_escape_like(k)}%", escape="\\") for k in keywords))
        else:
            condition = content.like(f"%{_escape_like(fallback_text.lower())}%", escape="\\")
        stmt = (
            select(DocumentFile.path, DocumentChunk.chunk_index, DocumentChunk.content)
            .join(DocumentChunk.file)
            .where(condition)
            .order_by(DocumentFile.path, DocumentChunk.chunk_index)
            .limit(limit)
        )
        return [ChunkRow(file_path=p, chunk_index=i, content=c) for p, i, c in self.session.execute(stmt)]

    def searchable_chunks(self) -> list[tuple[str, int, str, list[float]]]:
        """Every searchable chunk as ``(file_path, chunk_index, content, embedding)``."""
        stmt = (
            select(DocumentFile.path, DocumentChunk.chunk_index, DocumentChunk.content, DocumentChunk.embedding)
            .join(DocumentChunk.file)
            .where(DocumentChunk.searchable.is_(True))
        )
        return [tuple(row) for row in self.session.execute(stmt)]

    def chunks_of(self, path: str) -> list[DocumentChunk]:
        stmt = (
            select(DocumentChunk)
            .join(DocumentChunk.file)
            .where(DocumentFile.path == path)
            .order_by(DocumentChunk.chunk_index)
        )
        return list(self.session.scalars(stmt))

    def stored_dimensions(self) -> set[int]:
        """Distinct embedding lengths currently stored (sampled per file)."""
        dims: set[int] = set()
        first_chunks = (
            select(func.min(DocumentChunk.id)).group_by(DocumentChunk.file_id).scalar_subquery()
        )
        for embedding in self.session.scalars(select(DocumentChunk.embedding).where(DocumentChunk.id.in_(first_chunks))):
            dims.add(len(embedding or []))
        return dims
