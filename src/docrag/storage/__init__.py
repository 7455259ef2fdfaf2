"""
Storage — SQLAlchemy persistence of indexed files and their chunks.

Public surface
--------------
- :class:`DocumentFile`, :class:`DocumentChunk` — ORM models.
- :func:`create_db_engine`, :func:`init_db`, :func:`make_session_factory`.
- :class:`CorpusRepository` — queries used by the indexer, retrieval and CLI.
"""

from docrag.storage.db import create_db_engine, init_db, make_session_factory
from docrag.storage.orm import Base, DocumentChunk, DocumentFile
from docrag.storage.repository import ChunkRow, CorpusRepository, FileListing

__all__ = [
    "Base",
    "ChunkRow",
    "CorpusRepository",
    "DocumentChunk",
    "DocumentFile",
    "FileListing",
    "create_db_engine",
    "init_db",
    "make_session_factory",
]
