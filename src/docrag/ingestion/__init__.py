"""
Ingestion — turn a directory of documents into embedded, stored chunks.

Public surface
--------------
- :func:`chunk_text` — bounded, overlapping chunks from raw text.
- :class:`CorpusScanner` — recursive walk with exclusion rules.
- :class:`TextExtractor` — plain text from txt / md / html / pdf / docx.
- :class:`Indexer` — incremental, per-file indexing run.
"""

from docrag.ingestion.chunker import chunk_text, chunk_with_settings
from docrag.ingestion.hashing import file_hash
from docrag.ingestion.indexer import Indexer, IndexOptions
from docrag.ingestion.loader import TextExtractor
from docrag.ingestion.models import FileIndexStatus, IndexedFileResult, IndexRunSummary
from docrag.ingestion.scanner import CandidateFile, CorpusScanner, ScanResult

__all__ = [
    "CandidateFile",
    "CorpusScanner",
    "FileIndexStatus",
    "IndexOptions",
    "IndexRunSummary",
    "IndexedFileResult",
    "Indexer",
    "ScanResult",
    "TextExtractor",
    "chunk_text",
    "chunk_with_settings",
    "file_hash",
]
