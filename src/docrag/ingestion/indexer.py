"""Incremental corpus indexing: scan → hash → extract → chunk → embed → store.

Each file is processed and committed on its own. Unchanged files (same
content hash, no forced re-index) are skipped without any embedding call.
When embedding fails, the file either gets deterministic placeholder vectors
(offline fallback) or is reported as failed with its previous chunks left
untouched.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy.orm import Session, sessionmaker

from docrag.backends.base import BackendClient
from docrag.errors import BackendTransportError, ExtractionError
from docrag.ingestion.chunker import chunk_with_settings
from docrag.ingestion.hashing import file_hash
from docrag.ingestion.loader import TextExtractor
from docrag.ingestion.models import FileIndexStatus, IndexedFileResult, IndexRunSummary
from docrag.ingestion.scanner import CandidateFile, CorpusScanner
from docrag.profiles.models import ChunkingSettings, RagProfile
from docrag.retrieval.base import IndexedChunk, RetrievalStore
from docrag.storage.repository import CorpusRepository
from docrag.vectors import placeholder_vector

logger = logging.getLogger(__name__)

OnStart = Callable[[int], None]
OnFileProcessed = Callable[[IndexedFileResult, int, int], None]


@dataclass
class IndexOptions:
    """Parameters of one indexing run.

    ``test_mode`` and ``offline_fallback`` are tri-state: ``None`` inherits
    the active profile's value. ``excluded_dirs`` / ``excluded_name_patterns``
    replace the configured defaults when given.
    """

    force_reindex: bool = False
    dry_run: bool = False
    test_mode: bool | None = None
    offline_fallback: bool | None = None
    path_filters: list[str] = field(default_factory=list)
    excluded_dirs: list[str] | None = None
    excluded_name_patterns: list[str] | None = None


@dataclass(frozen=True)
class _EmbeddedChunk:
    content: str
    embedding: list[float]
    searchable: bool


class Indexer:
    """Index a directory into the corpus store with the given profile and backend.

    Parameters
    ----------
    session_factory:
        Creates the session used for the whole run.
    backend:
        Embedding provider of *profile*.
    profile:
        Snapshot of the active profile; a concurrent switch does not affect
        a run in progress.
    store:
        Similarity index mirrored after each committed file.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        backend: BackendClient,
        profile: RagProfile,
        *,
        extractor: TextExtractor | None = None,
        store: RetrievalStore | None = None,
        chunker: Callable[[str, ChunkingSettings], list[str]] = chunk_with_settings,
        default_excluded_dirs: Sequence[str] = (),
        default_excluded_name_patterns: Sequence[str] = (),
    ) -> None:
        self._session_factory = session_factory
        self.backend = backend
        self.profile = profile
        self.extractor = extractor or TextExtractor()
        self.store = store
        self._chunker = chunker
        self._default_excluded_dirs = list(default_excluded_dirs)
        self._default_excluded_name_patterns = list(default_excluded_name_patterns)

    @property
    def dimension(self) -> int:
        return self.profile.ai.embed_dimension

    # -- run ------------------------------------------------------------------

    def index_directory(
        self,
        root: str | Path,
        options: IndexOptions | None = None,
        *,
        on_start: OnStart | None = None,
        on_file_processed: OnFileProcessed | None = None,
    ) -> IndexRunSummary:
        """Index every candidate file under *root* and return the run summary."""
        options = options or IndexOptions()
        test_mode = self.profile.ai.test_mode if options.test_mode is None else options.test_mode
        offline_fallback = (
            self.profile.ai.offline_fallback if options.offline_fallback is None else options.offline_fallback
        )

        scanner = CorpusScanner(
            root,
            excluded_dirs=self._default_excluded_dirs if options.excluded_dirs is None else options.excluded_dirs,
            excluded_name_patterns=(
                self._default_excluded_name_patterns
                if options.excluded_name_patterns is None
                else options.excluded_name_patterns
            ),
            path_filters=options.path_filters,
        )
        scan = scanner.scan()

        summary = IndexRunSummary(
            files=list(scan.excluded),
            total_files_found=scan.total_files_found,
            dry_run=options.dry_run,
            test_mode=test_mode,
        )
        total = scan.total
        logger.info(
            "Indexing %d file(s) from %s with profile %s (force=%s, dry_run=%s, test_mode=%s, offline_fallback=%s)",
            total,
            root,
            self.profile.name,
            options.force_reindex,
            options.dry_run,
            test_mode,
            offline_fallback,
        )
        if on_start is not None:
            on_start(total)

        with self._session_factory() as session:
            for current, candidate in enumerate(scan.candidates, start=1):
                try:
                    result = self.index_file(
                        session,
                        candidate,
                        force_reindex=options.force_reindex,
                        dry_run=options.dry_run,
                        test_mode=test_mode,
                        offline_fallback=offline_fallback,
                    )
                except Exception as exc:
                    # one broken file never stops the run
                    logger.exception("Unexpected error while indexing %s", candidate.relative_path)
                    session.rollback()
                    result = IndexedFileResult(
                        absolute_path=candidate.absolute_path,
                        relative_path=candidate.relative_path,
                        extension=candidate.extension,
                        status=FileIndexStatus.FAILED,
                        error_message=f"Unexpected error: {exc}",
                    )
                finally:
                    # bound memory: nothing survives from one file to the next
                    session.expunge_all()
                summary.add(result)
                self._log_result(result)
                if on_file_processed is not None:
                    on_file_processed(result, current, total)

        logger.info("Indexing finished: %s", summary.counts)
        return summary

    # -- one file -------------------------------------------------------------

    def index_file(
        self,
        session: Session,
        candidate: CandidateFile,
        *,
        force_reindex: bool = False,
        dry_run: bool = False,
        test_mode: bool = False,
        offline_fallback: bool = True,
    ) -> IndexedFileResult:
        def result(status: FileIndexStatus, chunks: int = 0, error: str | None = None, **flags: bool) -> IndexedFileResult:
            return IndexedFileResult(
                absolute_path=candidate.absolute_path,
                relative_path=candidate.relative_path,
                extension=candidate.extension,
                status=status,
                chunks_count=chunks,
                error_message=error,
                **flags,
            )

        try:
            size = os.path.getsize(candidate.absolute_path)
            content_hash = file_hash(candidate.absolute_path)
        except OSError as exc:
            return result(FileIndexStatus.FAILED, error=f"Cannot read file: {exc}")

        repo = CorpusRepository(session)
        existing = repo.find_file(candidate.relative_path)
        if existing is not None and not force_reindex and existing.content_hash == content_hash:
            return result(FileIndexStatus.SKIPPED_UNCHANGED, repo.chunk_count(existing))

        flags = {"was_new": existing is None, "was_reindexed": existing is not None}

        try:
            text = self.extractor.extract(candidate.absolute_path)
        except ExtractionError as exc:
            return result(FileIndexStatus.FAILED, error=f"Text extraction failed: {exc.reason}", **flags)
        if text is None:
            return result(FileIndexStatus.SKIPPED_EXCLUDED, error="Unsupported format or unreadable file", **flags)

        chunks = self._chunker(text, self.profile.chunking)
        if dry_run:
            return result(FileIndexStatus.INDEXED_OK, len(chunks), **flags)

        # embed before touching the store so a failure leaves the previous chunks intact
        try:
            embedded = self._embed_chunks(chunks, test_mode=test_mode, offline_fallback=offline_fallback)
        except Exception as exc:
            session.rollback()
            return result(FileIndexStatus.FAILED, error=f"Embedding failed: {exc}", **flags)

        file = repo.save_file(
            existing,
            path=candidate.relative_path,
            extension=candidate.extension,
            content_hash=content_hash,
            size=size,
        )
        repo.replace_chunks(file, [(c.content, c.embedding, c.searchable) for c in embedded])
        session.commit()

        error: str | None = None
        placeholders = sum(1 for c in embedded if not c.searchable)
        had_errors = placeholders > 0
        if placeholders:
            reason = "test mode" if test_mode else "offline fallback"
            error = f"Placeholder embeddings ({reason}) used for {placeholders} of {len(embedded)} chunk(s)"

        if self.store is not None:
            try:
                self.store.sync_file(
                    candidate.relative_path,
                    [IndexedChunk(i, c.content, c.embedding, c.searchable) for i, c in enumerate(embedded)],
                )
            except Exception as exc:  # the corpus row is committed; only the mirror is stale
                logger.warning("Could not mirror %s to the retrieval index", candidate.relative_path, exc_info=True)
                error = f"{error}; " if error else ""
                error += f"Retrieval index not updated: {exc}"
                had_errors = True

        status = FileIndexStatus.INDEXED_WITH_ERRORS if had_errors else FileIndexStatus.INDEXED_OK
        return result(status, len(embedded), error, **flags)

    # -- embeddings -----------------------------------------------------------

    def _embed_chunks(self, chunks: list[str], *, test_mode: bool, offline_fallback: bool) -> list[_EmbeddedChunk]:
        """Return one embedding per chunk, every one of the profile's dimension.

        A failing chunk gets a placeholder vector when *offline_fallback* is on;
        otherwise its error (backend or payload) is re-raised and the file fails.
        """
        if test_mode:
            return [_EmbeddedChunk(text, placeholder_vector(text, self.dimension), False) for text in chunks]
        if not chunks:
            return []

        try:
            batch: list[list[float] | None] | None = self.backend.embed_many(chunks)
        except Exception:
            logger.warning("Batch embedding failed, retrying chunk by chunk", exc_info=True)
            batch = None

        embedded: list[_EmbeddedChunk] = []
        for i, text in enumerate(chunks):
            try:
                vector = batch[i] if batch is not None else self.backend.embed(text)
                if vector is None:
                    raise BackendTransportError(self.backend.name, "no embedding returned for a non-empty chunk")
                embedded.append(_EmbeddedChunk(text, self.backend.validate_dimension(vector), True))
            except Exception as exc:
                if not offline_fallback:
                    raise
                logger.warning("Embedding chunk %d failed, storing a placeholder: %s", i, exc)
                embedded.append(_EmbeddedChunk(text, placeholder_vector(text, self.dimension), False))
        return embedded

    @staticmethod
    def _log_result(result: IndexedFileResult) -> None:
        if result.status is FileIndexStatus.FAILED:
            logger.error("%s: %s (%s)", result.relative_path, result.status.value, result.error_message)
        elif result.status is FileIndexStatus.INDEXED_WITH_ERRORS:
            logger.warning("%s: %s, %d chunk(s) (%s)", result.relative_path, result.status.value, result.chunks_count, result.error_message)
        else:
            logger.info("%s: %s, %d chunk(s)", result.relative_path, result.status.value, result.chunks_count)
