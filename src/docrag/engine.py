"""Wiring of settings, profiles, storage, backends and the two pipelines.

:class:`RagEngine` is what the CLI and the HTTP app hold: it owns the
database engine, the profile manager and the backend cache, and builds an
:class:`~docrag.ingestion.indexer.Indexer` bound to the active profile for
every indexing run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from docrag.answering.orchestrator import QueryOrchestrator
from docrag.backends.base import BackendClient
from docrag.backends.factory import BackendRegistry, create_backend
from docrag.config import Settings, get_settings
from docrag.ingestion.indexer import Indexer, IndexOptions, OnFileProcessed, OnStart
from docrag.ingestion.loader import TextExtractor
from docrag.ingestion.models import IndexRunSummary
from docrag.profiles.loader import load_catalog
from docrag.profiles.manager import ProfileManager
from docrag.profiles.models import RagProfile
from docrag.profiles.storage import ActiveProfileStorage
from docrag.retrieval import build_retrieval_store
from docrag.retrieval.base import RetrievalStore
from docrag.storage.db import create_db_engine, init_db, make_session_factory
from docrag.storage.repository import CorpusRepository, FileListing

logger = logging.getLogger(__name__)


class RagEngine:
    """Process-level container.

    Parameters
    ----------
    settings:
        Defaults to :func:`docrag.config.get_settings`.
    profile:
        Profile to activate for this process instead of the persisted one.
    backend_factory:
        Builds an adapter for a profile (replaced by fakes in tests).
    store:
        Similarity index; built from ``settings.retrieval_backend`` when omitted.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        profile: str | None = None,
        backend_factory: Callable[[RagProfile, Settings], BackendClient] = create_backend,
        store: RetrievalStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()

        catalog = load_catalog(self.settings.profiles_file, self.settings.default_profile or None)
        self.profiles = ProfileManager(
            catalog,
            ActiveProfileStorage(self.settings.active_profile_file),
            initial=profile,
        )

        self.db_engine = create_db_engine(self.settings.database_url)
        init_db(self.db_engine)
        self.session_factory = make_session_factory(self.db_engine)

        self.backends = BackendRegistry(self.settings, backend_factory)
        self.store = store or build_retrieval_store(self.settings, self.session_factory)
        self.orchestrator = QueryOrchestrator(self.profiles, self.backends, self.store, self.session_factory)
        self.extractor = TextExtractor()

    # -- indexing -------------------------------------------------------------

    def indexer(self) -> Indexer:
        """An indexer bound to the profile active right now."""
        profile = self.profiles.active()
        return Indexer(
            self.session_factory,
            self.backends.for_profile(profile),
            profile,
            extractor=self.extractor,
            store=self.store,
            default_excluded_dirs=self.settings.excluded_dirs,
            default_excluded_name_patterns=self.settings.excluded_name_patterns,
        )

    def index(
        self,
        root: str | Path | None = None,
        options: IndexOptions | None = None,
        *,
        on_start: OnStart | None = None,
        on_file_processed: OnFileProcessed | None = None,
    ) -> IndexRunSummary:
        return self.indexer().index_directory(
            root or self.settings.knowledge_root,
            options,
            on_start=on_start,
            on_file_processed=on_file_processed,
        )

    # -- corpus maintenance ---------------------------------------------------

    def list_documents(self, path_filter: str | None = None, limit: int | None = None) -> list[FileListing]:
        with self.session_factory() as session:
            return CorpusRepository(session).list_files(path_filter, limit)

    def unindex(self, pattern: str) -> list[str]:
        """Remove every stored file whose path matches the regular expression *pattern*."""
        with self.session_factory() as session:
            removed = CorpusRepository(session).remove_files_matching(pattern)
            session.commit()
        for path in removed:
            self.store.remove_file(path)
        logger.info("Removed %d file(s) matching %r from the index", len(removed), pattern)
        return removed

    def reset_index(self) -> int:
        """Drop every indexed file and chunk; return the number of files removed."""
        with self.session_factory() as session:
            removed = CorpusRepository(session).reset()
            session.commit()
        self.store.reset()
        logger.warning("Index reset: %d file(s) removed", removed)
        return removed

    # -- status ---------------------------------------------------------------

    def health(self) -> dict[str, bool]:
        """Reachability of the active profile's backend and of the retrieval store."""
        backend = self.backends.for_profile(self.profiles.active())
        return {"backend": backend.health_check(), "retrieval_store": self.store.health_check()}

    def status(self) -> dict[str, Any]:
        return {**self.profiles.status(), "health": self.health()}

    def schema_alignment(self) -> dict[str, Any]:
        """Compare stored vector lengths with the active profile's dimension."""
        profile = self.profiles.active()
        with self.session_factory() as session:
            stored = sorted(CorpusRepository(session).stored_dimensions())
        expected = profile.ai.embed_dimension
        return {
            "profile": profile.name,
            "expected_dimension": expected,
            "stored_dimensions": stored,
            "aligned": all(d == expected for d in stored),
        }

    def close(self) -> None:
        self.db_engine.dispose()
