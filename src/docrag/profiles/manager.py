"""Process-wide holder of the active RAG profile."""

from __future__ import annotations

import logging
import threading
from typing import Any

from docrag.errors import ConfigurationError
from docrag.profiles.loader import ProfileCatalog
from docrag.profiles.models import RagProfile
from docrag.profiles.storage import ActiveProfileStorage

logger = logging.getLogger(__name__)


class ProfileManager:
    """Injected configuration object exposing the active profile and ``switch``.

    The active profile is resolved at construction time from, in order:
    *initial* (explicit request, e.g. a CLI flag), the persisted state file,
    and the catalog default. Switching is last-write-wins; readers always get a
    complete, immutable :class:`RagProfile`.

    Parameters
    ----------
    catalog:
        The configured presets.
    storage:
        Optional persistence of the active name across restarts.
    initial:
        Profile to activate instead of the persisted one. Must exist.
    """

    def __init__(
        self,
        catalog: ProfileCatalog,
        storage: ActiveProfileStorage | None = None,
        *,
        initial: str | None = None,
    ) -> None:
        self._catalog = catalog
        self._storage = storage
        self._lock = threading.Lock()

        if initial:
            self._active = self.get(initial)
            return

        stored = storage.load() if storage is not None else None
        if stored and stored in catalog.presets:
            self._active = catalog.presets[stored]
        else:
            if stored:
                logger.warning(
                    "Persisted RAG profile %r is not configured, falling back to %r",
                    stored,
                    catalog.default_profile,
                )
            self._active = catalog.presets[catalog.default_profile]

    # -- read side ------------------------------------------------------------

    @property
    def active_name(self) -> str:
        return self._active.name

    def active(self) -> RagProfile:
        """Return a snapshot of the active profile."""
        return self._active

    def has_profile(self, name: str) -> bool:
        return name in self._catalog.presets

    def get(self, name: str) -> RagProfile:
        try:
            return self._catalog.presets[name]
        except KeyError:
            raise ConfigurationError(
                f"RAG profile {name!r} not found. Available presets: {', '.join(self._catalog.names)}"
            ) from None

    def list_profiles(self) -> list[dict[str, str]]:
        return [profile.summary() for profile in self._catalog.presets.values()]

    def status(self) -> dict[str, Any]:
        """Engine status payload for the active profile."""
        profile = self._active
        return {
            "ok": True,
            "profile": profile.summary(),
            "model": profile.ai.chat_model,
            "source": profile.backend.capitalize(),
            "test_mode": profile.ai.test_mode,
            "offline_fallback": profile.ai.offline_fallback,
        }

    # -- write side -----------------------------------------------------------

    def switch(self, name: str, *, persist: bool = True) -> RagProfile:
        """Activate *name*; persist it unless *persist* is false (one-off runs).

        Operations already in flight keep the profile they started with.
        """
        profile = self.get(name)
        with self._lock:
            if persist and self._storage is not None:
                self._storage.save(profile.name)
            previous = self._active
            self._active = profile
        if previous.ai.embed_dimension != profile.ai.embed_dimension:
            logger.warning(
                "RAG profile switched %s -> %s with a different embedding dimension (%d -> %d); "
                "re-index with force_reindex to keep the index consistent",
                previous.name,
                profile.name,
                previous.ai.embed_dimension,
                profile.ai.embed_dimension,
            )
        else:
            logger.info("RAG profile switched %s -> %s", previous.name, profile.name)
        return profile
