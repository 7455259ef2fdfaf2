"""Backend selection — single place to map a profile's backend tag to an adapter."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from docrag.backends.base import BackendClient
from docrag.backends.gemini_client import GeminiBackend
from docrag.backends.ollama_client import OllamaBackend
from docrag.backends.openai_client import OpenAIBackend
from docrag.config import Settings
from docrag.profiles.models import BackendKind, RagProfile

logger = logging.getLogger(__name__)


def _ollama(profile: RagProfile, settings: Settings) -> BackendClient:
    return OllamaBackend(
        host=settings.ollama_host,
        chat_model=profile.ai.chat_model,
        embed_model=profile.ai.embed_model,
        dimension=profile.ai.embed_dimension,
        batch_size=settings.embed_batch_size,
        embed_timeout=settings.embed_timeout,
        chat_timeout=settings.chat_timeout,
    )


def _openai(profile: RagProfile, settings: Settings) -> BackendClient:
    return OpenAIBackend(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        chat_model=profile.ai.chat_model,
        embed_model=profile.ai.embed_model,
        dimension=profile.ai.embed_dimension,
        batch_size=settings.embed_batch_size,
        embed_timeout=settings.embed_timeout,
        chat_timeout=settings.chat_timeout,
    )


def _gemini(profile: RagProfile, settings: Settings) -> BackendClient:
    return GeminiBackend(
        api_key=settings.gemini_api_key,
        chat_model=profile.ai.chat_model,
        embed_model=profile.ai.embed_model,
        dimension=profile.ai.embed_dimension,
        batch_size=settings.embed_batch_size,
        embed_timeout=settings.embed_timeout,
        chat_timeout=settings.chat_timeout,
    )


_BUILDERS: dict[BackendKind, Callable[[RagProfile, Settings], BackendClient]] = {
    BackendKind.OLLAMA: _ollama,
    BackendKind.OPENAI: _openai,
    BackendKind.GEMINI: _gemini,
}


def create_backend(profile: RagProfile, settings: Settings) -> BackendClient:
    """Build the adapter named by ``profile.backend``.

    Unknown tags never get this far: :class:`RagProfile` rejects them with
    :class:`~docrag.errors.UnknownBackendError` when the profile is loaded.
    """
    kind = BackendKind(profile.backend)
    logger.debug("Creating %s backend for profile %s", kind.value, profile.name)
    return _BUILDERS[kind](profile, settings)


class BackendRegistry:
    """Caches one adapter per profile name.

    Adapters are cheap but the OpenAI one holds HTTP connection pools, so they
    are reused across requests while the profile stays the same.
    """

    def __init__(
        self,
        settings: Settings,
        factory: Callable[[RagProfile, Settings], BackendClient] = create_backend,
    ) -> None:
        self._settings = settings
        self._factory = factory
        self._clients: dict[str, BackendClient] = {}
        self._lock = threading.Lock()

    def for_profile(self, profile: RagProfile) -> BackendClient:
        with self._lock:
            client = self._clients.get(profile.name)
            if client is None:
                client = self._factory(profile, self._settings)
                self._clients[profile.name] = client
            return client

    def clear(self) -> None:
        with self._lock:
            self._clients.clear()
