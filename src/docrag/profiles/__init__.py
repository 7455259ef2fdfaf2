"""
Profiles — named, switchable bundles of backend, chunking and retrieval tuning.

Public surface
--------------
- :class:`RagProfile` and its sections — immutable profile models.
- :class:`ProfileManager` — the active profile and ``switch(name)``.
- :class:`ActiveProfileStorage` — persistence of the active name.
- :func:`load_catalog` — YAML presets with built-in fallback.
"""

from docrag.profiles.loader import BUILTIN_PRESETS, ProfileCatalog, build_catalog, load_catalog
from docrag.profiles.manager import ProfileManager
from docrag.profiles.models import (
    HARD_CHUNK_CEILING,
    AiSettings,
    ChunkingSettings,
    RagProfile,
    RetrievalSettings,
)
from docrag.profiles.storage import ActiveProfileStorage

__all__ = [
    "BUILTIN_PRESETS",
    "HARD_CHUNK_CEILING",
    "ActiveProfileStorage",
    "AiSettings",
    "ChunkingSettings",
    "ProfileCatalog",
    "ProfileManager",
    "RagProfile",
    "RetrievalSettings",
    "build_catalog",
    "load_catalog",
]
