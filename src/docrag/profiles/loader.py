"""Load RAG profile presets from YAML, falling back to built-in presets.

Expected file layout::

    default_profile: ollama-local
    presets:
      ollama-local:
        label: Ollama (local)
        backend: ollama
        ai:
          chat_model: llama3.2
          embed_model: bge-m3
          embed_dimension: 1024
        chunking: {min: 300, target: 800, max: 1000, overlap: 150}
        retrieval: {top_k: 5, min_score: 0.55}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from docrag.errors import ConfigurationError
from docrag.profiles.models import RagProfile

logger = logging.getLogger(__name__)

BUILTIN_PRESETS: dict[str, dict[str, Any]] = {
    "ollama-local": {
        "label": "Ollama (local)",
        "backend": "ollama",
        "ai": {"chat_model": "llama3.2", "embed_model": "bge-m3", "embed_dimension": 1024},
    },
    "openai": {
        "label": "OpenAI",
        "backend": "openai",
        "ai": {"chat_model": "gpt-4.1-mini", "embed_model": "text-embedding-3-small", "embed_dimension": 1536},
        "retrieval": {"top_k": 5, "min_score": 0.35},
    },
    "gemini": {
        "label": "Google Gemini",
        "backend": "gemini",
        "ai": {"chat_model": "gemini-2.5-flash", "embed_model": "gemini-embedding-001", "embed_dimension": 768},
        "retrieval": {"top_k": 5, "min_score": 0.5},
    },
    "offline-test": {
        "label": "Offline test (no model calls)",
        "backend": "ollama",
        "ai": {
            "chat_model": "llama3.2",
            "embed_model": "bge-m3",
            "embed_dimension": 1024,
            "test_mode": True,
        },
    },
}

_REQUIRED_SECTIONS = ("backend", "ai")


@dataclass(frozen=True)
class ProfileCatalog:
    """The immutable set of configured presets plus the configured default."""

    presets: dict[str, RagProfile]
    default_profile: str

    def __post_init__(self) -> None:
        if not self.presets:
            raise ConfigurationError("No RAG profile configured: add at least one preset.")
        if self.default_profile not in self.presets:
            raise ConfigurationError(
                f"Default RAG profile {self.default_profile!r} is not configured. "
                f"Available: {', '.join(self.presets)}"
            )

    @property
    def names(self) -> list[str]:
        return list(self.presets)


def build_catalog(raw_presets: dict[str, Any], default_profile: str | None = None) -> ProfileCatalog:
    """Validate raw preset dicts into a :class:`ProfileCatalog`."""
    presets: dict[str, RagProfile] = {}
    for name, data in (raw_presets or {}).items():
        if not isinstance(data, dict):
            raise ConfigurationError(f"RAG profile {name!r} must be a mapping")
        for section in _REQUIRED_SECTIONS:
            if section not in data:
                raise ConfigurationError(f"Section {section!r} is missing from RAG profile {name!r}.")
        try:
            presets[name] = RagProfile(name=name, **data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid RAG profile {name!r}: {exc}") from exc

    default = default_profile or next(iter(presets), "")
    return ProfileCatalog(presets=presets, default_profile=default)


def load_catalog(path: str | Path | None, default_profile: str | None = None) -> ProfileCatalog:
    """Read presets from *path*; use :data:`BUILTIN_PRESETS` when the file does not exist.

    *default_profile* (typically from settings) overrides the file's own
    ``default_profile`` key.
    """
    if path is None or not Path(path).is_file():
        logger.info("No profiles file at %s, using built-in presets", path)
        return build_catalog(BUILTIN_PRESETS, default_profile)

    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping with a 'presets' key")

    logger.info("Loaded %d RAG profile(s) from %s", len(data.get("presets") or {}), path)
    return build_catalog(data.get("presets") or {}, default_profile or data.get("default_profile"))
