"""Shared configuration loaded from environment / .env.

RAG profile presets live in a separate YAML file (see
:mod:`docrag.profiles.loader`); this module only carries process-level
settings such as connection details, file locations and timeouts.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide settings, populated from ``DOCRAG_*`` env vars or a .env file."""

    # Persistence
    database_url: str = Field(
        default="sqlite:///var/docrag.db",
        description="SQLAlchemy URL of the corpus database (files + chunks).",
    )
    retrieval_backend: str = Field(
        default="sql",
        description="Similarity index used for queries: 'sql' (corpus tables) or 'chroma'.",
    )

    # Chroma (only used when retrieval_backend == "chroma")
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "docrag_chunks"

    # Corpus
    knowledge_root: str = Field(default="var/knowledge", description="Root directory scanned by the indexer.")
    excluded_dirs: list[str] = Field(default_factory=lambda: [".git", "node_modules", "vendor", "__pycache__"])
    excluded_name_patterns: list[str] = Field(default_factory=lambda: ["*.tmp", "~$*", "*.swp", ".DS_Store"])

    # RAG profiles
    profiles_file: str = Field(
        default="config/rag_profiles.yaml",
        description="YAML file with the RAG profile presets. Built-in presets are used when missing.",
    )
    active_profile_file: str = Field(
        default="var/rag_profile",
        description="State file holding the name of the active profile.",
    )
    default_profile: str = ""

    # Backends
    ollama_host: str = "http://localhost:11434"
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: str = Field(
        default="",
        description="Base URL for an OpenAI-compatible endpoint. Leave empty for OpenAI cloud.",
    )
    gemini_api_key: str = ""
    embed_timeout: float = 120.0
    chat_timeout: float = 120.0
    embed_batch_size: int = 4

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="DOCRAG_", env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide :class:`Settings` instance."""
    return Settings()


def configure_logging(level: str | int | None = None) -> None:
    """Install a stream handler on the root logger for CLI / server entry points."""
    level = level or get_settings().log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    # The HTTP clients are chatty at DEBUG.
    for noisy in ("urllib3", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
