"""Exception taxonomy shared by every layer.

Containment rules
-----------------
* :class:`ExtractionError` never escapes a single file's indexing step.
* :class:`BackendTransportError` (and its :class:`DimensionMismatchError`
  subclass) is raised by backend adapters and handled by the indexer and the
  query orchestrator according to the active profile's offline-fallback flag.
* :class:`UnknownBackendError` and :class:`ConfigurationError` are raised when a
  profile is resolved and are fatal for the operation that triggered them.
"""

from __future__ import annotations


class DocRagError(Exception):
    """Base class for every error raised by docrag."""


class ExtractionError(DocRagError):
    """A file could not be read or converted to plain text."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class BackendTransportError(DocRagError):
    """Network failure, timeout or malformed response from a model backend."""

    def __init__(self, backend: str, message: str) -> None:
        super().__init__(f"[{backend}] {message}")
        self.backend = backend


class DimensionMismatchError(BackendTransportError):
    """The backend returned a vector whose length differs from the configured dimension."""

    def __init__(self, backend: str, expected: int, actual: int) -> None:
        super().__init__(backend, f"embedding dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class UnknownBackendError(DocRagError):
    """A profile names a backend tag that no adapter implements."""

    def __init__(self, tag: str, known: list[str]) -> None:
        super().__init__(f"Unknown AI backend {tag!r}. Known backends: {', '.join(known)}")
        self.tag = tag


class ConfigurationError(DocRagError):
    """A profile or a required configuration section is missing or invalid."""
