"""Per-run indexing results. Never persisted."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum


class FileIndexStatus(str, Enum):
    INDEXED_OK = "indexed_ok"
    INDEXED_WITH_ERRORS = "indexed_with_errors"
    SKIPPED_UNCHANGED = "skipped_unchanged"
    SKIPPED_EXCLUDED = "skipped_excluded"
    FAILED = "failed"

    @property
    def is_indexed(self) -> bool:
        return self in (FileIndexStatus.INDEXED_OK, FileIndexStatus.INDEXED_WITH_ERRORS)

    @property
    def is_skipped(self) -> bool:
        return self in (FileIndexStatus.SKIPPED_UNCHANGED, FileIndexStatus.SKIPPED_EXCLUDED)


@dataclass(frozen=True)
class IndexedFileResult:
    """Outcome of one file.

    Attributes
    ----------
    absolute_path / relative_path:
        Location on disk and path relative to the indexed root (``/`` separated).
    extension:
        Lower-cased extension without the dot, ``None`` when absent.
    was_new / was_reindexed:
        Whether the path was unknown to the store, or already stored and rewritten.
    chunks_count:
        Chunks written (or, in dry-run, that would be written); the stored
        count for unchanged files.
    """

    absolute_path: str
    relative_path: str
    extension: str | None
    status: FileIndexStatus
    was_reindexed: bool = False
    was_new: bool = False
    chunks_count: int = 0
    error_message: str | None = None


@dataclass
class IndexRunSummary:
    files: list[IndexedFileResult] = field(default_factory=list)
    total_files_found: int = 0
    dry_run: bool = False
    test_mode: bool = False

    def add(self, result: IndexedFileResult) -> None:
        self.files.append(result)

    @property
    def counts(self) -> dict[str, int]:
        """Number of files per status, every status present."""
        counter = Counter(r.status for r in self.files)
        return {status.value: counter.get(status, 0) for status in FileIndexStatus}

    @property
    def total_indexed(self) -> int:
        return sum(1 for r in self.files if r.status.is_indexed)

    @property
    def total_skipped(self) -> int:
        return sum(1 for r in self.files if r.status.is_skipped)

    @property
    def total_failed(self) -> int:
        return sum(1 for r in self.files if r.status is FileIndexStatus.FAILED)

    @property
    def has_failures(self) -> bool:
        return self.total_failed > 0
