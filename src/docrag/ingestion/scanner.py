"""Corpus walk with directory / filename exclusion and path-prefix inclusion."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from docrag.ingestion.models import FileIndexStatus, IndexedFileResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateFile:
    absolute_path: str
    relative_path: str
    extension: str | None


@dataclass
class ScanResult:
    """Files to process plus the ones excluded by the rules (never opened)."""

    candidates: list[CandidateFile] = field(default_factory=list)
    excluded: list[IndexedFileResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of candidates, known before any file is processed."""
        return len(self.candidates)

    @property
    def total_files_found(self) -> int:
        return len(self.candidates) + len(self.excluded)


def _clean(items: Iterable[str]) -> list[str]:
    return [s.strip().replace("\\", "/").strip("/") for s in items if s and s.strip().strip("/\\")]


class CorpusScanner:
    """Enumerate the regular files under *root*.

    Parameters
    ----------
    root:
        Directory to walk recursively.
    excluded_dirs:
        A bare name (``node_modules``) excludes any path with a segment of that
        name; a value containing ``/`` (``docs/drafts``) excludes that prefix.
    excluded_name_patterns:
        Shell-style patterns matched against the file name (``*.tmp``, ``~$*``).
    path_filters:
        When non-empty, only paths equal to or nested under one of these
        relative prefixes are candidates.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        excluded_dirs: Iterable[str] = (),
        excluded_name_patterns: Iterable[str] = (),
        path_filters: Iterable[str] = (),
    ) -> None:
        self.root = Path(root)
        self.excluded_dirs = _clean(excluded_dirs)
        self.excluded_name_patterns = [p for p in excluded_name_patterns if p]
        self.path_filters = _clean(path_filters)

    # -- rules ----------------------------------------------------------------

    def is_in_excluded_dir(self, relative_path: str) -> bool:
        segments = relative_path.split("/")[:-1]
        for excluded in self.excluded_dirs:
            if "/" in excluded:
                if relative_path.startswith(excluded + "/"):
                    return True
            elif excluded in segments:
                return True
        return False

    def is_excluded_name(self, filename: str) -> bool:
        return any(fnmatch.fnmatchcase(filename, pattern) for pattern in self.excluded_name_patterns)

    def matches_path_filters(self, relative_path: str) -> bool:
        if not self.path_filters:
            return True
        return any(relative_path == f or relative_path.startswith(f + "/") for f in self.path_filters)

    def is_excluded(self, relative_path: str) -> bool:
        return (
            self.is_in_excluded_dir(relative_path)
            or self.is_excluded_name(relative_path.rsplit("/", 1)[-1])
            or not self.matches_path_filters(relative_path)
        )

    # -- walk -----------------------------------------------------------------

    def scan(self) -> ScanResult:
        """Walk the root in a stable (sorted) order and classify every regular file."""
        if not self.root.is_dir():
            raise FileNotFoundError(f"Corpus root {self.root} is not a directory")

        result = ScanResult()
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            for filename in sorted(filenames):
                absolute = Path(dirpath) / filename
                if not absolute.is_file():
                    continue
                relative = absolute.relative_to(self.root).as_posix()
                extension = absolute.suffix[1:].lower() or None
                if self.is_excluded(relative):
                    result.excluded.append(
                        IndexedFileResult(
                            absolute_path=str(absolute),
                            relative_path=relative,
                            extension=extension,
                            status=FileIndexStatus.SKIPPED_EXCLUDED,
                        )
                    )
                    continue
                result.candidates.append(CandidateFile(str(absolute), relative, extension))

        logger.info(
            "Scanned %s: %d candidate(s), %d excluded",
            self.root,
            len(result.candidates),
            len(result.excluded),
        )
        return result
