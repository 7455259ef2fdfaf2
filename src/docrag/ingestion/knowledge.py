"""Copy documentation sources into the knowledge root before indexing."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    copied: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def sync_knowledge(sources: Iterable[str | Path], target: str | Path) -> SyncReport:
    """Mirror *sources* into *target*.

    A directory is merged into the target (existing files overwritten, nothing
    deleted); a file is copied under its own name. Missing sources are reported,
    not raised. Copy failures raise :class:`OSError`.
    """
    target = Path(target)
    target.mkdir(parents=True, exist_ok=True)
    report = SyncReport()
    for source in sources:
        source = Path(source)
        if source.is_dir():
            shutil.copytree(source, target, dirs_exist_ok=True)
            logger.info("Copied directory %s into %s", source, target)
        elif source.is_file():
            shutil.copy2(source, target / source.name)
            logger.info("Copied %s into %s", source, target)
        else:
            logger.warning("Knowledge source %s not found, skipped", source)
            report.missing.append(str(source))
            continue
        report.copied.append(str(source))
    return report
