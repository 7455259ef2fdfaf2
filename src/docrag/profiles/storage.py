"""Single-writer persistence of the active profile name."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from docrag.errors import ConfigurationError


class ActiveProfileStorage:
    """Stores the active profile name as one trimmed line in a small state file.

    Writes go to a temporary sibling file that is then renamed over the target,
    so concurrent readers see either the old or the new name, never a partial one.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> str | None:
        """Return the stored name, or ``None`` when the file is missing, unreadable or blank."""
        try:
            value = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return value or None

    def save(self, profile_name: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(profile_name.strip())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise ConfigurationError(f"Cannot save the active profile to {self.path}: {exc}") from exc
