"""Content hashing for change detection."""

from __future__ import annotations

import hashlib
from pathlib import Path

_READ_SIZE = 1 << 16


def file_hash(path: str | Path) -> str:
    """Return a 64-bit BLAKE2b digest of the file content as 16 hex characters.

    The file is streamed, so memory use does not depend on its size.
    """
    digest = hashlib.blake2b(digest_size=8)
    with open(path, "rb") as fh:
        for block in iter(lambda: fh.read(_READ_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()
