"""Content digests of staged files."""

from __future__ import annotations

import hashlib
import os

_CHUNK_SIZE = 1 << 16


def digest(path: str | os.PathLike) -> str:
    """Return the hex SHA-256 digest of the file at ``path``.

    The whole file is read; errors opening or reading it propagate.
    """
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()

