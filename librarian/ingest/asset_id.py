from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from hashlib import sha1
from pathlib import Path
from typing import Optional

__all__ = [
    "FileStat",
    "stat_file",
    "compute_checksum",
    "derive_device_asset_id",
    "detect_sidecar",
]

_WHITESPACE = re.compile(r"\s+")


@dataclass(slots=True, frozen=True)
class FileStat:
    """The subset of filesystem metadata mirrored onto an asset."""

    size_bytes: int
    created_at: datetime
    modified_at: datetime


def stat_file(path: str) -> FileStat:
    """Stat ``path`` and convert its timestamps to aware UTC datetimes.

    Args:
        path: The path to the file.

    Returns:
        The file stat.

    Raises:
        OSError: If the file is missing or cannot be accessed.
    """
    stat = os.stat(path)
    birth_time = getattr(stat, "st_birthtime", None)
    created = birth_time if birth_time is not None else stat.st_ctime
    return FileStat(
        size_bytes=stat.st_size,
        created_at=datetime.fromtimestamp(created, tz=timezone.utc),
        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


def compute_checksum(path: str | Path, *, chunk_size: int = 1024 * 1024) -> bytes:
    """Return the SHA1 digest of the whole file.

    Args:
        path: The path to the file.
        chunk_size: The chunk size to use when reading the file.

    Returns:
        The raw digest bytes.
    """
    digest = sha1(usedforsecurity=False)
    with open(path, "rb") as handle:
        while chunk := handle.read(chunk_size):
            digest.update(chunk)
    return digest.digest()


def derive_device_asset_id(path: str, size_bytes: int) -> str:
    """Return a stable identifier built from the file name and size.

    Args:
        path: The path to the file.
        size_bytes: The file size in bytes.

    Returns:
        The identifier with all whitespace removed.
    """
    return _WHITESPACE.sub("", f"{os.path.basename(path)}-{size_bytes}")


def detect_sidecar(path: str) -> Optional[str]:
    """Return the adjacent ``.xmp`` sidecar path when it is readable."""
    candidate = f"{path}.xmp"
    if os.path.isfile(candidate) and os.access(candidate, os.R_OK):
        return candidate
    return None
