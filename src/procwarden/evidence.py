"""Hashing of suspect executables, kept alongside a record as evidence."""

import hashlib
import logging
from pathlib import Path

from procwarden.models import UNAVAILABLE, ProcessRecord

_logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def sha1_file(path: Path | str) -> str:
    """Hex SHA-1 digest of a file's contents."""
    digest = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def fingerprint(record: ProcessRecord) -> str | None:
    """SHA-1 of the recorded executable, or None if it cannot be read."""
    if record.exe == UNAVAILABLE:
        return None
    try:
        return sha1_file(record.exe)
    except OSError as e:
        _logger.warning("cannot hash %s for PID %d: %s", record.exe, record.pid, e)
        return None
