"""
Atomic file writes.

Content is streamed into a temporary file next to the target and renamed
into place only once it is complete (and, optionally, its sha256 matches).
A failed or interrupted write never leaves a partial file at the target.
"""
from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from .store import TEMP_PREFIX

__all__ = ["AtomicWriter", "write_atomically"]

logger = logging.getLogger(__name__)


class AtomicWriter:
    """
    Context manager writing ``target_path`` atomically.

    Usage::

        with AtomicWriter(path, expected_sha=sha) as out:
            for chunk in chunks:
                out.write(chunk)

    On normal exit the data is fsync'ed, verified and renamed over
    ``target_path``. On any exception the temporary file is removed and the
    exception propagates.
    """

    def __init__(self, target_path: Path, *, expected_sha: Optional[str] = None):
        self.target_path = Path(target_path)
        self.expected_sha = expected_sha
        self._hash = hashlib.sha256()
        self._file = None
        self._temp_path: Optional[Path] = None

    def __enter__(self) -> AtomicWriter:
        # Create temp file in same directory for atomic rename
        self.target_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=self.target_path.parent)
        self._temp_path = Path(temp_path)
        self._file = os.fdopen(fd, "wb")
        return self

    def write(self, chunk: bytes) -> None:
        self._hash.update(chunk)
        self._file.write(chunk)

    @property
    def sha256(self) -> str:
        """Hex sha256 of everything written so far."""
        return self._hash.hexdigest()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is None:
                self._commit()
        except BaseException:
            self._discard()
            raise
        if exc_type is not None:
            self._discard()

    def _commit(self) -> None:
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()

        actual_sha = self.sha256
        if self.expected_sha is not None and actual_sha != self.expected_sha:
            raise ValueError(
                f"SHA mismatch for {self.target_path}: expected {self.expected_sha}, got {actual_sha}"
            )

        os.replace(self._temp_path, self.target_path)
        logger.debug(f"Wrote {self.target_path} (sha256 {actual_sha})")

    def _discard(self) -> None:
        if not self._file.closed:
            self._file.close()
        try:
            self._temp_path.unlink()
        except FileNotFoundError:
            pass


def write_atomically(target_path: Path, chunks: Iterable[bytes], *, expected_sha: Optional[str] = None) -> str:
    """
    Write ``chunks`` to ``target_path`` atomically.

    Args:
        target_path: Final path for the file
        chunks: Content, as an iterable of byte strings
        expected_sha: Expected sha256 (64 hex chars, no prefix)

    Returns:
        sha256 of the written content

    Raises:
        ValueError: If sha256 verification fails
        OSError: If file operations fail
    """
    with AtomicWriter(target_path, expected_sha=expected_sha) as out:
        for chunk in chunks:
            out.write(chunk)
    return out.sha256
