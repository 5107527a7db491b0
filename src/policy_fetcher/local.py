"""
Fetcher for ``file://`` policies.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterator, Optional

from .atomic import write_atomically
from .docker_config import DockerConfig
from .errors import FetchFailed
from .sources import Sources
from .uri import ParsedURI

__all__ = ["Local"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB


def _read_chunks(path: Path) -> Iterator[bytes]:
    with open(path, "rb") as f:
        while True:
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


class Local:
    """Copies a local policy file to the destination."""

    async def fetch(
        self,
        uri: ParsedURI,
        destination: Path,
        sources: Optional[Sources] = None,
        docker_config: Optional[DockerConfig] = None,
    ) -> None:
        source = uri.to_file_path()
        logger.debug(f"Copying {source} to {destination}")
        try:
            await asyncio.to_thread(write_atomically, destination, _read_chunks(source))
        except OSError as e:
            raise FetchFailed(f"cannot copy {source} to {destination}: {e}", uri.original) from e
