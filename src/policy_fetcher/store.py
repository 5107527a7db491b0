"""
Local policy store.

Maps policy URIs to a deterministic on-disk layout rooted at a base
directory::

    <root>/<scheme>/<host>[:<port>]/<uri-path>

e.g. ``https://h.example.com:1234/a/b/p.wasm`` is stored at
``<root>/https/h.example.com:1234/a/b/p.wasm`` and
``registry://h.example.com/p:tag`` at ``<root>/registry/h.example.com/p:tag``.

The store keeps no state besides its root. It performs no locking and
never deletes anything.
"""
from __future__ import annotations

import functools
import hashlib
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List

from platformdirs import user_cache_dir

from .errors import StoreIOError
from .uri import parse_policy_uri

__all__ = ["Store", "PolicyPath", "StoredPolicy", "default_store_root", "TEMP_PREFIX"]

logger = logging.getLogger(__name__)

_APP_NAME = "policy-fetcher"

# Prefix of in-flight files written by write_atomically
TEMP_PREFIX = ".policy-fetcher.tmp."

CHUNK_SIZE = 1024 * 1024  # 1 MiB


class PolicyPath(str, Enum):
    """Which part of a policy's store path to compute."""
    PREFIX_ONLY = "prefix-only"
    PREFIX_AND_FILENAME = "prefix-and-filename"


@functools.lru_cache(maxsize=None)
def default_store_root() -> Path:
    """
    Process-wide default store root.

    Computed once from the platform cache directory, e.g.
    ``~/.cache/policy-fetcher/policies`` on Linux.
    """
    return Path(user_cache_dir(_APP_NAME, appauthor=_APP_NAME)) / "policies"


@dataclass(frozen=True)
class StoredPolicy:
    """A policy file found in a store."""
    uri: str
    local_path: Path

    def digest(self) -> str:
        """Return the hex sha256 of the policy file contents."""
        hash_obj = hashlib.sha256()
        with open(self.local_path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hash_obj.update(chunk)
        return hash_obj.hexdigest()


@dataclass(frozen=True)
class Store:
    """
    Deterministic URI to path mapping under ``root``.

    Two stores are equal iff their roots are equal.
    """
    root: Path

    def __post_init__(self):
        # Accept plain strings for convenience
        object.__setattr__(self, "root", Path(self.root))

    @classmethod
    def default(cls) -> Store:
        """Store rooted at :func:`default_store_root`."""
        return cls(default_store_root())

    def policy_full_path(self, uri: str, mode: PolicyPath) -> Path:
        """
        Compute where the policy identified by ``uri`` lives in this store.

        Args:
            uri: Policy URI (http, https or registry)
            mode: ``PREFIX_ONLY`` drops the final path segment (the directory
                that will hold the policy), ``PREFIX_AND_FILENAME`` returns
                the policy file path itself

        Returns:
            Path under ``root``

        Raises:
            InvalidURI: If ``uri`` cannot be parsed or has no host
        """
        parsed = parse_policy_uri(uri)
        relative = parsed.path[1:] if parsed.path.startswith("/") else parsed.path

        if mode == PolicyPath.PREFIX_ONLY:
            relative = relative.rsplit("/", 1)[0] if "/" in relative else ""

        base = self.root / parsed.scheme / parsed.host_and_port
        path = base / relative if relative else base
        logger.debug(f"Store path for {uri} ({mode.value}): {path}")
        return path

    def ensure(self, path: Path) -> None:
        """
        Create directory ``path`` and any missing parents.

        Raises:
            StoreIOError: If the directories cannot be created
        """
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"cannot create store directory {path}: {e}", str(path)) from e

    def list(self) -> List[StoredPolicy]:
        """
        Enumerate the policies present in the store.

        The URI of each policy is rebuilt from its location, so
        ``policy_full_path(p.uri, PREFIX_AND_FILENAME) == p.local_path``
        holds for every returned entry. In-flight temporary files are
        skipped.
        """
        if not self.root.is_dir():
            return []

        policies = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            for name in sorted(filenames):
                if name.startswith(TEMP_PREFIX):
                    continue
                local_path = Path(dirpath) / name
                parts = local_path.relative_to(self.root).parts
                if len(parts) < 3:
                    # Not laid out as <scheme>/<authority>/<path>
                    continue
                scheme, authority, rest = parts[0], parts[1], "/".join(parts[2:])
                policies.append(StoredPolicy(uri=f"{scheme}://{authority}/{rest}", local_path=local_path))
        return policies
