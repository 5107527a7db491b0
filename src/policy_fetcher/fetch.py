"""
Policy fetch orchestration.

This module implements :func:`fetch_policy`, the public entry point: it
validates the URI, decides where the policy should land, reuses a cached
copy when allowed and otherwise dispatches to the fetcher of the scheme.

Reuse policy:

- ``http``/``https``: an existing file at the destination is always reused.
- ``registry``: an existing file is reused unless the tag is ``latest``,
  which is always pulled again.
- ``file``: nothing is fetched, the local path is returned directly.
"""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from .docker_config import DockerConfig
from .errors import InvalidDestination
from .fetcher import Fetcher, fetcher_for_scheme
from .sources import Sources
from .store import PolicyPath, Store, default_store_root
from .uri import ParsedURI, parse_policy_uri

__all__ = [
    "MainStore",
    "StoreDestination",
    "LocalFile",
    "PullDestination",
    "pull_destination",
    "fetch_policy",
    "LATEST_TAG",
]

logger = logging.getLogger(__name__)

LATEST_TAG = "latest"


@dataclass(frozen=True)
class MainStore:
    """Save the policy in the default store."""
    pass


@dataclass(frozen=True)
class StoreDestination:
    """Save the policy in a store rooted at ``root``."""
    root: Path


@dataclass(frozen=True)
class LocalFile:
    """
    Save the policy at ``path``, bypassing any store.

    If ``path`` is an existing directory the policy keeps the last segment
    of its URI as filename inside it.
    """
    path: Path


PullDestination = Union[MainStore, StoreDestination, LocalFile]


def _store_destination(store: Store, uri: ParsedURI) -> Tuple[Store, Path]:
    if not uri.filename:
        raise InvalidDestination(
            f"cannot save {uri.original} into store {store.root}: the URI has no filename"
        )
    return store, store.policy_full_path(uri.original, PolicyPath.PREFIX_AND_FILENAME)


def pull_destination(
    uri: ParsedURI,
    destination: PullDestination,
    *,
    default_root: Optional[Path] = None,
) -> Tuple[Optional[Store], Path]:
    """
    Compute where the policy at ``uri`` should be written.

    Args:
        uri: Parsed policy URI
        destination: Where the caller wants the policy
        default_root: Root used for ``MainStore`` (defaults to
            :func:`default_store_root`)

    Returns:
        ``(store, path)``; ``store`` is None for ``LocalFile`` destinations

    Raises:
        InvalidDestination: If the URI has no filename and ``destination``
            is a store or a directory
    """
    if isinstance(destination, MainStore):
        return _store_destination(
            Store(default_root if default_root is not None else default_store_root()), uri
        )

    if isinstance(destination, StoreDestination):
        return _store_destination(Store(destination.root), uri)

    if isinstance(destination, LocalFile):
        path = Path(destination.path)
        if path.is_dir():
            filename = uri.filename
            if not filename:
                raise InvalidDestination(
                    f"cannot save {uri.original} into directory {path}: the URI has no filename"
                )
            return None, path / filename
        return None, path

    raise TypeError(f"unknown pull destination: {destination!r}")


def _can_reuse(uri: ParsedURI, path: Path) -> bool:
    # On a registry, the `latest` tag always pulls the latest version
    if uri.scheme == "registry" and uri.tag == LATEST_TAG:
        logger.debug(f"{uri.original} uses the {LATEST_TAG} tag, pulling again")
        return False
    return path.is_file()


async def fetch_policy(
    url: str,
    destination: PullDestination,
    docker_config: Optional[DockerConfig] = None,
    sources: Optional[Sources] = None,
    *,
    default_root: Optional[Path] = None,
    fetcher_factory: Callable[[str], Fetcher] = fetcher_for_scheme,
) -> Path:
    """
    Fetch the policy at ``url`` and return its local path.

    Args:
        url: Policy URI (file, http, https or registry)
        destination: Where the policy should be saved
        docker_config: Registry credentials, used for ``registry`` URIs
        sources: TLS trust settings for remote hosts
        default_root: Root of the default store (``MainStore``)
        fetcher_factory: Maps a scheme to its fetcher

    Returns:
        Absolute path of the policy

    Raises:
        InvalidURI: If ``url`` cannot be parsed or has no host
        UnsupportedScheme: If the scheme is not supported
        InvalidDestination: If the destination cannot receive the policy
        StoreIOError: If the store directories cannot be created
        FetchFailed: If the transport fails
        CredentialHelperError: If the credential helper fails
    """
    uri = parse_policy_uri(url)

    if uri.scheme == "file":
        # no-op: return early
        return uri.to_file_path()

    store, path = pull_destination(uri, destination, default_root=default_root)
    if store is not None:
        store.ensure(store.policy_full_path(uri.original, PolicyPath.PREFIX_ONLY))

    path = path.absolute()
    if _can_reuse(uri, path):
        logger.debug(f"Reusing {path} for {uri.original}")
        return path

    fetcher = fetcher_factory(uri.scheme)
    logger.info(f"Pulling policy {uri.original} into {path}")
    print("pulling policy...", file=sys.stderr)
    await fetcher.fetch(uri, path, sources, docker_config)
    logger.info(f"Policy {uri.original} saved to {path}")

    return path
