"""
Fetcher protocol and scheme dispatch.

Each transport scheme has exactly one fetcher. The mapping is closed: a new
scheme needs an explicit entry here, there is no fallback.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .docker_config import DockerConfig
from .errors import UnsupportedScheme
from .https import DEFAULT_TIMEOUT_S, Https
from .local import Local
from .registry import Registry
from .sources import Sources
from .uri import ParsedURI

__all__ = ["Fetcher", "fetcher_for_scheme"]


@runtime_checkable
class Fetcher(Protocol):
    """Retrieves the policy at ``uri`` into ``destination``."""

    async def fetch(
        self,
        uri: ParsedURI,
        destination: Path,
        sources: Optional[Sources] = None,
        docker_config: Optional[DockerConfig] = None,
    ) -> None:
        """
        Fetch the policy.

        Implementations write ``destination`` atomically: on failure no
        partial file is left behind.

        Raises:
            FetchFailed: For transport, authentication or integrity errors
        """
        ...


def fetcher_for_scheme(scheme: str, *, http_timeout_s: float = DEFAULT_TIMEOUT_S) -> Fetcher:
    """
    Allocate the fetcher for ``scheme``.

    Raises:
        UnsupportedScheme: If no fetcher handles ``scheme``
    """
    if scheme == "file":
        return Local()
    if scheme in ("http", "https"):
        return Https(timeout_s=http_timeout_s)
    if scheme == "registry":
        return Registry()
    raise UnsupportedScheme(scheme)
