"""
Fetcher for ``http://`` and ``https://`` policies.

Streams the response body with httpx into the destination. TLS behaviour
follows the :class:`~policy_fetcher.sources.Sources` entry of the host:
insecure hosts skip verification, hosts with custom authorities trust
them in addition to the system roots.
"""
from __future__ import annotations

import logging
from pathlib import Path
import ssl
from typing import Optional, Union

import httpx

from .atomic import AtomicWriter
from .docker_config import DockerConfig
from .errors import FetchFailed
from .sources import Sources
from .uri import ParsedURI

__all__ = ["Https"]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
USER_AGENT = "policy-fetcher/0.7.8"


class Https:
    """
    HTTP(S) fetcher.

    Args:
        timeout_s: Per-request timeout in seconds
        transport: Optional httpx transport (tests inject a MockTransport)
    """

    def __init__(self, timeout_s: float = DEFAULT_TIMEOUT_S,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_s = timeout_s
        self._transport = transport

    def _verify(self, uri: ParsedURI, sources: Optional[Sources]) -> Union[bool, ssl.SSLContext]:
        if sources is None:
            return True
        host = uri.host_and_port
        if sources.is_insecure_source(host):
            logger.debug(f"TLS verification disabled for insecure source {host}")
            return False
        return sources.ssl_context(host) or True

    async def fetch(
        self,
        uri: ParsedURI,
        destination: Path,
        sources: Optional[Sources] = None,
        docker_config: Optional[DockerConfig] = None,
    ) -> None:
        url = uri.original
        try:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_s),
                follow_redirects=True,
                verify=self._verify(uri, sources),
                transport=self._transport,
                headers={"User-Agent": USER_AGENT},
            )
            async with client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with AtomicWriter(destination) as out:
                        async for chunk in response.aiter_bytes():
                            out.write(chunk)
        except httpx.HTTPStatusError as e:
            raise FetchFailed(
                f"error fetching {url}: HTTP {e.response.status_code}", url
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailed(f"network error fetching {url}: {e}", url) from e
        except ssl.SSLError as e:
            raise FetchFailed(
                f"invalid TLS configuration for {uri.host_and_port}: {e}", url
            ) from e
        except OSError as e:
            raise FetchFailed(f"cannot write {destination}: {e}", url) from e
        logger.debug(f"Fetched {url} into {destination}")
