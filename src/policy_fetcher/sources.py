"""
Trust configuration for policy sources.

Describes, per ``host[:port]``, whether TLS verification is disabled and
which extra certificate authorities to trust. Loaded from a YAML file::

    insecure_sources:
      - "registry.local:5000"
    source_authorities:
      "internal.example.com":
        - path: /etc/ssl/internal-ca.pem
        - data: |
            -----BEGIN CERTIFICATE-----
            ...
"""
from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__ = ["Sources", "SourceAuthorityRaw", "SourcesRaw", "read_sources_file"]

logger = logging.getLogger(__name__)


class SourceAuthorityRaw(BaseModel):
    """One certificate authority: a PEM file path or inline PEM data."""
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = Field(default=None, description="Path or Data (informational)")
    path: Optional[str] = None
    data: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> SourceAuthorityRaw:
        if (self.path is None) == (self.data is None):
            raise ValueError("source authority must set exactly one of 'path' or 'data'")
        return self

    def load(self, base_dir: Optional[Path] = None) -> str:
        """Return the PEM text of this authority."""
        if self.data is not None:
            return self.data
        path = Path(self.path)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return path.read_text()


class SourcesRaw(BaseModel):
    """Sources document, as found on disk."""
    model_config = ConfigDict(extra="ignore")

    insecure_sources: List[str] = Field(default_factory=list)
    source_authorities: Dict[str, List[SourceAuthorityRaw]] = Field(default_factory=dict)


@dataclass(frozen=True)
class Sources:
    """
    Trust settings consumed by the http(s) and registry fetchers.

    Attributes:
        insecure_sources: Hosts for which TLS verification is skipped
        source_authorities: Extra PEM certificates to trust, per host
    """
    insecure_sources: FrozenSet[str] = field(default_factory=frozenset)
    source_authorities: Dict[str, List[str]] = field(default_factory=dict)

    def is_insecure_source(self, host: str) -> bool:
        return host in self.insecure_sources

    def source_authority(self, host: str) -> Optional[List[str]]:
        return self.source_authorities.get(host)

    def ssl_context(self, host: str) -> Optional[ssl.SSLContext]:
        """
        SSL context trusting the system roots plus the host's authorities.

        Returns None when the host has no extra authorities.
        """
        authorities = self.source_authority(host)
        if not authorities:
            return None
        context = ssl.create_default_context()
        for pem in authorities:
            context.load_verify_locations(cadata=pem)
        return context


def read_sources_file(path: Union[str, Path]) -> Sources:
    """
    Load a sources YAML file.

    Relative authority paths are resolved against the file's directory.

    Raises:
        OSError: If the file or a referenced certificate cannot be read
        ValueError: If the document does not have the expected shape
    """
    path = Path(path)
    with open(path, "r") as f:
        document = yaml.safe_load(f) or {}

    raw = SourcesRaw.model_validate(document)
    authorities = {
        host: [entry.load(path.parent) for entry in entries]
        for host, entries in raw.source_authorities.items()
    }
    logger.debug(
        f"Loaded sources from {path}: {len(raw.insecure_sources)} insecure, "
        f"{len(authorities)} with custom authorities"
    )
    return Sources(
        insecure_sources=frozenset(raw.insecure_sources),
        source_authorities=authorities,
    )
