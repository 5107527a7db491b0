"""
Settings and configuration for the policy fetcher.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables when the CLI starts.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .docker_config import DockerConfig, read_docker_config_json_file
from .sources import Sources, read_sources_file
from .store import default_store_root

__all__ = ["Settings", "create_settings_from_env", "default_docker_config_path"]


def default_docker_config_path() -> Path:
    """``$DOCKER_CONFIG/config.json``, or ``~/.docker/config.json``."""
    docker_config_dir = os.getenv("DOCKER_CONFIG", str(Path.home() / ".docker"))
    return Path(docker_config_dir) / "config.json"


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the policy fetcher.

    Attributes:
        store_root: Root of the default policy store
        docker_config_path: Docker config with registry credentials
        sources_path: YAML file with TLS trust settings (optional)
        http_timeout_s: HTTP request timeout in seconds
    """
    store_root: Path
    docker_config_path: Optional[Path] = None
    sources_path: Optional[Path] = None
    http_timeout_s: float = 30.0

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.store_root or not str(self.store_root):
            raise ValueError("store_root is required")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.sources_path is not None and not Path(self.sources_path).is_file():
            raise ValueError(f"sources file not found: {self.sources_path}")

    def load_docker_config(self) -> Optional[DockerConfig]:
        """
        Read the Docker config, or None if there is none on disk.
        """
        if self.docker_config_path is None or not Path(self.docker_config_path).is_file():
            return None
        return read_docker_config_json_file(self.docker_config_path)

    def load_sources(self) -> Optional[Sources]:
        if self.sources_path is None:
            return None
        return read_sources_file(self.sources_path)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - POLICY_FETCHER_STORE_ROOT (default: platform cache directory)
        - DOCKER_CONFIG (directory holding config.json, default: ~/.docker)
        - POLICY_FETCHER_SOURCES (optional)
        - POLICY_FETCHER_HTTP_TIMEOUT (default: 30.0)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    store_root = os.getenv("POLICY_FETCHER_STORE_ROOT")
    sources = os.getenv("POLICY_FETCHER_SOURCES")
    timeout = os.getenv("POLICY_FETCHER_HTTP_TIMEOUT")

    try:
        http_timeout_s = float(timeout) if timeout else 30.0
    except ValueError as e:
        raise ValueError(f"POLICY_FETCHER_HTTP_TIMEOUT must be a number, got {timeout!r}") from e

    return Settings(
        store_root=Path(store_root) if store_root else default_store_root(),
        docker_config_path=default_docker_config_path(),
        sources_path=Path(sources) if sources else None,
        http_timeout_s=http_timeout_s,
    )
