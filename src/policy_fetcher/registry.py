"""
Fetcher for ``registry://`` policies.

Policies are OCI artifacts: ``registry://ghcr.io/org/policy:v1`` names the
manifest ``ghcr.io/org/policy:v1``, whose WebAssembly layer is the policy.
Uses oras-py for the distribution protocol (token auth, manifests, blobs).
"""
from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import oras.client

from .atomic import write_atomically
from .docker_config import DockerConfig
from .errors import FetchFailed
from .sources import Sources
from .uri import ParsedURI

__all__ = ["Registry", "WASM_LAYER_MEDIA_TYPE", "select_policy_layer"]

logger = logging.getLogger(__name__)

WASM_LAYER_MEDIA_TYPE = "application/vnd.wasm.content.layer.v1+wasm"

CHUNK_SIZE = 1024 * 1024  # 1 MiB


def select_policy_layer(manifest: Dict[str, Any]) -> Dict[str, Any]:
    """
    Pick the layer holding the policy from an OCI image manifest.

    The WebAssembly layer wins; a manifest with a single layer of any media
    type is accepted as well.

    Raises:
        ValueError: If no layer can be identified
    """
    layers: List[Dict[str, Any]] = manifest.get("layers") or []
    wasm_layers = [layer for layer in layers if layer.get("mediaType") == WASM_LAYER_MEDIA_TYPE]
    if len(wasm_layers) == 1:
        return wasm_layers[0]
    if not wasm_layers and len(layers) == 1:
        return layers[0]
    raise ValueError(
        f"cannot identify the policy layer: {len(layers)} layers, "
        f"{len(wasm_layers)} with media type {WASM_LAYER_MEDIA_TYPE}"
    )


def _sha256_of(digest: str) -> str:
    algorithm, _, hex_digest = digest.partition(":")
    if algorithm != "sha256" or not hex_digest:
        raise ValueError(f"unsupported layer digest: {digest}")
    return hex_digest


class Registry:
    """OCI registry fetcher backed by oras-py."""

    def _client(self, uri: ParsedURI, sources: Optional[Sources]) -> oras.client.OrasClient:
        host = uri.host_and_port
        insecure = sources is not None and sources.is_insecure_source(host)
        logger.debug(f"ORAS client for {host}, insecure: {insecure}")
        return oras.client.OrasClient(hostname=host, insecure=insecure, tls_verify=not insecure)

    def _pull(self, uri: ParsedURI, destination: Path, sources: Optional[Sources],
              username: Optional[str], password: Optional[str]) -> None:
        target = f"{uri.host_and_port}{uri.path}"
        client = self._client(uri, sources)
        if username is not None:
            client.set_basic_auth(username, password)

        with tempfile.TemporaryDirectory() as tmpdir:
            authorities = sources.source_authority(uri.host_and_port) if sources else None
            if authorities:
                # requests only accepts a CA bundle file
                bundle = Path(tmpdir) / "ca-bundle.pem"
                bundle.write_text("\n".join(authorities))
                client.remote.session.verify = str(bundle)

            manifest = client.remote.get_manifest(target)
            layer = select_policy_layer(manifest)
            expected_sha = _sha256_of(layer["digest"])

            response = client.remote.get_blob(target, layer["digest"], stream=True)
            try:
                if response.status_code != 200:
                    raise ValueError(
                        f"registry returned HTTP {response.status_code} for blob {layer['digest']}"
                    )
                write_atomically(
                    destination,
                    response.iter_content(chunk_size=CHUNK_SIZE),
                    expected_sha=expected_sha,
                )
            finally:
                response.close()

    async def fetch(
        self,
        uri: ParsedURI,
        destination: Path,
        sources: Optional[Sources] = None,
        docker_config: Optional[DockerConfig] = None,
    ) -> None:
        username = password = None
        if docker_config is not None:
            auth = docker_config.resolve(uri.original)
            if auth is not None:
                username, password = auth.to_credentials()
        if username is None:
            logger.debug(f"No auth configured for {uri.host_and_port}, proceeding anonymous")

        try:
            await asyncio.to_thread(self._pull, uri, destination, sources, username, password)
        except Exception as e:
            raise FetchFailed(f"cannot pull policy {uri.original}: {e}", uri.original) from e
        logger.debug(f"Pulled {uri.original} into {destination}")
