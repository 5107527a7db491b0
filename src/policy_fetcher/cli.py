"""
Policy fetcher CLI

Thin command line shell over the library:
- pull: Fetch a policy into the store or a local file
- list: List the policies in a store
- digest: Print the sha256 of a stored policy
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from .fetch import LocalFile, MainStore, PullDestination, StoreDestination, fetch_policy
from .fetcher import fetcher_for_scheme
from .operations import run_and_exit
from .operations.printers import print_digest, print_policies, print_pulled
from .settings import Settings, create_settings_from_env
from .docker_config import read_docker_config_json_file
from .sources import read_sources_file
from .store import PolicyPath, Store, StoredPolicy

app = typer.Typer(name="policy-fetcher", help="Fetch and cache policies")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Fetch policies from files, HTTP(S) servers and OCI registries."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _store_root(settings: Settings, store: Optional[Path]) -> Path:
    return store if store is not None else settings.store_root


@app.command()
def pull(
    uri: str = typer.Argument(..., help="Policy URI (file://, http(s)://, registry://)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save to this file or directory"),
    store: Optional[Path] = typer.Option(None, "--store", help="Use this store root"),
    docker_config: Optional[Path] = typer.Option(None, "--docker-config", help="Docker config.json with registry credentials"),
    sources: Optional[Path] = typer.Option(None, "--sources", help="YAML file with TLS trust settings"),
):
    """Fetch a policy and print its local path."""
    if output is not None and store is not None:
        raise typer.BadParameter("--output and --store are mutually exclusive")

    def _pull() -> Path:
        settings = create_settings_from_env()

        destination: PullDestination
        if output is not None:
            destination = LocalFile(output)
        elif store is not None:
            destination = StoreDestination(store)
        else:
            destination = MainStore()

        config = (
            read_docker_config_json_file(docker_config)
            if docker_config is not None
            else settings.load_docker_config()
        )
        trust = read_sources_file(sources) if sources is not None else settings.load_sources()

        return asyncio.run(fetch_policy(
            uri,
            destination,
            config,
            trust,
            default_root=settings.store_root,
            fetcher_factory=lambda scheme: fetcher_for_scheme(scheme, http_timeout_s=settings.http_timeout_s),
        ))

    print_pulled(run_and_exit(_pull))


@app.command("list")
def list_policies(
    store: Optional[Path] = typer.Option(None, "--store", help="Store root (default: main store)"),
):
    """List the policies in a store."""
    def _list():
        root = _store_root(create_settings_from_env(), store)
        return root, Store(root).list()

    root, policies = run_and_exit(_list)
    print_policies(policies, root)


@app.command()
def digest(
    uri: str = typer.Argument(..., help="Policy URI"),
    store: Optional[Path] = typer.Option(None, "--store", help="Store root (default: main store)"),
):
    """Print the sha256 of a policy in the store."""
    def _digest() -> str:
        policy_store = Store(_store_root(create_settings_from_env(), store))
        path = policy_store.policy_full_path(uri, PolicyPath.PREFIX_AND_FILENAME)
        if not path.is_file():
            raise FileNotFoundError(f"policy {uri} is not in store {policy_store.root}")
        return StoredPolicy(uri=uri, local_path=path).digest()

    print_digest(uri, run_and_exit(_digest))


if __name__ == "__main__":
    app()
