"""
CLI smoke tests.

Exercises command wiring end to end with file:// sources and local HTTP
mocks, without network or registries.
"""
from __future__ import annotations

import hashlib

import pytest
from typer.testing import CliRunner

from policy_fetcher.cli import app
from policy_fetcher.errors import FetchFailed
from policy_fetcher.https import Https

POLICY = b"\0asm cli policy"


@pytest.fixture
def cli():
    return CliRunner()


@pytest.fixture
def https_policy(monkeypatch):
    """Make every Https fetch write POLICY, recording the URLs."""
    urls = []

    async def fake_fetch(self, uri, destination, sources=None, docker_config=None):
        urls.append(uri.original)
        if uri.path.endswith("missing.wasm"):
            raise FetchFailed(f"error fetching {uri.original}: HTTP 404", uri.original)
        destination.write_bytes(POLICY)

    monkeypatch.setattr(Https, "fetch", fake_fetch)
    return urls


class TestPull:
    """Test the pull command."""

    def test_pull_file_uri(self, cli, tmp_path):
        """Test that file URIs print the local path."""
        policy = tmp_path / "policy.wasm"
        policy.write_bytes(POLICY)

        result = cli.invoke(app, ["pull", policy.as_uri()])

        assert result.exit_code == 0
        assert result.stdout.strip() == str(policy)

    def test_pull_into_store(self, cli, tmp_path, https_policy):
        store = tmp_path / "store"

        result = cli.invoke(app, ["pull", "https://example.com/policies/p.wasm", "--store", str(store)])

        assert result.exit_code == 0, result.output
        expected = store / "https" / "example.com" / "policies" / "p.wasm"
        assert expected.read_bytes() == POLICY
        assert str(expected) in result.stdout
        assert https_policy == ["https://example.com/policies/p.wasm"]

    def test_pull_into_default_store(self, cli, tmp_path, https_policy):
        """Test that POLICY_FETCHER_STORE_ROOT is the default store."""
        result = cli.invoke(app, ["pull", "https://example.com/p.wasm"])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "default-store" / "https" / "example.com" / "p.wasm").exists()

    def test_pull_to_output(self, cli, tmp_path, https_policy):
        output = tmp_path / "out.wasm"

        result = cli.invoke(app, ["pull", "https://example.com/p.wasm", "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert output.read_bytes() == POLICY

    def test_output_and_store_are_exclusive(self, cli, tmp_path):
        result = cli.invoke(app, [
            "pull", "https://example.com/p.wasm",
            "-o", str(tmp_path / "out.wasm"),
            "--store", str(tmp_path / "store"),
        ])

        assert result.exit_code == 2

    def test_unsupported_scheme(self, cli):
        result = cli.invoke(app, ["pull", "ftp://example.com/p.wasm"])

        assert result.exit_code == 2

    def test_fetch_failure(self, cli, tmp_path, https_policy):
        result = cli.invoke(app, ["pull", "https://example.com/missing.wasm", "--store", str(tmp_path / "s")])

        assert result.exit_code == 1


class TestListAndDigest:
    """Test the list and digest commands."""

    def test_list_empty_store(self, cli, tmp_path):
        result = cli.invoke(app, ["list", "--store", str(tmp_path / "empty")])

        assert result.exit_code == 0
        assert "No policies" in result.stdout

    def test_list_and_digest(self, cli, tmp_path, https_policy):
        store = tmp_path / "store"
        url = "https://example.com/p.wasm"
        cli.invoke(app, ["pull", url, "--store", str(store)])

        listing = cli.invoke(app, ["list", "--store", str(store)])
        digest = cli.invoke(app, ["digest", url, "--store", str(store)])

        assert listing.exit_code == 0
        assert url in listing.stdout
        assert digest.exit_code == 0
        assert digest.stdout.strip() == f"{url} sha256:{hashlib.sha256(POLICY).hexdigest()}"

    def test_digest_of_missing_policy(self, cli, tmp_path):
        result = cli.invoke(app, ["digest", "https://example.com/p.wasm", "--store", str(tmp_path)])

        assert result.exit_code == 3
