"""
Tests for the local policy store.

Tests the URI to path layout, directory creation, listing and digests.
"""
from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from policy_fetcher.errors import InvalidURI, StoreIOError
from policy_fetcher.store import PolicyPath, Store, StoredPolicy, default_store_root


class TestPolicyFullPath:
    """Test Store.policy_full_path layout."""

    @pytest.mark.parametrize("uri,expected", [
        ("http://host.example.com/path/to/policy.wasm", "http/host.example.com/path/to/policy.wasm"),
        ("http://host.example.com:1234/path/to/policy.wasm", "http/host.example.com:1234/path/to/policy.wasm"),
        ("https://host.example.com/path/to/policy.wasm", "https/host.example.com/path/to/policy.wasm"),
        ("https://host.example.com:1234/path/to/policy.wasm", "https/host.example.com:1234/path/to/policy.wasm"),
        ("registry://host.example.com/path/to/policy:tag", "registry/host.example.com/path/to/policy:tag"),
        ("registry://host.example.com/policy:tag", "registry/host.example.com/policy:tag"),
        ("registry://host.example.com:1234/path/to/policy:tag", "registry/host.example.com:1234/path/to/policy:tag"),
    ])
    def test_prefix_and_filename(self, store_root, uri, expected):
        """Test the full artifact path for every remote scheme."""
        store = Store(store_root)
        assert store.policy_full_path(uri, PolicyPath.PREFIX_AND_FILENAME) == store_root / expected

    def test_prefix_only_drops_filename(self, store_root):
        """Test that PREFIX_ONLY returns the directory holding the policy."""
        store = Store(store_root)
        path = store.policy_full_path("https://h.example.com:1234/a/b/p.wasm", PolicyPath.PREFIX_ONLY)
        assert path == store_root / "https" / "h.example.com:1234" / "a" / "b"

    def test_prefix_only_for_top_level_policy(self, store_root):
        """Test that a policy at the root of a host maps to the host directory."""
        store = Store(store_root)
        path = store.policy_full_path("registry://h.example.com/policy:v1", PolicyPath.PREFIX_ONLY)
        assert path == store_root / "registry" / "h.example.com"

    @pytest.mark.parametrize("uri", [
        "https://h.example.com/../../../evil.wasm",
        "https://h.example.com/a/../../../../evil.wasm",
        "http://h.example.com/%2e%2e/%2e%2e/evil.wasm",
        "registry://h.example.com/../../evil:v1",
    ])
    def test_dot_segments_stay_under_root(self, store_root, uri):
        """Test that URIs with dot segments cannot escape the store."""
        store = Store(store_root)
        host_dir = (store_root / uri.split("://")[0] / "h.example.com").resolve()

        for mode in PolicyPath:
            path = store.policy_full_path(uri, mode).resolve()
            assert path == host_dir or host_dir in path.parents

    def test_dot_segments_map_under_host(self, store_root):
        store = Store(store_root)
        path = store.policy_full_path("https://h.example.com/../../../evil.wasm", PolicyPath.PREFIX_AND_FILENAME)
        assert path == store_root / "https" / "h.example.com" / "evil.wasm"

    def test_invalid_uri_raises(self, store_root):
        """Test that store paths need a valid URI."""
        with pytest.raises(InvalidURI):
            Store(store_root).policy_full_path("https:///p.wasm", PolicyPath.PREFIX_AND_FILENAME)


class TestStore:
    """Test Store construction, equality and side effects."""

    def test_equality_depends_on_root(self, tmp_path):
        """Test that stores are equal iff their roots are equal."""
        assert Store(tmp_path / "a") == Store(tmp_path / "a")
        assert Store(str(tmp_path / "a")) == Store(tmp_path / "a")
        assert Store(tmp_path / "a") != Store(tmp_path / "b")

    def test_default_store_root_is_stable(self):
        """Test that the default root is computed once."""
        assert default_store_root() == default_store_root()
        assert Store.default() == Store(default_store_root())
        assert default_store_root().name == "policies"

    def test_ensure_creates_directories(self, store_root):
        """Test that ensure creates all missing directories."""
        store = Store(store_root)
        prefix = store.policy_full_path("https://h.example.com/a/b/p.wasm", PolicyPath.PREFIX_ONLY)

        store.ensure(prefix)
        assert prefix.is_dir()

        # Idempotent
        store.ensure(prefix)
        assert prefix.is_dir()

    def test_ensure_failure_raises_store_io_error(self, tmp_path):
        """Test that directory creation errors are wrapped."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(StoreIOError, match="cannot create store directory") as exc_info:
            Store(tmp_path).ensure(blocker / "child")
        assert exc_info.value.path == str(blocker / "child")


class TestStoreListing:
    """Test Store.list and StoredPolicy.digest."""

    def _put(self, store: Store, uri: str, content: bytes) -> Path:
        path = store.policy_full_path(uri, PolicyPath.PREFIX_AND_FILENAME)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    def test_empty_or_missing_store(self, store_root):
        """Test listing a store that does not exist yet."""
        assert Store(store_root).list() == []

    def test_list_rebuilds_uris(self, store_root):
        """Test that listed URIs map back to the listed paths."""
        store = Store(store_root)
        uris = [
            "https://h.example.com:1234/a/b/p.wasm",
            "registry://ghcr.io/org/policy:v1",
        ]
        for uri in uris:
            self._put(store, uri, b"policy")

        policies = store.list()

        assert sorted(p.uri for p in policies) == sorted(uris)
        for policy in policies:
            assert store.policy_full_path(policy.uri, PolicyPath.PREFIX_AND_FILENAME) == policy.local_path

    def test_list_skips_temporary_files(self, store_root):
        """Test that in-flight writes are not listed."""
        store = Store(store_root)
        path = self._put(store, "https://h.example.com/p.wasm", b"policy")
        (path.parent / ".policy-fetcher.tmp.abc123").write_bytes(b"partial")

        assert [p.uri for p in store.list()] == ["https://h.example.com/p.wasm"]

    def test_digest(self, store_root):
        """Test the sha256 of a stored policy."""
        store = Store(store_root)
        path = self._put(store, "https://h.example.com/p.wasm", b"\0asm policy")

        policy = StoredPolicy(uri="https://h.example.com/p.wasm", local_path=path)
        assert policy.digest() == hashlib.sha256(b"\0asm policy").hexdigest()
