"""
Tests for the docker-credential-<store> helper integration.
"""
from __future__ import annotations

import json

import pytest

from policy_fetcher.docker_config import (
    BasicAuth,
    DockerConfig,
    get_auth_from_credentials_helper,
    read_docker_config_json_file,
)
from policy_fetcher.errors import (
    CredentialHelperError,
    CredentialHelperExitedNonZero,
    CredentialHelperResponseMalformed,
    CredentialHelperSpawnFailed,
)
from tests.fakes import FakeProcessRunner
from tests.helpers.docker_helpers import encode_auth, write_docker_config


class TestGetAuthFromCredentialsHelper:
    """Test invoking the helper program."""

    def test_success(self, runner):
        """Test that the helper response becomes BasicAuth."""
        auth = get_auth_from_credentials_helper("desktop", "ghcr.io", runner)

        assert auth == BasicAuth(b"helper-user", b"helper-secret")

    def test_invocation(self, runner):
        """Test the program name, subcommand and stdin."""
        get_auth_from_credentials_helper("desktop", "registry.local:5000", runner)

        assert runner.calls == [("docker-credential-desktop", "get", b"registry.local:5000")]

    def test_extra_fields_are_ignored(self):
        """Test that helpers returning ServerURL are accepted."""
        runner = FakeProcessRunner(stdout=json.dumps({
            "ServerURL": "ghcr.io", "Username": "u", "Secret": "s",
        }).encode())

        assert get_auth_from_credentials_helper("pass", "ghcr.io", runner) == BasicAuth(b"u", b"s")

    def test_nonzero_exit(self):
        """Test that a failing helper reports its output and exit status."""
        runner = FakeProcessRunner(returncode=1, stdout=b"credentials not found in native keychain\n")

        with pytest.raises(CredentialHelperExitedNonZero) as exc_info:
            get_auth_from_credentials_helper("desktop", "ghcr.io", runner)

        exc = exc_info.value
        assert exc.returncode == 1
        assert exc.output == "credentials not found in native keychain"
        assert "docker-credential-desktop" in str(exc)
        assert "credentials not found in native keychain" in str(exc)

    def test_malformed_response(self):
        """Test that output that is not the expected JSON is rejected."""
        runner = FakeProcessRunner(stdout=b"not json")

        with pytest.raises(CredentialHelperResponseMalformed):
            get_auth_from_credentials_helper("desktop", "ghcr.io", runner)

    def test_missing_secret(self):
        """Test that a response without Secret is rejected."""
        runner = FakeProcessRunner(stdout=json.dumps({"Username": "u"}).encode())

        with pytest.raises(CredentialHelperResponseMalformed):
            get_auth_from_credentials_helper("desktop", "ghcr.io", runner)

    def test_spawn_failure(self):
        """Test that a missing helper program is reported."""
        runner = FakeProcessRunner(error=FileNotFoundError("no such file"))

        with pytest.raises(CredentialHelperSpawnFailed) as exc_info:
            get_auth_from_credentials_helper("missing", "ghcr.io", runner)

        assert exc_info.value.program == "docker-credential-missing"
        assert isinstance(exc_info.value, CredentialHelperError)


class TestResolve:
    """Test DockerConfig.resolve precedence."""

    def test_auths_entry_wins(self, runner):
        """Test that the helper is not called when auths has the host."""
        config = DockerConfig(
            auths={"ghcr.io": BasicAuth(b"file-user", b"file-pass")},
            creds_store="desktop",
            runner=runner,
        )

        assert config.resolve("registry://ghcr.io/org/policy:v1") == BasicAuth(b"file-user", b"file-pass")
        assert runner.calls == []

    def test_helper_fallback(self, runner):
        """Test that the helper is asked for registries missing from auths."""
        config = DockerConfig(creds_store="desktop", runner=runner)

        auth = config.resolve("registry://ghcr.io/org/policy:v1")

        assert auth == BasicAuth(b"helper-user", b"helper-secret")
        assert runner.calls == [("docker-credential-desktop", "get", b"ghcr.io")]

    def test_no_helper_means_anonymous(self):
        """Test that no credentials is not an error."""
        assert DockerConfig().resolve("registry://ghcr.io/org/policy:v1") is None

    def test_helper_failure_propagates(self):
        """Test that helper errors reach the caller."""
        config = DockerConfig(creds_store="desktop", runner=FakeProcessRunner(returncode=1))

        with pytest.raises(CredentialHelperExitedNonZero):
            config.resolve("registry://ghcr.io/org/policy:v1")

    def test_runner_from_file(self, tmp_path, runner):
        """Test that a runner passed when reading the file is used."""
        path = write_docker_config(
            tmp_path / "config.json",
            {"quay.io": {"auth": encode_auth(b"q:pw")}},
            creds_store="desktop",
        )

        config = read_docker_config_json_file(path, runner=runner)

        assert config.resolve("quay.io/org/p:v1") == BasicAuth(b"q", b"pw")
        assert config.resolve("ghcr.io/org/p:v1") == BasicAuth(b"helper-user", b"helper-secret")
        assert len(runner.calls) == 1
