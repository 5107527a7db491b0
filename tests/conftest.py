"""Root pytest configuration for policy-fetcher tests."""
import pytest

from .fakes import FakeProcessRunner, RecordingFetcher


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires network or Docker)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Keep tests away from the user's store and Docker config."""
    monkeypatch.setenv("POLICY_FETCHER_STORE_ROOT", str(tmp_path / "default-store"))
    monkeypatch.setenv("DOCKER_CONFIG", str(tmp_path / "docker"))
    monkeypatch.delenv("POLICY_FETCHER_SOURCES", raising=False)
    monkeypatch.delenv("POLICY_FETCHER_HTTP_TIMEOUT", raising=False)


@pytest.fixture
def store_root(tmp_path):
    """Empty store root."""
    root = tmp_path / "store"
    return root


@pytest.fixture
def fetcher():
    """Recording fetcher that writes a fake policy."""
    return RecordingFetcher()


@pytest.fixture
def runner():
    """Credential helper runner answering with valid credentials."""
    return FakeProcessRunner(stdout=b'{"ServerURL": "", "Username": "helper-user", "Secret": "helper-secret"}')

