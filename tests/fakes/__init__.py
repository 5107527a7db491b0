# Fake implementations for testing

from .fake_fetcher import RecordingFetcher
from .fake_oras import FakeOrasClient, FakeOrasRegistry, wasm_manifest
from .fake_runner import FakeProcessRunner

__all__ = [
    "RecordingFetcher",
    "FakeOrasClient",
    "FakeOrasRegistry",
    "wasm_manifest",
    "FakeProcessRunner",
]
