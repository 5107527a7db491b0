"""
Fetch policies from local files, HTTP(S) servers and OCI registries, and
cache them in a local store.
"""
from .docker_config import BasicAuth, DockerConfig, read_docker_config_json_file
from .errors import (
    CredentialEncodingInvalid,
    CredentialHelperError,
    CredentialHelperExitedNonZero,
    CredentialHelperResponseMalformed,
    CredentialHelperSpawnFailed,
    FetchFailed,
    ImageReferenceInvalid,
    InvalidDestination,
    InvalidURI,
    PolicyFetcherError,
    StoreIOError,
    UnsupportedScheme,
)
from .fetch import LocalFile, MainStore, PullDestination, StoreDestination, fetch_policy, pull_destination
from .sources import Sources, read_sources_file
from .store import PolicyPath, Store, StoredPolicy, default_store_root

__version__ = "0.7.8"

__all__ = [
    "fetch_policy",
    "pull_destination",
    "MainStore",
    "StoreDestination",
    "LocalFile",
    "PullDestination",
    "Store",
    "StoredPolicy",
    "PolicyPath",
    "default_store_root",
    "BasicAuth",
    "DockerConfig",
    "read_docker_config_json_file",
    "Sources",
    "read_sources_file",
    "PolicyFetcherError",
    "InvalidURI",
    "UnsupportedScheme",
    "InvalidDestination",
    "StoreIOError",
    "FetchFailed",
    "CredentialHelperError",
    "CredentialHelperSpawnFailed",
    "CredentialHelperExitedNonZero",
    "CredentialHelperResponseMalformed",
    "CredentialEncodingInvalid",
    "ImageReferenceInvalid",
]
