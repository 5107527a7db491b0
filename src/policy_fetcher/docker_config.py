"""
Docker registry credentials.

Reads a Docker ``config.json`` and turns it into validated per-registry
credentials. Parsing is done in two stages:

1. A tolerant raw shape (:class:`DockerConfigRaw`) that accepts any
   syntactically valid document, because tools and users edit this file
   and may leave entries without an ``auth`` key
   (see https://github.com/kubernetes/kubectl/issues/571).
2. A strict validation (:func:`validate_docker_config`) that decodes every
   ``auth`` entry and drops the ones that are unusable without failing the
   whole document.

When the config names a ``credsStore``, credentials can also be obtained
from the ``docker-credential-<store>`` helper program.
"""
from __future__ import annotations

import base64
import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import (
    CredentialEncodingInvalid,
    CredentialHelperExitedNonZero,
    CredentialHelperResponseMalformed,
    CredentialHelperSpawnFailed,
)
from .reference import parse_image_reference

__all__ = [
    "RegistryAuthRaw",
    "DockerConfigRaw",
    "BasicAuth",
    "RegistryAuth",
    "DockerConfig",
    "DiscardedEntry",
    "ValidatedConfig",
    "ProcessResult",
    "ProcessRunner",
    "SubprocessRunner",
    "validate_docker_config",
    "read_docker_config_json_file",
    "get_auth_from_credentials_helper",
    "CREDENTIAL_HELPER_PREFIX",
]

logger = logging.getLogger(__name__)

CREDENTIAL_HELPER_PREFIX = "docker-credential-"


class RegistryAuthRaw(BaseModel):
    """One entry of the ``auths`` map, as found on disk."""
    model_config = ConfigDict(extra="ignore")

    auth: Optional[str] = Field(default=None, description="base64 of username:password")


class DockerConfigRaw(BaseModel):
    """Docker config document, as found on disk. Unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    auths: Optional[Dict[str, RegistryAuthRaw]] = None
    creds_store: Optional[str] = Field(default=None, alias="credsStore")


@dataclass(frozen=True)
class BasicAuth:
    """
    Username and password for a registry.

    Both are kept as raw bytes: nothing guarantees the decoded ``auth``
    entry is valid text until it is handed to a transport.
    """
    username: bytes
    password: bytes

    def to_credentials(self) -> Tuple[str, str]:
        """
        Return ``(username, password)`` as text for a registry client.

        Raises:
            CredentialEncodingInvalid: If either part is not valid UTF-8
        """
        try:
            username = self.username.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CredentialEncodingInvalid(f"username is not utf8: {e}") from e
        try:
            password = self.password.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CredentialEncodingInvalid(f"password is not utf8: {e}") from e
        return username, password

    def __repr__(self) -> str:
        return f"BasicAuth(username={self.username!r}, password=<redacted>)"


# Only basic auth is supported for now
RegistryAuth = Union[BasicAuth]


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and standard output of a finished process."""
    returncode: int
    stdout: bytes


@runtime_checkable
class ProcessRunner(Protocol):
    """Runs ``program arg``, feeding ``input`` on standard input."""

    def run(self, program: str, arg: str, input: bytes) -> ProcessResult:
        """
        Run the program to completion.

        Raises:
            OSError: If the program cannot be started
        """
        ...


class SubprocessRunner:
    """ProcessRunner backed by :func:`subprocess.run`."""

    def run(self, program: str, arg: str, input: bytes) -> ProcessResult:
        result = subprocess.run(
            [program, arg],
            input=input,
            stdout=subprocess.PIPE,
            check=False,
        )
        return ProcessResult(returncode=result.returncode, stdout=result.stdout)


class _CredentialsHelperResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    Username: str
    Secret: str


def get_auth_from_credentials_helper(
    creds_store: str,
    registry: str,
    runner: Optional[ProcessRunner] = None,
) -> BasicAuth:
    """
    Ask ``docker-credential-<creds_store>`` for the credentials of ``registry``.

    The helper is invoked with the ``get`` subcommand and receives the
    registry host on standard input. On success it prints
    ``{"Username": ..., "Secret": ...}``.

    Args:
        creds_store: Helper suffix, e.g. ``"desktop"`` or ``"pass"``
        registry: Registry host[:port]
        runner: Process runner (defaults to a real subprocess)

    Returns:
        BasicAuth built from the helper response

    Raises:
        CredentialHelperSpawnFailed: If the helper cannot be started
        CredentialHelperExitedNonZero: If the helper reports a failure
        CredentialHelperResponseMalformed: If the output is not the expected document
    """
    runner = runner or SubprocessRunner()
    program = f"{CREDENTIAL_HELPER_PREFIX}{creds_store}"
    logger.debug(f"Querying credential helper {program} for {registry}")

    try:
        result = runner.run(program, "get", registry.encode("utf-8"))
    except OSError as e:
        raise CredentialHelperSpawnFailed(
            f"cannot run credential helper {program}: {e}", program
        ) from e

    if result.returncode != 0:
        output = result.stdout.decode("utf-8", errors="replace").strip()
        raise CredentialHelperExitedNonZero(program, result.returncode, output)

    try:
        response = _CredentialsHelperResponse.model_validate_json(result.stdout)
    except ValidationError as e:
        raise CredentialHelperResponseMalformed(
            f"invalid response from credential helper {program}: {e}", program
        ) from e

    return BasicAuth(
        username=response.Username.encode("utf-8"),
        password=response.Secret.encode("utf-8"),
    )


@dataclass(frozen=True)
class DockerConfig:
    """
    Validated Docker config.

    Attributes:
        auths: Credentials keyed by registry host[:port]
        creds_store: Credential helper suffix (``credsStore``), if any
        runner: Process runner used for the credential helper
    """
    auths: Dict[str, RegistryAuth] = field(default_factory=dict)
    creds_store: Optional[str] = None
    runner: ProcessRunner = field(default_factory=SubprocessRunner, compare=False, repr=False)

    @classmethod
    def from_raw(cls, raw: DockerConfigRaw, runner: Optional[ProcessRunner] = None) -> DockerConfig:
        """
        Validate ``raw``, logging every host entry that gets dropped.
        """
        validated = validate_docker_config(raw)
        for entry in validated.discarded:
            if entry.malformed:
                logger.error(
                    f"error parsing host configuration, host ignored: "
                    f"host={entry.host} error={entry.reason}"
                )
            else:
                logger.debug(f"no credentials for host {entry.host}: {entry.reason}")

        config = validated.config
        if runner is not None:
            config = cls(auths=config.auths, creds_store=config.creds_store, runner=runner)
        return config

    def auth(self, image_url: str) -> Optional[RegistryAuth]:
        """
        Look up the configured credentials for the registry of ``image_url``.

        Args:
            image_url: Image reference, optionally prefixed by ``registry://``

        Returns:
            Credentials, or None when the registry has no ``auths`` entry

        Raises:
            ImageReferenceInvalid: If ``image_url`` is not a valid reference
        """
        if image_url.startswith("registry://"):
            image_url = image_url[len("registry://"):]
        reference = parse_image_reference(image_url)
        return self.auths.get(reference.registry)

    def get_auth_from_credentials_helper_if_present(self, registry: str) -> Optional[RegistryAuth]:
        """
        Query the credential helper for ``registry`` if ``credsStore`` is set.

        Returns:
            Credentials, or None when no helper is configured

        Raises:
            CredentialHelperError: If the helper is configured but fails
        """
        if self.creds_store is None:
            return None
        return get_auth_from_credentials_helper(self.creds_store, registry, self.runner)

    def resolve(self, image_url: str) -> Optional[RegistryAuth]:
        """
        Credentials for ``image_url``: the ``auths`` entry first, then the
        credential helper. None means anonymous access.
        """
        auth = self.auth(image_url)
        if auth is not None:
            logger.debug(f"Using docker config credentials for {image_url}")
            return auth

        if image_url.startswith("registry://"):
            image_url = image_url[len("registry://"):]
        registry = parse_image_reference(image_url).registry
        auth = self.get_auth_from_credentials_helper_if_present(registry)
        if auth is not None:
            logger.debug(f"Using credential helper {self.creds_store} for {registry}")
        return auth


@dataclass(frozen=True)
class DiscardedEntry:
    """
    A host entry left out of the validated config.

    ``malformed`` is False when the entry simply had no ``auth`` key, True
    when the ``auth`` value could not be decoded.
    """
    host: str
    reason: str
    malformed: bool


@dataclass(frozen=True)
class ValidatedConfig:
    """Result of :func:`validate_docker_config`."""
    config: DockerConfig
    discarded: List[DiscardedEntry]


def _decode_basic_auth(auth: str) -> BasicAuth:
    """
    Decode a base64 ``username:password`` entry.

    Raises:
        ValueError: If the value is not base64 or has no ``:`` separator
    """
    try:
        decoded = base64.b64decode(auth, validate=True)
    except ValueError as e:
        raise ValueError(f"invalid base64 encoding: {e}") from e

    if b":" not in decoded:
        raise ValueError("basic auth not in the form username:password")
    username, password = decoded.split(b":", 1)
    return BasicAuth(username=username, password=password)


def validate_docker_config(raw: DockerConfigRaw) -> ValidatedConfig:
    """
    Turn a raw Docker config into validated credentials.

    Entries without ``auth`` and entries whose ``auth`` cannot be decoded
    are dropped and reported in ``discarded``; every other entry is kept.
    This function does not log.
    """
    auths: Dict[str, RegistryAuth] = {}
    discarded: List[DiscardedEntry] = []

    for host, entry in (raw.auths or {}).items():
        if entry.auth is None:
            discarded.append(DiscardedEntry(host=host, reason="no auth entry", malformed=False))
            continue
        try:
            auths[host] = _decode_basic_auth(entry.auth)
        except ValueError as e:
            discarded.append(DiscardedEntry(host=host, reason=str(e), malformed=True))

    return ValidatedConfig(
        config=DockerConfig(auths=auths, creds_store=raw.creds_store),
        discarded=discarded,
    )


def read_docker_config_json_file(path: Union[str, Path], runner: Optional[ProcessRunner] = None) -> DockerConfig:
    """
    Load and validate a Docker ``config.json``.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not JSON or does not have the expected shape
    """
    with open(path, "r") as f:
        document = json.load(f)
    raw = DockerConfigRaw.model_validate(document)
    return DockerConfig.from_raw(raw, runner=runner)
