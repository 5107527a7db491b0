"""
Policy fetcher error classes.

Provides a clear taxonomy of errors that can occur while fetching a policy.
Transport and subprocess failures are mapped onto these classes so callers
see a consistent error interface regardless of the scheme being used.
"""
from __future__ import annotations

from typing import Optional


class PolicyFetcherError(Exception):
    """
    Base class for all policy fetcher errors.
    """
    pass


class InvalidURI(PolicyFetcherError, ValueError):
    """
    The policy URI cannot be used.

    Raised when:
    - The URI does not parse
    - The URI has no host and its scheme is not ``file``
    - A ``file`` URI does not encode a local path
    """

    def __init__(self, message: str, uri: Optional[str] = None):
        super().__init__(message)
        self.uri = uri


class UnsupportedScheme(PolicyFetcherError, ValueError):
    """
    The URI scheme is not one of file, http, https or registry.
    """

    def __init__(self, scheme: str):
        super().__init__(f"unknown scheme: {scheme}")
        self.scheme = scheme


class InvalidDestination(PolicyFetcherError, ValueError):
    """
    The requested destination cannot receive the policy.

    Raised when a directory target is given but the URI has no final path
    segment to use as filename.
    """
    pass


class StoreIOError(PolicyFetcherError, OSError):
    """
    Creating store directories failed.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class FetchFailed(PolicyFetcherError):
    """
    A fetcher could not retrieve the policy.

    Wraps transport errors (connection, TLS, HTTP status), registry
    authentication failures and digest mismatches. The original exception
    is chained as ``__cause__``.
    """

    def __init__(self, message: str, uri: Optional[str] = None):
        super().__init__(message)
        self.uri = uri


class CredentialHelperError(PolicyFetcherError):
    """
    Base class for docker credential helper failures.
    """
    pass


class CredentialHelperSpawnFailed(CredentialHelperError):
    """
    The credential helper program could not be started.
    """

    def __init__(self, message: str, program: str):
        super().__init__(message)
        self.program = program


class CredentialHelperExitedNonZero(CredentialHelperError):
    """
    The credential helper exited with a non-zero status.

    ``output`` holds whatever the helper wrote to standard output, which is
    where helpers report errors such as "credentials not found".
    """

    def __init__(self, program: str, returncode: int, output: str):
        super().__init__(
            f"Error retrieving credentials from credential store {program} "
            f"(exit status {returncode}): {output}"
        )
        self.program = program
        self.returncode = returncode
        self.output = output


class CredentialHelperResponseMalformed(CredentialHelperError):
    """
    The credential helper output is not a ``{"Username", "Secret"}`` document.
    """

    def __init__(self, message: str, program: str):
        super().__init__(message)
        self.program = program


class CredentialEncodingInvalid(PolicyFetcherError, ValueError):
    """
    A stored username or password is not valid UTF-8.
    """
    pass


class ImageReferenceInvalid(PolicyFetcherError, ValueError):
    """
    An image reference cannot be parsed.
    """

    def __init__(self, message: str, reference: Optional[str] = None):
        super().__init__(message)
        self.reference = reference


__all__ = [
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
