"""
URI parsing utilities for policy locations.

Provides consistent parsing and validation of policy URIs across the
supported transport schemes (file, http, https, registry).
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional
from urllib.parse import quote, urlsplit
from urllib.request import url2pathname

from .errors import InvalidURI, UnsupportedScheme

__all__ = ["ParsedURI", "parse_policy_uri", "normalize_path", "SUPPORTED_SCHEMES", "DEFAULT_PORTS"]

SUPPORTED_SCHEMES = ("file", "http", "https", "registry")

# Ports that are dropped from the authority, as a WHATWG URL parser does
DEFAULT_PORTS = {"http": 80, "https": 443}

Scheme = Literal["file", "http", "https", "registry"]

# Dot segments, including their percent-encoded spellings
_SINGLE_DOT_SEGMENTS = {".", "%2e"}
_DOUBLE_DOT_SEGMENTS = {"..", ".%2e", "%2e.", "%2e%2e"}

# Characters left as is when percent-encoding a path
_PATH_SAFE_CHARS = "/:@!$&'()*+,;=~%"


@dataclass(frozen=True)
class ParsedURI:
    """
    Parsed components of a policy URI.

    Attributes:
        scheme: Transport scheme (file, http, https, registry)
        host: Lowercased host, empty for local files
        port: Explicit non-default port, if any
        path: Path component including the leading slash
        original: Original URI string for error messages
    """
    scheme: Scheme
    host: str
    port: Optional[int]
    path: str
    original: str

    @property
    def host_and_port(self) -> str:
        """Authority as it appears in store paths: ``host[:port]``."""
        if self.port is None:
            return self.host
        return f"{self.host}:{self.port}"

    @property
    def filename(self) -> str:
        """Last ``/``-delimited segment of the path (may be empty)."""
        return self.path.split("/")[-1]

    @property
    def tag(self) -> Optional[str]:
        """
        Trailing ``:tag`` of the last path segment, if present.

        For ``registry://host/policy:v1`` this is ``"v1"``; an untagged
        reference returns None.
        """
        name = self.filename
        if ":" not in name:
            return None
        return name.rsplit(":", 1)[1]

    def to_file_path(self) -> Path:
        """
        Convert a ``file`` URI to the local path it encodes.

        Raises:
            InvalidURI: If the URI is not a file URI or names a remote host
        """
        if self.scheme != "file":
            raise InvalidURI(f"cannot retrieve path from uri {self.original}", self.original)
        if self.host not in ("", "localhost"):
            raise InvalidURI(
                f"cannot retrieve path from uri {self.original}: remote host {self.host}",
                self.original,
            )
        if not self.path:
            raise InvalidURI(f"cannot retrieve path from uri {self.original}: empty path", self.original)
        return Path(url2pathname(self.path))

    def __str__(self) -> str:
        return self.original


def normalize_path(path: str) -> str:
    """
    Normalize a URI path the way a WHATWG URL parser does.

    ``.`` and ``..`` segments are resolved (``..`` never climbs above the
    root), a trailing dot segment leaves a trailing slash, and characters
    outside the path set are percent-encoded.

    Examples:
        >>> normalize_path("/a/../../b/./p.wasm")
        '/b/p.wasm'

        >>> normalize_path("/a/b/..")
        '/a/'
    """
    if not path:
        return path

    segments = path[1:].split("/") if path.startswith("/") else path.split("/")
    output = []
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        lowered = segment.lower()
        if lowered in _DOUBLE_DOT_SEGMENTS:
            if output:
                output.pop()
            if last:
                output.append("")
        elif lowered in _SINGLE_DOT_SEGMENTS:
            if last:
                output.append("")
        else:
            output.append(segment)

    return quote("/" + "/".join(output), safe=_PATH_SAFE_CHARS)


def parse_policy_uri(uri: str) -> ParsedURI:
    """
    Parse and validate a policy URI.

    Accepts URIs in the form ``{file|http|https|registry}://host[:port]/path``.
    ``file`` URIs may omit the host (``file:///abs/path``).
    The path is normalized with :func:`normalize_path`, so it never climbs
    above the host.

    Args:
        uri: Policy URI to parse

    Returns:
        ParsedURI with validated components

    Raises:
        InvalidURI: If the URI is malformed or lacks a required host
        UnsupportedScheme: If the scheme is not supported

    Examples:
        >>> parse_policy_uri("https://h.example.com:1234/a/p.wasm").host_and_port
        'h.example.com:1234'

        >>> parse_policy_uri("registry://h.example.com/p:tag").tag
        'tag'
    """
    if not uri:
        raise InvalidURI("URI cannot be empty", uri)

    try:
        parts = urlsplit(uri)
        port = parts.port
    except ValueError as e:
        raise InvalidURI(f"invalid URL {uri}: {e}", uri) from e

    scheme = parts.scheme
    if not scheme:
        raise InvalidURI(f"relative URL without a base: {uri}", uri)
    if scheme not in SUPPORTED_SCHEMES:
        raise UnsupportedScheme(scheme)

    host = parts.hostname or ""
    if ":" in host:
        # IPv6 literal, keep the brackets so host:port stays unambiguous
        host = f"[{host}]"

    if scheme != "file" and not host:
        raise InvalidURI(f"invalid URL {uri}: missing host", uri)

    if port is not None and DEFAULT_PORTS.get(scheme) == port:
        port = None

    path = normalize_path(parts.path)
    if scheme in DEFAULT_PORTS and not path:
        path = "/"

    return ParsedURI(
        scheme=scheme,  # type: ignore  # We validated it's one of the literals
        host=host,
        port=port,
        path=path,
        original=uri,
    )
