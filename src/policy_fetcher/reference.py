"""
OCI image reference parsing.

Splits ``[registry/]repository[:tag][@digest]`` into its components using
the Docker normalization rules, so a reference can be matched against the
registry hosts listed in a Docker config.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .errors import ImageReferenceInvalid

__all__ = ["ImageReference", "parse_image_reference", "DEFAULT_REGISTRY"]

DEFAULT_REGISTRY = "docker.io"

_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_DOMAIN_RE = re.compile(
    rf"^(?:{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*|\[[0-9a-fA-F:]+\])(?::[0-9]+)?$"
)
_PATH_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|[-]*)[a-z0-9]+)*$")
_TAG_RE = re.compile(r"^[\w][\w.-]{0,127}$", re.ASCII)
_DIGEST_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}$")

NAME_TOTAL_LENGTH_MAX = 255


@dataclass(frozen=True)
class ImageReference:
    """
    Components of an OCI image reference.

    Attributes:
        registry: Registry host[:port] (``docker.io`` when omitted)
        repository: Repository path within the registry
        tag: Tag, if any
        digest: Digest (``algo:hex``), if any
    """
    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    def whole(self) -> str:
        """Canonical string form of the reference."""
        s = f"{self.registry}/{self.repository}"
        if self.tag:
            s += f":{self.tag}"
        if self.digest:
            s += f"@{self.digest}"
        return s


def parse_image_reference(reference: str) -> ImageReference:
    """
    Parse an image reference.

    Args:
        reference: e.g. ``ghcr.io/org/policy:v1``, ``localhost:5000/p``,
            ``busybox``

    Returns:
        ImageReference with the registry made explicit

    Raises:
        ImageReferenceInvalid: If the reference does not follow the
            distribution reference grammar

    Examples:
        >>> parse_image_reference("ghcr.io/org/policy:v1").registry
        'ghcr.io'

        >>> parse_image_reference("busybox").repository
        'library/busybox'
    """
    if not reference:
        raise ImageReferenceInvalid("image reference cannot be empty", reference)

    remainder = reference
    digest = None
    if "@" in remainder:
        remainder, digest = remainder.split("@", 1)
        if not _DIGEST_RE.match(digest):
            raise ImageReferenceInvalid(f"invalid digest in image reference: {reference}", reference)

    tag = None
    last_slash = remainder.rfind("/")
    last_colon = remainder.rfind(":")
    if last_colon > last_slash:
        remainder, tag = remainder[:last_colon], remainder[last_colon + 1:]
        if not _TAG_RE.match(tag):
            raise ImageReferenceInvalid(f"invalid tag in image reference: {reference}", reference)

    if not remainder:
        raise ImageReferenceInvalid(f"image reference has no repository: {reference}", reference)
    if len(remainder) > NAME_TOTAL_LENGTH_MAX:
        raise ImageReferenceInvalid(f"repository name too long: {reference}", reference)

    components = remainder.split("/")
    first = components[0]
    if len(components) > 1 and ("." in first or ":" in first or first == "localhost"):
        registry = first
        path_components = components[1:]
        if not _DOMAIN_RE.match(registry):
            raise ImageReferenceInvalid(f"invalid registry in image reference: {reference}", reference)
    else:
        registry = DEFAULT_REGISTRY
        path_components = components
        if len(path_components) == 1:
            path_components = ["library"] + path_components

    for component in path_components:
        if not _PATH_COMPONENT_RE.match(component):
            raise ImageReferenceInvalid(
                f"invalid repository component {component!r} in image reference: {reference}",
                reference,
            )

    return ImageReference(
        registry=registry,
        repository="/".join(path_components),
        tag=tag,
        digest=digest,
    )
