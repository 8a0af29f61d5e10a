"""Content hashing for cache-busting file names."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .models import Artifact

HASH_LENGTH = 8
HASH_PLACEHOLDER = "{hash}"


@dataclass(frozen=True)
class Digest:
    """SHA-256 fingerprint of artifact bytes."""

    full: str

    @property
    def short(self) -> str:
        return self.full[:HASH_LENGTH]

    def __str__(self) -> str:
        return self.short


def digest_bytes(content: bytes) -> Digest:
    """Return the digest of raw bytes.

    Only the bytes participate: no path, timestamp or host information, so
    identical inputs hash identically on every machine.
    """
    return Digest(hashlib.sha256(content).hexdigest())


def hash_artifact(artifact: "Artifact") -> Digest:
    """Return the content digest for a finalized artifact."""
    return digest_bytes(artifact.content)


def render_path(template: str, digest: Digest) -> str:
    """Substitute the truncated digest into an output path template."""
    return template.replace(HASH_PLACEHOLDER, digest.short)


__all__ = [
    "Digest",
    "HASH_LENGTH",
    "HASH_PLACEHOLDER",
    "digest_bytes",
    "hash_artifact",
    "render_path",
]
