"""Manifest generation: logical asset names to hashed output paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import DuplicateLogicalNameError, HashCollisionError
from .hashing import Digest
from .models import Artifact

ASSET_MANIFEST_FILENAME = "asset-manifest.json"


@dataclass(frozen=True)
class ManifestEntry:
    """One logical asset and where it lands in the build directory."""

    name: str
    path: str
    digest: Digest
    size: int
    kind: str


@dataclass
class Manifest:
    """Ordered mapping of logical names to manifest entries."""

    entries: Dict[str, ManifestEntry] = field(default_factory=dict)

    def __iter__(self) -> Iterator[ManifestEntry]:
        return iter(self.entries.values())

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __getitem__(self, name: str) -> ManifestEntry:
        return self.entries[name]

    def find_by_path(self, path: str) -> Optional[ManifestEntry]:
        for entry in self.entries.values():
            if entry.path == path:
                return entry
        return None

    def paths(self) -> List[str]:
        return [entry.path for entry in self.entries.values()]

    def to_document(self, public_path: str) -> Dict[str, str]:
        """Return the ``asset-manifest.json`` payload."""
        return {entry.name: public_path + entry.path for entry in self.entries.values()}


def generate_manifest(artifacts: Iterable[Artifact]) -> Manifest:
    """Build the manifest for ``artifacts``; pure function of its input.

    An artifact repeated under one name with the same digest yields one
    entry. Conflicting digests under one name, or distinct contents whose
    truncated digests land on one output path, abort the build.
    """
    manifest = Manifest()
    owners: Dict[str, ManifestEntry] = {}
    for artifact in artifacts:
        if not artifact.emitted:
            continue
        digest = artifact.digest
        existing = manifest.entries.get(artifact.name)
        if existing is not None:
            if existing.digest == digest:
                continue
            if existing.digest.short == digest.short:
                raise HashCollisionError(artifact.name, digest.short)
            raise DuplicateLogicalNameError(artifact.name, existing.digest.full, digest.full)

        path = artifact.output_path
        owner = owners.get(path)
        if owner is not None and owner.digest != digest:
            raise HashCollisionError(artifact.name, digest.short)

        entry = ManifestEntry(
            name=artifact.name,
            path=path,
            digest=digest,
            size=artifact.size,
            kind=artifact.kind,
        )
        manifest.entries[artifact.name] = entry
        owners.setdefault(path, entry)
    return manifest


__all__ = ["ASSET_MANIFEST_FILENAME", "Manifest", "ManifestEntry", "generate_manifest"]
