"""Writes build outputs to the output directory."""

from __future__ import annotations

import shutil
from pathlib import Path
from posixpath import basename
from typing import Dict, Iterable, List

from .config import BuildConfig
from .errors import BuildError
from .logging import get_logger
from .manifest import ASSET_MANIFEST_FILENAME, Manifest
from .models import Artifact
from .precache import PrecacheDescriptor
from .schemas import (
    AssetManifestDocument,
    PrecacheEntryModel,
    PrecacheManifestDocument,
    ServiceWorkerSettings,
)
from .templating import render_template

PRECACHE_MANIFEST_FILENAME = "precache-manifest.json"


def source_map_comment(artifact: Artifact, map_path: str) -> bytes:
    """Return the trailer linking a chunk to its map file."""
    name = basename(map_path)
    if artifact.kind == "style":
        return f"/*# sourceMappingURL={name} */\n".encode("utf-8")
    return f"//# sourceMappingURL={name}\n".encode("utf-8")


class Emitter:
    """Empties the output directory and writes every manifest entry into it."""

    def __init__(self, config: BuildConfig) -> None:
        self.config = config
        self.logger = get_logger("emitter")

    def emit(
        self,
        artifacts: Iterable[Artifact],
        manifest: Manifest,
        descriptor: PrecacheDescriptor | None = None,
    ) -> List[Path]:
        output_dir = self._prepare_output_dir()
        by_name: Dict[str, Artifact] = {}
        maps: Dict[str, Artifact] = {}
        for artifact in artifacts:
            by_name.setdefault(artifact.name, artifact)
            if artifact.kind == "map" and artifact.parent:
                maps[artifact.parent] = artifact

        written: List[Path] = []
        for entry in manifest:
            artifact = by_name[entry.name]
            content = artifact.content
            source_map = maps.get(artifact.name)
            if source_map is not None:
                content = content + source_map_comment(artifact, source_map.output_path)
            written.append(self._write(output_dir / entry.path, content))

        document = AssetManifestDocument.model_validate(
            manifest.to_document(self.config.public_path)
        )
        written.append(
            self._write_text(output_dir / ASSET_MANIFEST_FILENAME, document.model_dump_json(indent=2))
        )

        if descriptor is not None:
            written.extend(self._emit_precache(output_dir, descriptor))

        self.logger.debug("Wrote %d files to %s", len(written), output_dir)
        return written

    def _emit_precache(self, output_dir: Path, descriptor: PrecacheDescriptor) -> List[Path]:
        entries = [PrecacheEntryModel.model_validate(item) for item in descriptor.to_list()]
        precache_document = PrecacheManifestDocument(entries)
        settings = ServiceWorkerSettings(
            precache=entries,
            navigate_fallback=descriptor.navigate_fallback,
            navigate_fallback_allowlist=list(descriptor.navigate_fallback_allowlist),
        )
        service_worker = render_template("service-worker.js.j2", **settings.model_dump())
        return [
            self._write_text(
                output_dir / PRECACHE_MANIFEST_FILENAME, precache_document.model_dump_json(indent=2)
            ),
            self._write(
                output_dir / self.config.precache.service_worker, service_worker.encode("utf-8")
            ),
        ]

    def _prepare_output_dir(self) -> Path:
        output_dir = self.config.output_dir
        protected = {self.config.root, self.config.source_dir, self.config.public_dir}
        if output_dir in protected or any(output_dir in path.parents for path in protected):
            raise BuildError(f"Refusing to empty {output_dir}: it contains project sources")
        if output_dir.exists():
            shutil.rmtree(output_dir)
        output_dir.mkdir(parents=True)
        return output_dir

    @staticmethod
    def _write(path: Path, content: bytes) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    def _write_text(self, path: Path, text: str) -> Path:
        return self._write(path, (text + "\n").encode("utf-8"))


__all__ = ["Emitter", "PRECACHE_MANIFEST_FILENAME", "source_map_comment"]
