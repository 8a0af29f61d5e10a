"""Binary asset transforms: inline data URIs and hashed file copies."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import PurePosixPath

from ..models import BINARY, Artifact, Module
from .base import Transform

INLINE_IMAGE_SUFFIXES = frozenset({".bmp", ".gif", ".jpg", ".jpeg", ".png"})
_FILE_EXCLUDED_SUFFIXES = frozenset({".js", ".html", ".json"})


def guess_media_type(name: str) -> str:
    media_type, _ = mimetypes.guess_type(name)
    return media_type or "application/octet-stream"


class InlineMediaTransform(Transform):
    """Embeds small images as ``data:`` URIs instead of emitting files."""

    name = "inline-media"

    def __init__(self, limit: int) -> None:
        self.limit = limit

    def match(self, module: Module) -> bool:
        return (
            module.kind == BINARY
            and module.suffix in INLINE_IMAGE_SUFFIXES
            and len(module.content) < self.limit
        )

    def apply(self, module: Module) -> Artifact:
        media_type = guess_media_type(module.path.name)
        encoded = base64.b64encode(module.content).decode("ascii")
        return Artifact(
            name=module.id,
            content=f"data:{media_type};base64,{encoded}".encode("ascii"),
            kind="inline",
            media_type=media_type,
            module_id=module.id,
        )


class FileTransform(Transform):
    """Copies any other asset to ``static/media/<name>.<hash><ext>``.

    The logical name keeps the directories below the source dir, so two
    ``logo.svg`` files in different folders get distinct manifest entries.
    The hashed output path stays flat and the content hash keeps it apart.
    """

    name = "file"

    def __init__(self, source_root: str = "") -> None:
        self.source_root = source_root.strip("/")

    def match(self, module: Module) -> bool:
        return module.suffix not in _FILE_EXCLUDED_SUFFIXES

    def logical_name(self, module: Module) -> str:
        prefix = self.source_root + "/" if self.source_root else ""
        relative = module.id[len(prefix):] if prefix and module.id.startswith(prefix) else module.id
        return f"static/media/{relative}"

    def apply(self, module: Module) -> Artifact:
        filename = PurePosixPath(module.path.name)
        suffix = filename.suffix
        stem = filename.name[: -len(suffix)] if suffix else filename.name
        return Artifact(
            name=self.logical_name(module),
            content=module.content,
            kind="media",
            media_type=guess_media_type(filename.name),
            path_template=f"static/media/{stem}.{{hash}}{suffix}",
            module_id=module.id,
        )


__all__ = ["FileTransform", "InlineMediaTransform", "guess_media_type"]
