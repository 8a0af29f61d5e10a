"""Style pipeline: strips ``@import`` rules and marks asset references."""

from __future__ import annotations

import re
from typing import List

from ..imports import extract_style_imports
from ..models import STYLE, Artifact, Module
from .base import Transform

ASSET_MARKER = "__assetpipe_asset__"
ASSET_REFERENCE_RE = re.compile(re.escape(ASSET_MARKER) + r"\((?P<id>[^)]*)\)")


def asset_reference(module_id: str) -> str:
    """Return the placeholder the bundler swaps for a final asset URL."""
    return f"{ASSET_MARKER}({module_id})"


class StyleTransform(Transform):
    """Prepares a stylesheet for extraction into its chunk's CSS file.

    ``@import`` rules are removed because imported sheets are emitted ahead
    of the importer. ``url()`` references become placeholders that the
    bundler resolves once media file names are known.
    """

    name = "style"

    def match(self, module: Module) -> bool:
        return module.kind == STYLE

    def apply(self, module: Module) -> Artifact:
        text = module.text
        pieces: List[str] = []
        cursor = 0
        for ref in extract_style_imports(text):
            target = module.target_for(ref.specifier)
            if target is None:
                raise ValueError(f"unresolved reference '{ref.specifier}'")
            statement = text[ref.start:ref.end]
            pieces.append(text[cursor:ref.start])
            if ref.kind == "css-import":
                pieces.append("\n" * statement.count("\n"))
            else:
                pieces.append(f'url("{asset_reference(target)}")')
            cursor = ref.end
        pieces.append(text[cursor:])
        return Artifact(
            name=module.id,
            content="".join(pieces).encode("utf-8"),
            kind="style",
            media_type="text/css",
            module_id=module.id,
        )


__all__ = ["ASSET_MARKER", "ASSET_REFERENCE_RE", "StyleTransform", "asset_reference"]
