"""Content transforms applied to modules by the bundler."""

from .base import Transform
from .media import FileTransform, InlineMediaTransform
from .registry import TransformRegistry, default_registry
from .script import JsonTransform, ScriptTransform
from .style import ASSET_MARKER, StyleTransform

__all__ = [
    "ASSET_MARKER",
    "FileTransform",
    "InlineMediaTransform",
    "JsonTransform",
    "ScriptTransform",
    "StyleTransform",
    "Transform",
    "TransformRegistry",
    "default_registry",
]
