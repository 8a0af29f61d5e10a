"""Tests for assetpipe.transforms.registry."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetpipe.config import default_config
from assetpipe.models import Artifact, Module, detect_kind
from assetpipe.transforms import ScriptTransform, Transform, TransformRegistry, default_registry


def _module(name: str, content: bytes = b"") -> Module:
    path = Path("/project/src") / name
    return Module(path=path, id=f"src/{name}", kind=detect_kind(path), content=content)


class _Upper(Transform):
    name = "upper"

    def match(self, module: Module) -> bool:
        return module.suffix == ".txt"

    def apply(self, module: Module) -> Artifact:
        return Artifact(
            name=module.id,
            content=module.content.upper(),
            kind="media",
            media_type="text/plain",
            module_id=module.id,
        )


@pytest.fixture
def registry(tmp_path: Path) -> TransformRegistry:
    return default_registry(default_config(tmp_path))


def test_default_registry_precedence(registry: TransformRegistry) -> None:
    assert registry.names() == ["inline-media", "script", "json", "style", "file"]
    assert registry.frozen is True
    assert len(registry) == 5


@pytest.mark.parametrize(
    ("name", "content", "expected"),
    [
        ("logo.png", b"\x89PNG" + b"\x00" * 10, "inline-media"),
        ("photo.png", b"\x00" * 20000, "file"),
        ("app.js", b"", "script"),
        ("app.jsx", b"", "script"),
        ("data.json", b"{}", "json"),
        ("theme.css", b"", "style"),
        ("icon.svg", b"<svg/>", "file"),
        ("font.woff2", b"\x00", "file"),
    ],
)
def test_select_returns_first_match(
    registry: TransformRegistry, name: str, content: bytes, expected: str
) -> None:
    transform = registry.select(_module(name, content))

    assert transform is not None
    assert transform.name == expected


def test_select_returns_none_for_unhandled_module(registry: TransformRegistry) -> None:
    assert registry.select(_module("page.html", b"<html></html>")) is None


def test_frozen_registry_rejects_registration(registry: TransformRegistry) -> None:
    with pytest.raises(RuntimeError):
        registry.register(_Upper())


def test_registry_rejects_duplicate_names() -> None:
    registry = TransformRegistry([ScriptTransform()])

    with pytest.raises(ValueError):
        registry.register(ScriptTransform())


def test_registry_rejects_non_transforms() -> None:
    registry = TransformRegistry()

    with pytest.raises(TypeError):
        registry.register(object())  # type: ignore[arg-type]


def test_registration_order_decides_precedence() -> None:
    registry = TransformRegistry([_Upper()])
    registry.register(ScriptTransform())

    assert registry.select(_module("notes.txt", b"hi")).name == "upper"
    assert [transform.name for transform in registry] == ["upper", "script"]


def test_inline_limit_follows_config(tmp_path: Path) -> None:
    config = default_config(tmp_path).with_overrides(inline_limit=8)
    registry = default_registry(config)

    assert registry.select(_module("tiny.gif", b"GIF89")).name == "inline-media"
    assert registry.select(_module("large.gif", b"GIF89a-larger")).name == "file"
