"""Tests for the style and media transforms."""

from __future__ import annotations

import base64
import re
from pathlib import Path

import pytest

from assetpipe.models import Dependency, Module, detect_kind
from assetpipe.transforms import FileTransform, InlineMediaTransform, StyleTransform
from assetpipe.transforms.style import ASSET_REFERENCE_RE, asset_reference


def _module(name: str, content: bytes, targets: dict[str, str] | None = None) -> Module:
    path = Path("/project/src") / name
    return Module(
        path=path,
        id=f"src/{name}",
        kind=detect_kind(path),
        content=content,
        dependencies=tuple(Dependency(spec, target) for spec, target in (targets or {}).items()),
    )


def test_style_transform_strips_imports_and_marks_urls() -> None:
    source = b'@import "./base.css";\n.logo {\n  background: url(./logo.png);\n}\n'
    module = _module(
        "app.css", source, {"./base.css": "src/base.css", "./logo.png": "src/logo.png"}
    )

    artifact = StyleTransform().apply(module)
    text = artifact.content.decode("utf-8")

    assert "@import" not in text
    assert 'url("__assetpipe_asset__(src/logo.png)")' in text
    assert text.count("\n") == source.count(b"\n")
    assert artifact.kind == "style"
    assert [match.group("id") for match in ASSET_REFERENCE_RE.finditer(text)] == ["src/logo.png"]


def test_style_transform_leaves_external_urls() -> None:
    source = b".a { background: url(https://cdn.example.com/a.png); }\n"

    text = StyleTransform().apply(_module("app.css", source)).content.decode("utf-8")

    assert text == source.decode("utf-8")


def test_asset_reference_round_trips_through_pattern() -> None:
    match = ASSET_REFERENCE_RE.search(asset_reference("src/img/a b.png"))

    assert match is not None
    assert match.group("id") == "src/img/a b.png"


def test_inline_media_embeds_data_uri() -> None:
    payload = b"GIF89a\x01\x00"
    module = _module("dot.gif", payload)
    transform = InlineMediaTransform(limit=100)

    assert transform.match(module)
    artifact = transform.apply(module)

    assert artifact.kind == "inline"
    assert artifact.emitted is False
    assert artifact.content.decode("ascii") == (
        "data:image/gif;base64," + base64.b64encode(payload).decode("ascii")
    )


@pytest.mark.parametrize(
    ("name", "size"),
    [("big.png", 100), ("icon.svg", 10)],
)
def test_inline_media_ignores_large_or_non_image_files(name: str, size: int) -> None:
    assert not InlineMediaTransform(limit=100).match(_module(name, b"\x00" * size))


def test_file_transform_names_output_by_content_hash() -> None:
    module = _module("fonts/inter.woff2", b"wOF2-data")

    artifact = FileTransform(source_root="src").apply(module)

    assert artifact.name == "static/media/fonts/inter.woff2"
    assert artifact.kind == "media"
    assert re.fullmatch(r"static/media/inter\.[0-9a-f]{8}\.woff2", artifact.output_path)
    assert artifact.output_path == f"static/media/inter.{artifact.digest.short}.woff2"


def test_file_transform_keeps_folders_apart_in_logical_names() -> None:
    transform = FileTransform(source_root="src")

    first = transform.apply(_module("a/logo.svg", b"<svg>a</svg>"))
    second = transform.apply(_module("b/logo.svg", b"<svg>b</svg>"))

    assert first.name == "static/media/a/logo.svg"
    assert second.name == "static/media/b/logo.svg"
    assert first.output_path != second.output_path
    assert first.output_path.startswith("static/media/logo.")


def test_file_transform_without_source_root_uses_module_id() -> None:
    artifact = FileTransform().apply(_module("logo.svg", b"<svg/>"))

    assert artifact.name == "static/media/src/logo.svg"


def test_file_transform_skips_script_and_html_modules() -> None:
    transform = FileTransform()

    assert not transform.match(_module("index.html", b"<html></html>"))
    assert not transform.match(_module("app.js", b""))
    assert not transform.match(_module("data.json", b"{}"))
    assert transform.match(_module("logo.svg", b"<svg/>"))
