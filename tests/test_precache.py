"""Tests for assetpipe.precache."""

from __future__ import annotations

import logging

import pytest

from assetpipe.config import default_config
from assetpipe.errors import PolicyError
from assetpipe.manifest import Manifest, generate_manifest
from assetpipe.models import Artifact
from assetpipe.precache import PrecachePolicy, plan_precache


def _manifest(index_html: bytes = b"<html>shell</html>", big: bytes = b"") -> Manifest:
    main = Artifact(
        name="main.js",
        content=b"console.log(1);",
        kind="script",
        media_type="application/javascript",
        path_template="static/js/main.{hash}.js",
    )
    artifacts = [
        main,
        Artifact(
            name="main.js.map",
            content=b"{}",
            kind="map",
            media_type="application/json",
            path_template=main.output_path + ".map",
            parent="main.js",
        ),
        Artifact(name="index.html", content=index_html, kind="static", media_type="text/html", path_template="index.html"),
        Artifact(name="favicon.ico", content=b"\x00\x01", kind="static", media_type="image/x-icon", path_template="favicon.ico"),
        Artifact(
            name="asset-manifest.json",
            content=b"{}",
            kind="static",
            media_type="application/json",
            path_template="asset-manifest.json",
        ),
    ]
    if big:
        artifacts.append(
            Artifact(name="video.mp4", content=big, kind="static", media_type="video/mp4", path_template="video.mp4")
        )
    return generate_manifest(artifacts)


def test_plan_excludes_maps_and_exempts_hashed_urls() -> None:
    manifest = _manifest()

    descriptor = plan_precache(manifest, PrecachePolicy(navigate_fallback="/index.html"))

    main = manifest["main.js"]
    assert descriptor.urls() == [f"/{main.path}", "/index.html", "/favicon.ico"]
    assert descriptor.revision_for(f"/{main.path}") is None
    assert descriptor.revision_for("/index.html") == manifest["index.html"].digest.full
    assert descriptor.revision_for("/favicon.ico") == manifest["favicon.ico"].digest.full
    assert descriptor.navigate_fallback == "/index.html"
    assert descriptor.navigate_fallback_allowlist == (r"^(?!/__).*",)


def test_fallback_is_appended_when_excluded_from_entries() -> None:
    manifest = _manifest()
    policy = PrecachePolicy(
        exclude_patterns=("*.map", "asset-manifest.json", "*.html"),
        navigate_fallback="/index.html",
    )

    descriptor = plan_precache(manifest, policy)

    assert descriptor.urls()[-1] == "/index.html"
    assert descriptor.to_list()[-1] == {
        "url": "/index.html",
        "revision": manifest["index.html"].digest.full,
    }
    assert descriptor.urls().count("/index.html") == 1


def test_unknown_fallback_raises_policy_error() -> None:
    with pytest.raises(PolicyError):
        plan_precache(_manifest(), PrecachePolicy(navigate_fallback="/app.html"))


def test_no_fallback_means_no_navigation_routing() -> None:
    descriptor = plan_precache(_manifest(), PrecachePolicy())

    assert descriptor.navigate_fallback is None
    assert descriptor.navigate_fallback_allowlist == ()


def test_only_changed_content_changes_revisions() -> None:
    policy = PrecachePolicy(navigate_fallback="/index.html")

    before = plan_precache(_manifest(index_html=b"<html>v1</html>"), policy)
    after = plan_precache(_manifest(index_html=b"<html>v2</html>"), policy)

    assert before.revision_for("/index.html") != after.revision_for("/index.html")
    assert before.revision_for("/favicon.ico") == after.revision_for("/favicon.ico")
    assert before.urls() == after.urls()


def test_plan_is_deterministic() -> None:
    policy = PrecachePolicy(navigate_fallback="/index.html")

    assert plan_precache(_manifest(), policy) == plan_precache(_manifest(), policy)


def test_oversize_entries_are_skipped_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    manifest = _manifest(big=b"\x00" * 64)
    policy = PrecachePolicy(max_file_size=32)

    with caplog.at_level(logging.DEBUG, logger="assetpipe.precache"):
        descriptor = plan_precache(manifest, policy)

    assert "/video.mp4" not in descriptor.urls()
    assert any("video.mp4" in record.getMessage() for record in caplog.records if record.levelno == logging.WARNING)
    assert any("Total precache size" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize(
    "policy",
    [
        PrecachePolicy(already_hashed_pattern="("),
        PrecachePolicy(navigate_fallback_allowlist=("[",)),
        PrecachePolicy(max_file_size=0),
    ],
)
def test_malformed_policy_raises(policy: PrecachePolicy) -> None:
    with pytest.raises(PolicyError):
        plan_precache(_manifest(), policy)


def test_policy_from_config_uses_public_path(tmp_path) -> None:
    config = default_config(tmp_path).with_overrides(public_path="/app")

    policy = PrecachePolicy.from_config(config, navigate_fallback="/app/index.html")
    descriptor = plan_precache(_manifest(), policy)

    assert "/app/favicon.ico" in descriptor.urls()
    assert descriptor.navigate_fallback == "/app/index.html"
