"""Precache planning for the offline-cache service worker."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Dict, List, Optional, Tuple

from .config import DEFAULT_MAX_PRECACHE_FILE_SIZE, BuildConfig
from .errors import PolicyError
from .logging import get_logger
from .manifest import Manifest, ManifestEntry

logger = get_logger("precache")


@dataclass(frozen=True)
class PrecachePolicy:
    """Which manifest entries go offline, and how they are revisioned.

    ``exclude_patterns`` are globs tested against both the logical name and
    the output path. ``already_hashed_pattern`` is a regular expression
    searched in the output path; matching entries get a ``None`` revision
    because their URL changes whenever their content does.
    """

    exclude_patterns: Tuple[str, ...] = ("*.map", "asset-manifest.json")
    navigate_fallback: Optional[str] = None
    navigate_fallback_allowlist: Tuple[str, ...] = (r"^(?!/__).*",)
    already_hashed_pattern: Optional[str] = r"\.\w{8}\."
    max_file_size: int = DEFAULT_MAX_PRECACHE_FILE_SIZE
    public_path: str = "/"

    @classmethod
    def from_config(cls, config: BuildConfig, *, navigate_fallback: Optional[str] = None) -> "PrecachePolicy":
        settings = config.precache
        return cls(
            exclude_patterns=tuple(settings.exclude),
            navigate_fallback=navigate_fallback or settings.navigate_fallback,
            navigate_fallback_allowlist=tuple(settings.navigate_fallback_allowlist),
            already_hashed_pattern=settings.already_hashed_pattern,
            max_file_size=settings.max_file_size,
            public_path=config.public_path,
        )


@dataclass(frozen=True)
class PrecacheEntry:
    url: str
    revision: Optional[str]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"url": self.url, "revision": self.revision}


@dataclass(frozen=True)
class PrecacheDescriptor:
    """Ordered (url, revision) pairs plus navigation routing settings."""

    entries: Tuple[PrecacheEntry, ...] = ()
    navigate_fallback: Optional[str] = None
    navigate_fallback_allowlist: Tuple[str, ...] = field(default_factory=tuple)

    def urls(self) -> List[str]:
        return [entry.url for entry in self.entries]

    def revision_for(self, url: str) -> Optional[str]:
        for entry in self.entries:
            if entry.url == url:
                return entry.revision
        raise KeyError(url)

    def to_list(self) -> List[Dict[str, Optional[str]]]:
        return [entry.to_dict() for entry in self.entries]


def plan_precache(manifest: Manifest, policy: PrecachePolicy) -> PrecacheDescriptor:
    """Decide which manifest entries must be available offline.

    Entries keep manifest order. The result depends only on the manifest
    and the policy, so unchanged inputs give an identical descriptor.
    """
    hashed = _compile(policy.already_hashed_pattern, "already_hashed_pattern")
    allowlist = tuple(
        _compile(pattern, "navigate_fallback_allowlist") for pattern in policy.navigate_fallback_allowlist
    )
    if policy.max_file_size <= 0:
        raise PolicyError("max_file_size must be positive")

    entries: List[PrecacheEntry] = []
    total_size = 0
    for entry in manifest:
        if _excluded(entry, policy.exclude_patterns):
            continue
        if entry.size > policy.max_file_size:
            logger.warning(
                "Skipping static resource %s (%d bytes): over the %d byte precache limit",
                entry.path,
                entry.size,
                policy.max_file_size,
            )
            continue
        revision = None if hashed is not None and hashed.search(entry.path) else entry.digest.full
        entries.append(PrecacheEntry(url=policy.public_path + entry.path, revision=revision))
        total_size += entry.size

    fallback = policy.navigate_fallback
    if fallback:
        target = _fallback_target(manifest, policy)
        if fallback not in {entry.url for entry in entries}:
            entries.append(PrecacheEntry(url=fallback, revision=target.digest.full))
            total_size += target.size

    logger.debug("Total precache size is %d bytes for %d resources", total_size, len(entries))
    return PrecacheDescriptor(
        entries=tuple(entries),
        navigate_fallback=fallback,
        navigate_fallback_allowlist=tuple(pattern.pattern for pattern in allowlist) if fallback else (),
    )


def _fallback_target(manifest: Manifest, policy: PrecachePolicy) -> ManifestEntry:
    for entry in manifest:
        if policy.public_path + entry.path == policy.navigate_fallback:
            return entry
    raise PolicyError(
        f"navigate_fallback {policy.navigate_fallback} does not match any manifest entry"
    )


def _excluded(entry: ManifestEntry, patterns: Tuple[str, ...]) -> bool:
    return any(
        fnmatchcase(entry.name, pattern) or fnmatchcase(entry.path, pattern)
        for pattern in patterns
    )


def _compile(pattern: Optional[str], option: str) -> Optional[re.Pattern[str]]:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise PolicyError(f"Invalid {option} pattern {pattern!r}: {exc}") from exc


__all__ = ["PrecacheDescriptor", "PrecacheEntry", "PrecachePolicy", "plan_precache"]
