"""Public directory scanning for files copied verbatim into the build."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

from .models import Artifact
from .transforms.media import guess_media_type

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}


@dataclass(frozen=True)
class IgnoreRule:
    """One ``.assetignore`` line.

    A pattern containing ``/`` is rooted at the public directory and matched
    segment by segment, so ``*`` never crosses a directory boundary. Any
    other pattern matches a file or directory name at any depth.
    """

    pattern: str
    negate: bool = False
    directory_only: bool = False
    rooted: bool = False

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        parts = rel_path.split("/")
        if not self.rooted:
            # Ignored directories are pruned during the walk, so the last
            # segment is the only one left to test.
            return fnmatchcase(parts[-1], self.pattern)
        pattern_parts = self.pattern.split("/")
        return len(parts) == len(pattern_parts) and all(
            fnmatchcase(part, pattern) for part, pattern in zip(parts, pattern_parts)
        )


@dataclass(frozen=True)
class StaticFile:
    """A public file and its path relative to the public directory."""

    path: Path
    relative: str


def parse_ignore_line(line: str) -> IgnoreRule | None:
    """Parse one ignore line; blank lines and ``#`` comments yield ``None``."""
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    negate = line.startswith("!")
    if negate:
        line = line[1:]
    directory_only = line.endswith("/")
    line = line.rstrip("/")
    rooted = "/" in line
    line = line.lstrip("/")
    if not line:
        return None
    return IgnoreRule(pattern=line, negate=negate, directory_only=directory_only, rooted=rooted)


def parse_ignore_file(path: Path) -> List[IgnoreRule]:
    if not path.is_file():
        return []
    rules = (parse_ignore_line(line) for line in path.read_text(encoding="utf-8").splitlines())
    return [rule for rule in rules if rule is not None]


def is_ignored(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    """Apply ``rules`` in order; the last matching rule decides."""
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def _iter_files(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        # os.walk order depends on the file system; sort for stable output.
        dirnames[:] = sorted(
            name
            for name in dirnames
            if not is_ignored(f"{rel_dir}/{name}" if rel_dir else name, True, rules)
        )

        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if is_ignored(rel_path, False, rules):
                continue
            yield current_dir / filename


class PublicScanner:
    """Walks the public directory honoring a ``.assetignore`` file."""

    IGNORE_FILENAME = ".assetignore"

    def scan(self, public_dir: Path) -> List[StaticFile]:
        """Return public files sorted by relative path; empty when absent."""
        public_dir = public_dir.expanduser().resolve()
        if not public_dir.exists():
            return []
        if not public_dir.is_dir():
            raise NotADirectoryError(f"Public path is not a directory: {public_dir}")

        rules = parse_ignore_file(public_dir / self.IGNORE_FILENAME)
        files = [
            StaticFile(path=path, relative=path.relative_to(public_dir).as_posix())
            for path in _iter_files(public_dir, rules)
            if path.name != self.IGNORE_FILENAME
        ]
        files.sort(key=lambda item: item.relative)
        return files

    def artifacts(self, public_dir: Path) -> List[Artifact]:
        """Return unhashed passthrough artifacts for every public file."""
        return [
            Artifact(
                name=item.relative,
                content=item.path.read_bytes(),
                kind="static",
                media_type=guess_media_type(item.relative),
                path_template=item.relative,
            )
            for item in self.scan(public_dir)
        ]


__all__ = [
    "IgnoreRule",
    "PublicScanner",
    "StaticFile",
    "is_ignored",
    "parse_ignore_file",
    "parse_ignore_line",
]
