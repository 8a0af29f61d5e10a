"""Import specifier resolution against the source tree."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .config import BuildConfig
from .errors import UnresolvedImportError
from .imports import strip_query


def _is_path_like(specifier: str) -> bool:
    return specifier.startswith(("./", "../", "/")) or specifier in {".", ".."}


class Resolver:
    """Resolves import specifiers in a fixed search order.

    1. exact relative path (``./``, ``../``; ``/`` is the source root)
    2. alias table, longest alias first
    3. module directories for bare specifiers

    Each candidate is tried verbatim, then with every configured extension,
    then as a directory holding ``index`` plus an extension.
    """

    def __init__(self, config: BuildConfig) -> None:
        self.config = config
        self.source_dir = config.source_dir
        self._aliases: List[Tuple[str, str]] = sorted(
            config.aliases.items(), key=lambda item: (-len(item[0]), item[0])
        )

    def resolve(self, specifier: str, importer: Path) -> Path:
        target = strip_query(specifier)
        if not target:
            raise UnresolvedImportError(importer, specifier, "empty specifier")

        if _is_path_like(target):
            if target.startswith("/"):
                base = self.source_dir / target.lstrip("/")
            else:
                base = importer.parent / target
            resolved = self._try_candidates(base)
            if resolved is None:
                raise UnresolvedImportError(importer, specifier)
            if not resolved.is_relative_to(self.source_dir):
                raise UnresolvedImportError(
                    importer,
                    specifier,
                    f"relative imports outside of {self.source_dir} are not supported",
                )
            return resolved

        aliased = self._apply_alias(target)
        if aliased is not None:
            target = aliased
            if _is_path_like(aliased):
                base = Path(aliased) if Path(aliased).is_absolute() else self.config.root / aliased
                resolved = self._try_candidates(base)
                if resolved is None:
                    raise UnresolvedImportError(importer, specifier, f"alias target {aliased} not found")
                return resolved

        for module_dir in self._module_roots():
            resolved = self._try_candidates(module_dir / target)
            if resolved is not None:
                return resolved
        raise UnresolvedImportError(importer, specifier)

    def _apply_alias(self, specifier: str) -> Optional[str]:
        for name, replacement in self._aliases:
            if specifier == name:
                return replacement
            if specifier.startswith(name + "/"):
                return replacement + specifier[len(name):]
        return None

    def _module_roots(self) -> Iterable[Path]:
        for module_dir in self.config.module_dirs:
            path = Path(module_dir)
            yield path if path.is_absolute() else self.config.root / path

    def _try_candidates(self, base: Path) -> Optional[Path]:
        if base.is_file():
            return base.resolve()
        for extension in self.config.extensions:
            candidate = base.with_name(base.name + extension)
            if candidate.is_file():
                return candidate.resolve()
        if base.is_dir():
            for extension in self.config.extensions:
                candidate = base / f"index{extension}"
                if candidate.is_file():
                    return candidate.resolve()
        return None


__all__ = ["Resolver"]
