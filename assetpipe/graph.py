"""Module graph construction from entry points."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Tuple

from .config import BuildConfig
from .errors import CyclicDependencyError, ResolutionError, UnresolvedImportError
from .imports import extract_script_imports, extract_style_imports, unique_specifiers
from .logging import get_logger
from .models import SCRIPT, STYLE, Dependency, DependencyGraph, Module, detect_kind
from .resolver import Resolver

_VISITING = 1
_DONE = 2


class ModuleGraphBuilder:
    """Walks entry points and resolves imports into a dependency graph."""

    def __init__(self, config: BuildConfig, resolver: Resolver | None = None) -> None:
        self.config = config
        self.resolver = resolver or Resolver(config)
        self.logger = get_logger("graph")

    def build(self, entry_paths: Mapping[str, Path] | set[Path] | list[Path]) -> DependencyGraph:
        """Return the dependency graph reachable from ``entry_paths``.

        Entries are visited in sorted order and imports in source order, so
        identical file system contents always produce identical ordering.
        """
        graph = DependencyGraph(root=self.config.root)
        for name, path in self._normalize_entries(entry_paths):
            resolved = path.resolve()
            if not resolved.is_file():
                raise UnresolvedImportError("<entry>", str(path), "entry point does not exist")
            graph.entries[name] = self._load(graph, resolved)

        self._check_script_cycles(graph)
        self.logger.debug(
            "Resolved %d modules from %d entries", len(graph), len(graph.entries)
        )
        return graph

    def _normalize_entries(
        self, entry_paths: Mapping[str, Path] | set[Path] | list[Path]
    ) -> List[Tuple[str, Path]]:
        if isinstance(entry_paths, Mapping):
            return sorted((name, Path(path)) for name, path in entry_paths.items())
        entries: Dict[str, Path] = {}
        for path in sorted(Path(item) for item in entry_paths):
            name = path.name.split(".", 1)[0]
            if name in entries:
                raise ResolutionError(f"Entry points {entries[name]} and {path} share chunk name '{name}'")
            entries[name] = path
        return sorted(entries.items())

    def _load(self, graph: DependencyGraph, path: Path) -> str:
        """Load ``path`` and its dependencies iteratively, returning its id."""
        root_id = self.module_id(path)
        if root_id in graph:
            return root_id

        pending: List[Path] = [path]
        # Graph insertion order is the order modules are first discovered.
        discovered = {root_id}
        while pending:
            current = pending.pop(0)
            module = self._read_module(current)
            graph.modules[module.id] = module
            for dependency in module.dependencies:
                if dependency.target in graph or dependency.target in discovered:
                    continue
                discovered.add(dependency.target)
                pending.append(self._path_for(dependency.target))
        return root_id

    def _read_module(self, path: Path) -> Module:
        kind = detect_kind(path)
        content = path.read_bytes()
        module_id = self.module_id(path)

        specifiers: List[Tuple[str, bool]] = []
        if kind in (SCRIPT, STYLE) and path.suffix.lower() != ".json":
            try:
                text = content.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ResolutionError(f"{path} is not valid UTF-8: {exc}") from exc
            if kind == SCRIPT:
                specifiers = unique_specifiers(extract_script_imports(text))
            else:
                specifiers = unique_specifiers(extract_style_imports(text))

        dependencies: List[Dependency] = []
        for specifier, dynamic in specifiers:
            lookup = _style_specifier(specifier) if kind == STYLE else specifier
            target = self.resolver.resolve(lookup, path)
            dependencies.append(Dependency(specifier, self.module_id(target), dynamic))

        return Module(
            path=path,
            id=module_id,
            kind=kind,
            content=content,
            specifiers=tuple(spec for spec, _ in specifiers),
            dependencies=tuple(dependencies),
        )

    def module_id(self, path: Path) -> str:
        """Return the POSIX path of ``path`` relative to the project root."""
        resolved = path.resolve()
        try:
            return resolved.relative_to(self.config.root).as_posix()
        except ValueError:
            return resolved.as_posix()

    def _path_for(self, module_id: str) -> Path:
        candidate = Path(module_id)
        if candidate.is_absolute():
            return candidate
        return self.config.root / candidate

    def _check_script_cycles(self, graph: DependencyGraph) -> None:
        """Fail on cycles over static script-to-script edges.

        Style modules may include each other cyclically; dynamic imports are
        loaded lazily and never close a cycle.
        """
        state: Dict[str, int] = {}

        def _script_targets(module_id: str) -> Iterator[str]:
            return iter(
                [target for target in graph.dependencies_of(module_id) if graph[target].kind == SCRIPT]
            )

        for module in graph.iter_modules():
            if module.kind != SCRIPT or module.id in state:
                continue
            state[module.id] = _VISITING
            path = [module.id]
            stack = [_script_targets(module.id)]
            while stack:
                for target in stack[-1]:
                    if state.get(target) == _VISITING:
                        start = path.index(target)
                        raise CyclicDependencyError(path[start:] + [target])
                    if target not in state:
                        state[target] = _VISITING
                        path.append(target)
                        stack.append(_script_targets(target))
                        break
                else:
                    stack.pop()
                    state[path.pop()] = _DONE


def _style_specifier(specifier: str) -> str:
    """Map CSS reference syntax onto module specifiers.

    ``url(logo.png)`` is relative to the stylesheet and ``~pkg`` names a
    module directory package.
    """
    if specifier.startswith("~"):
        return specifier[1:]
    if specifier.startswith(("./", "../", "/")):
        return specifier
    return "./" + specifier


__all__ = ["ModuleGraphBuilder"]
