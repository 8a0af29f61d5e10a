"""Core data models shared across pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .hashing import Digest, hash_artifact, render_path

SCRIPT = "script"
STYLE = "style"
BINARY = "binary"

_KIND_BY_SUFFIX = {
    ".js": SCRIPT,
    ".jsx": SCRIPT,
    ".mjs": SCRIPT,
    ".json": SCRIPT,
    ".css": STYLE,
}


def detect_kind(path: Path | str) -> str:
    """Classify a source file as script, style or binary by suffix."""
    suffix = Path(path).suffix.lower()
    return _KIND_BY_SUFFIX.get(suffix, BINARY)


@dataclass(frozen=True)
class Dependency:
    """A resolved import edge."""

    specifier: str
    target: str
    dynamic: bool = False


@dataclass(frozen=True)
class Module:
    """A source file discovered while walking the import graph."""

    path: Path
    id: str
    kind: str
    content: bytes
    specifiers: Tuple[str, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()

    @property
    def suffix(self) -> str:
        return self.path.suffix.lower()

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def target_for(self, specifier: str) -> Optional[str]:
        for dependency in self.dependencies:
            if dependency.specifier == specifier:
                return dependency.target
        return None


@dataclass
class DependencyGraph:
    """Modules keyed by id, in deterministic discovery order."""

    root: Path
    entries: Dict[str, str] = field(default_factory=dict)
    modules: Dict[str, Module] = field(default_factory=dict)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self.modules

    def __len__(self) -> int:
        return len(self.modules)

    def __getitem__(self, module_id: str) -> Module:
        return self.modules[module_id]

    def dependencies_of(self, module_id: str, *, include_dynamic: bool = False) -> List[str]:
        module = self.modules[module_id]
        return [
            dep.target
            for dep in module.dependencies
            if include_dynamic or not dep.dynamic
        ]

    def walk(self, start: str, *, exclude: frozenset[str] = frozenset()) -> List[str]:
        """Return modules reachable from ``start`` over static edges, dependencies first."""
        order: List[str] = []
        if start in exclude:
            return order
        seen: set[str] = set(exclude)
        seen.add(start)
        # Explicit stack: import chains can be deeper than the recursion limit.
        stack: List[Tuple[str, Iterator[str]]] = [(start, iter(self.dependencies_of(start)))]
        while stack:
            module_id, pending = stack[-1]
            for target in pending:
                if target not in seen:
                    seen.add(target)
                    stack.append((target, iter(self.dependencies_of(target))))
                    break
            else:
                stack.pop()
                order.append(module_id)
        return order

    def split_points(self, members: List[str]) -> List[str]:
        """Return dynamic import targets of ``members`` in source order."""
        targets: List[str] = []
        for module_id in members:
            for dep in self.modules[module_id].dependencies:
                if dep.dynamic and dep.target not in targets:
                    targets.append(dep.target)
        return targets

    def iter_modules(self) -> Iterator[Module]:
        return iter(self.modules.values())


@dataclass(frozen=True)
class Artifact:
    """A finalized output blob.

    ``path_template`` holds a ``{hash}`` placeholder for content-addressed
    outputs; other templates are used verbatim.
    """

    name: str
    content: bytes
    kind: str
    media_type: str
    path_template: str = ""
    module_id: Optional[str] = None
    parent: Optional[str] = None
    sources: Tuple[str, ...] = ()

    @cached_property
    def digest(self) -> Digest:
        return hash_artifact(self)

    @property
    def output_path(self) -> str:
        return render_path(self.path_template, self.digest)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def emitted(self) -> bool:
        return self.kind != "inline"

