"""Ordered transform registry and the built-in precedence table."""

from __future__ import annotations

from typing import Callable, Iterator, List

from ..config import BuildConfig
from ..models import Module
from .base import Transform
from .media import FileTransform, InlineMediaTransform
from .script import JsonTransform, ScriptTransform
from .style import StyleTransform

def _source_prefix(config: BuildConfig) -> str:
    try:
        relative = config.source_dir.relative_to(config.root).as_posix()
    except ValueError:
        return config.source_dir.as_posix()
    return "" if relative == "." else relative


# First match wins, so narrower rules precede the generic file copy.
_BUILTIN_FACTORIES: tuple[tuple[str, Callable[[BuildConfig], Transform]], ...] = (
    ("inline-media", lambda config: InlineMediaTransform(limit=config.inline_limit)),
    ("script", lambda config: ScriptTransform()),
    ("json", lambda config: JsonTransform()),
    ("style", lambda config: StyleTransform()),
    ("file", lambda config: FileTransform(source_root=_source_prefix(config))),
)


class TransformRegistry:
    """Holds transforms in registration order; read-only once frozen."""

    def __init__(self, transforms: List[Transform] | None = None) -> None:
        self._transforms: List[Transform] = []
        self._frozen = False
        for transform in transforms or []:
            self.register(transform)

    def register(self, transform: Transform) -> None:
        if self._frozen:
            raise RuntimeError("Transform registry is frozen; register transforms at startup")
        if not isinstance(transform, Transform):
            raise TypeError(f"{transform!r} is not a Transform")
        if any(existing.name == transform.name for existing in self._transforms):
            raise ValueError(f"Transform '{transform.name}' is already registered")
        self._transforms.append(transform)

    def freeze(self) -> "TransformRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def select(self, module: Module) -> Transform | None:
        """Return the earliest registered transform matching ``module``."""
        for transform in self._transforms:
            if transform.match(module):
                return transform
        return None

    def names(self) -> List[str]:
        return [transform.name for transform in self._transforms]

    def __iter__(self) -> Iterator[Transform]:
        return iter(list(self._transforms))

    def __len__(self) -> int:
        return len(self._transforms)


def default_registry(config: BuildConfig) -> TransformRegistry:
    """Return the frozen built-in registry for ``config``."""
    registry = TransformRegistry()
    for name, factory in _BUILTIN_FACTORIES:
        transform = factory(config)
        if transform.name != name:
            raise TypeError(f"Transform factory for '{name}' built '{transform.name}'")
        registry.register(transform)
    return registry.freeze()


__all__ = ["TransformRegistry", "default_registry"]
