"""Error taxonomy for build failures.

Every error aborts the build. None are retried or downgraded to warnings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class BuildError(RuntimeError):
    """Base class for failures that terminate a build."""


class ResolutionError(BuildError):
    """Raised when an import cannot be resolved to a file."""


class UnresolvedImportError(ResolutionError):
    """Raised when no candidate file exists for an import specifier."""

    def __init__(self, importer: Path | str, specifier: str, reason: str | None = None) -> None:
        self.importer = str(importer)
        self.specifier = specifier
        self.reason = reason
        message = f"Module not found: cannot resolve '{specifier}' in {self.importer}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class CycleError(BuildError):
    """Raised when script modules import each other in a cycle."""


class CyclicDependencyError(CycleError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__("Circular script import: " + " -> ".join(self.cycle))


class TransformError(BuildError):
    """Raised when a transform rejects a module."""

    def __init__(self, module: Path | str, cause: BaseException | str) -> None:
        self.module = str(module)
        self.cause = cause
        super().__init__(f"Failed to transform {self.module}: {cause}")


class DuplicateLogicalNameError(BuildError):
    """Raised when two artifacts claim one logical name with different content."""

    def __init__(self, name: str, first_digest: str, second_digest: str) -> None:
        self.name = name
        self.first_digest = first_digest
        self.second_digest = second_digest
        super().__init__(
            f"Conflicting assets for '{name}': digests {first_digest[:8]} and {second_digest[:8]}"
        )


class HashCollisionError(BuildError):
    """Raised when distinct contents share a truncated digest for one name."""

    def __init__(self, name: str, short_digest: str) -> None:
        self.name = name
        self.short_digest = short_digest
        super().__init__(
            f"Hash collision for '{name}': distinct contents share digest prefix {short_digest}"
        )


class PolicyError(BuildError):
    """Raised when the precache policy is malformed."""


__all__ = [
    "BuildError",
    "CycleError",
    "CyclicDependencyError",
    "DuplicateLogicalNameError",
    "HashCollisionError",
    "PolicyError",
    "ResolutionError",
    "TransformError",
    "UnresolvedImportError",
]
