"""Base classes for content transforms."""

from abc import ABC, abstractmethod

from ..models import Artifact, Module


class Transform(ABC):
    """Contract for transforms that turn one module into one artifact.

    Transforms hold only construction-time options and must not keep state
    between modules: the bundler calls ``apply`` from several threads.
    """

    name: str = "transform"

    @abstractmethod
    def match(self, module: Module) -> bool:
        """Return True when this transform handles ``module``."""

    @abstractmethod
    def apply(self, module: Module) -> Artifact:
        """Produce the transformed artifact for ``module``."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"
