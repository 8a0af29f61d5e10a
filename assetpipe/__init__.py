"""Content-addressed asset builds with offline precache manifests."""

from .config import BuildConfig, PrecacheConfig, default_config, load_config
from .errors import BuildError
from .pipeline import BuildPipeline, BuildResult

__all__ = [
    "BuildConfig",
    "BuildError",
    "BuildPipeline",
    "BuildResult",
    "PrecacheConfig",
    "__version__",
    "default_config",
    "load_config",
]

__version__ = "0.1.0"
