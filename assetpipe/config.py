"""Configuration loading for assetpipe (.assetpipe.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .errors import BuildError

CONFIG_FILENAME = ".assetpipe.yml"

DEFAULT_EXTENSIONS: Tuple[str, ...] = (".web.js", ".mjs", ".js", ".json", ".web.jsx", ".jsx")
DEFAULT_INLINE_LIMIT = 10000
DEFAULT_MAX_PRECACHE_FILE_SIZE = 2 * 1024 * 1024


class ConfigError(BuildError):
    """Raised when the configuration file cannot be parsed."""


@dataclass(frozen=True)
class PrecacheConfig:
    """Offline precache settings from the ``precache`` block."""

    enabled: bool = True
    exclude: Tuple[str, ...] = ("*.map", "asset-manifest.json")
    navigate_fallback: Optional[str] = None
    navigate_fallback_allowlist: Tuple[str, ...] = (r"^(?!/__).*",)
    already_hashed_pattern: str = r"\.\w{8}\."
    max_file_size: int = DEFAULT_MAX_PRECACHE_FILE_SIZE
    service_worker: str = "service-worker.js"


@dataclass(frozen=True)
class BuildConfig:
    """Build settings, constructed once and passed to every stage."""

    root: Path
    source_dir: Path
    public_dir: Path
    output_dir: Path
    entries: Dict[str, str] = field(default_factory=lambda: {"main": "index.js"})
    public_path: str = "/"
    source_maps: bool = True
    aliases: Dict[str, str] = field(default_factory=dict)
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    module_dirs: Tuple[str, ...] = ("node_modules",)
    inline_limit: int = DEFAULT_INLINE_LIMIT
    workers: Optional[int] = None
    precache: PrecacheConfig = field(default_factory=PrecacheConfig)

    @property
    def public_url(self) -> str:
        """Public path without its trailing slash, as used for fallback URLs."""
        return self.public_path[:-1]

    @property
    def relative_assets(self) -> bool:
        return self.public_path == "./"

    def asset_url(self, output_path: str, *, from_dir: str | None = None) -> str:
        """Return the URL an emitted file is served under.

        With a relative public path, references from files inside ``from_dir``
        climb back to the build root instead.
        """
        if self.relative_assets and from_dir:
            depth = len([part for part in from_dir.split("/") if part])
            return "../" * depth + output_path
        return self.public_path + output_path

    def entry_paths(self) -> Dict[str, Path]:
        return {name: (self.source_dir / rel).resolve() for name, rel in self.entries.items()}

    def with_overrides(self, **overrides: Any) -> "BuildConfig":
        """Return a copy with non-None overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if "public_path" in changes:
            changes["public_path"] = normalize_public_path(changes["public_path"])
        if "output_dir" in changes:
            changes["output_dir"] = _resolve_dir(self.root, changes["output_dir"])
        return replace(self, **changes)


def default_config(root: Path) -> BuildConfig:
    root = root.resolve()
    return BuildConfig(
        root=root,
        source_dir=root / "src",
        public_dir=root / "public",
        output_dir=root / "build",
    )


def load_config(
    config_path: Path, *, environ: Optional[Mapping[str, str]] = None
) -> BuildConfig:
    """Load configuration from disk, applying environment overrides."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    config = default_config(root)
    precache = _parse_precache(_as_dict(data.get("precache")))

    entries = _parse_entries(data.get("entries")) or dict(config.entries)

    public_path = _as_str(data.get("public_path")) or config.public_path
    env_public_url = env.get("PUBLIC_URL")
    if env_public_url:
        public_path = env_public_url

    source_maps = _as_bool(data.get("source_maps"))
    if source_maps is None:
        source_maps = config.source_maps
    if env.get("GENERATE_SOURCEMAP", "").strip().lower() == "false":
        source_maps = False

    aliases_raw = data.get("aliases")
    if aliases_raw is not None and not isinstance(aliases_raw, dict):
        raise ConfigError("'aliases' must be a mapping of module name to path")
    aliases = {str(key): str(value) for key, value in (aliases_raw or {}).items()}

    extensions = tuple(_as_str_list(data.get("extensions"))) or config.extensions
    for extension in extensions:
        if not extension.startswith("."):
            raise ConfigError(f"Extension '{extension}' must start with '.'")

    inline_limit = _as_int(data.get("inline_limit"))
    workers = _as_int(data.get("workers"))
    if workers is not None and workers < 1:
        raise ConfigError("'workers' must be a positive integer")

    return BuildConfig(
        root=root,
        source_dir=_resolve_dir(root, data.get("source_dir"), config.source_dir),
        public_dir=_resolve_dir(root, data.get("public_dir"), config.public_dir),
        output_dir=_resolve_dir(root, data.get("output_dir"), config.output_dir),
        entries=entries,
        public_path=normalize_public_path(public_path),
        source_maps=source_maps,
        aliases=aliases,
        extensions=extensions,
        module_dirs=tuple(_as_str_list(data.get("module_dirs"))) or config.module_dirs,
        inline_limit=config.inline_limit if inline_limit is None else inline_limit,
        workers=workers,
        precache=precache,
    )


def normalize_public_path(value: str) -> str:
    value = value.strip() or "/"
    if value in {".", "./"}:
        return "./"
    if not value.endswith("/"):
        value += "/"
    return value


def _parse_precache(data: Dict[str, Any]) -> PrecacheConfig:
    defaults = PrecacheConfig()
    if not data:
        return defaults

    enabled = _as_bool(data.get("enabled"))
    max_file_size = _as_int(data.get("max_file_size"))
    if max_file_size is not None and max_file_size <= 0:
        raise ConfigError("'precache.max_file_size' must be positive")

    exclude = data.get("exclude")
    allowlist = data.get("navigate_fallback_allowlist")
    return PrecacheConfig(
        enabled=defaults.enabled if enabled is None else enabled,
        exclude=defaults.exclude if exclude is None else tuple(_as_str_list(exclude)),
        navigate_fallback=_as_str(data.get("navigate_fallback")),
        navigate_fallback_allowlist=(
            defaults.navigate_fallback_allowlist
            if allowlist is None
            else tuple(_as_str_list(allowlist))
        ),
        already_hashed_pattern=(
            _as_str(data.get("already_hashed_pattern")) or defaults.already_hashed_pattern
        ),
        max_file_size=defaults.max_file_size if max_file_size is None else max_file_size,
        service_worker=_as_str(data.get("service_worker")) or defaults.service_worker,
    )


def _parse_entries(value: Any) -> Dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, str):
        return {"main": value}
    if isinstance(value, dict):
        return {str(name): str(path) for name, path in value.items()}
    if isinstance(value, Sequence):
        entries: Dict[str, str] = {}
        for item in value:
            path = str(item)
            name = Path(path).name.split(".", 1)[0]
            if name in entries:
                raise ConfigError(f"Duplicate entry name '{name}' derived from {path}")
            entries[name] = path
        return entries
    raise ConfigError("'entries' must be a path, a list of paths or a mapping")


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _resolve_dir(root: Path, value: Any, default: Path | None = None) -> Path:
    if value is None:
        if default is None:
            raise ConfigError("Directory setting is required")
        return default
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = root / path
    return path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on", "1"}:
            return True
        if lowered in {"false", "no", "off", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "BuildConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "PrecacheConfig",
    "default_config",
    "load_config",
    "normalize_public_path",
]
