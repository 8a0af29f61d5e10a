"""Build orchestration: graph, bundle, manifest, precache, emit."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .bundler import Bundler
from .config import BuildConfig
from .emitter import Emitter
from .graph import ModuleGraphBuilder
from .logging import get_logger
from .manifest import Manifest, generate_manifest
from .models import Artifact, DependencyGraph
from .precache import PrecacheDescriptor, PrecachePolicy, plan_precache
from .source_scanner import PublicScanner
from .transforms import TransformRegistry, default_registry


@dataclass
class BuildResult:
    """Everything one build produced."""

    output_dir: Path
    artifacts: List[Artifact] = field(default_factory=list)
    manifest: Manifest = field(default_factory=Manifest)
    precache: Optional[PrecacheDescriptor] = None
    written: List[Path] = field(default_factory=list)


class BuildPipeline:
    """Runs one build from a configuration.

    Every ``run`` starts from a fresh graph and artifact set; nothing is
    carried over from earlier builds.
    """

    def __init__(
        self,
        config: BuildConfig,
        registry: TransformRegistry | None = None,
        *,
        builder: ModuleGraphBuilder | None = None,
        bundler: Bundler | None = None,
        emitter: Emitter | None = None,
        scanner: PublicScanner | None = None,
    ) -> None:
        self.config = config
        self.registry = registry or default_registry(config)
        self.builder = builder or ModuleGraphBuilder(config)
        self.bundler = bundler or Bundler(config)
        self.emitter = emitter or Emitter(config)
        self.scanner = scanner or PublicScanner()
        self.logger = get_logger("pipeline")

    def inspect(self) -> DependencyGraph:
        """Resolve the module graph without transforming or writing anything."""
        return self.builder.build(self.config.entry_paths())

    def run(self) -> BuildResult:
        self.logger.info("Creating an optimized production build...")
        graph = self.inspect()
        self.logger.info("Bundling %d modules from %d entries", len(graph), len(graph.entries))

        artifacts = self.bundler.bundle(graph, self.registry)
        public_files = self.scanner.artifacts(self.config.public_dir)
        if public_files:
            self.logger.debug("Copying %d files from %s", len(public_files), self.config.public_dir)
        artifacts.extend(public_files)

        manifest = generate_manifest(artifacts)

        descriptor: Optional[PrecacheDescriptor] = None
        if self.config.precache.enabled:
            policy = PrecachePolicy.from_config(
                self.config, navigate_fallback=self._default_fallback(manifest)
            )
            descriptor = plan_precache(manifest, policy)
        else:
            self.logger.debug("Precache disabled; skipping service worker")

        written = self.emitter.emit(artifacts, manifest, descriptor)
        self.logger.info("Compiled successfully.")
        return BuildResult(
            output_dir=self.config.output_dir,
            artifacts=artifacts,
            manifest=manifest,
            precache=descriptor,
            written=written,
        )

    def _default_fallback(self, manifest: Manifest) -> Optional[str]:
        """Use the public ``index.html`` as navigation fallback unless configured."""
        if self.config.precache.navigate_fallback:
            return None
        candidate = self.config.public_url + "/index.html"
        for entry in manifest:
            if self.config.public_path + entry.path == candidate:
                return candidate
        return None


__all__ = ["BuildPipeline", "BuildResult"]
