"""Bundling of transformed modules into chunks."""

from __future__ import annotations

import json
import os
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from posixpath import basename
from typing import Dict, List, Optional, Tuple

from .config import BuildConfig
from .errors import TransformError
from .logging import get_logger
from .models import BINARY, SCRIPT, STYLE, Artifact, DependencyGraph, Module
from .sourcemap import SourceMapBuilder
from .templating import render_template
from .transforms import TransformRegistry
from .transforms.base import Transform
from .transforms.script import JAVASCRIPT
from .transforms.style import ASSET_REFERENCE_RE

_MODULE_HEADER = "__assetpipe__.define({id}, function (module, exports, __require__, __import__) {{"
_MODULE_FOOTER = "});"


@dataclass
class _Chunk:
    name: str
    members: List[str]
    split: bool = False


@dataclass
class _BundleState:
    """Per-call bookkeeping; nothing survives between ``bundle`` calls."""

    transformed: Dict[str, Artifact]
    split_plan: Dict[str, List[_Chunk]] = field(default_factory=dict)
    split_chunks: Dict[str, Artifact] = field(default_factory=dict)
    emitted: Dict[str, Artifact] = field(default_factory=dict)
    media: List[str] = field(default_factory=list)
    next_split: int = 0


class _ChunkWriter:
    """Concatenates text while tracking line-level source positions."""

    def __init__(self, with_map: bool) -> None:
        self.lines: List[str] = []
        self.map = SourceMapBuilder() if with_map else None

    def raw(self, text: str) -> None:
        lines = text.rstrip("\n").split("\n")
        self.lines.extend(lines)
        if self.map is not None:
            self.map.add_unmapped(len(lines))

    def module(self, module: Module, body: str) -> None:
        lines = body.rstrip("\n").split("\n")
        self.lines.extend(lines)
        if self.map is not None:
            original = module.text
            source = self.map.add_source(module.id, original)
            self.map.add_mapped(source, len(lines), original.count("\n") + 1)

    def content(self) -> bytes:
        return ("\n".join(self.lines) + "\n").encode("utf-8")


class Bundler:
    """Applies transforms to every module and assembles output chunks."""

    def __init__(self, config: BuildConfig, workers: Optional[int] = None) -> None:
        self.config = config
        self.workers = workers or config.workers or os.cpu_count() or 1
        self.logger = get_logger("bundler")

    def bundle(self, graph: DependencyGraph, transforms: TransformRegistry) -> List[Artifact]:
        """Return artifacts for every entry point in deterministic order.

        Per entry (sorted by name): split chunks, the entry chunk, then the
        extracted stylesheet, each followed by its source map. Emitted media
        files come last in first-reference order.
        """
        state = _BundleState(transformed=self.transform_all(graph, transforms))
        artifacts: List[Artifact] = []
        for name, entry_id in sorted(graph.entries.items()):
            artifacts.extend(self._bundle_entry(name, entry_id, graph, state))
        artifacts.extend(state.emitted[module_id] for module_id in state.media)
        return artifacts

    # ------------------------------------------------------------------
    # Transform application

    def transform_all(
        self, graph: DependencyGraph, transforms: TransformRegistry
    ) -> Dict[str, Artifact]:
        """Apply the first matching transform to each module in parallel.

        The first failure cancels outstanding work and is raised as a
        ``TransformError``; results come back in graph order.
        """
        plan: List[Tuple[Module, Transform]] = []
        for module in graph.iter_modules():
            transform = transforms.select(module)
            if transform is None:
                raise TransformError(module.path, "no transform matches this module type")
            plan.append((module, transform))

        results: Dict[str, Artifact] = {}
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="assetpipe-transform"
        ) as executor:
            futures: Dict[Future[Artifact], Module] = {
                executor.submit(_apply, transform, module): module for module, transform in plan
            }
            try:
                for future in as_completed(futures):
                    results[futures[future].id] = future.result()
            except BaseException:
                for pending in futures:
                    pending.cancel()
                raise

        self.logger.debug("Transformed %d modules with %d workers", len(results), self.workers)
        return {module.id: results[module.id] for module, _ in plan}

    # ------------------------------------------------------------------
    # Chunk assembly

    def _bundle_entry(
        self, name: str, entry_id: str, graph: DependencyGraph, state: _BundleState
    ) -> List[Artifact]:
        entry = _Chunk(name=name, members=graph.walk(entry_id))
        artifacts: List[Artifact] = []

        splits = self._collect_splits(entry, graph, state)
        chunk_urls: Dict[str, str] = {}
        for target, chunk in splits:
            if chunk.name not in state.split_chunks:
                script, source_map = self._script_chunk(chunk, graph, state, runtime=None)
                state.split_chunks[chunk.name] = script
                artifacts.append(script)
                if source_map is not None:
                    artifacts.append(source_map)
            chunk_urls[target] = self.config.asset_url(state.split_chunks[chunk.name].output_path)

        script, source_map = self._script_chunk(
            entry, graph, state, runtime=render_template("runtime.js.j2", chunk_urls=chunk_urls)
        )
        artifacts.append(script)
        if source_map is not None:
            artifacts.append(source_map)

        style_members: List[str] = []
        for chunk in [entry] + [chunk for _, chunk in splits]:
            for module_id in chunk.members:
                if graph[module_id].kind == STYLE and module_id not in style_members:
                    style_members.append(module_id)
        if style_members:
            stylesheet, style_map = self._style_chunk(name, style_members, graph, state)
            artifacts.append(stylesheet)
            if style_map is not None:
                artifacts.append(style_map)
        return artifacts

    def _collect_splits(
        self, entry: _Chunk, graph: DependencyGraph, state: _BundleState
    ) -> List[Tuple[str, _Chunk]]:
        """Return split chunks reachable from ``entry`` in discovery order.

        A split chunk may be loaded whenever the entry chunk is present, so
        it omits only the entry's own modules. Nested split points are
        collected from split chunk members as well.
        """
        available = frozenset(entry.members)
        splits: List[Tuple[str, _Chunk]] = []
        seen: set[str] = set()
        queue = list(graph.split_points(entry.members))
        while queue:
            target = queue.pop(0)
            if target in available or target in seen:
                continue
            seen.add(target)
            chunk = self._plan_split(target, available, graph, state)
            splits.append((target, chunk))
            queue.extend(graph.split_points(chunk.members))
        return splits

    def _plan_split(
        self, target: str, available: frozenset[str], graph: DependencyGraph, state: _BundleState
    ) -> _Chunk:
        """Reuse a chunk planned for another entry when it is complete here too."""
        required = set(graph.walk(target))
        for chunk in state.split_plan.get(target, []):
            if required <= available.union(chunk.members):
                return chunk
        chunk = _Chunk(
            name=str(state.next_split),
            members=graph.walk(target, exclude=available),
            split=True,
        )
        state.split_plan.setdefault(target, []).append(chunk)
        state.next_split += 1
        return chunk

    def _script_chunk(
        self,
        chunk: _Chunk,
        graph: DependencyGraph,
        state: _BundleState,
        *,
        runtime: Optional[str],
    ) -> Tuple[Artifact, Optional[Artifact]]:
        writer = _ChunkWriter(with_map=self.config.source_maps)
        if runtime is not None:
            writer.raw(runtime)

        script_targets = {
            target
            for module_id in chunk.members
            if graph[module_id].kind == SCRIPT
            for target in graph.dependencies_of(module_id)
        }
        for module_id in chunk.members:
            module = graph[module_id]
            header = _MODULE_HEADER.format(id=json.dumps(module_id))
            if module.kind == SCRIPT:
                writer.raw(header)
                writer.module(module, state.transformed[module_id].content.decode("utf-8"))
                writer.raw(_MODULE_FOOTER)
            elif module_id in script_targets:
                writer.raw(header + " " + self._stub_body(module, state) + " " + _MODULE_FOOTER)
            elif module.kind == BINARY:
                self._asset_url(module_id, state)

        if runtime is not None:
            writer.raw(f"__assetpipe__.require({json.dumps(chunk.members[-1])});")

        if chunk.split:
            artifact_name = f"{chunk.name}.chunk.js"
            template = f"static/js/{chunk.name}.{{hash}}.chunk.js"
        else:
            artifact_name = f"{chunk.name}.js"
            template = f"static/js/{chunk.name}.{{hash}}.js"
        script = Artifact(
            name=artifact_name,
            content=writer.content(),
            kind="script",
            media_type=JAVASCRIPT,
            path_template=template,
            sources=tuple(chunk.members),
        )
        return script, self._source_map(script, writer)

    def _style_chunk(
        self, name: str, members: List[str], graph: DependencyGraph, state: _BundleState
    ) -> Tuple[Artifact, Optional[Artifact]]:
        writer = _ChunkWriter(with_map=self.config.source_maps)

        def _replace(match) -> str:
            return self._asset_url(match.group("id"), state, from_dir="static/css")

        for module_id in members:
            body = state.transformed[module_id].content.decode("utf-8")
            writer.module(graph[module_id], ASSET_REFERENCE_RE.sub(_replace, body))

        stylesheet = Artifact(
            name=f"{name}.css",
            content=writer.content(),
            kind="style",
            media_type="text/css",
            path_template=f"static/css/{name}.{{hash}}.css",
            sources=tuple(members),
        )
        return stylesheet, self._source_map(stylesheet, writer)

    def _stub_body(self, module: Module, state: _BundleState) -> str:
        if module.kind == BINARY:
            return f"module.exports = {json.dumps(self._asset_url(module.id, state))};"
        return ""

    def _asset_url(self, module_id: str, state: _BundleState, *, from_dir: str | None = None) -> str:
        """Return the URL of a media module, registering it for emission."""
        artifact = state.transformed[module_id]
        if artifact.kind == "inline":
            return artifact.content.decode("ascii")
        if module_id not in state.emitted:
            state.emitted[module_id] = artifact
            state.media.append(module_id)
        return self.config.asset_url(artifact.output_path, from_dir=from_dir)

    def _source_map(self, artifact: Artifact, writer: _ChunkWriter) -> Optional[Artifact]:
        if writer.map is None:
            return None
        output_path = artifact.output_path
        return Artifact(
            name=f"{artifact.name}.map",
            content=writer.map.to_json(basename(output_path)),
            kind="map",
            media_type="application/json",
            path_template=f"{output_path}.map",
            parent=artifact.name,
        )


def _apply(transform: Transform, module: Module) -> Artifact:
    try:
        artifact = transform.apply(module)
    except TransformError:
        raise
    except Exception as exc:
        raise TransformError(module.path, exc) from exc
    if not isinstance(artifact, Artifact):
        raise TransformError(module.path, f"transform '{transform.name}' returned {type(artifact).__name__}")
    return artifact


__all__ = ["Bundler"]
