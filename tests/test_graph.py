"""Tests for assetpipe.graph."""

from __future__ import annotations

import pytest

from assetpipe.errors import CyclicDependencyError, ResolutionError, UnresolvedImportError
from assetpipe.graph import ModuleGraphBuilder
from assetpipe.models import BINARY, SCRIPT, STYLE
from tests._fixtures.project_builder import ProjectBuilder


def _build(project: ProjectBuilder, **overrides):
    config = project.config(**overrides)
    return ModuleGraphBuilder(config).build(config.entry_paths())


def test_build_discovers_modules_in_source_order(project: ProjectBuilder) -> None:
    project.write(
        {
            "src/index.js": """
                import { a } from "./a";
                import b from "./b";
                import "./index.css";
            """,
            "src/a.js": 'import c from "./c";\nexport const a = c;\n',
            "src/b.js": "export default 2;\n",
            "src/c.js": "export default 3;\n",
            "src/index.css": "body { background: url(logo.svg); }\n",
            "src/logo.svg": b"<svg/>",
        }
    )

    graph = _build(project)

    assert graph.entries == {"main": "src/index.js"}
    assert list(graph.modules) == [
        "src/index.js",
        "src/a.js",
        "src/b.js",
        "src/index.css",
        "src/c.js",
        "src/logo.svg",
    ]
    assert graph["src/index.css"].kind == STYLE
    assert graph["src/logo.svg"].kind == BINARY
    assert graph["src/a.js"].kind == SCRIPT
    assert graph.dependencies_of("src/index.js") == ["src/a.js", "src/b.js", "src/index.css"]
    assert graph.walk("src/index.js") == [
        "src/c.js",
        "src/a.js",
        "src/b.js",
        "src/logo.svg",
        "src/index.css",
        "src/index.js",
    ]


def test_build_is_deterministic(project: ProjectBuilder) -> None:
    project.write(
        {
            "src/index.js": 'import "./z";\nimport "./y";\nimport "./x";\n',
            "src/admin.js": 'import "./x";\n',
            "src/x.js": "",
            "src/y.js": "",
            "src/z.js": "",
        }
    )
    entries = {"main": "index.js", "admin": "admin.js"}

    first = _build(project, entries=entries)
    second = _build(project, entries=entries)

    assert list(first.modules) == list(second.modules)
    assert list(first.entries.items()) == list(second.entries.items())
    assert list(first.entries) == ["admin", "main"]
    assert list(first.modules)[:2] == ["src/admin.js", "src/x.js"]


def test_module_ids_are_relative_to_project_root(project: ProjectBuilder) -> None:
    project.write({"src/index.js": 'import pad from "left-pad";\n', "node_modules/left-pad/index.js": ""})

    graph = _build(project)

    assert "node_modules/left-pad/index.js" in graph
    assert graph["node_modules/left-pad/index.js"].path == project.path(
        "node_modules/left-pad/index.js"
    )


def test_script_cycle_fails_with_cycle_path(project: ProjectBuilder) -> None:
    project.write(
        {
            "src/a.js": 'import "./b";\n',
            "src/b.js": 'import "./a";\n',
        }
    )

    with pytest.raises(CyclicDependencyError) as excinfo:
        _build(project, entries={"main": "a.js"})

    assert excinfo.value.cycle == ["src/a.js", "src/b.js", "src/a.js"]
    assert "src/a.js -> src/b.js -> src/a.js" in str(excinfo.value)


def test_style_cycle_is_permitted(project: ProjectBuilder) -> None:
    project.write(
        {
            "src/index.js": 'import "./a.css";\n',
            "src/a.css": '@import "./b.css";\n',
            "src/b.css": '@import "./a.css";\n',
        }
    )

    graph = _build(project)

    assert "src/b.css" in graph


def test_dynamic_import_does_not_close_a_cycle(project: ProjectBuilder) -> None:
    project.write(
        {
            "src/index.js": 'import("./page");\n',
            "src/page.js": 'import "./index";\n',
        }
    )

    graph = _build(project)

    assert graph.split_points(["src/index.js"]) == ["src/page.js"]
    assert graph.dependencies_of("src/index.js") == []
    assert graph.dependencies_of("src/index.js", include_dynamic=True) == ["src/page.js"]


def test_unresolved_import_aborts_build(project: ProjectBuilder) -> None:
    project.write({"src/index.js": 'import "./missing";\n'})

    with pytest.raises(UnresolvedImportError) as excinfo:
        _build(project)

    assert excinfo.value.specifier == "./missing"
    assert excinfo.value.importer.endswith("index.js")


def test_missing_entry_point_fails(project: ProjectBuilder) -> None:
    project.write({"src/other.js": ""})

    with pytest.raises(UnresolvedImportError):
        _build(project)


def test_non_utf8_script_is_rejected(project: ProjectBuilder) -> None:
    project.write({"src/index.js": b"\xff\xfe\x00bad"})

    with pytest.raises(ResolutionError):
        _build(project)


def test_entry_list_names_chunks_after_files(project: ProjectBuilder) -> None:
    project.write({"src/index.js": "", "src/admin.js": ""})
    config = project.config()

    graph = ModuleGraphBuilder(config).build(
        [project.path("src/index.js"), project.path("src/admin.js")]
    )

    assert graph.entries == {"admin": "src/admin.js", "index": "src/index.js"}


def test_deep_import_chain_builds_without_recursion(project: ProjectBuilder) -> None:
    depth = 1200
    files = {"src/index.js": 'import "./m0";\n'}
    for index in range(depth):
        body = f'import "./m{index + 1}";\n' if index + 1 < depth else "export default 0;\n"
        files[f"src/m{index}.js"] = body
    project.write(files)

    graph = _build(project)
    order = graph.walk(graph.entries["main"])

    assert len(order) == depth + 1
    assert order[0] == f"src/m{depth - 1}.js"
    assert order[-1] == "src/index.js"


def test_cycle_at_the_end_of_a_deep_chain_is_reported(project: ProjectBuilder) -> None:
    depth = 1200
    files = {"src/index.js": 'import "./m0";\n'}
    for index in range(depth):
        files[f"src/m{index}.js"] = f'import "./m{(index + 1) % depth}";\n'
    project.write(files)

    with pytest.raises(CyclicDependencyError) as excinfo:
        _build(project)

    assert excinfo.value.cycle[0] == "src/m0.js"
    assert excinfo.value.cycle[-1] == "src/m0.js"
    assert len(excinfo.value.cycle) == depth + 1
