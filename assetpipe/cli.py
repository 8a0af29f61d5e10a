"""CLI entrypoints for assetpipe commands."""

from __future__ import annotations

import argparse
import gzip
import sys
from pathlib import Path

from .config import BuildConfig, load_config
from .errors import BuildError
from .logging import configure_logging
from .models import DependencyGraph
from .pipeline import BuildPipeline, BuildResult

_SIZE_REPORT_KINDS = ("script", "style")


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project root or config file (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetpipe",
        description="Build content-addressed assets with an offline precache manifest.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Bundle the source tree into the output directory.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    build_parser.add_argument(
        "--out",
        default=None,
        help="Output directory, relative to the project root (defaults to build/).",
    )
    build_parser.add_argument(
        "--public-path",
        default=None,
        help="URL prefix the build is served under; use ./ for relative URLs.",
    )
    build_parser.add_argument(
        "--no-source-map",
        action="store_true",
        help="Skip source map generation.",
    )
    build_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of transform worker threads (defaults to CPU count).",
    )

    graph_parser = subparsers.add_parser(
        "graph",
        help="Print the resolved module graph without building.",
    )
    _add_verbose_option(graph_parser, suppress_default=True)
    _add_path_argument(graph_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for assetpipe commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "build" and args.workers is not None and args.workers < 1:
        parser.exit(2, "--workers must be a positive integer\n")

    try:
        config = _load(args)
        pipeline = BuildPipeline(config)
        if args.command == "build":
            result = pipeline.run()
        else:
            graph = pipeline.inspect()
    except (BuildError, FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"Failed to compile.\n\n{exc}\n")

    if args.command == "build":
        _print_build_summary(config, result)
    elif args.command == "graph":
        _print_graph(graph)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _load(args: argparse.Namespace) -> BuildConfig:
    root = Path(args.path)
    if not root.exists():
        raise FileNotFoundError(f"Project path does not exist: {root}")
    config = load_config(root)
    if args.command != "build":
        return config
    return config.with_overrides(
        output_dir=args.out,
        public_path=args.public_path,
        source_maps=False if args.no_source_map else None,
        workers=args.workers,
    )


def _print_build_summary(config: BuildConfig, result: BuildResult) -> None:
    print("File sizes after gzip:")
    print()
    rows = [
        (len(gzip.compress((result.output_dir / entry.path).read_bytes(), mtime=0)), entry.path)
        for entry in result.manifest
        if entry.kind in _SIZE_REPORT_KINDS
    ]
    rows.sort(key=lambda row: row[0], reverse=True)
    output_name = _relativize(result.output_dir)
    for size, path in rows:
        print(f"  {_format_size(size):>10}  {output_name}/{path}")
    print()
    print(f"The {output_name} folder is ready to be deployed at {config.public_path}")


def _print_graph(graph: DependencyGraph) -> None:
    for name, module_id in sorted(graph.entries.items()):
        print(f"{name}: {module_id}")
    for module in graph.iter_modules():
        print(f"{module.id} [{module.kind}]")
        for dependency in module.dependencies:
            marker = " (dynamic)" if dependency.dynamic else ""
            print(f"  {dependency.specifier} -> {dependency.target}{marker}")


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    return f"{size / 1024:.2f} KB"


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
