"""CLI entrypoints for melte commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List

from .compiler import ComponentCompiler
from .config import ConfigError, load_config
from .errors import SetupError
from .host import DEFAULT_ARCH, LocalInputFile
from .logging import configure_logging, get_logger

COMPONENT_EXTENSIONS = (".svelte",)


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
    parser.add_argument("-v", "--verbose", **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="melte",
        description="Compile single-file components into browser and server modules.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile a component file or every component under a directory.",
    )
    _add_verbose_option(compile_parser, suppress_default=True)
    compile_parser.add_argument("path", help="Component file or directory to compile.")
    compile_parser.add_argument(
        "--arch",
        default=DEFAULT_ARCH,
        help="Target architecture; names starting with 'os.' compile for the server.",
    )
    compile_parser.add_argument(
        "--out-dir",
        default="build",
        help="Directory receiving compiled modules, maps and stylesheets.",
    )
    compile_parser.add_argument(
        "--package",
        default=None,
        help="Owning package name, when compiling package code.",
    )
    compile_parser.add_argument(
        "--cache-dir",
        default=None,
        help="Directory for the persistent compile cache (overrides .melte.yml).",
    )
    compile_parser.add_argument(
        "--config",
        default=".",
        help="Path to .melte.yml or the directory containing it.",
    )
    compile_parser.add_argument(
        "--hmr",
        action="store_true",
        help="Instrument modules for hot reloading.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP compile service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument(
        "--config",
        default=".",
        help="Path to .melte.yml or the directory containing it.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for melte commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "compile":
        if args.cache_dir:
            config.cache_dir = Path(args.cache_dir).resolve()
        try:
            compiler = ComponentCompiler.from_config(config)
        except SetupError as exc:
            parser.exit(1, f"{exc}\n")
        try:
            failures = run_compile(
                compiler,
                Path(args.path),
                out_dir=Path(args.out_dir),
                arch=args.arch,
                package_name=args.package,
                hmr=bool(args.hmr),
            )
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        except SetupError as exc:
            parser.exit(1, f"{exc}\n")
        if failures:
            parser.exit(1, f"{failures} component(s) failed to compile\n")
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port, config=config)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def run_compile(
    compiler: ComponentCompiler,
    path: Path,
    *,
    out_dir: Path,
    arch: str = DEFAULT_ARCH,
    package_name: str | None = None,
    hmr: bool = False,
) -> int:
    """Compile components under ``path`` into ``out_dir``; return the failure count."""
    logger = get_logger("cli")
    root = compiler.project_root
    files = [
        LocalInputFile(
            _relative_to(component, root),
            root=root,
            arch=arch,
            package_name=package_name,
            hmr=hmr,
        )
        for component in collect_components(path)
    ]
    asyncio.run(compiler.process_files_for_target(files))

    failures = 0
    for file in files:
        for report in file.errors:
            failures += 1
            location = f"{file.path}:{report.line}:{report.column}"
            print(f"{location}: {report.message}", file=sys.stderr)
        _write_outputs(file, out_dir)
        logger.info("Compiled %s", file.path)
    return failures


def collect_components(path: Path) -> List[Path]:
    path = path.resolve()
    if not path.exists():
        raise FileNotFoundError(f"No such file or directory: {path}")
    if path.is_file():
        return [path]
    return sorted(
        candidate
        for candidate in path.rglob("*")
        if candidate.is_file()
        and candidate.suffix in COMPONENT_EXTENSIONS
        and "node_modules" not in candidate.parts
    )


def _write_outputs(file: LocalInputFile, out_dir: Path) -> None:
    for output in file.javascript:
        target = out_dir / f"{output.path}.js"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(output.data, encoding="utf-8")
        if output.source_map:
            target.with_name(target.name + ".map").write_text(
                json.dumps(output.source_map), encoding="utf-8"
            )
    for stylesheet in file.stylesheets:
        directory = out_dir / Path(file.path).parent
        directory.mkdir(parents=True, exist_ok=True)
        (directory / stylesheet.path).write_text(stylesheet.data, encoding="utf-8")
    for section in file.html:
        target = out_dir / f"{file.path}.{section.section}.html"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(section.data, encoding="utf-8")


def _relative_to(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


if __name__ == "__main__":
    main(sys.argv[1:])
