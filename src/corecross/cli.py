"""Command-line entry point: ``corecross build|fetch|list|show``."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.table import Table

from corecross.compose import CommandComposer, require_kind
from corecross.config import DEFAULT_RECIPES_DIR, Settings, load_profile, load_recipes, recipe_file_for
from corecross.errors import CoreCrossError
from corecross.models import MAKE
from corecross.observability import BuildLogger, configure_logging
from corecross.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="corecross",
        description="Cross-compile libretro cores for ARM CPU families from YAML recipes.",
    )
    parser.add_argument(
        "--recipes-dir",
        type=Path,
        default=DEFAULT_RECIPES_DIR,
        help=f"Directory holding <family>.yml recipe files (default: {DEFAULT_RECIPES_DIR})",
    )
    parser.add_argument("--recipe-file", type=Path, help="Explicit recipe file (overrides --recipes-dir)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Fetch and build cores for a CPU family")
    _add_run_arguments(build)
    build.add_argument("-j", "--jobs", type=int, default=None, help="Parallel jobs passed to make")
    build.add_argument("--skip-fetch", action="store_true", help="Build already-fetched sources only")
    build.add_argument("--skip-build", action="store_true", help="Stop after fetching")
    build.add_argument("--dry-run", action="store_true", help="Print build commands without running them")
    build.add_argument("--clean", action="store_true", help="Clean each core before building")
    build.add_argument("--timeout", type=float, default=None, help="Per-core build timeout in seconds")
    build.add_argument("--output-dir", type=Path, help="Output directory (default: output/<family>)")
    build.add_argument("--patches-dir", type=Path, default=Path("patches"), help="Per-core patch directories")
    build.add_argument("--scripts-dir", type=Path, default=Path("scripts"), help="Prebuild scripts directory")

    fetch = subparsers.add_parser("fetch", help="Fetch core sources for a CPU family")
    _add_run_arguments(fetch)

    list_cmd = subparsers.add_parser("list", help="List cores declared for a CPU family")
    list_cmd.add_argument("family")

    show = subparsers.add_parser("show", help="Print the composed build commands for one core")
    show.add_argument("family")
    show.add_argument("core")
    show.add_argument("-j", "--jobs", type=int, default=None, help="Parallel jobs passed to make")
    return parser


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("family", help="CPU family, e.g. cortex-a53")
    parser.add_argument(
        "--core",
        dest="cores",
        action="append",
        metavar="NAME",
        help="Restrict the run to this core (repeatable)",
    )
    parser.add_argument("--fetch-workers", type=int, default=None, help="Concurrent fetch workers")
    parser.add_argument("--cores-dir", type=Path, help="Source directory (default: output/cores-<family>)")
    parser.add_argument("--cache-dir", type=Path, default=Path("output/cache"), help="Archive cache directory")
    parser.add_argument("--log-file", type=Path, help="Also write a plain-text log here")
    parser.add_argument("--records", type=Path, help="Write structured log records as JSON lines")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings.from_env()
    except CoreCrossError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    configure_logging(
        verbose=settings.verbose,
        no_color=settings.no_color,
        log_file=getattr(args, "log_file", None),
    )
    console = Console(no_color=settings.no_color)
    recipe_file = args.recipe_file or recipe_file_for(args.family, args.recipes_dir)

    try:
        if args.command == "list":
            return _list(console, recipe_file)
        if args.command == "show":
            return _show(console, args, recipe_file, settings)
        return _run(args, recipe_file, settings)
    except CoreCrossError as exc:
        logger.error("%s", exc)
        return 2


def _run(args: argparse.Namespace, recipe_file: Path, settings: Settings) -> int:
    build_logger = BuildLogger()
    is_build = args.command == "build"
    orchestrator = Orchestrator(
        args.family,
        cores_dir=args.cores_dir,
        cache_dir=args.cache_dir,
        output_dir=args.output_dir if is_build else None,
        recipe_file=recipe_file,
        patches_dir=args.patches_dir if is_build else "patches",
        scripts_dir=args.scripts_dir if is_build else "scripts",
        cores=args.cores,
        fetch_workers=args.fetch_workers,
        parallel=args.jobs if is_build else None,
        dry_run=is_build and args.dry_run,
        clean=is_build and args.clean,
        timeout=args.timeout if is_build else None,
        skip_fetch=is_build and args.skip_fetch,
        skip_build=not is_build or args.skip_build,
        logger=build_logger,
        settings=settings,
    )
    try:
        return orchestrator.run()
    finally:
        if args.records is not None:
            build_logger.to_json_lines(args.records)


def _list(console: Console, recipe_file: Path) -> int:
    recipes = load_recipes(recipe_file)
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Core", style="cyan")
    table.add_column("Build", style="yellow")
    table.add_column("Repository")
    for name, recipe in recipes.items():
        table.add_row(name, recipe.build_type or "?", recipe.repo or "")
    console.print(table)
    return 0


def _show(console: Console, args: argparse.Namespace, recipe_file: Path, settings: Settings) -> int:
    profile = load_profile(args.family, recipe_file=recipe_file)
    recipes = load_recipes(recipe_file)
    if args.core not in recipes:
        console.print(f"Unknown core: {args.core}", style="red", markup=False)
        return 2
    recipe = recipes[args.core]
    composer = CommandComposer(
        profile,
        parallel=args.jobs or settings.jobs,
        cmake_prefix_path=settings.cmake_prefix_path,
    )
    workdir = recipe.build_dir if require_kind(recipe) == MAKE else "build"
    console.print(f"# {args.core} ({recipe.build_type}) in {workdir}", markup=False, highlight=False)
    for argv in composer.commands_for(recipe):
        console.print(" ".join(argv), markup=False, highlight=False, soft_wrap=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
