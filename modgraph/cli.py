"""Transform a module graph into the modgraph cache from the command line."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from modgraph.annotation_stripper import TranspileMode
from modgraph.deep_merge import deep_merge
from modgraph.discover_manifest import load_manifest_table
from modgraph.errors import ModGraphError
from modgraph.load_config import load_config
from modgraph.transform_engine import TransformEngine
from modgraph.transform_report import TransformReport


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the modgraph command."""
    ap = argparse.ArgumentParser(
        description=(
            "Rewrite a module and its local dependencies through an import map, "
            "strip type annotations and write the results to a content-addressed "
            "cache. Prints the cache location of the entry module."
        ),
    )
    ap.add_argument("entry", help="Path or URL of the entry module")
    ap.add_argument("--config", help="Path to a YAML configuration file")
    ap.add_argument(
        "--import-map",
        type=Path,
        help="Import map (or manifest with 'imports'/'scopes') to apply",
    )
    ap.add_argument("--cache-dir", type=Path, help="Cache root directory")
    ap.add_argument(
        "--mode",
        choices=[m.value for m in TranspileMode],
        help="Annotation stripping mode (default: strip, or $MODGRAPH_TRANSPILE_MODE)",
    )
    ap.add_argument(
        "--no-auto-discover",
        action="store_true",
        help="Do not merge import maps from deno.json/import_map.json near the entry",
    )
    ap.add_argument(
        "--follow-remote",
        action="store_true",
        help="Also transform http(s) dependencies instead of leaving them as-is",
    )
    ap.add_argument("--report", help="Write a JSON transformation report to this path")
    ap.add_argument(
        "--clear-cache",
        action="store_true",
        help="Remove every cached module before transforming",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return ap


def config_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Load the configuration file and apply command-line overrides."""
    overrides: dict[str, Any] = {"transpile": {}, "resolution": {}}
    if args.cache_dir:
        overrides["cache_dir"] = str(args.cache_dir)
    if args.mode:
        overrides["transpile"]["mode"] = args.mode
    if args.no_auto_discover:
        overrides["resolution"]["auto_discover"] = False
    if args.follow_remote:
        overrides["resolution"]["follow_remote"] = True
    return deep_merge(load_config(args.config), overrides)


async def run_transform(args: argparse.Namespace) -> str:
    """Execute one transformation request and return the entry's cache location."""
    config = config_from_args(args)
    engine = TransformEngine.from_config(config)
    if args.import_map:
        engine.resolution_table = load_manifest_table(args.import_map).merged_over(
            engine.resolution_table
        )
    if args.report:
        engine.report = TransformReport(
            engine.resolution_table.fingerprint, engine.stripper.mode.value
        )
    if args.clear_cache:
        engine.cache.clear()

    async with engine:
        cache_location = await engine.import_module(args.entry)

    if engine.report is not None:
        engine.report.generate_report(args.report)
    return cache_location


def main(argv: list[str] | None = None) -> int:
    """Run the command line interface."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        cache_location = asyncio.run(run_transform(args))
    except ModGraphError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(cache_location)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
