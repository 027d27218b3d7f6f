"""CLI entry point for bcfield."""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from bcfield.app import build_runtime
from bcfield.core.config import RuntimeConfig
from bcfield.exceptions import BcFieldError, PluginError
from bcfield.plugins.manifest import load_manifest
from bcfield.plugins.validator import validate_plugin

logger = structlog.get_logger()


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bcfield", description="Text field plugin runtime tools"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="validate plugin manifests")
    validate.add_argument("manifests", nargs="+", type=Path)

    snapshot = sub.add_parser(
        "snapshot", help="load built-ins and manifests, print the snapshot"
    )
    snapshot.add_argument("manifests", nargs="*", type=Path)
    return parser.parse_args(argv)


def _validate(paths: list[Path]) -> int:
    failures = 0
    for path in paths:
        try:
            descriptor = load_manifest(path)
        except PluginError as e:
            print(f"{path}: {e}", file=sys.stderr)
            failures += 1
            continue
        result = validate_plugin(descriptor)
        if result.is_valid:
            print(f"{path}: ok ({descriptor['id']})")
            continue
        failures += 1
        for error in result.errors:
            print(f"{path}: {error}", file=sys.stderr)
    return 1 if failures else 0


async def _snapshot(config: RuntimeConfig, paths: list[Path]) -> int:
    runtime = build_runtime(config)
    await runtime.startup()
    for path in paths:
        await runtime.load_plugin(load_manifest(path))
    logger.info("snapshot_exported", plugin_count=len(runtime.get_loaded_plugins()))
    print(runtime.export_plugin_config())
    return 0


async def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.command == "validate":
        return _validate(args.manifests)

    try:
        config = RuntimeConfig()
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Check BCFIELD_* variables or the .env file.", file=sys.stderr)
        return 1

    try:
        return await _snapshot(config, args.manifests)
    except BcFieldError as e:
        print(f"Plugin runtime failed: {e}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(asyncio.run(main()))
