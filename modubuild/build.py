#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from modubuild.config import CliOverrides, load_config
from modubuild.pipeline import run_pipeline


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="modubuild",
        description=(
            "Bundle a Modu game with deterministic math, resolving 'modu-engine' "
            "to the engine script loaded by the HTML entry file."
        ),
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep rebuilding when source files change.",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Also serve the output directory (requires --watch).",
    )
    parser.add_argument(
        "--root",
        default=".",
        help="Project root directory (default: current directory).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a modubuild.toml file (default: <root>/modubuild.toml).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Dev server port override.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=("verbose", "debug", "info", "warning", "error", "silent"),
        help="esbuild log level override.",
    )
    args = parser.parse_args(argv)
    if args.serve and not args.watch:
        parser.error("--serve requires --watch")
    return args


async def _run(args: argparse.Namespace) -> int:
    config = load_config(
        Path(args.root),
        config_path=Path(args.config) if args.config else None,
        overrides=CliOverrides(port=args.port, log_level=args.log_level),
    )
    ctx = await run_pipeline(config, watch=args.watch, serve=args.serve)
    if ctx is None:
        return 0
    try:
        await asyncio.Event().wait()
    finally:
        await ctx.dispose()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        print("[build] Stopped.")
        return 0
    except Exception as exc:
        print(f"[build] {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
