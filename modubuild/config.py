"""Build configuration: defaults, optional modubuild.toml, then CLI overrides."""

from __future__ import annotations

import dataclasses
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from modubuild.constants import (
    CDN_ENGINE_URL,
    DEFAULT_DEV_SERVER_PORT,
    ENGINE_GLOBAL,
    ENGINE_MODULE_NAME,
    EXCLUDED_DIR_MARKERS,
    LOCAL_ENGINE_URL,
)

CONFIG_FILE_NAME = "modubuild.toml"


@dataclass(frozen=True)
class BuildConfig:
    root: Path
    entry: str = "src/game.ts"
    outfile: str = "dist/game.js"
    html: str = "dist/index.html"
    global_name: str = "SnakeGame"
    format: str = "iife"
    target: str = "es2020"
    sourcemap: bool = True
    define: Tuple[Tuple[str, str], ...] = (("process.env.NODE_ENV", '"development"'),)
    log_level: str = "info"
    esbuild_command: Tuple[str, ...] = ("npx", "esbuild")
    excluded_dirs: Tuple[str, ...] = EXCLUDED_DIR_MARKERS
    engine_module: str = ENGINE_MODULE_NAME
    engine_global: str = ENGINE_GLOBAL
    local_engine_url: str = LOCAL_ENGINE_URL
    cdn_engine_url: str = CDN_ENGINE_URL
    servedir: str = "dist"
    host: str = "127.0.0.1"
    port: int = DEFAULT_DEV_SERVER_PORT
    poll_interval: float = 0.25

    @property
    def html_path(self) -> Path:
        return self.root / self.html

    @property
    def outfile_path(self) -> Path:
        return self.root / self.outfile

    @property
    def source_root(self) -> Path:
        return (self.root / self.entry).parent


@dataclass(frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    port: Optional[int] = None
    log_level: Optional[str] = None


def load_config_file(path: Path) -> Dict[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{path.name} must contain a top-level table.")
    return payload


def _get_table(payload: Dict[str, object], key: str) -> Dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _string(value: object, section: str, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"Config field '{section}.{name}' must be a non-empty string.")
    return value


def _tuple_of_strings(value: object, section: str, name: str) -> Tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{name}' must be a list of strings.")
    output = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{name}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _port(value: object, section: str, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 65535:
        raise ValueError(f"Config field '{section}.{name}' must be a port number.")
    return value


_STRING_FIELDS = {
    "build": {
        "entry": "entry",
        "outfile": "outfile",
        "html": "html",
        "global_name": "global_name",
        "format": "format",
        "target": "target",
        "log_level": "log_level",
    },
    "engine": {
        "module": "engine_module",
        "global": "engine_global",
        "local_url": "local_engine_url",
        "cdn_url": "cdn_engine_url",
    },
    "serve": {
        "dir": "servedir",
        "host": "host",
    },
}


def merge_config(
    base: BuildConfig,
    payload: Dict[str, object],
    overrides: CliOverrides,
) -> BuildConfig:
    """Merge defaults, file config, then CLI overrides."""
    changes: Dict[str, object] = {}

    for section, fields in _STRING_FIELDS.items():
        table = _get_table(payload, section)
        for key, attr in fields.items():
            if key in table:
                changes[attr] = _string(table[key], section, key)

    build_table = _get_table(payload, "build")
    if "sourcemap" in build_table:
        if not isinstance(build_table["sourcemap"], bool):
            raise ValueError("Config field 'build.sourcemap' must be a boolean.")
        changes["sourcemap"] = build_table["sourcemap"]
    if "esbuild_command" in build_table:
        command = _tuple_of_strings(build_table["esbuild_command"], "build", "esbuild_command")
        if not command:
            raise ValueError("Config field 'build.esbuild_command' must not be empty.")
        changes["esbuild_command"] = command
    if "excluded_dirs" in build_table:
        changes["excluded_dirs"] = _tuple_of_strings(
            build_table["excluded_dirs"], "build", "excluded_dirs"
        )
    if "define" in build_table:
        define = _get_table(build_table, "define")
        changes["define"] = tuple(
            (key, _string(value, "build.define", key)) for key, value in define.items()
        )

    serve_table = _get_table(payload, "serve")
    if "port" in serve_table:
        changes["port"] = _port(serve_table["port"], "serve", "port")
    if "poll_interval" in serve_table:
        interval = serve_table["poll_interval"]
        if not isinstance(interval, (int, float)) or isinstance(interval, bool) or interval <= 0:
            raise ValueError("Config field 'serve.poll_interval' must be a positive number.")
        changes["poll_interval"] = float(interval)

    if overrides.port is not None:
        changes["port"] = _port(overrides.port, "cli", "port")
    if overrides.log_level is not None:
        changes["log_level"] = overrides.log_level

    return dataclasses.replace(base, **changes)


def load_config(
    root: Path,
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[CliOverrides] = None,
) -> BuildConfig:
    """Build the effective configuration for a project rooted at ``root``."""
    resolved_root = root.resolve()
    path = config_path if config_path is not None else resolved_root / CONFIG_FILE_NAME
    if config_path is not None and not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    payload = load_config_file(path)
    return merge_config(BuildConfig(root=resolved_root), payload, overrides or CliOverrides())
