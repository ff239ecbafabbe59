"""Drive esbuild with the pipeline's load/resolve plugins.

esbuild only runs plugins through its JavaScript API, so the hooks run here
instead: every file under the source root is passed through the load hooks and
written to a staging tree, bare import specifiers are offered to the resolve
hooks, and virtual modules become files that esbuild is pointed at with
``--alias``. esbuild then bundles the staged entry point.
"""

from __future__ import annotations

import asyncio
import re
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from modubuild.constants import FILE_NAMESPACE
from modubuild.devserver import StaticServer
from modubuild.errors import BuildError, BundlerError
from modubuild.plugins import (
    OnLoadArgs,
    OnResolveArgs,
    Plugin,
    PluginBuild,
    setup_plugins,
)

STAGING_DIR_NAME = ".modubuild"
VIRTUAL_DIR_NAME = "_virtual"

_SCRIPT_SUFFIXES = {".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"}
_LOADER_SUFFIXES = {"ts": ".ts", "tsx": ".tsx", "js": ".js", "jsx": ".jsx", "json": ".json"}

_SPECIFIER_RE = re.compile(
    r"""(?:\bfrom\s*|\bimport\s*\(?\s*|\brequire\s*\(\s*)['"]([^'"\n]+)['"]"""
)


@dataclass(frozen=True)
class BuildOptions:
    entry_points: Tuple[str, ...]
    outfile: str
    working_dir: str = "."
    source_root: Optional[str] = None
    format: str = "iife"
    global_name: Optional[str] = None
    sourcemap: bool = True
    target: str = "es2020"
    define: Mapping[str, str] = field(default_factory=dict)
    log_level: str = "info"
    plugins: Tuple[Plugin, ...] = ()
    esbuild_command: Tuple[str, ...] = ("npx", "esbuild")


@dataclass(frozen=True)
class BuildResult:
    outfile: Path
    staged_files: int
    aliases: Dict[str, str]
    log: str = ""


@dataclass(frozen=True)
class ServeResult:
    host: str
    port: int


def _is_bare_specifier(specifier: str) -> bool:
    return not specifier.startswith((".", "/")) and ":" not in specifier


def _safe_file_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", name) or "module"


class _Stager:
    def __init__(self, options: BuildOptions, build: PluginBuild):
        self.options = options
        self.build = build
        self.working_dir = Path(options.working_dir).resolve()
        self.staging_dir = self.working_dir / STAGING_DIR_NAME / "staging"
        if options.source_root is not None:
            self.source_root = (self.working_dir / options.source_root).resolve()
        else:
            self.source_root = (self.working_dir / options.entry_points[0]).resolve().parent

    def source_files(self) -> List[Path]:
        files = []
        for path in sorted(self.source_root.rglob("*")):
            # node_modules stays reachable from the staging tree by walking up.
            parts = path.relative_to(self.source_root).parts
            if STAGING_DIR_NAME in parts or "node_modules" in parts:
                continue
            if path.is_file():
                files.append(path)
        return files

    def staged_path(self, path: Path) -> Path:
        try:
            rel = path.relative_to(self.working_dir)
        except ValueError as exc:
            raise BundlerError(
                f"Source file {path} lies outside the project root {self.working_dir}."
            ) from exc
        return self.staging_dir / rel

    async def stage_file(self, path: Path) -> Optional[str]:
        target = self.staged_path(path)
        await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
        result = await self.build.run_load(OnLoadArgs(path=str(path)))
        if result is None:
            await asyncio.to_thread(shutil.copy2, path, target)
            if path.suffix not in _SCRIPT_SUFFIXES:
                return None
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        await asyncio.to_thread(target.write_text, result.contents, encoding="utf-8")
        return result.contents

    async def stage_virtual(self, specifier: str, importer: str) -> Optional[str]:
        resolved = await self.build.run_resolve(
            OnResolveArgs(path=specifier, importer=importer)
        )
        if resolved is None:
            return None
        if resolved.namespace == FILE_NAMESPACE:
            return resolved.path

        loaded = await self.build.run_load(
            OnLoadArgs(path=resolved.path, namespace=resolved.namespace)
        )
        if loaded is None:
            raise BundlerError(
                f'No load hook handles "{resolved.path}" in namespace "{resolved.namespace}".'
            )
        suffix = _LOADER_SUFFIXES.get(loaded.loader, ".js")
        target = (
            self.staging_dir
            / VIRTUAL_DIR_NAME
            / _safe_file_name(resolved.namespace)
            / f"{_safe_file_name(resolved.path)}{suffix}"
        )
        await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_text, loaded.contents, encoding="utf-8")
        return "./" + target.relative_to(self.working_dir).as_posix()

    async def run(self) -> Tuple[int, Dict[str, str]]:
        for entry in self.options.entry_points:
            entry_path = (self.working_dir / entry).resolve()
            if not entry_path.is_file():
                raise BundlerError(f"Entry point not found: {entry_path}")
        if self.staging_dir.exists():
            await asyncio.to_thread(shutil.rmtree, self.staging_dir)
        files = self.source_files()
        tasks = [asyncio.create_task(self.stage_file(path)) for path in files]
        try:
            contents = await asyncio.gather(*tasks)
        except BaseException:
            # Stop sibling loads before the caller retries and clears the tree.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        importers: Dict[str, str] = {}
        for path, text in zip(files, contents):
            if text is None:
                continue
            for match in _SPECIFIER_RE.finditer(text):
                specifier = match.group(1)
                if _is_bare_specifier(specifier):
                    importers.setdefault(specifier, str(path))

        aliases: Dict[str, str] = {}
        for specifier, importer in importers.items():
            target = await self.stage_virtual(specifier, importer)
            if target is not None:
                aliases[specifier] = target
        return len(files), aliases


def _esbuild_argv(options: BuildOptions, stager: _Stager, aliases: Mapping[str, str]) -> List[str]:
    argv = list(options.esbuild_command)
    for entry in options.entry_points:
        staged = stager.staged_path((stager.working_dir / entry).resolve())
        argv.append(staged.relative_to(stager.working_dir).as_posix())
    argv.append("--bundle")
    argv.append(f"--outfile={options.outfile}")
    argv.append(f"--format={options.format}")
    if options.global_name:
        argv.append(f"--global-name={options.global_name}")
    if options.sourcemap:
        argv.append("--sourcemap")
    argv.append(f"--target={options.target}")
    for key, value in options.define.items():
        argv.append(f"--define:{key}={value}")
    argv.append(f"--log-level={options.log_level}")
    for specifier, target in aliases.items():
        argv.append(f"--alias:{specifier}={target}")
    return argv


async def _run_esbuild(argv: List[str], cwd: Path, log_level: str) -> str:
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise BundlerError(f"Bundler executable not found: {argv[0]}") from exc
    stdout, stderr = await process.communicate()
    log = (stdout + stderr).decode("utf-8", errors="replace")
    if process.returncode != 0:
        raise BundlerError(f"esbuild exited with status {process.returncode}\n{log.strip()}")
    if log.strip() and log_level != "silent":
        sys.stderr.write(log)
    return log


class BuildContext:
    """Long-lived build state for incremental rebuilds, watching and serving."""

    def __init__(self, options: BuildOptions):
        if not options.entry_points:
            raise BuildError("At least one entry point is required.")
        self.options = options
        self.plugin_build = setup_plugins(options.plugins)
        self._stager = _Stager(options, self.plugin_build)
        self._snapshot: Dict[str, Tuple[int, int]] = {}
        self._watch_task: Optional[asyncio.Task] = None
        self._server: Optional[StaticServer] = None
        self._disposed = False

    @property
    def watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def rebuild(self) -> BuildResult:
        if self._disposed:
            raise BuildError("Build context has been disposed.")
        staged_files, aliases = await self._stager.run()
        argv = _esbuild_argv(self.options, self._stager, aliases)
        log = await _run_esbuild(argv, self._stager.working_dir, self.options.log_level)
        return BuildResult(
            outfile=self._stager.working_dir / self.options.outfile,
            staged_files=staged_files,
            aliases=aliases,
            log=log,
        )

    def _take_snapshot(self) -> Dict[str, Tuple[int, int]]:
        snapshot = {}
        for path in self._stager.source_files():
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            snapshot[str(path)] = (stat.st_mtime_ns, stat.st_size)
        return snapshot

    async def watch(self, *, poll_interval: float = 0.25) -> BuildResult:
        """Build once, then rebuild whenever a file under the source root changes."""
        result = await self.rebuild()
        self._snapshot = await asyncio.to_thread(self._take_snapshot)
        if not self.watching:
            self._watch_task = asyncio.create_task(self._watch_loop(poll_interval))
        return result

    async def _watch_loop(self, poll_interval: float) -> None:
        while True:
            await asyncio.sleep(poll_interval)
            snapshot = await asyncio.to_thread(self._take_snapshot)
            if snapshot == self._snapshot:
                continue
            self._snapshot = snapshot
            print("[watch] build started")
            try:
                await self.rebuild()
            except (BuildError, OSError) as exc:
                print(f"[watch] build failed: {exc}", file=sys.stderr)
                continue
            print("[watch] build finished")

    async def serve(
        self,
        servedir: str,
        *,
        host: str = "127.0.0.1",
        port: int = 0,
    ) -> ServeResult:
        if self._disposed:
            raise BuildError("Build context has been disposed.")
        if self._server is None:
            self._server = StaticServer(
                self._stager.working_dir / servedir, host=host, port=port
            )
        bound_port = await asyncio.to_thread(self._server.start)
        return ServeResult(host=host, port=bound_port)

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None
        if self._server is not None:
            await asyncio.to_thread(self._server.stop)
            self._server = None


async def build(options: BuildOptions) -> BuildResult:
    """Run a single build and release the context afterwards."""
    ctx = BuildContext(options)
    try:
        return await ctx.rebuild()
    finally:
        await ctx.dispose()


async def context(options: BuildOptions) -> BuildContext:
    return BuildContext(options)
