"""Bundler plugin contract and the two plugins the pipeline registers.

The contract mirrors the load/resolve hook model of JavaScript bundlers: a
plugin's ``setup`` registers callbacks on a :class:`PluginBuild`, each guarded
by a path filter and a namespace. Callbacks are coroutines so file reads do
not block other loads running concurrently.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from modubuild.constants import (
    ENGINE_MODULE_NAME,
    EXCLUDED_DIR_MARKERS,
    FILE_NAMESPACE,
    loader_for_path,
)
from modubuild.transform import deterministic_transform
from modubuild.virtual_modules import EngineResolver, ResolvedRef


@dataclass(frozen=True)
class OnLoadArgs:
    path: str
    namespace: str = FILE_NAMESPACE


@dataclass(frozen=True)
class OnLoadResult:
    contents: str
    loader: str = "js"


@dataclass(frozen=True)
class OnResolveArgs:
    path: str
    importer: str = ""
    namespace: str = FILE_NAMESPACE


@dataclass(frozen=True)
class OnResolveResult:
    path: str
    namespace: str = FILE_NAMESPACE


LoadCallback = Callable[[OnLoadArgs], Awaitable[Optional[OnLoadResult]]]
ResolveCallback = Callable[[OnResolveArgs], Awaitable[Optional[OnResolveResult]]]


@dataclass(frozen=True)
class _Hook:
    filter: re.Pattern
    namespace: str
    callback: Callable


class PluginBuild:
    """Hook registry handed to each plugin's ``setup``."""

    def __init__(self):
        self.load_hooks: List[_Hook] = []
        self.resolve_hooks: List[_Hook] = []

    def on_load(
        self,
        filter: str,
        callback: LoadCallback,
        *,
        namespace: str = FILE_NAMESPACE,
    ) -> None:
        self.load_hooks.append(_Hook(re.compile(filter), namespace, callback))

    def on_resolve(
        self,
        filter: str,
        callback: ResolveCallback,
        *,
        namespace: str = FILE_NAMESPACE,
    ) -> None:
        self.resolve_hooks.append(_Hook(re.compile(filter), namespace, callback))

    async def run_load(self, args: OnLoadArgs) -> Optional[OnLoadResult]:
        """Return the first non-empty load result, or ``None`` for default loading."""
        for hook in self.load_hooks:
            if hook.namespace != args.namespace or not hook.filter.search(args.path):
                continue
            result = await hook.callback(args)
            if result is not None:
                return result
        return None

    async def run_resolve(self, args: OnResolveArgs) -> Optional[OnResolveResult]:
        """Return the first non-empty resolve result, or ``None`` to pass through."""
        for hook in self.resolve_hooks:
            if hook.namespace != args.namespace or not hook.filter.search(args.path):
                continue
            result = await hook.callback(args)
            if result is not None:
                return result
        return None


@dataclass(frozen=True)
class Plugin:
    name: str
    setup: Callable[[PluginBuild], None]


def setup_plugins(plugins: Iterable[Plugin]) -> PluginBuild:
    build = PluginBuild()
    for plugin in plugins:
        plugin.setup(build)
    return build


def deterministic_plugin(
    *,
    root: Optional[str] = None,
    module_name: str = ENGINE_MODULE_NAME,
    excluded: Tuple[str, ...] = EXCLUDED_DIR_MARKERS,
) -> Plugin:
    def setup(build: PluginBuild) -> None:
        async def on_load(args: OnLoadArgs) -> OnLoadResult:
            source = await asyncio.to_thread(Path(args.path).read_text, encoding="utf-8")
            transformed = deterministic_transform(
                source,
                args.path,
                root=root,
                module_name=module_name,
                excluded=excluded,
            )
            return OnLoadResult(contents=transformed, loader=loader_for_path(args.path))

        build.on_load(r"\.(ts|js)$", on_load)

    return Plugin(name="deterministic", setup=setup)


def cdn_engine_plugin(resolver: EngineResolver) -> Plugin:
    def setup(build: PluginBuild) -> None:
        async def on_resolve(args: OnResolveArgs) -> Optional[OnResolveResult]:
            ref = resolver.resolve(args.path)
            if ref is None:
                return None
            return OnResolveResult(path=ref.path, namespace=ref.namespace)

        async def on_load(args: OnLoadArgs) -> OnLoadResult:
            module = resolver.load(ResolvedRef(path=args.path, namespace=args.namespace))
            return OnLoadResult(contents=module.synthetic_contents, loader="js")

        build.on_resolve("^" + re.escape(resolver.module_name) + "$", on_resolve)
        build.on_load(r".*", on_load, namespace=resolver.namespace)

    return Plugin(name="cdn-engine", setup=setup)
