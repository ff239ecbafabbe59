from __future__ import annotations

import os
from typing import Mapping, Optional

from modubuild import bundler
from modubuild.bundler import BuildContext, BuildOptions
from modubuild.config import BuildConfig
from modubuild.devserver import evict_port
from modubuild.html_patch import BuildEnvironment, detect_environment, patch_html_file
from modubuild.plugins import cdn_engine_plugin, deterministic_plugin
from modubuild.virtual_modules import EngineResolver


def build_options(config: BuildConfig) -> BuildOptions:
    resolver = EngineResolver(config.engine_global, module_name=config.engine_module)
    return BuildOptions(
        entry_points=(config.entry,),
        outfile=config.outfile,
        working_dir=str(config.root.resolve()),
        format=config.format,
        global_name=config.global_name,
        sourcemap=config.sourcemap,
        target=config.target,
        define=dict(config.define),
        log_level=config.log_level,
        plugins=(
            deterministic_plugin(
                root=str(config.root.resolve()),
                module_name=config.engine_module,
                excluded=config.excluded_dirs,
            ),
            cdn_engine_plugin(resolver),
        ),
        esbuild_command=config.esbuild_command,
    )


def prepare_artifacts(
    config: BuildConfig,
    environ: Mapping[str, str],
    *,
    now: Optional[float] = None,
) -> BuildEnvironment:
    """Compute the environment and patch the HTML entry file once."""
    environment = detect_environment(
        environ,
        now=now,
        local_engine_url=config.local_engine_url,
        cdn_engine_url=config.cdn_engine_url,
    )
    config.outfile_path.parent.mkdir(parents=True, exist_ok=True)
    patch_html_file(config.html_path, environment)
    print(f"[build] Engine: {environment.label}")
    return environment


async def run_pipeline(
    config: BuildConfig,
    *,
    watch: bool = False,
    serve: bool = False,
    environ: Optional[Mapping[str, str]] = None,
    now: Optional[float] = None,
) -> Optional[BuildContext]:
    """Patch the HTML entry file, then build once or start watching.

    Returns the live context in watch mode; the caller owns it and must
    ``dispose()`` it. Returns ``None`` after a one-shot build.
    """
    if serve and not watch:
        raise ValueError("Serving requires watch mode.")

    prepare_artifacts(config, os.environ if environ is None else environ, now=now)
    options = build_options(config)

    if not watch:
        await bundler.build(options)
        print("[build] Done!")
        return None

    ctx = await bundler.context(options)
    try:
        await ctx.watch(poll_interval=config.poll_interval)
        print("[build] Watching for changes...")
        if serve:
            evict_port(config.port)
            result = await ctx.serve(config.servedir, host=config.host, port=config.port)
            print(f"[build] Serving at http://localhost:{result.port}")
    except BaseException:
        await ctx.dispose()
        raise
    return ctx
