"""Public Python API for modubuild.

The package exposes the deterministic source transform, the engine module
resolver and the HTML engine-URL patcher, plus the pipeline that drives esbuild
with them. The command-line entry point lives in ``modubuild.build``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from modubuild.config import BuildConfig, load_config
from modubuild.errors import (
    BuildError,
    BundlerError,
    ImportReconcileError,
    PortEvictionError,
    TransformError,
)
from modubuild.gate import is_eligible
from modubuild.html_patch import BuildEnvironment, detect_environment, patch
from modubuild.imports import find_engine_import, reconcile
from modubuild.pipeline import run_pipeline
from modubuild.rewriter import RewriteResult, rewrite
from modubuild.transform import deterministic_transform
from modubuild.virtual_modules import EngineResolver

try:
    __version__: str = version("modubuild")
except PackageNotFoundError:  # pragma: no cover - editable local fallback
    __version__ = "0.1.0"


def about(*, print_output: bool = True) -> str:
    """Return and optionally print the transform contract.

    Args:
        print_output: Whether to print the returned summary.

    Returns:
        Human-readable summary string.

    Example:
        >>> from modubuild import about
        >>> "dSqrt" in about(print_output=False)
        True
    """
    text = (
        f"modubuild {__version__}\n"
        "Rewrites: Math.sqrt(x) -> dSqrt(x), Math.random() -> dRandom().\n"
        "Imports: one `import { ... } from 'modu-engine'` per file, merged in place.\n"
        "Skipped: files under node_modules or engine directories.\n"
        "Resolution: 'modu-engine' is bound to window.Modu at runtime.\n"
        "Engine URL: localhost outside CI, cache-busted CDN when CI or GITHUB_ACTIONS is set."
    )
    if print_output:
        print(text)
    return text


__all__ = [
    "__version__",
    "about",
    "BuildConfig",
    "BuildEnvironment",
    "BuildError",
    "BundlerError",
    "EngineResolver",
    "ImportReconcileError",
    "PortEvictionError",
    "RewriteResult",
    "TransformError",
    "deterministic_transform",
    "detect_environment",
    "find_engine_import",
    "is_eligible",
    "load_config",
    "patch",
    "reconcile",
    "rewrite",
    "run_pipeline",
]
