from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Optional

from modubuild.constants import ENGINE_MODULE_NAME, EXCLUDED_DIR_MARKERS
from modubuild.errors import source_path_context
from modubuild.gate import is_eligible
from modubuild.imports import reconcile
from modubuild.rewriter import rewrite


@dataclass(frozen=True)
class SourceUnit:
    path: str
    raw_text: str
    is_eligible: bool


def load_unit(
    path: str,
    raw_text: str,
    *,
    root: Optional[str] = None,
    excluded: Iterable[str] = EXCLUDED_DIR_MARKERS,
) -> SourceUnit:
    return SourceUnit(
        path=path,
        raw_text=raw_text,
        is_eligible=is_eligible(path, root, excluded=excluded),
    )


def transform_unit(
    unit: SourceUnit,
    *,
    module_name: str = ENGINE_MODULE_NAME,
    verbose: bool = True,
) -> str:
    """Run rewrite and import reconciliation on an eligible unit."""
    if not unit.is_eligible:
        return unit.raw_text

    if verbose:
        print(f"[deterministic] Transforming: {os.path.basename(unit.path)}")

    with source_path_context(unit.path):
        result = rewrite(unit.raw_text, module_name=module_name)
        return reconcile(result.text, result.needed_symbols, module_name=module_name)


def deterministic_transform(
    code: str,
    path: str,
    *,
    root: Optional[str] = None,
    module_name: str = ENGINE_MODULE_NAME,
    excluded: Iterable[str] = EXCLUDED_DIR_MARKERS,
    verbose: bool = True,
) -> str:
    """Return ``code`` rewritten to use the engine's deterministic math.

    Files under vendored or engine directories come back unchanged.
    """
    unit = load_unit(path, code, root=root, excluded=excluded)
    return transform_unit(unit, module_name=module_name, verbose=verbose)
