"""Locate and merge the named import pulling symbols from the engine module."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Optional, Tuple

from modubuild.constants import ENGINE_MODULE_NAME
from modubuild.errors import ImportReconcileError


@dataclass(frozen=True)
class ImportBlock:
    module_name: str
    symbols: Tuple[str, ...]
    raw_list: str
    start: int
    end: int

    def has_symbol(self, name: str) -> bool:
        return re.search(rf"(?<![\w$]){re.escape(name)}(?![\w$])", self.raw_list) is not None


@lru_cache(maxsize=None)
def _named_import_pattern(module_name: str) -> re.Pattern:
    return re.compile(
        r"import\s*\{([^}]+)\}\s*from\s*['\"]" + re.escape(module_name) + r"['\"]",
        re.S,
    )


@lru_cache(maxsize=None)
def _any_import_pattern(module_name: str) -> re.Pattern:
    # Import clause up to the module specifier, stopping at the previous string.
    return re.compile(
        r"\bimport\b([^;'\"]*?)\bfrom\s*['\"]" + re.escape(module_name) + r"['\"]"
    )


def _split_symbols(raw_list: str) -> Tuple[str, ...]:
    symbols = []
    for item in raw_list.split(","):
        item = " ".join(item.split())
        if item and item not in symbols:
            symbols.append(item)
    return tuple(symbols)


def find_engine_import(
    text: str,
    *,
    module_name: str = ENGINE_MODULE_NAME,
) -> Optional[ImportBlock]:
    """Return the first ``import { ... } from '<module_name>'`` statement, if any.

    Only the brace-list form is recognized. Default and namespace imports of
    the module are ignored, as are malformed brace lists; ``reconcile`` reports
    the latter.
    """
    match = _named_import_pattern(module_name).search(text)
    if match is None or "{" in match.group(1):
        return None
    raw_list = match.group(1)
    return ImportBlock(
        module_name=module_name,
        symbols=_split_symbols(raw_list),
        raw_list=raw_list,
        start=match.start(),
        end=match.end(),
    )


def _braces_balanced(clause: str) -> bool:
    depth = 0
    for ch in clause:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if depth < 0 or depth > 1:
            return False
    return depth == 0


def _raise_if_malformed(text: str, module_name: str) -> None:
    # Other well-formed styles (``import type { ... }``, ``import A, { ... }``)
    # are left to the prepend path.
    for match in _any_import_pattern(module_name).finditer(text):
        if _braces_balanced(match.group(1)):
            continue
        raise ImportReconcileError(
            f"Malformed import from '{module_name}': unbalanced braces around the symbol list.",
            source=text,
            offset=match.start(),
        )


def reconcile(
    text: str,
    needed_symbols: Iterable[str],
    *,
    module_name: str = ENGINE_MODULE_NAME,
) -> str:
    """Make every needed symbol importable from the engine module exactly once.

    An existing brace-list import is extended in place; otherwise a new import
    is prepended as the first line. Returns ``text`` untouched when nothing is
    needed.

    Raises:
        ImportReconcileError: If an existing engine import has unbalanced
            braces, since merging into it would emit broken source.
    """
    needed = []
    for symbol in needed_symbols:
        if symbol not in needed:
            needed.append(symbol)
    if not needed:
        return text

    _raise_if_malformed(text, module_name)
    block = find_engine_import(text, module_name=module_name)

    if block is None:
        return f"import {{ {', '.join(needed)} }} from '{module_name}';\n" + text

    missing = [symbol for symbol in needed if not block.has_symbol(symbol)]
    if not missing:
        return text

    existing = block.raw_list.strip()
    if existing.endswith(","):
        existing = existing[:-1].rstrip()
    merged = ", ".join([existing, *missing]) if existing else ", ".join(missing)
    statement = f"import {{ {merged} }} from '{module_name}'"
    return text[: block.start] + statement + text[block.end :]
