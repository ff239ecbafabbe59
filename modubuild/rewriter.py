from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from modubuild.constants import ENGINE_MODULE_NAME, RANDOM_SYMBOL, SQRT_SYMBOL
from modubuild.imports import find_engine_import


@dataclass(frozen=True)
class DeterministicRule:
    symbol: str
    pattern: re.Pattern
    replacement: str


# The patterns are anchored on the ``Math.`` receiver so replaced call sites
# never match again.
DETERMINISTIC_RULES: Tuple[DeterministicRule, ...] = (
    DeterministicRule(
        symbol=SQRT_SYMBOL,
        pattern=re.compile(r"(?<![\w$.])Math\.sqrt\s*\("),
        replacement=f"{SQRT_SYMBOL}(",
    ),
    DeterministicRule(
        symbol=RANDOM_SYMBOL,
        pattern=re.compile(r"(?<![\w$.])Math\.random\s*\(\s*\)"),
        replacement=f"{RANDOM_SYMBOL}()",
    ),
)


@dataclass(frozen=True)
class RewriteResult:
    text: str
    needed_symbols: Tuple[str, ...] = ()


def rewrite(
    text: str,
    *,
    module_name: str = ENGINE_MODULE_NAME,
    rules: Tuple[DeterministicRule, ...] = DETERMINISTIC_RULES,
) -> RewriteResult:
    """Replace nondeterministic ``Math`` calls with their engine equivalents.

    Every occurrence is rewritten; the argument of a square-root call is left
    byte-for-byte as written. A symbol is reported as needed only when at least
    one call site was rewritten and the unit's existing engine import does not
    already list it.
    """
    block = find_engine_import(text, module_name=module_name)
    needed: list[str] = []
    for rule in rules:
        text, count = rule.pattern.subn(rule.replacement, text)
        if not count or rule.symbol in needed:
            continue
        if block is not None and block.has_symbol(rule.symbol):
            continue
        needed.append(rule.symbol)
    return RewriteResult(text=text, needed_symbols=tuple(needed))
