from __future__ import annotations

from pathlib import PurePath
from typing import Iterable

from modubuild.constants import EXCLUDED_DIR_MARKERS


def is_eligible(
    path: str | PurePath,
    root: str | PurePath | None = None,
    *,
    excluded: Iterable[str] = EXCLUDED_DIR_MARKERS,
) -> bool:
    """Return whether a loaded file should go through the deterministic rewrite.

    Files living in a vendored dependency tree or in the engine's own sources
    are passed through untouched. Only directory components are inspected, and
    a component matches when it *contains* one of the markers, so
    ``node_modules/.pnpm`` and ``modu-engine/src`` are both excluded. When
    ``root`` is given and the file lives under it, directories above the root
    are ignored.
    """
    pure = PurePath(path)
    if root is not None:
        try:
            pure = pure.relative_to(PurePath(root))
        except ValueError:
            pass
    markers = tuple(excluded)
    for part in pure.parent.parts:
        if any(marker in part for marker in markers):
            return False
    return True
