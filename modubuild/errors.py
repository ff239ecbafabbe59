import contextvars
from contextlib import contextmanager
from typing import Iterator, Optional


_CURRENT_SOURCE_PATH: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "modubuild_current_source_path", default=None
)


def _line_from_source(source: str, line_no: int) -> Optional[str]:
    if line_no <= 0:
        return None
    lines = source.splitlines()
    if line_no > len(lines):
        return None
    return lines[line_no - 1].strip()


def _format_with_context(
    message: str,
    *,
    path: Optional[str] = None,
    source: Optional[str] = None,
    offset: Optional[int] = None,
) -> str:
    path = path if path is not None else _CURRENT_SOURCE_PATH.get()
    details = []
    if path:
        details.append(f"File: {path}")
    if source is not None and offset is not None:
        line = source.count("\n", 0, offset) + 1
        col = offset - (source.rfind("\n", 0, offset) + 1) + 1
        details.append(f"Location: line {line}, column {col}")
        code = _line_from_source(source, line)
        if code:
            details.append(f"Code: {code}")
    if not details:
        return message
    return f"{message}\n" + "\n".join(details)


@contextmanager
def source_path_context(path: Optional[str]) -> Iterator[None]:
    token = _CURRENT_SOURCE_PATH.set(path)
    try:
        yield
    finally:
        _CURRENT_SOURCE_PATH.reset(token)


class BuildError(Exception):
    """Base build pipeline error."""


class TransformError(BuildError):
    """Raised when a source unit cannot be transformed safely."""

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        source: Optional[str] = None,
        offset: Optional[int] = None,
    ):
        super().__init__(
            _format_with_context(message, path=path, source=source, offset=offset)
        )


class ImportReconcileError(TransformError):
    """Raised when an existing engine import cannot be merged."""


class BundlerError(BuildError):
    """Raised when the external bundler fails."""


class PortEvictionError(BuildError):
    """Raised when the dev server port cannot be freed."""
