"""Point the HTML entry file at the engine build matching the environment."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from modubuild.constants import CDN_ENGINE_URL, CI_ENV_VARS, LOCAL_ENGINE_URL


@dataclass(frozen=True)
class BuildEnvironment:
    is_continuous_integration: bool
    local_engine_url: str
    cdn_engine_url: str

    @property
    def engine_url(self) -> str:
        if self.is_continuous_integration:
            return self.cdn_engine_url
        return self.local_engine_url

    @property
    def label(self) -> str:
        return "CDN (CI)" if self.is_continuous_integration else "localhost"


def cache_busted_url(base_url: str, now: Optional[float] = None) -> str:
    timestamp = time.time() if now is None else now
    return f"{base_url}?v={int(timestamp * 1000)}"


def detect_environment(
    environ: Mapping[str, str],
    *,
    now: Optional[float] = None,
    local_engine_url: str = LOCAL_ENGINE_URL,
    cdn_engine_url: str = CDN_ENGINE_URL,
) -> BuildEnvironment:
    """Derive the engine endpoints for this invocation from CI variables.

    Any non-empty ``CI`` or ``GITHUB_ACTIONS`` variable selects the CDN.
    """
    return BuildEnvironment(
        is_continuous_integration=any(environ.get(name) for name in CI_ENV_VARS),
        local_engine_url=local_engine_url,
        cdn_engine_url=cache_busted_url(cdn_engine_url, now),
    )


def patch(html: str, environment: BuildEnvironment) -> str:
    engine_url = environment.engine_url
    html = html.replace(environment.local_engine_url, engine_url)
    cdn_base = environment.cdn_engine_url.split("?", 1)[0]
    cdn_pattern = re.compile(re.escape(cdn_base) + r"(?:\?v=\d+)?")
    return cdn_pattern.sub(lambda _match: engine_url, html)


def patch_html_file(path: str | Path, environment: BuildEnvironment) -> str:
    html_path = Path(path)
    if not html_path.is_file():
        raise FileNotFoundError(f"HTML entry file not found: {html_path}")
    patched = patch(html_path.read_text(encoding="utf-8"), environment)
    html_path.write_text(patched, encoding="utf-8")
    return patched
