from __future__ import annotations

import functools
import os
import shutil
import signal
import subprocess
import sys
import threading
import warnings
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import List, Optional

from modubuild.constants import DEFAULT_DEV_SERVER_PORT
from modubuild.errors import PortEvictionError


def evict_port(port: int = DEFAULT_DEV_SERVER_PORT, *, platform: str = sys.platform) -> List[int]:
    """Stop whatever process is listening on ``port`` and return its pids.

    Raises:
        PortEvictionError: If a process holding the port cannot be stopped.
    """
    if platform.startswith("win"):
        _evict_port_windows(port)
        return []

    try:
        completed = subprocess.run(
            ["lsof", f"-ti:{port}"],
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        warnings.warn(f"lsof is not available; not checking whether port {port} is in use.")
        return []
    # lsof exits with 1 when nothing matches.
    if completed.returncode not in (0, 1):
        raise PortEvictionError(
            f"Could not list processes bound to port {port}: {completed.stderr.strip()}"
        )

    pids = [int(token) for token in completed.stdout.split() if token.isdigit()]
    own_pid = os.getpid()
    evicted: List[int] = []
    for pid in pids:
        if pid == own_pid:
            continue
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            continue
        except PermissionError as exc:
            raise PortEvictionError(
                f"Cannot stop process {pid} bound to port {port}: {exc}"
            ) from exc
        evicted.append(pid)
    return evicted


def _evict_port_windows(port: int) -> None:
    npx = shutil.which("npx")
    if npx is None:
        raise PortEvictionError(f"npx is required to free port {port} on Windows.")
    completed = subprocess.run(
        [npx, "kill-port", str(port)],
        capture_output=True,
        text=True,
        check=False,
    )
    if completed.returncode != 0:
        warnings.warn(f"kill-port exited with {completed.returncode} for port {port}.")


class _DevRequestHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args):  # noqa: A002
        print(f"[serve] {self.address_string()} {format % args}")


class StaticServer:
    """Serves a build output directory from a background thread."""

    def __init__(
        self,
        directory: str | Path,
        *,
        host: str = "127.0.0.1",
        port: int = DEFAULT_DEV_SERVER_PORT,
    ):
        self.directory = Path(directory)
        self.host = host
        self.port = port
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._httpd is not None

    def start(self) -> int:
        if self._httpd is not None:
            return self.port
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Serve directory not found: {self.directory}")
        handler = functools.partial(_DevRequestHandler, directory=str(self.directory))
        self._httpd = ThreadingHTTPServer((self.host, self.port), handler)
        self.port = self._httpd.server_address[1]
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()
        return self.port

    def stop(self) -> None:
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._httpd = None
        self._thread = None
