from __future__ import annotations

import contextlib
import logging
import os
import shutil
import socket
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from .config import BrowserConfig, expand_path
from .errors import LaunchError
from .http_client import HttpClientError, http_get_json

logger = logging.getLogger("chromewire.launcher")

FIRST_RUN_FLAGS: tuple[str, ...] = ("--no-first-run", "--no-default-browser-check")
START_PAGE = "about:blank"

TERMINATE_GRACE_S = 5.0
KILL_GRACE_S = 2.0


def default_binary_candidates(platform: str | None = None) -> list[str]:
    """OS-conventional install locations, most preferred first."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        candidates = [
            "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
            "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
        ]
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            candidates.append(local_app_data + "\\Google\\Chrome\\Application\\chrome.exe")
        candidates.append("C:\\Program Files\\Chromium\\Application\\chrome.exe")
        return candidates
    if platform == "darwin":
        return [
            "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
            "/Applications/Chromium.app/Contents/MacOS/Chromium",
            expand_path("~/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"),
        ]
    return [
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        # Snap builds ignore --user-data-dir outside $HOME; keep them last.
        "/snap/bin/chromium",
    ]


PATH_EXECUTABLES: tuple[str, ...] = ("google-chrome", "google-chrome-stable", "chromium", "chromium-browser", "chrome")


@dataclass
class LaunchResult:
    process: subprocess.Popen
    websocket_url: str
    port: int
    command: list[str]
    user_data_dir: str
    log_path: str | None = None


def _tail_text(path: str | None, max_chars: int = 4000) -> str | None:
    if not path:
        return None
    try:
        raw = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return raw if len(raw) <= max_chars else raw[-max_chars:]


class BrowserLauncher:
    """Start a Chromium-family browser with remote debugging and find its page target.

    The launcher owns the process (and any temporary profile it created) until
    ``shutdown()``. Callers only borrow ``LaunchResult.websocket_url``.
    """

    def __init__(self, config: BrowserConfig | None = None) -> None:
        self.config = config or BrowserConfig.from_env()
        self.process: subprocess.Popen | None = None
        self.result: LaunchResult | None = None
        self._owned_profile: str | None = None
        self._owned_log: str | None = None

    def __enter__(self) -> BrowserLauncher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # ─────────────────────────────────────────────────────────────────────────
    # Launch
    # ─────────────────────────────────────────────────────────────────────────

    def launch(self) -> LaunchResult:
        binary = self.find_binary()
        port = self.config.debugging_port or self.find_free_port()
        user_data_dir = self._prepare_user_data_dir()
        cmd = self.build_command(binary, port, user_data_dir)

        log_path = self._prepare_log_path(user_data_dir)
        try:
            with open(log_path, "ab", buffering=0) as log_fh:
                self.process = subprocess.Popen(
                    cmd,
                    stdout=log_fh,
                    stderr=subprocess.STDOUT,
                    stdin=subprocess.DEVNULL,
                )
        except OSError as exc:
            self._remove_owned_files()
            raise LaunchError(f"Failed to start browser {binary}: {exc}") from exc

        if self.process.poll() is not None:
            code = self.process.returncode
            tail = _tail_text(log_path)
            self.shutdown()
            raise LaunchError(f"Browser process exited immediately (code {code})" + (f":\n{tail}" if tail else ""))

        logger.info("Browser started: pid=%s port=%s binary=%s", self.process.pid, port, binary)

        try:
            ws_url = self.discover_page_url(port)
        except LaunchError:
            self.shutdown()
            raise

        self.result = LaunchResult(self.process, ws_url, port, cmd, user_data_dir, log_path)
        return self.result

    def find_binary(self) -> str:
        """Resolve the browser executable.

        Order: configured path, ``CHROME_PATH``, OS install locations, PATH lookup.
        """
        configured = self.config.binary_path
        if configured:
            path = expand_path(configured)
            if Path(path).exists():
                return path
            raise LaunchError(f"Specified browser binary not found: {path}")

        searched: list[str] = []
        env_path = os.environ.get("CHROME_PATH")
        if env_path:
            candidate = expand_path(env_path)
            searched.append(candidate)
            if Path(candidate).exists():
                return candidate

        for candidate in default_binary_candidates():
            searched.append(candidate)
            if Path(candidate).exists():
                return candidate

        for name in PATH_EXECUTABLES:
            searched.append(f"$PATH/{name}")
            found = shutil.which(name)
            if found:
                return found

        raise LaunchError(
            "Chrome/Chromium not found. Install Chrome or set CHROME_PATH. Searched paths: " + ", ".join(searched)
        )

    @staticmethod
    def find_free_port() -> int:
        with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
            s.bind(("127.0.0.1", 0))
            return s.getsockname()[1]

    def _prepare_user_data_dir(self) -> str:
        if self.config.user_data_dir:
            path = expand_path(self.config.user_data_dir)
            Path(path).mkdir(parents=True, exist_ok=True)
            return path
        # A fresh profile per launch so concurrent runs never share a SingletonLock.
        self._owned_profile = tempfile.mkdtemp(prefix="chromewire-profile-")
        return self._owned_profile

    def _prepare_log_path(self, user_data_dir: str) -> str:
        if self._owned_profile:
            return str(Path(user_data_dir) / "chromewire-browser.log")
        # A caller-provided profile is left untouched; the log goes to a temp file instead.
        fd, path = tempfile.mkstemp(prefix="chromewire-browser-", suffix=".log")
        os.close(fd)
        self._owned_log = path
        return path

    def build_command(self, binary: str, port: int, user_data_dir: str) -> list[str]:
        flags = [f"--remote-debugging-port={port}"]
        if self.config.headless:
            flags.append("--headless=new")
        flags.append(f"--window-size={self.config.window_width},{self.config.window_height}")
        flags.append(f"--user-data-dir={user_data_dir}")
        flags.extend(FIRST_RUN_FLAGS)
        flags.extend(self.config.arguments)
        return [binary, *flags, START_PAGE]

    # ─────────────────────────────────────────────────────────────────────────
    # Discovery
    # ─────────────────────────────────────────────────────────────────────────

    def discover_page_url(self, port: int) -> str:
        """Poll ``/json`` until a page target shows up.

        This is the only retried step of a launch: the browser needs a moment
        before its DevTools HTTP server answers.
        """
        endpoint = f"http://localhost:{port}/json"
        attempts = max(1, int(self.config.discovery_attempts))
        last_problem = "no response"
        for attempt in range(1, attempts + 1):
            try:
                status, targets = http_get_json(endpoint, timeout=1.0)
            except HttpClientError as exc:
                last_problem = str(exc)
            else:
                if status == 200:
                    ws_url = self._first_page_target(targets)
                    if ws_url:
                        return ws_url
                    last_problem = "no page target found in browser targets"
                else:
                    last_problem = f"HTTP {status}"
            logger.debug("DevTools discovery attempt %d/%d on port %s: %s", attempt, attempts, port, last_problem)
            if attempt < attempts:
                time.sleep(self.config.discovery_interval)
        raise LaunchError(
            f"Failed to get WebSocket debugger URL from {endpoint} after {attempts} attempts: {last_problem}"
        )

    @staticmethod
    def _first_page_target(targets: object) -> str | None:
        if not isinstance(targets, list):
            return None
        for target in targets:
            if not isinstance(target, dict) or target.get("type") != "page":
                continue
            ws_url = target.get("webSocketDebuggerUrl")
            if isinstance(ws_url, str) and ws_url:
                return ws_url
        return None

    # ─────────────────────────────────────────────────────────────────────────
    # Shutdown
    # ─────────────────────────────────────────────────────────────────────────

    def is_running(self) -> bool:
        proc = self.process
        return proc is not None and proc.poll() is None

    def shutdown(self) -> None:
        """Stop the browser: terminate, then kill if it ignores the request.

        Safe to call repeatedly and before any launch.
        """
        proc = self.process
        if proc is not None and proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=TERMINATE_GRACE_S)
            except subprocess.TimeoutExpired:
                logger.warning("Browser pid=%s ignored terminate; killing", proc.pid)
                proc.kill()
                with contextlib.suppress(subprocess.TimeoutExpired):
                    proc.wait(timeout=KILL_GRACE_S)
            logger.info("Browser stopped: pid=%s", proc.pid)
        self._remove_owned_files()

    def _remove_owned_files(self) -> None:
        log, self._owned_log = self._owned_log, None
        if log:
            with contextlib.suppress(OSError):
                os.remove(log)
        profile, self._owned_profile = self._owned_profile, None
        if profile:
            shutil.rmtree(profile, ignore_errors=True)


__all__ = ["BrowserLauncher", "LaunchResult", "default_binary_candidates"]
