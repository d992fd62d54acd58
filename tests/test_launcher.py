from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

import pytest

PAGE_TARGETS = [
    {"type": "service_worker", "webSocketDebuggerUrl": "ws://localhost:9222/devtools/sw/1"},
    {"type": "page", "webSocketDebuggerUrl": "ws://localhost:9222/devtools/page/ABC"},
]


class DummyProc:
    def __init__(self, *, exit_code: int | None = None, ignore_terminate: bool = False) -> None:
        self.pid = 4242
        self.returncode = exit_code
        self.ignore_terminate = ignore_terminate
        self.calls: list[str] = []

    def poll(self) -> int | None:
        return self.returncode

    def terminate(self) -> None:
        self.calls.append("terminate")
        if not self.ignore_terminate:
            self.returncode = -15

    def kill(self) -> None:
        self.calls.append("kill")
        self.returncode = -9

    def wait(self, timeout: float | None = None) -> int:
        self.calls.append(f"wait:{timeout:g}")
        if self.returncode is None:
            raise subprocess.TimeoutExpired("chrome", timeout)
        return self.returncode


def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    import chromewire.launcher as launcher

    slept: list[float] = []
    monkeypatch.setattr(launcher.time, "sleep", slept.append)
    return slept


def test_configured_binary_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from chromewire.config import BrowserConfig
    from chromewire.launcher import BrowserLauncher

    binary = tmp_path / "my-chrome"
    binary.write_text("")
    monkeypatch.setenv("CHROME_PATH", str(tmp_path / "other"))

    assert BrowserLauncher(BrowserConfig(binary_path=str(binary))).find_binary() == str(binary)


def test_missing_configured_binary_fails_without_fallback(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from chromewire.config import BrowserConfig
    from chromewire.errors import LaunchError
    from chromewire.launcher import BrowserLauncher

    fallback = tmp_path / "chrome"
    fallback.write_text("")
    monkeypatch.setenv("CHROME_PATH", str(fallback))

    with pytest.raises(LaunchError, match="Specified browser binary not found"):
        BrowserLauncher(BrowserConfig(binary_path=str(tmp_path / "nope"))).find_binary()


def test_chrome_path_env_is_used(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from chromewire.config import BrowserConfig
    from chromewire.launcher import BrowserLauncher

    binary = tmp_path / "chrome"
    binary.write_text("")
    monkeypatch.setenv("CHROME_PATH", str(binary))

    assert BrowserLauncher(BrowserConfig()).find_binary() == str(binary)


def test_not_found_lists_searched_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig
    from chromewire.errors import LaunchError

    missing = str(tmp_path / "missing-chrome")
    monkeypatch.setenv("CHROME_PATH", missing)
    monkeypatch.setattr(launcher, "default_binary_candidates", lambda platform=None: [str(tmp_path / "a")])
    monkeypatch.setattr(launcher.shutil, "which", lambda _name: None)

    with pytest.raises(LaunchError) as excinfo:
        launcher.BrowserLauncher(BrowserConfig()).find_binary()
    message = str(excinfo.value)
    assert "CHROME_PATH" in message
    assert missing in message
    assert str(tmp_path / "a") in message


def test_path_lookup_is_last_resort(monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig

    monkeypatch.delenv("CHROME_PATH", raising=False)
    monkeypatch.setattr(launcher, "default_binary_candidates", lambda platform=None: [])
    monkeypatch.setattr(launcher.shutil, "which", lambda name: "/opt/bin/chromium" if name == "chromium" else None)

    assert launcher.BrowserLauncher(BrowserConfig()).find_binary() == "/opt/bin/chromium"


def test_default_candidates_per_platform(monkeypatch: pytest.MonkeyPatch) -> None:
    from chromewire.launcher import default_binary_candidates

    monkeypatch.setenv("LOCALAPPDATA", "C:\\Users\\me\\AppData\\Local")
    assert default_binary_candidates("linux")[0] == "/usr/bin/google-chrome"
    assert default_binary_candidates("darwin")[0].startswith("/Applications/Google Chrome.app")
    win = default_binary_candidates("win32")
    assert win[0].endswith("chrome.exe")
    assert any(c.startswith("C:\\Users\\me\\AppData\\Local") for c in win)


def test_build_command_headless_and_extra_flags() -> None:
    from chromewire.config import BrowserConfig
    from chromewire.launcher import START_PAGE, BrowserLauncher

    cfg = BrowserConfig(headless=True, window_width=800, window_height=600, arguments=["--lang=en-US"])
    cmd = BrowserLauncher(cfg).build_command("/bin/chrome", 9333, "/tmp/profile")

    assert cmd[0] == "/bin/chrome"
    assert cmd[-1] == START_PAGE
    assert "--remote-debugging-port=9333" in cmd
    assert "--headless=new" in cmd
    assert "--window-size=800,600" in cmd
    assert "--user-data-dir=/tmp/profile" in cmd
    assert "--no-first-run" in cmd
    assert "--no-default-browser-check" in cmd
    assert cmd.index("--lang=en-US") < len(cmd) - 1


def test_build_command_headful_by_default() -> None:
    from chromewire.config import BrowserConfig
    from chromewire.launcher import BrowserLauncher

    cmd = BrowserLauncher(BrowserConfig()).build_command("/bin/chrome", 9222, "/tmp/p")
    assert not any(flag.startswith("--headless") for flag in cmd)
    assert "--window-size=1280,720" in cmd


def test_discovery_retries_until_endpoint_answers(monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig
    from chromewire.http_client import HttpClientError

    slept = _no_sleep(monkeypatch)
    attempts: list[str] = []

    def fake_get(url: str, timeout: float = 1.0) -> tuple[int, Any]:  # noqa: ARG001
        attempts.append(url)
        if len(attempts) < 10:
            raise HttpClientError("connection refused")
        return 200, PAGE_TARGETS

    monkeypatch.setattr(launcher, "http_get_json", fake_get)

    url = launcher.BrowserLauncher(BrowserConfig()).discover_page_url(9222)
    assert url == "ws://localhost:9222/devtools/page/ABC"
    assert len(attempts) == 10
    assert attempts[0] == "http://localhost:9222/json"
    assert slept == [0.5] * 9


def test_discovery_gives_up_after_ten_attempts(monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig
    from chromewire.errors import LaunchError
    from chromewire.http_client import HttpClientError

    _no_sleep(monkeypatch)
    attempts: list[str] = []

    def fake_get(url: str, timeout: float = 1.0) -> tuple[int, Any]:  # noqa: ARG001
        attempts.append(url)
        raise HttpClientError("connection refused")

    monkeypatch.setattr(launcher, "http_get_json", fake_get)

    with pytest.raises(LaunchError, match="after 10 attempts"):
        launcher.BrowserLauncher(BrowserConfig()).discover_page_url(9222)
    assert len(attempts) == 10


def test_discovery_gives_up_when_no_page_target_ever_appears(monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig
    from chromewire.errors import LaunchError

    _no_sleep(monkeypatch)
    attempts: list[str] = []

    def only_workers(url: str, timeout: float = 1.0) -> tuple[int, Any]:  # noqa: ARG001
        attempts.append(url)
        return 200, PAGE_TARGETS[:1] if len(attempts) % 2 else []

    monkeypatch.setattr(launcher, "http_get_json", only_workers)

    with pytest.raises(LaunchError, match="no page target"):
        launcher.BrowserLauncher(BrowserConfig()).discover_page_url(9222)
    assert len(attempts) == 10


def test_discovery_succeeds_on_tenth_attempt_after_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig

    slept = _no_sleep(monkeypatch)
    answers = [(503, None)] * 9 + [(200, PAGE_TARGETS)]
    attempts: list[str] = []

    def fake_get(url: str, timeout: float = 1.0) -> tuple[int, Any]:  # noqa: ARG001
        attempts.append(url)
        return answers[len(attempts) - 1]

    monkeypatch.setattr(launcher, "http_get_json", fake_get)

    assert launcher.BrowserLauncher(BrowserConfig()).discover_page_url(9222).endswith("/page/ABC")
    assert len(attempts) == 10
    assert len(slept) == 9


def test_discovery_retries_when_no_page_target_yet(monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig

    _no_sleep(monkeypatch)
    answers = iter([(500, None), (200, []), (200, PAGE_TARGETS[:1]), (200, PAGE_TARGETS)])
    monkeypatch.setattr(launcher, "http_get_json", lambda url, timeout=1.0: next(answers))

    assert launcher.BrowserLauncher(BrowserConfig()).discover_page_url(9222).endswith("/page/ABC")


def test_launch_starts_process_and_discovers(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig

    binary = tmp_path / "chrome"
    binary.write_text("")
    profile = tmp_path / "profile"
    proc = DummyProc()
    seen: dict[str, Any] = {}

    def fake_popen(cmd: list[str], **kwargs: Any) -> DummyProc:
        seen["cmd"] = cmd
        seen["kwargs"] = kwargs
        return proc

    monkeypatch.setattr(launcher.subprocess, "Popen", fake_popen)
    monkeypatch.setattr(launcher, "http_get_json", lambda url, timeout=1.0: (200, PAGE_TARGETS))

    cfg = BrowserConfig(binary_path=str(binary), debugging_port=9555, user_data_dir=str(profile))
    with launcher.BrowserLauncher(cfg) as bl:
        result = bl.launch()
        assert result.websocket_url == "ws://localhost:9222/devtools/page/ABC"
        assert result.port == 9555
        assert result.process is proc
        assert result.user_data_dir == str(profile)
        assert "--remote-debugging-port=9555" in seen["cmd"]
        assert seen["kwargs"]["stderr"] is subprocess.STDOUT
        assert result.log_path and Path(result.log_path).is_file()
        log_path = Path(result.log_path)
        assert bl.is_running()

    assert proc.calls[0] == "terminate"
    # A caller-provided profile is left in place and never receives the browser log.
    assert profile.is_dir()
    assert list(profile.iterdir()) == []
    assert log_path.parent != profile
    assert not log_path.exists()


def test_launch_removes_temporary_profile_on_shutdown(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig

    binary = tmp_path / "chrome"
    binary.write_text("")
    monkeypatch.setattr(launcher.subprocess, "Popen", lambda cmd, **kw: DummyProc())
    monkeypatch.setattr(launcher, "http_get_json", lambda url, timeout=1.0: (200, PAGE_TARGETS))

    bl = launcher.BrowserLauncher(BrowserConfig(binary_path=str(binary)))
    result = bl.launch()
    assert Path(result.user_data_dir).name.startswith("chromewire-profile-")
    bl.shutdown()
    assert not Path(result.user_data_dir).exists()


def test_launch_reports_immediate_exit_with_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig
    from chromewire.errors import LaunchError

    binary = tmp_path / "chrome"
    binary.write_text("")
    profile = tmp_path / "profile"

    def fake_popen(cmd: list[str], **kwargs: Any) -> DummyProc:  # noqa: ARG001
        kwargs["stdout"].write(b"Missing X server or $DISPLAY\n")
        return DummyProc(exit_code=1)

    monkeypatch.setattr(launcher.subprocess, "Popen", fake_popen)

    bl = launcher.BrowserLauncher(BrowserConfig(binary_path=str(binary), user_data_dir=str(profile)))
    with pytest.raises(LaunchError) as excinfo:
        bl.launch()
    assert "exited immediately (code 1)" in str(excinfo.value)
    assert "Missing X server" in str(excinfo.value)


def test_failed_discovery_stops_the_browser(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import chromewire.launcher as launcher
    from chromewire.config import BrowserConfig
    from chromewire.errors import LaunchError
    from chromewire.http_client import HttpClientError

    binary = tmp_path / "chrome"
    binary.write_text("")
    proc = DummyProc()
    _no_sleep(monkeypatch)
    monkeypatch.setattr(launcher.subprocess, "Popen", lambda cmd, **kw: proc)

    def refused(url: str, timeout: float = 1.0) -> tuple[int, Any]:
        raise HttpClientError("connection refused")

    monkeypatch.setattr(launcher, "http_get_json", refused)

    bl = launcher.BrowserLauncher(BrowserConfig(binary_path=str(binary), discovery_attempts=3))
    with pytest.raises(LaunchError, match="after 3 attempts"):
        bl.launch()
    assert proc.calls[0] == "terminate"
    assert not bl.is_running()


def test_shutdown_escalates_to_kill() -> None:
    from chromewire.launcher import KILL_GRACE_S, TERMINATE_GRACE_S, BrowserLauncher

    bl = BrowserLauncher()
    proc = DummyProc(ignore_terminate=True)
    bl.process = proc  # type: ignore[assignment]

    bl.shutdown()
    assert proc.calls == ["terminate", f"wait:{TERMINATE_GRACE_S:g}", "kill", f"wait:{KILL_GRACE_S:g}"]
    assert not bl.is_running()


def test_shutdown_is_idempotent_and_safe_before_launch() -> None:
    from chromewire.launcher import BrowserLauncher

    bl = BrowserLauncher()
    bl.shutdown()

    proc = DummyProc()
    bl.process = proc  # type: ignore[assignment]
    bl.shutdown()
    bl.shutdown()
    assert proc.calls.count("terminate") == 1


def test_find_free_port_is_bindable() -> None:
    import socket

    from chromewire.launcher import BrowserLauncher

    port = BrowserLauncher.find_free_port()
    assert 0 < port < 65536
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", port))
