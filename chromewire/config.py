from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    return float(raw)


def _parse_window_size(raw: str | None, default: tuple[int, int]) -> tuple[int, int]:
    if not raw or not raw.strip():
        return default
    parts = [p.strip() for p in raw.replace("x", ",").split(",")]
    if len(parts) != 2:
        raise ValueError(f"Invalid window size: {raw!r} (expected 'width,height')")
    return int(parts[0]), int(parts[1])


@dataclass
class BrowserConfig:
    """How to start a browser and talk to it."""

    binary_path: str | None = None
    debugging_port: int = 0
    headless: bool = False
    window_width: int = 1280
    window_height: int = 720
    user_data_dir: str | None = None
    arguments: list[str] = field(default_factory=list)
    connect_timeout: float = 10.0
    command_timeout: float = 30.0
    discovery_attempts: int = 10
    discovery_interval: float = 0.5

    @classmethod
    def from_env(cls) -> BrowserConfig:
        binary = os.environ.get("CHROMEWIRE_BINARY")
        profile = os.environ.get("CHROMEWIRE_PROFILE")
        port = int(os.environ.get("CHROMEWIRE_PORT", "0"))
        width, height = _parse_window_size(os.environ.get("CHROMEWIRE_WINDOW_SIZE"), (1280, 720))
        flags_raw = os.environ.get("CHROMEWIRE_FLAGS", "")
        arguments = [flag.strip() for flag in flags_raw.split(",") if flag.strip()]
        return cls(
            binary_path=expand_path(binary) if binary else None,
            debugging_port=port,
            headless=_env_bool("CHROMEWIRE_HEADLESS", False),
            window_width=width,
            window_height=height,
            user_data_dir=expand_path(profile) if profile else None,
            arguments=arguments,
            command_timeout=_env_float("CHROMEWIRE_COMMAND_TIMEOUT", 30.0),
        )


@dataclass(frozen=True)
class WaitConfig:
    """Auto-wait policy shared by every element of a driver session.

    Durations are seconds.
    """

    timeout: float = 10.0
    poll_interval: float = 0.1
    wait_for_visibility: bool = True
    wait_for_clickability: bool = True
    wait_for_network_idle: bool = False
    wait_for_animations: bool = False
    network_idle_max_connections: int = 0
    network_idle_duration: float = 0.5

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ValueError("timeout must be >= 0")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if self.network_idle_max_connections < 0:
            raise ValueError("network_idle_max_connections must be >= 0")

    @classmethod
    def from_env(cls) -> WaitConfig:
        return cls(
            timeout=_env_float("CHROMEWIRE_WAIT_TIMEOUT", 10.0),
            poll_interval=_env_float("CHROMEWIRE_WAIT_POLL", 0.1),
            wait_for_network_idle=_env_bool("CHROMEWIRE_WAIT_NETWORK_IDLE", False),
            wait_for_animations=_env_bool("CHROMEWIRE_WAIT_ANIMATIONS", False),
        )
