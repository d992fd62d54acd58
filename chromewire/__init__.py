"""Chrome DevTools Protocol client: transport, launcher, and auto-waiting.

- connection.py: CDP WebSocket transport and command/response correlation
- launcher.py: browser process launch, endpoint discovery, shutdown
- wait.py / conditions.py / network_monitor.py: readiness engine
- cdp/: one-call wrappers per protocol domain
- driver.py: ChromeDriver/Element facade
"""

from __future__ import annotations

from .config import BrowserConfig, WaitConfig
from .connection import CdpConnection, ConnectionState, connect
from .driver import ChromeDriver, Element
from .errors import (
    CdpConnectionError,
    ChromeWireError,
    CommandTimeoutError,
    ElementNotFoundError,
    LaunchError,
    ProtocolError,
    WaitInterruptedError,
    WaitTimeoutError,
)
from .launcher import BrowserLauncher, LaunchResult
from .locators import By, Locator, Strategy
from .network_monitor import NetworkMonitor
from .wait import AutoWaitEngine, await_condition, wait_for_position_stable

__version__ = "0.1.0"

__all__ = [
    "AutoWaitEngine",
    "BrowserConfig",
    "BrowserLauncher",
    "By",
    "CdpConnection",
    "CdpConnectionError",
    "ChromeDriver",
    "ChromeWireError",
    "CommandTimeoutError",
    "ConnectionState",
    "Element",
    "ElementNotFoundError",
    "LaunchError",
    "LaunchResult",
    "Locator",
    "NetworkMonitor",
    "ProtocolError",
    "Strategy",
    "WaitConfig",
    "WaitInterruptedError",
    "WaitTimeoutError",
    "await_condition",
    "connect",
    "wait_for_position_stable",
]
