from __future__ import annotations

from dataclasses import dataclass


class ChromeWireError(Exception):
    pass


class CdpConnectionError(ChromeWireError):
    """The DevTools WebSocket could not be opened, or was lost."""


class CommandTimeoutError(ChromeWireError):
    def __init__(self, method: str, command_id: int, timeout: float) -> None:
        super().__init__(f"CDP command timed out after {timeout:g}s: {method} (id={command_id})")
        self.method = method
        self.command_id = command_id
        self.timeout = timeout


class ProtocolError(ChromeWireError):
    """The browser answered a command with an error object."""

    def __init__(self, code: int, message: str, method: str | None = None) -> None:
        where = f" in {method}" if method else ""
        super().__init__(f"CDP error{where} (code: {code}): {message}")
        self.code = code
        self.message = message
        self.method = method


class LaunchError(ChromeWireError):
    pass


@dataclass(eq=False)
class WaitTimeoutError(ChromeWireError):
    """A readiness condition never held within the wait window."""

    description: str
    elapsed: float
    last_error: BaseException | None = None

    def __post_init__(self) -> None:
        super().__init__(self.description, self.elapsed)

    def __str__(self) -> str:
        return f"{self.description} after {self.elapsed:.2f}s"


class WaitInterruptedError(ChromeWireError):
    pass


class ElementNotFoundError(ChromeWireError):
    pass


__all__ = [
    "CdpConnectionError",
    "ChromeWireError",
    "CommandTimeoutError",
    "ElementNotFoundError",
    "LaunchError",
    "ProtocolError",
    "WaitInterruptedError",
    "WaitTimeoutError",
]
