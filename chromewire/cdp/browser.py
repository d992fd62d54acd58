from __future__ import annotations

from typing import Any

from . import CommandSender


def get_version(conn: CommandSender) -> dict[str, Any]:
    return conn.send("Browser.getVersion")


def get_window_for_target(conn: CommandSender, target_id: str | None = None) -> dict[str, Any]:
    return conn.send("Browser.getWindowForTarget", {"targetId": target_id} if target_id else None)


def get_window_bounds(conn: CommandSender, window_id: int) -> dict[str, Any]:
    return conn.send("Browser.getWindowBounds", {"windowId": window_id})


def set_window_bounds(conn: CommandSender, window_id: int, bounds: dict[str, Any]) -> dict[str, Any]:
    return conn.send("Browser.setWindowBounds", {"windowId": window_id, "bounds": dict(bounds)})


WINDOW_STATES = ("normal", "minimized", "maximized", "fullscreen")


def set_window_state(conn: CommandSender, window_id: int, state: str) -> dict[str, Any]:
    if state not in WINDOW_STATES:
        raise ValueError(f"Unknown window state {state!r}; expected one of {', '.join(WINDOW_STATES)}")
    return set_window_bounds(conn, window_id, {"windowState": state})
