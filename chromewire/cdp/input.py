from __future__ import annotations

from typing import Any

from . import CommandSender

# Input.dispatchKeyEvent modifier bits.
ALT = 1
CTRL = 2
META = 4
SHIFT = 8


def dispatch_mouse_event(
    conn: CommandSender,
    event_type: str,
    x: float,
    y: float,
    *,
    button: str | None = None,
    click_count: int = 0,
) -> dict[str, Any]:
    params: dict[str, Any] = {"type": event_type, "x": x, "y": y}
    if button is not None:
        params["button"] = button
    if click_count > 0:
        params["clickCount"] = click_count
    return conn.send("Input.dispatchMouseEvent", params)


def mouse_move(conn: CommandSender, x: float, y: float) -> dict[str, Any]:
    return dispatch_mouse_event(conn, "mouseMoved", x, y)


def click(conn: CommandSender, x: float, y: float, *, button: str = "left", click_count: int = 1) -> None:
    mouse_move(conn, x, y)
    dispatch_mouse_event(conn, "mousePressed", x, y, button=button, click_count=click_count)
    dispatch_mouse_event(conn, "mouseReleased", x, y, button=button, click_count=click_count)


def dispatch_key_event(
    conn: CommandSender,
    event_type: str,
    *,
    key: str | None = None,
    code: str | None = None,
    modifiers: int = 0,
) -> dict[str, Any]:
    params: dict[str, Any] = {"type": event_type}
    if key is not None:
        params["key"] = key
    if code is not None:
        params["code"] = code
    if modifiers > 0:
        params["modifiers"] = modifiers
    return conn.send("Input.dispatchKeyEvent", params)


def press_key(conn: CommandSender, key: str, code: str | None = None, *, modifiers: int = 0) -> None:
    dispatch_key_event(conn, "keyDown", key=key, code=code, modifiers=modifiers)
    dispatch_key_event(conn, "keyUp", key=key, code=code, modifiers=modifiers)


def insert_text(conn: CommandSender, text: str) -> dict[str, Any]:
    return conn.send("Input.insertText", {"text": text})
