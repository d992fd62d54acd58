from __future__ import annotations

from typing import Any

from . import CommandSender


def enable(conn: CommandSender) -> dict[str, Any]:
    return conn.send("Page.enable")


def navigate(conn: CommandSender, url: str) -> dict[str, Any]:
    return conn.send("Page.navigate", {"url": url})


def reload(conn: CommandSender, *, ignore_cache: bool = False) -> dict[str, Any]:
    return conn.send("Page.reload", {"ignoreCache": True} if ignore_cache else None)


def get_navigation_history(conn: CommandSender) -> dict[str, Any]:
    return conn.send("Page.getNavigationHistory")


def navigate_to_history_entry(conn: CommandSender, entry_id: int) -> dict[str, Any]:
    return conn.send("Page.navigateToHistoryEntry", {"entryId": int(entry_id)})
