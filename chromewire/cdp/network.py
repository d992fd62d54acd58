from __future__ import annotations

from typing import Any

from . import CommandSender

REQUEST_WILL_BE_SENT = "Network.requestWillBeSent"
LOADING_FINISHED = "Network.loadingFinished"
LOADING_FAILED = "Network.loadingFailed"


def enable(conn: CommandSender) -> dict[str, Any]:
    return conn.send("Network.enable")


def disable(conn: CommandSender) -> dict[str, Any]:
    return conn.send("Network.disable")


def set_user_agent_override(conn: CommandSender, user_agent: str) -> dict[str, Any]:
    return conn.send("Network.setUserAgentOverride", {"userAgent": user_agent})


def set_cache_disabled(conn: CommandSender, disabled: bool) -> dict[str, Any]:
    return conn.send("Network.setCacheDisabled", {"cacheDisabled": bool(disabled)})


def set_extra_http_headers(conn: CommandSender, headers: dict[str, str]) -> dict[str, Any]:
    return conn.send("Network.setExtraHTTPHeaders", {"headers": dict(headers)})
