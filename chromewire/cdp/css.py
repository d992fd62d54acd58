from __future__ import annotations

from typing import Any

from . import CommandSender


def enable(conn: CommandSender) -> dict[str, Any]:
    return conn.send("CSS.enable")


def get_computed_style_for_node(conn: CommandSender, node_id: int) -> dict[str, Any]:
    return conn.send("CSS.getComputedStyleForNode", {"nodeId": node_id})


def computed_property(computed_style: list[dict[str, Any]], name: str) -> str:
    for prop in computed_style:
        if isinstance(prop, dict) and prop.get("name") == name:
            return str(prop.get("value", ""))
    return ""
