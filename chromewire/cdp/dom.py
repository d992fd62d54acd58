from __future__ import annotations

from typing import Any

from . import CommandSender


def enable(conn: CommandSender) -> dict[str, Any]:
    return conn.send("DOM.enable")


def get_document(conn: CommandSender, *, depth: int | None = None) -> dict[str, Any]:
    return conn.send("DOM.getDocument", {"depth": depth} if depth is not None else None)


def query_selector(conn: CommandSender, node_id: int, selector: str) -> dict[str, Any]:
    return conn.send("DOM.querySelector", {"nodeId": node_id, "selector": selector})


def query_selector_all(conn: CommandSender, node_id: int, selector: str) -> dict[str, Any]:
    return conn.send("DOM.querySelectorAll", {"nodeId": node_id, "selector": selector})


def get_box_model(conn: CommandSender, node_id: int) -> dict[str, Any]:
    return conn.send("DOM.getBoxModel", {"nodeId": node_id})


def get_attributes(conn: CommandSender, node_id: int) -> dict[str, Any]:
    return conn.send("DOM.getAttributes", {"nodeId": node_id})


def focus(conn: CommandSender, node_id: int) -> dict[str, Any]:
    return conn.send("DOM.focus", {"nodeId": node_id})


def resolve_node(conn: CommandSender, node_id: int) -> dict[str, Any]:
    return conn.send("DOM.resolveNode", {"nodeId": node_id})


def request_node(conn: CommandSender, object_id: str) -> dict[str, Any]:
    return conn.send("DOM.requestNode", {"objectId": object_id})


def describe_node(conn: CommandSender, node_id: int, *, depth: int | None = None) -> dict[str, Any]:
    params: dict[str, Any] = {"nodeId": node_id}
    if depth is not None:
        params["depth"] = depth
    return conn.send("DOM.describeNode", params)


def scroll_into_view_if_needed(conn: CommandSender, node_id: int) -> dict[str, Any]:
    return conn.send("DOM.scrollIntoViewIfNeeded", {"nodeId": node_id})


def get_outer_html(conn: CommandSender, node_id: int) -> dict[str, Any]:
    return conn.send("DOM.getOuterHTML", {"nodeId": node_id})
