from __future__ import annotations

from collections.abc import Callable
from typing import Any


class FakeCdp:
    """Scriptable stand-in for CdpConnection.

    ``nodes`` maps CSS selectors to node ids, ``scripts`` maps function
    declarations to the value they return for every node, and ``boxes`` maps
    node ids to content quads.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.nodes: dict[str, int] = {}
        self.scripts: dict[str, Any] = {}
        self.boxes: dict[int, list[float]] = {}
        self.attributes: dict[int, list[str]] = {}
        self.evaluate_result: dict[str, Any] = {"result": {"type": "undefined"}}
        self.xpath_node_id = 0
        self.handlers: dict[str, list[Callable[[dict[str, Any]], None]]] = {}
        self.is_connected = True
        self.closed = False

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:  # noqa: ARG002
        self.calls.append((method, params))
        p = params or {}
        if method == "DOM.getDocument":
            return {"root": {"nodeId": 1}}
        if method == "DOM.querySelector":
            return {"nodeId": self.nodes.get(p["selector"], 0)}
        if method == "DOM.resolveNode":
            return {"object": {"objectId": f"obj-{p['nodeId']}"}}
        if method == "DOM.requestNode":
            return {"nodeId": self.xpath_node_id}
        if method == "DOM.getBoxModel":
            quad = self.boxes[p["nodeId"]]
            return {"model": {"content": quad, "width": quad[2] - quad[0], "height": quad[5] - quad[1]}}
        if method == "DOM.getAttributes":
            return {"attributes": self.attributes.get(p["nodeId"], [])}
        if method == "DOM.describeNode":
            return {"node": {"nodeId": p["nodeId"], "nodeName": "BUTTON"}}
        if method == "Runtime.callFunctionOn":
            value = self.scripts.get(p["functionDeclaration"], True)
            if isinstance(value, Exception):
                raise value
            return {"result": {"type": type(value).__name__, "value": value}}
        if method == "Runtime.evaluate":
            return self.evaluate_result
        return {}

    def methods(self) -> list[str]:
        return [m for m, _ in self.calls]

    def scripts_called(self) -> list[str]:
        return [p["functionDeclaration"] for m, p in self.calls if m == "Runtime.callFunctionOn" and p]

    def subscribe(self, method: str, handler: Callable[[dict[str, Any]], None]) -> None:
        self.handlers.setdefault(method, []).append(handler)

    def unsubscribe(self, method: str, handler: Callable[[dict[str, Any]], None]) -> None:
        handlers = self.handlers.get(method, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, method: str, params: dict[str, Any]) -> None:
        for handler in list(self.handlers.get(method, [])):
            handler(params)

    def await_connection(self, timeout: float) -> bool:  # noqa: ARG002
        return self.is_connected

    def close(self) -> None:
        self.closed = True
        self.is_connected = False
