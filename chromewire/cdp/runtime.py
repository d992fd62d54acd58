from __future__ import annotations

from typing import Any

from . import CommandSender


def enable(conn: CommandSender) -> dict[str, Any]:
    return conn.send("Runtime.enable")


def evaluate(conn: CommandSender, expression: str, *, return_by_value: bool = True, await_promise: bool = False) -> dict[str, Any]:
    params: dict[str, Any] = {"expression": expression, "returnByValue": return_by_value}
    if await_promise:
        params["awaitPromise"] = True
    return conn.send("Runtime.evaluate", params)


def call_function_on(
    conn: CommandSender,
    object_id: str,
    function_declaration: str,
    arguments: list[dict[str, Any]] | None = None,
    *,
    return_by_value: bool = True,
) -> dict[str, Any]:
    params: dict[str, Any] = {
        "objectId": object_id,
        "functionDeclaration": function_declaration,
        "returnByValue": return_by_value,
    }
    if arguments:
        params["arguments"] = arguments
    return conn.send("Runtime.callFunctionOn", params)


def release_object(conn: CommandSender, object_id: str) -> dict[str, Any]:
    return conn.send("Runtime.releaseObject", {"objectId": object_id})
