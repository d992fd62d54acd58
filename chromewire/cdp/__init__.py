"""Typed one-call wrappers over ``CdpConnection.send``, grouped by protocol domain.

Every function takes the connection first and returns the command's ``result``
object. Nothing here retries or waits; that is the readiness engine's job.
"""

from __future__ import annotations

from typing import Any, Protocol


class CommandSender(Protocol):
    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]: ...


__all__ = ["CommandSender"]
