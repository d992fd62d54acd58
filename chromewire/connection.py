"""CDP transport: one WebSocket, command/response correlation, event fan-out.

Threading model:
- a single reader thread owns ``recv()`` and processes frames in arrival order;
- any thread may call ``send_command``; ids come from a per-connection counter;
- every pending command has its own timer; the reader and the timer race to
  ``pop`` the entry from the pending table, and only the winner completes the
  future;
- event handlers run on a single-worker executor so a slow handler never stalls
  reply processing, while handlers still observe events in arrival order.
"""

from __future__ import annotations

import enum
import json
import logging
import socket
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

import websocket

from .errors import CdpConnectionError, CommandTimeoutError, ProtocolError

logger = logging.getLogger("chromewire.connection")

EventHandler = Callable[[dict[str, Any]], None]

DEFAULT_COMMAND_TIMEOUT = 30.0


class ConnectionState(enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class PendingCommand:
    command_id: int
    method: str
    future: Future
    timeout: float
    deadline: float
    timer: threading.Timer | None = field(default=None, repr=False)


class CdpConnection:
    """Low-level CDP WebSocket connection."""

    def __init__(self, ws_url: str, *, command_timeout: float = DEFAULT_COMMAND_TIMEOUT) -> None:
        self.ws_url = ws_url
        self.command_timeout = float(command_timeout)

        self._lock = threading.Lock()
        self._opened = threading.Event()
        self._state = ConnectionState.CONNECTING
        self._ws: websocket.WebSocket | None = None
        self._reader: threading.Thread | None = None
        self._open_error: BaseException | None = None

        self._next_id = 1
        self._pending: dict[int, PendingCommand] = {}
        self._subscribers: dict[str, list[EventHandler]] = {}
        self._dispatcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix="chromewire-events")

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.OPEN

    def open(self, timeout: float = 10.0) -> CdpConnection:
        """Perform the WebSocket handshake and start the reader thread.

        Blocks until the handshake completes or ``timeout`` elapses. Handshake
        failures are raised to the caller as CdpConnectionError.
        """
        if self._state is not ConnectionState.CONNECTING:
            raise CdpConnectionError(f"Connection is {self._state.value}; open() may be called once")
        try:
            ws = websocket.create_connection(
                self.ws_url,
                timeout=timeout,
                enable_multithread=True,
                suppress_origin=True,
            )
        except Exception as exc:  # noqa: BLE001
            self._open_error = exc
            self._mark_closed()
            self._opened.set()
            raise CdpConnectionError(f"Failed to connect to {self.ws_url}: {exc}") from exc

        # The reader blocks in recv(); close() breaks it by shutting the socket down.
        ws.settimeout(None)
        with self._lock:
            self._ws = ws
            self._state = ConnectionState.OPEN
        self._reader = threading.Thread(target=self._read_loop, name="chromewire-reader", daemon=True)
        self._reader.start()
        self._opened.set()
        logger.info("CDP connection established: %s", self.ws_url)
        return self

    def await_connection(self, timeout: float) -> bool:
        """Wait for ``open()`` to finish; True iff the connection is open.

        Re-raises the handshake error if the handshake failed.
        """
        self._opened.wait(timeout=max(0.0, float(timeout)))
        if self._open_error is not None:
            raise CdpConnectionError(f"Failed to connect to {self.ws_url}") from self._open_error
        return self.is_connected

    def close(self) -> None:
        """Close the socket and fail everything still waiting on it."""
        self._handle_disconnect("Connection closed", initiator="local")
        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=2.0)

    def __enter__(self) -> CdpConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _mark_closed(self) -> bool:
        with self._lock:
            if self._state is ConnectionState.CLOSED:
                return False
            self._state = ConnectionState.CLOSED
            return True

    def _abort_socket(self) -> None:
        ws = self._ws
        if ws is None:
            return
        # Shutting down the raw socket is what reliably unblocks a recv() on another thread.
        # ws.close() is avoided: it takes websocket-client's send lock and can hang behind a stuck send.
        sock = getattr(ws, "sock", None)
        if sock is not None:
            with suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
            with suppress(OSError):
                sock.close()

    def _handle_disconnect(self, reason: str, *, initiator: str) -> None:
        if not self._mark_closed():
            return
        self._abort_socket()
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
            self._subscribers.clear()
        for cmd in pending:
            if cmd.timer is not None:
                cmd.timer.cancel()
            cmd.future.set_exception(CdpConnectionError(f"{reason} before reply to {cmd.method} (id={cmd.command_id})"))
        self._dispatcher.shutdown(wait=False)
        logger.info("CDP connection closed by %s: %s (failed %d pending)", initiator, reason, len(pending))

    # ─────────────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────────────

    def send_command(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> Future:
        """Send a command and return a future for its ``result`` object.

        Never blocks on the reply. The future fails with ProtocolError,
        CommandTimeoutError or CdpConnectionError.
        """
        future: Future = Future()
        # RUNNING futures cannot be cancelled by callers, so only reply/timeout/close complete them.
        future.set_running_or_notify_cancel()
        if not isinstance(method, str) or not method.strip():
            future.set_exception(ValueError("CDP method is required"))
            return future

        wait_s = self.command_timeout if timeout is None else float(timeout)
        with self._lock:
            if self._state is not ConnectionState.OPEN or self._ws is None:
                future.set_exception(CdpConnectionError("WebSocket is not connected"))
                return future
            cmd_id = self._next_id
            self._next_id += 1
            cmd = PendingCommand(cmd_id, method, future, wait_s, time.monotonic() + wait_s)
            cmd.timer = threading.Timer(wait_s, self._expire, args=(cmd_id,))
            cmd.timer.daemon = True
            self._pending[cmd_id] = cmd
            ws = self._ws

        msg: dict[str, Any] = {"id": cmd_id, "method": method}
        if params:
            msg["params"] = params
        cmd.timer.start()
        try:
            ws.send(json.dumps(msg))
        except Exception as exc:  # noqa: BLE001
            if self._take_pending(cmd_id) is not None:
                cmd.timer.cancel()
                future.set_exception(CdpConnectionError(f"Failed to send {method}: {exc}"))
        return future

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:
        """Send a command and block until its result arrives."""
        return self.send_command(method, params, timeout=timeout).result()

    def _take_pending(self, cmd_id: int) -> PendingCommand | None:
        with self._lock:
            return self._pending.pop(cmd_id, None)

    def _expire(self, cmd_id: int) -> None:
        cmd = self._take_pending(cmd_id)
        if cmd is None:
            return
        cmd.future.set_exception(CommandTimeoutError(cmd.method, cmd.command_id, cmd.timeout))

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    # ─────────────────────────────────────────────────────────────────────────
    # Events
    # ─────────────────────────────────────────────────────────────────────────

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        with self._lock:
            self._subscribers.setdefault(event_name, []).append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_name)
            if not handlers:
                return
            with suppress(ValueError):
                handlers.remove(handler)
            if not handlers:
                del self._subscribers[event_name]

    def unsubscribe_all(self, event_name: str) -> None:
        with self._lock:
            self._subscribers.pop(event_name, None)

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # ─────────────────────────────────────────────────────────────────────────
    # Inbound
    # ─────────────────────────────────────────────────────────────────────────

    def _read_loop(self) -> None:
        ws = self._ws
        reason = "Connection lost"
        initiator = "remote"
        while self._state is ConnectionState.OPEN and ws is not None:
            try:
                raw = ws.recv()
            except websocket.WebSocketConnectionClosedException:
                break
            except Exception as exc:  # noqa: BLE001
                if self._state is not ConnectionState.OPEN:
                    initiator = "local"
                    break
                reason = f"Connection error: {exc}"
                logger.warning("CDP reader stopped: %s", exc)
                break
            if not raw:
                # Empty read means the peer sent a close frame.
                break
            try:
                self.handle_message(raw)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to handle CDP frame: %.200r", raw)
        self._handle_disconnect(reason, initiator=initiator)

    def handle_message(self, raw: str | bytes) -> None:
        """Route one inbound frame: replies by ``id``, events by ``method``."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Dropping undecodable CDP frame: %.200r", raw)
            return
        if not isinstance(data, dict):
            return
        if "id" in data:
            self._handle_reply(data)
        elif isinstance(data.get("method"), str):
            self._handle_event(data)

    def _handle_reply(self, data: dict[str, Any]) -> None:
        try:
            cmd_id = int(data["id"])
        except (TypeError, ValueError):
            return
        cmd = self._take_pending(cmd_id)
        if cmd is None:
            logger.debug("Discarding reply for unknown or expired command id=%s", cmd_id)
            return
        if cmd.timer is not None:
            cmd.timer.cancel()
        error = data.get("error")
        if error is not None:
            err = error if isinstance(error, dict) else {"message": str(error)}
            code = err.get("code")
            if isinstance(code, bool) or not isinstance(code, int):
                code = -1
            message = err.get("message") or "Unknown CDP error"
            cmd.future.set_exception(ProtocolError(code, str(message), cmd.method))
            return
        result = data.get("result")
        cmd.future.set_result(result if isinstance(result, dict) else {})

    def _handle_event(self, data: dict[str, Any]) -> None:
        method = data["method"]
        params = data.get("params")
        if not isinstance(params, dict):
            params = {}
        with self._lock:
            handlers = list(self._subscribers.get(method, ()))
        for handler in handlers:
            try:
                self._dispatcher.submit(self._run_handler, method, handler, params)
            except RuntimeError:
                # Executor already shut down: the connection is closing.
                return

    @staticmethod
    def _run_handler(method: str, handler: EventHandler, params: dict[str, Any]) -> None:
        try:
            handler(params)
        except Exception:  # noqa: BLE001
            logger.exception("Error in event handler for %s", method)


def connect(ws_url: str, timeout: float = 10.0, *, command_timeout: float = DEFAULT_COMMAND_TIMEOUT) -> CdpConnection:
    """Open a CDP connection to a page's ``webSocketDebuggerUrl``."""
    return CdpConnection(ws_url, command_timeout=command_timeout).open(timeout=timeout)


__all__ = ["CdpConnection", "ConnectionState", "EventHandler", "PendingCommand", "connect"]
