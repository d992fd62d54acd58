from __future__ import annotations

import logging
import threading
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

from .cdp import browser, css, dom, page, runtime
from .cdp import input as cdp_input
from .conditions import ElementConditions
from .config import BrowserConfig, WaitConfig
from .connection import CdpConnection
from .errors import ChromeWireError, ElementNotFoundError, LaunchError
from .launcher import BrowserLauncher
from .locators import Locator
from .network_monitor import NetworkMonitor
from .wait import AutoWaitEngine, wait_for_position_stable

logger = logging.getLogger("chromewire.driver")

SCROLL_SETTLE_TIMEOUT = 0.2
SCROLL_SETTLE_INTERVAL = 0.02


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


def _content_rect(box_model: dict[str, Any]) -> Rect:
    # Content quad: [x1, y1, x2, y2, x3, y3, x4, y4], clockwise from top-left.
    quad = box_model["model"]["content"]
    xs, ys = quad[0::2], quad[1::2]
    return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def _remote_value(res: dict[str, Any]) -> Any:
    details = res.get("exceptionDetails")
    if details:
        raise ChromeWireError(f"Page script failed: {details.get('text') or details}")
    return (res.get("result") or {}).get("value")


class Element:
    """A lazily resolved element handle; every operation re-locates the node."""

    def __init__(self, driver: ChromeDriver, locator: Locator) -> None:
        self.driver = driver
        self.locator = locator

    def __repr__(self) -> str:
        return f"Element({self.locator})"

    @property
    def _conn(self) -> CdpConnection:
        return self.driver.conn

    def _node_id(self) -> int:
        node_id = self.driver.conditions.find_node_id(self.locator)
        if not node_id:
            raise ElementNotFoundError(f"Element not found: {self.locator}")
        return node_id

    def _call(self, function_declaration: str) -> Any:
        with self.driver.conditions.remote_object(self._node_id()) as object_id:
            return _remote_value(runtime.call_function_on(self._conn, object_id, function_declaration))

    # Actions

    def click(self) -> None:
        self.driver.waits.wait_for_element_clickable(self.locator)
        node_id = self._node_id()
        dom.scroll_into_view_if_needed(self._conn, node_id)

        def sample() -> tuple[float, float]:
            rect = _content_rect(dom.get_box_model(self._conn, node_id))
            return rect.x, rect.y

        wait_for_position_stable(
            sample,
            interval=SCROLL_SETTLE_INTERVAL,
            timeout=SCROLL_SETTLE_TIMEOUT,
            cancel=self.driver.cancel,
        )
        x, y = _content_rect(dom.get_box_model(self._conn, node_id)).center
        cdp_input.click(self._conn, x, y)

    def send_keys(self, *text: str) -> None:
        self.driver.waits.wait_for_element_interactable(self.locator)
        dom.focus(self._conn, self._node_id())
        cdp_input.insert_text(self._conn, "".join(str(t) for t in text))

    def clear(self) -> None:
        self.driver.waits.wait_for_element_interactable(self.locator)
        dom.focus(self._conn, self._node_id())
        cdp_input.press_key(self._conn, "a", "KeyA", modifiers=cdp_input.CTRL)
        cdp_input.press_key(self._conn, "Backspace", "Backspace")

    def submit(self) -> None:
        self._call("function() { this.form ? this.form.submit() : this.submit(); }")

    # Queries

    @property
    def text(self) -> str:
        self.driver.waits.wait_for_element_visible(self.locator)
        value = self._call("function() { return this.textContent; }")
        return value if isinstance(value, str) else ""

    @property
    def tag_name(self) -> str:
        node = dom.describe_node(self._conn, self._node_id(), depth=0).get("node") or {}
        return str(node.get("nodeName", "")).lower()

    def get_attribute(self, name: str) -> str | None:
        attrs = dom.get_attributes(self._conn, self._node_id()).get("attributes") or []
        # Flat [name, value, name, value, ...] list.
        for attr_name, attr_value in zip(attrs[0::2], attrs[1::2]):
            if attr_name == name:
                return attr_value
        return None

    def is_displayed(self) -> bool:
        try:
            return self.driver.conditions.is_visible(self.locator)
        except ChromeWireError:
            return False

    def is_enabled(self) -> bool:
        return self.get_attribute("disabled") is None

    def is_selected(self) -> bool:
        return bool(self._call("function() { return !!(this.checked || this.selected); }"))

    @property
    def rect(self) -> Rect:
        return _content_rect(dom.get_box_model(self._conn, self._node_id()))

    @property
    def location(self) -> tuple[float, float]:
        r = self.rect
        return r.x, r.y

    @property
    def size(self) -> tuple[float, float]:
        r = self.rect
        return r.width, r.height

    def value_of_css_property(self, name: str) -> str:
        res = css.get_computed_style_for_node(self._conn, self._node_id())
        return css.computed_property(res.get("computedStyle") or [], name)

    def find_element(self, locator: Locator) -> Element:
        # Locators are document-scoped.
        return Element(self.driver, locator)


class ChromeDriver:
    """Launch a browser, connect to its first page, and drive it with auto-waits."""

    def __init__(
        self,
        config: BrowserConfig | None = None,
        wait_config: WaitConfig | None = None,
        *,
        connection: CdpConnection | None = None,
    ) -> None:
        """Launch a browser, or attach to an already open ``connection``.

        When attaching, the browser process is not owned and ``quit()`` only
        closes the connection.
        """
        self.config = config or BrowserConfig.from_env()
        self.wait_config = wait_config or WaitConfig()
        # Set to abort any wait currently blocking on this driver.
        self.cancel = threading.Event()
        self.launcher = BrowserLauncher(self.config)
        self.conn: CdpConnection | None = connection
        self._closed = False

        try:
            if self.conn is None:
                result = self.launcher.launch()
                self.conn = CdpConnection(result.websocket_url, command_timeout=self.config.command_timeout)
                self.conn.open(timeout=self.config.connect_timeout)
            if not self.conn.await_connection(self.config.connect_timeout):
                raise LaunchError("Failed to connect to CDP WebSocket")

            self.network_monitor = NetworkMonitor(self.conn)
            if self.wait_config.wait_for_network_idle:
                self.network_monitor.enable()
            page.enable(self.conn)
            dom.enable(self.conn)
            runtime.enable(self.conn)
        except Exception as exc:  # noqa: BLE001
            self.quit()
            if isinstance(exc, LaunchError):
                raise
            raise LaunchError(f"Failed to initialize ChromeDriver: {exc}") from exc

        self.conditions = ElementConditions(self.conn, self.wait_config)
        self.waits = AutoWaitEngine(self.conditions, self.wait_config, self.network_monitor, cancel=self.cancel)

    def __enter__(self) -> ChromeDriver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.quit()

    def get(self, url: str) -> None:
        res = page.navigate(self.conn, url)
        if res.get("errorText"):
            raise ChromeWireError(f"Navigation to {url} failed: {res['errorText']}")

    def execute_script(self, expression: str) -> Any:
        return _remote_value(runtime.evaluate(self.conn, expression, await_promise=True))

    @property
    def current_url(self) -> str:
        return str(self.execute_script("window.location.href"))

    @property
    def title(self) -> str:
        return str(self.execute_script("document.title"))

    @property
    def page_source(self) -> str:
        return str(self.execute_script("document.documentElement.outerHTML"))

    def back(self) -> None:
        self._go_history(-1)

    def forward(self) -> None:
        self._go_history(1)

    def _go_history(self, delta: int) -> None:
        history = page.get_navigation_history(self.conn)
        entries = history.get("entries") or []
        target = int(history.get("currentIndex", 0)) + delta
        if 0 <= target < len(entries):
            page.navigate_to_history_entry(self.conn, entries[target]["id"])

    def refresh(self) -> None:
        page.reload(self.conn)

    def find_element(self, locator: Locator) -> Element:
        return Element(self, locator)

    @property
    def browser_version(self) -> str:
        return str(browser.get_version(self.conn).get("product", ""))

    def _window_id(self) -> int:
        return int(browser.get_window_for_target(self.conn)["windowId"])

    def get_window_size(self) -> tuple[int, int]:
        window_id = self._window_id()
        bounds = browser.get_window_bounds(self.conn, window_id).get("bounds") or {}
        return int(bounds.get("width", 0)), int(bounds.get("height", 0))

    def set_window_size(self, width: int, height: int) -> None:
        window_id = self._window_id()
        # Size changes are rejected while the window is maximized or minimized.
        browser.set_window_state(self.conn, window_id, "normal")
        browser.set_window_bounds(self.conn, window_id, {"width": int(width), "height": int(height)})

    def maximize_window(self) -> None:
        browser.set_window_state(self.conn, self._window_id(), "maximized")

    def minimize_window(self) -> None:
        browser.set_window_state(self.conn, self._window_id(), "minimized")

    def fullscreen_window(self) -> None:
        browser.set_window_state(self.conn, self._window_id(), "fullscreen")

    def is_network_idle(self, max_connections: int = 0, idle_duration: float = 0.5) -> bool:
        return self.network_monitor.is_network_idle(max_connections, idle_duration)

    def quit(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.cancel.set()
        if self.conn is not None:
            with suppress(Exception):
                self.conn.close()
        self.launcher.shutdown()


__all__ = ["ChromeDriver", "Element", "Rect"]
