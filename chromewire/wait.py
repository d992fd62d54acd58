"""
Auto-waiting.

Provides the bounded polling primitive (``await_condition``), the composite
element waits used before every user action, and the short position-quiescence
wait used after scrolling.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TypeVar

from .conditions import ElementConditions
from .config import WaitConfig
from .errors import WaitInterruptedError, WaitTimeoutError
from .locators import Locator
from .network_monitor import NetworkMonitor

logger = logging.getLogger("chromewire.wait")

T = TypeVar("T")


def await_condition(
    predicate: Callable[[], bool],
    description: str,
    config: WaitConfig,
    *,
    cancel: threading.Event | None = None,
) -> None:
    """Poll ``predicate`` every ``config.poll_interval`` until it returns True.

    Exceptions raised by the predicate count as "not yet". When
    ``config.timeout`` runs out, WaitTimeoutError is raised with the elapsed
    time and chained to the last exception the predicate raised, if any.
    Setting ``cancel`` aborts the wait with WaitInterruptedError.
    """
    start = time.monotonic()
    deadline = start + config.timeout
    last_error: Exception | None = None
    while True:
        if cancel is not None and cancel.is_set():
            raise WaitInterruptedError(f"Wait interrupted: {description}")
        try:
            if predicate():
                return
        except Exception as exc:  # noqa: BLE001
            last_error = exc
            logger.debug("Condition check raised (treated as not ready): %s: %s", description, exc)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise WaitTimeoutError(description, time.monotonic() - start, last_error) from last_error
        pause = min(config.poll_interval, remaining)
        if cancel is None:
            time.sleep(pause)
        elif cancel.wait(timeout=pause):
            raise WaitInterruptedError(f"Wait interrupted: {description}")


def wait_for_position_stable(
    sample: Callable[[], T],
    *,
    interval: float = 0.02,
    timeout: float = 0.2,
    required_samples: int = 3,
    cancel: threading.Event | None = None,
) -> T | None:
    """Sample a position until ``required_samples`` consecutive reads agree.

    Best effort: on timeout (or interruption) the last observed sample is
    returned instead of raising. A sample that raises resets the streak.
    """
    deadline = time.monotonic() + timeout
    last: T | None = None
    streak = 0
    while True:
        try:
            current = sample()
        except Exception:  # noqa: BLE001
            current = None
        if current is not None and current == last:
            streak += 1
        else:
            streak = 1 if current is not None else 0
        if current is not None:
            last = current
        if streak >= required_samples:
            return last

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return last
        pause = min(interval, remaining)
        if cancel is None:
            time.sleep(pause)
        elif cancel.wait(timeout=pause):
            return last


class AutoWaitEngine:
    """Composite readiness waits run before each element action."""

    def __init__(
        self,
        conditions: ElementConditions,
        config: WaitConfig | None = None,
        network_monitor: NetworkMonitor | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        self.conditions = conditions
        self.config = config or conditions.config
        self.network_monitor = network_monitor
        self.cancel = cancel

    def _await(self, predicate: Callable[[], bool], description: str) -> None:
        await_condition(predicate, description, self.config, cancel=self.cancel)

    def wait_for_element(self, locator: Locator) -> None:
        self._await(lambda: self.conditions.is_present(locator), f"Element not found: {locator}")

    def wait_for_element_visible(self, locator: Locator) -> None:
        self.wait_for_element(locator)
        if self.config.wait_for_visibility:
            self._await(lambda: self.conditions.is_visible(locator), f"Element not visible: {locator}")

    def wait_for_element_clickable(self, locator: Locator) -> None:
        self.wait_for_element_visible(locator)
        if self.config.wait_for_clickability:
            self._await(lambda: self.conditions.is_clickable(locator), f"Element not clickable: {locator}")
        if self.config.wait_for_network_idle:
            self.wait_for_network_idle()

    def wait_for_element_interactable(self, locator: Locator) -> None:
        self.wait_for_element_visible(locator)
        if self.config.wait_for_clickability:
            self._await(lambda: self.conditions.is_editable(locator), f"Element not editable: {locator}")
        if self.config.wait_for_network_idle:
            self.wait_for_network_idle()

    def is_network_idle(self, max_connections: int | None = None, idle_duration: float | None = None) -> bool:
        if self.network_monitor is None:
            return True
        return self.network_monitor.is_network_idle(
            self.config.network_idle_max_connections if max_connections is None else max_connections,
            self.config.network_idle_duration if idle_duration is None else idle_duration,
        )

    def wait_for_network_idle(self) -> None:
        if self.network_monitor is None:
            return
        self._await(self.is_network_idle, f"Network not idle within {self.config.timeout:g}s")


__all__ = ["AutoWaitEngine", "await_condition", "wait_for_position_stable"]
