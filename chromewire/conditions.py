"""Element readiness predicates.

Layers, cheapest first; each is only evaluated when the previous one passed:
present -> visible -> stable -> unobscured -> enabled/editable.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager, suppress
from typing import Any

from .cdp import CommandSender, dom, runtime
from .config import WaitConfig
from .locators import Locator

VISIBLE_JS = "function() { return !!(this.offsetWidth || this.offsetHeight || this.getClientRects().length); }"

STABLE_JS = """function() {
    const animations = this.getAnimations ? this.getAnimations({subtree: true}) : [];
    return animations.every(a => a.playState !== 'running');
}"""

UNOBSCURED_JS = """function() {
    const rect = this.getBoundingClientRect();
    if (rect.width === 0 || rect.height === 0) return false;
    const x = rect.left + rect.width / 2;
    const y = rect.top + rect.height / 2;
    if (x < 0 || y < 0) return false;
    const hit = document.elementFromPoint(x, y);
    return hit === this || this.contains(hit);
}"""

ENABLED_JS = "function() { return !this.disabled; }"

EDITABLE_JS = """function() {
    const tag = (this.tagName || '').toLowerCase();
    const isField = tag === 'input' || tag === 'textarea';
    return (isField || this.isContentEditable) && !this.readOnly && !this.disabled;
}"""


class ElementConditions:
    def __init__(self, conn: CommandSender, config: WaitConfig | None = None) -> None:
        self.conn = conn
        self.config = config or WaitConfig()

    # ─────────────────────────────────────────────────────────────────────────
    # Node resolution
    # ─────────────────────────────────────────────────────────────────────────

    def find_node_id(self, locator: Locator) -> int:
        """Return the DOM nodeId for ``locator``, or 0 when nothing matches."""
        selector = locator.css_selector
        if selector is not None:
            doc = dom.get_document(self.conn)
            root_id = doc["root"]["nodeId"]
            return int(dom.query_selector(self.conn, root_id, selector).get("nodeId") or 0)
        return self._find_node_id_by_xpath(locator)

    def _find_node_id_by_xpath(self, locator: Locator) -> int:
        res = runtime.evaluate(self.conn, locator.xpath_script(), return_by_value=False)
        obj = res.get("result") or {}
        object_id = obj.get("objectId")
        if obj.get("type") != "object" or not object_id:
            return 0
        try:
            # DOM.requestNode only works once the document has been requested.
            dom.get_document(self.conn)
            return int(dom.request_node(self.conn, object_id).get("nodeId") or 0)
        finally:
            with suppress(Exception):
                runtime.release_object(self.conn, object_id)

    @contextmanager
    def remote_object(self, node_id: int) -> Generator[str, None, None]:
        resolved = dom.resolve_node(self.conn, node_id)
        object_id = resolved["object"]["objectId"]
        try:
            yield object_id
        finally:
            with suppress(Exception):
                runtime.release_object(self.conn, object_id)

    def call_on(self, object_id: str, function_declaration: str) -> Any:
        res = runtime.call_function_on(self.conn, object_id, function_declaration)
        details = res.get("exceptionDetails")
        if details:
            raise RuntimeError(f"Page script failed: {details.get('text') or details}")
        return (res.get("result") or {}).get("value")

    def _check(self, locator: Locator, *scripts: str) -> bool:
        node_id = self.find_node_id(locator)
        if not node_id:
            return False
        with self.remote_object(node_id) as object_id:
            for script in scripts:
                if not self.call_on(object_id, script):
                    return False
        return True

    # ─────────────────────────────────────────────────────────────────────────
    # Predicates
    # ─────────────────────────────────────────────────────────────────────────

    def is_present(self, locator: Locator) -> bool:
        return self.find_node_id(locator) != 0

    def is_visible(self, locator: Locator) -> bool:
        return self._check(locator, VISIBLE_JS)

    def is_stable(self, locator: Locator) -> bool:
        """No running animation on the element or its subtree."""
        return self._check(locator, STABLE_JS)

    def is_unobscured(self, locator: Locator) -> bool:
        return self._check(locator, UNOBSCURED_JS)

    def is_enabled(self, locator: Locator) -> bool:
        return self._check(locator, ENABLED_JS)

    def is_clickable(self, locator: Locator) -> bool:
        scripts = [VISIBLE_JS]
        if self.config.wait_for_animations:
            scripts.append(STABLE_JS)
        scripts += [UNOBSCURED_JS, ENABLED_JS]
        return self._check(locator, *scripts)

    def is_editable(self, locator: Locator) -> bool:
        return self._check(locator, VISIBLE_JS, EDITABLE_JS)
