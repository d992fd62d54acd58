"""Element locators.

A Locator is one strategy plus a value. Every strategy maps either to a CSS
selector (resolved with ``DOM.querySelector``) or to an XPath expression that
has to be evaluated in the page (``document.evaluate``).
"""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass


class Strategy(enum.Enum):
    CSS = "css selector"
    XPATH = "xpath"
    ID = "id"
    CLASS_NAME = "class name"
    TAG_NAME = "tag name"
    NAME = "name"
    LINK_TEXT = "link text"
    PARTIAL_LINK_TEXT = "partial link text"


_CSS_IDENT_SAFE = re.compile(r"[A-Za-z0-9_\-\u0080-\U0010ffff]")


def css_escape(ident: str) -> str:
    """Escape a string for use as a CSS identifier (like ``CSS.escape``)."""
    out: list[str] = []
    for i, ch in enumerate(ident):
        code = ord(ch)
        if code == 0:
            out.append("\ufffd")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif ch.isdigit() and (i == 0 or (i == 1 and ident[0] == "-")):
            out.append(f"\\{code:x} ")
        elif i == 0 and ch == "-" and len(ident) == 1:
            out.append("\\-")
        elif _CSS_IDENT_SAFE.match(ch):
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


def css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def xpath_literal(value: str) -> str:
    """Quote ``value`` as an XPath 1.0 string literal."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


@dataclass(frozen=True)
class Locator:
    strategy: Strategy
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValueError(f"{self.strategy.value} locator needs a non-empty string")

    @classmethod
    def css(cls, selector: str) -> Locator:
        return cls(Strategy.CSS, selector)

    @classmethod
    def xpath(cls, expression: str) -> Locator:
        return cls(Strategy.XPATH, expression)

    @classmethod
    def id(cls, element_id: str) -> Locator:
        return cls(Strategy.ID, element_id)

    @classmethod
    def class_name(cls, name: str) -> Locator:
        return cls(Strategy.CLASS_NAME, name)

    @classmethod
    def tag_name(cls, name: str) -> Locator:
        return cls(Strategy.TAG_NAME, name)

    @classmethod
    def name(cls, name: str) -> Locator:
        return cls(Strategy.NAME, name)

    @classmethod
    def link_text(cls, text: str) -> Locator:
        return cls(Strategy.LINK_TEXT, text)

    @classmethod
    def partial_link_text(cls, text: str) -> Locator:
        return cls(Strategy.PARTIAL_LINK_TEXT, text)

    @property
    def css_selector(self) -> str | None:
        """CSS equivalent, or None when the locator needs script-based XPath."""
        s = self.strategy
        if s is Strategy.CSS or s is Strategy.TAG_NAME:
            return self.value
        if s is Strategy.ID:
            return "#" + css_escape(self.value)
        if s is Strategy.CLASS_NAME:
            return "." + css_escape(self.value)
        if s is Strategy.NAME:
            return f"[name={css_string(self.value)}]"
        return None

    @property
    def requires_script(self) -> bool:
        return self.css_selector is None

    @property
    def xpath_expression(self) -> str | None:
        s = self.strategy
        if s is Strategy.XPATH:
            return self.value
        if s is Strategy.LINK_TEXT:
            return f"//a[normalize-space(.)={xpath_literal(self.value.strip())}]"
        if s is Strategy.PARTIAL_LINK_TEXT:
            return f"//a[contains(normalize-space(.), {xpath_literal(self.value.strip())})]"
        return None

    def xpath_script(self) -> str:
        """Expression returning the first node matched by ``xpath_expression``."""
        expr = self.xpath_expression
        if expr is None:
            raise ValueError(f"{self} resolves through CSS, not XPath")
        return (
            f"document.evaluate({json.dumps(expr)}, document, null, "
            "XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue"
        )

    def __str__(self) -> str:
        return f"{self.strategy.value}={self.value}"


By = Locator

__all__ = ["By", "Locator", "Strategy", "css_escape", "xpath_literal"]
