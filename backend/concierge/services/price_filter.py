"""Heuristic price-constraint parsing for free-form shopping queries.

Rules are tried in table order and the first one that matches anywhere in the
query wins, so a range such as "$20 to $50" beats a bound such as "under 30"
even when the bound appears earlier in the text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Literal, Pattern

from ..schemas import PriceFilter

logger = logging.getLogger(__name__)

_AMOUNT = r"\$?\s*(\d+(?:\.\d{1,2})?)"


@dataclass(frozen=True)
class PriceRule:
    name: str
    pattern: Pattern[str]
    kind: Literal["range", "max", "min"]


def _rule(name: str, expr: str, kind: str) -> PriceRule:
    return PriceRule(name=name, pattern=re.compile(expr, re.IGNORECASE), kind=kind)


PRICE_RULES: List[PriceRule] = [
    _rule("between", rf"\bbetween\s*{_AMOUNT}\s+and\s*{_AMOUNT}", "range"),
    _rule("span", rf"{_AMOUNT}\s*(?:to|-)\s*{_AMOUNT}", "range"),
    _rule("below", rf"\b(?:below|under)\s*{_AMOUNT}", "max"),
    _rule("less_than", rf"\bless\s+than\s*{_AMOUNT}", "max"),
    _rule("up_to", rf"\bup\s+to\s*{_AMOUNT}", "max"),
    _rule("maximum", rf"\b(?:maximum|max)\s*{_AMOUNT}", "max"),
    _rule("above", rf"\b(?:above|over|more\s+than)\s*{_AMOUNT}", "min"),
]

_WHITESPACE = re.compile(r"\s+")


def extract_price_filter(query: str) -> PriceFilter:
    if not query or not any(ch.isdigit() for ch in query):
        return PriceFilter()

    for rule in PRICE_RULES:
        match = rule.pattern.search(query)
        if not match:
            continue
        if rule.kind == "range":
            result = PriceFilter(min_price=float(match.group(1)), max_price=float(match.group(2)))
            logger.info("Price range filter (%s): %s - %s", rule.name, result.min_price, result.max_price)
        elif rule.kind == "max":
            result = PriceFilter(max_price=float(match.group(1)))
            logger.info("Max price filter (%s): %s", rule.name, result.max_price)
        else:
            result = PriceFilter(min_price=float(match.group(1)))
            logger.info("Min price filter (%s): %s", rule.name, result.min_price)
        return result

    logger.debug("No price filter detected in %r", query)
    return PriceFilter()


def _strip_once(text: str) -> str:
    for rule in PRICE_RULES:
        text = rule.pattern.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def strip_price_language(query: str) -> str:
    """Remove every price phrase from ``query`` and collapse whitespace.

    Runs to a fixed point: removing one phrase can bring the words around it
    together into a new match.
    """
    if not query:
        return ""
    cleaned = _strip_once(query)
    while True:
        again = _strip_once(cleaned)
        if again == cleaned:
            break
        cleaned = again
    return cleaned
