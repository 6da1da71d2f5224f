"""
WCAG conformance level bucketing.

Assigns each violation to A / AA / AAA / unclassified by matching its tag
or description text. The most specific level is checked first, so
``wcag2aa`` never counts as level A.
"""

import re
from typing import Callable, Iterable, Optional, Tuple, TypeVar

from models import WcagLevel, WcagLevelCounts

T = TypeVar("T")

LEVEL_PATTERNS: Tuple[Tuple[WcagLevel, "re.Pattern"], ...] = (
    (WcagLevel.AAA, re.compile(r"\bwcag2\d?aaa\b|\blevel aaa\b")),
    (WcagLevel.AA, re.compile(r"\bwcag2\d?aa\b|\blevel aa\b")),
    (WcagLevel.A, re.compile(r"\bwcag2\d?a\b|\blevel a\b")),
)

# WCAG 2.x success criteria that can be checked automatically (44% of 50)
WCAG_TOTAL_CRITERIA = 50
WCAG_AUTOMATABLE_CRITERIA = round(WCAG_TOTAL_CRITERIA * 0.44)


def level_for_text(text: Optional[str]) -> WcagLevel:
    """Conformance level named in ``text``; unclassified when none is."""
    if not text:
        return WcagLevel.UNCLASSIFIED
    lowered = text.lower()
    for level, pattern in LEVEL_PATTERNS:
        if pattern.search(lowered):
            return level
    return WcagLevel.UNCLASSIFIED


def classify_by_level(items: Iterable[T], extract_text: Callable[[T], Optional[str]]) -> WcagLevelCounts:
    """
    Bucket violations by WCAG level.

    Args:
        items: Violations (axe results, Lighthouse audits, ...)
        extract_text: Returns the tag/description text for one item

    Returns:
        WcagLevelCounts whose total equals the number of items
    """
    counts = WcagLevelCounts()
    for item in items:
        counts.add(level_for_text(extract_text(item)))
    return counts


def success_rate(violations: int, automatable: int = WCAG_AUTOMATABLE_CRITERIA) -> str:
    """Share of automatable criteria without a violation, two decimals."""
    return f"{(automatable - violations) / automatable:.2f}"
