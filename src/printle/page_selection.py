"""Page-range parsing and duplex page selection shared by the print pipeline."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence

from .errors import MalformedRangeError


class DuplexDirective(str, Enum):
    """How two-sidedness is achieved for a submission."""

    NONE = "none"
    AUTO = "auto"  # device hardware duplex
    MANUAL_ODD = "odd"  # first pass of manual duplex
    MANUAL_EVEN = "even"  # second pass, after the stack is flipped

    @property
    def is_manual(self) -> bool:
        return self in (DuplexDirective.MANUAL_ODD, DuplexDirective.MANUAL_EVEN)


def normalize_duplex(value: str | DuplexDirective | None) -> DuplexDirective:
    if isinstance(value, DuplexDirective):
        return value
    directive = (value or "none").strip().lower()
    try:
        return DuplexDirective(directive)
    except ValueError:
        return DuplexDirective.NONE


def _parse_page_number(text: str) -> Optional[int]:
    text = text.strip()
    if not text.isdecimal():
        return None
    return int(text)


def resolve_page_range(expression: str | None, total_pages: int) -> Optional[List[int]]:
    """
    Parse a page-range expression like '1-3, 5' into sorted 0-based indices.

    Returns None when no expression is given (the whole document is used).
    Tokens that are not numbers or ranges, and pages outside
    [1, total_pages], are dropped. Raises MalformedRangeError when an
    expression is given but nothing in it lands inside the document.
    """
    if expression is None or not expression.strip():
        return None

    selected = set()
    for raw_part in expression.split(","):
        part = raw_part.strip()
        if not part:
            continue
        if "-" in part:
            left, right = part.split("-", 1)
            start = _parse_page_number(left)
            end = _parse_page_number(right)
            if start is None or end is None or start > end:
                continue
            # Clamp before iterating so '1-999999999' stays cheap.
            for page_no in range(max(start, 1), min(end, total_pages) + 1):
                selected.add(page_no - 1)
        else:
            page_no = _parse_page_number(part)
            if page_no is not None and 1 <= page_no <= total_pages:
                selected.add(page_no - 1)

    if not selected:
        raise MalformedRangeError(expression, total_pages)
    return sorted(selected)


def parity_indices(count: int, parity: DuplexDirective) -> List[int]:
    """Positions kept by a manual duplex pass over a `count`-page sequence."""
    if parity == DuplexDirective.MANUAL_ODD:
        return list(range(0, count, 2))
    if parity == DuplexDirective.MANUAL_EVEN:
        return list(range(1, count, 2))
    return list(range(count))


def compose_page_indices(
    total_pages: int,
    range_indices: Optional[Sequence[int]],
    duplex: DuplexDirective = DuplexDirective.NONE,
) -> List[int]:
    """
    Resolve final 0-based page indices after applying:
    1) the page range (None keeps every page)
    2) the manual duplex parity, counted on the range-filtered order
    """
    base = list(range(total_pages)) if range_indices is None else list(range_indices)
    return [base[pos] for pos in parity_indices(len(base), duplex)]
