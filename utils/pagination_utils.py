"""
In-memory pagination over already filtered lists.
"""

import math
from typing import Any, NamedTuple, Sequence, TypeVar

from utils.text_utils import parse_positive_int

T = TypeVar("T")


class Page(NamedTuple):
    rows: list
    page: int
    page_size: int
    total: int
    total_pages: int


def resolve_page_size(value: Any, allowed: Sequence[int], default: int) -> int:
    """Requested size if it is in the allow-list, else the default."""
    size = parse_positive_int(value, default)
    return size if size in allowed else default


def paginate(items: Sequence[T], page: Any, page_size: int) -> Page:
    """
    Slice one page.

    total_pages is at least 1 and the requested page is clamped into
    [1, total_pages], so 47 items at 20 per page asking for page 10
    returns page 3 with the last 7 items.
    """
    total = len(items)
    total_pages = max(1, math.ceil(total / page_size))
    current = min(max(1, parse_positive_int(page, 1)), total_pages)
    start = (current - 1) * page_size
    return Page(
        rows=list(items[start:start + page_size]),
        page=current,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
    )
