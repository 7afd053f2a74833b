"""
Multi-location stock aggregation.

A total of None means "stock unknown" and is never the same as 0.
"""

from typing import Iterable, Mapping, NamedTuple, Optional

from utils.text_utils import (
    is_invalid_location_name,
    natural_sort_key,
    normalize_lower,
    normalize_text,
    parse_number,
)


class LocationQty(NamedTuple):
    location: str
    qty: Optional[float]


class LocationStock(NamedTuple):
    rows: list[LocationQty]
    total: Optional[float]


def sum_known_quantities(values: Iterable[Optional[float]]) -> Optional[float]:
    """
    Sum the numeric values, rounded to 2 decimals.

    Returns None when no value is numeric.
    """
    total = 0.0
    has_qty = False
    for value in values:
        if value is None:
            continue
        total += value
        has_qty = True
    return round(total, 2) if has_qty else None


def aggregate_location_stock(
    locations: Optional[Mapping[str, object]],
    known_locations_lower: Optional[set[str]] = None
) -> LocationStock:
    """
    Filter and total a row's per-location quantities.

    Args:
        locations: Location name → quantity (quantity may be None)
        known_locations_lower: Lowercased allow-list; empty accepts all

    Returns:
        LocationStock with rows sorted by location name and the total
    """
    known = known_locations_lower or set()
    rows = []
    for name, qty in (locations or {}).items():
        location = normalize_text(name)
        if is_invalid_location_name(location):
            continue
        if known and normalize_lower(location) not in known:
            continue
        rows.append(LocationQty(location=location, qty=parse_number(qty)))

    rows.sort(key=lambda row: natural_sort_key(row.location))
    return LocationStock(
        rows=rows,
        total=sum_known_quantities(row.qty for row in rows)
    )


def within_range(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    """Inclusive bounds; an unknown value fails any active bound."""
    if low is not None and (value is None or value < low):
        return False
    if high is not None and (value is None or value > high):
        return False
    return True
