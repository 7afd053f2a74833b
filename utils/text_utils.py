"""
Text utilities for identifiers coming from the POS catalog and Shopify.

Used for SKU/barcode matching, location validation and sorting.
"""

import math
import re
import unicodedata
from typing import Any, Iterable, Optional

_WHITESPACE_RE = re.compile(r"\s+")
_DIGIT_CHUNK_RE = re.compile(r"([0-9]+)")
_TRAILING_ID_RE = re.compile(r"(\d+)(?:\D*)$")
_SHOP_ZERO_RE = re.compile(r"^shop\s*#?\s*0$")
_SHOP_ID_RE = re.compile(r"^shopid\s*=\s*\d+$")
_SHOP_DOMAIN_RE = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")


def normalize_text(value: Any) -> str:
    """Stringify and trim; None becomes an empty string."""
    if value is None:
        return ""
    return str(value).strip()


def normalize_lower(value: Any) -> str:
    """Trimmed, case-folded text for comparisons."""
    return normalize_text(value).lower()


def normalize_sku_key(value: Any) -> str:
    """
    Normalize a SKU or barcode into a lookup key.

    - " C 123 45 " → "c12345"
    - "ABC-1"      → "abc-1"
    """
    return _WHITESPACE_RE.sub("", normalize_text(value)).lower()


def strip_leading_c(key: str) -> str:
    """
    Drop one leading "c" from a normalized SKU key.

    The POS prefixes internal SKUs with "C"; only used for fuzzy
    comparison, never for display.
    """
    return key[1:] if key.startswith("c") else key


def fold_accents(value: Any) -> str:
    """
    Lowercase and strip accent marks.

    - "Décoration" → "decoration"
    """
    normalized = unicodedata.normalize("NFD", normalize_text(value))
    return "".join(
        c for c in normalized
        if unicodedata.category(c) != "Mn"
    ).casefold()


def natural_sort_key(value: Any) -> tuple:
    """
    Sort key that compares digit runs numerically, ignoring case and accents.

    "SKU2" sorts before "SKU10"; "abc" and "ABC" compare equal.
    Digit chunks sort before text chunks.
    """
    key = []
    for chunk in _DIGIT_CHUNK_RE.split(fold_accents(value)):
        if not chunk:
            continue
        if chunk.isdigit():
            key.append((0, int(chunk), ""))
        else:
            key.append((1, 0, chunk))
    return tuple(key)


def includes_text(haystack: Any, needle_lower: str) -> bool:
    """Case-insensitive substring test; an empty needle always matches."""
    if not needle_lower:
        return True
    return needle_lower in normalize_lower(haystack)


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a finite number, or None.

    Booleans, blanks, NaN and infinities are not numbers here.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        try:
            parsed = float(normalize_text(value))
        except ValueError:
            return None
    if not math.isfinite(parsed):
        return None
    return parsed


def parse_integer(value: Any) -> Optional[int]:
    """Parse and truncate to an int, or None."""
    parsed = parse_number(value)
    if parsed is None:
        return None
    return int(parsed)


def parse_positive_int(value: Any, fallback: int) -> int:
    """Positive int, or the fallback for missing/zero/negative input."""
    parsed = parse_integer(value)
    if parsed is None or parsed <= 0:
        return fallback
    return parsed


def is_invalid_location_name(name: Any) -> bool:
    """
    Detect placeholder location names emitted by the snapshot provider.

    Rejects "", "0", "Shop #0" style names and "ShopId=<digits>".
    """
    normalized = normalize_lower(name)
    if not normalized:
        return True
    if normalized == "0":
        return True
    if _SHOP_ZERO_RE.match(normalized):
        return True
    return bool(_SHOP_ID_RE.match(normalized))


def to_gid_numeric_id(value: Any) -> str:
    """
    Extract the trailing numeric id from a Shopify GID.

    - "gid://shopify/ProductVariant/4455" → "4455"
    """
    match = _TRAILING_ID_RE.search(normalize_text(value))
    return match.group(1) if match else ""


def normalize_store_domain(value: Any) -> Optional[str]:
    """Lowercased *.myshopify.com domain, or None if it isn't one."""
    normalized = normalize_lower(value)
    if not normalized:
        return None
    return normalized if _SHOP_DOMAIN_RE.match(normalized) else None


def collapse_whitespace(value: Any) -> str:
    """Collapse whitespace runs into single spaces."""
    return _WHITESPACE_RE.sub(" ", normalize_text(value)).strip()


def join_warnings(*warnings: Optional[str]) -> str:
    """Distinct non-empty warnings in order, space-joined."""
    seen: list[str] = []
    for warning in warnings:
        text = normalize_text(warning)
        if text and text not in seen:
            seen.append(text)
    return " ".join(seen)


def distinct_sorted(values: Iterable[Any]) -> list[str]:
    """Distinct non-empty trimmed values in natural order (facet lists)."""
    return sorted({normalize_text(v) for v in values if normalize_text(v)}, key=natural_sort_key)
