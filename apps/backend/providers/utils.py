"""Parsing helpers shared by provider adapters."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

_CURRENCY_SYMBOLS = (
    ("€", "EUR"),
    ("£", "GBP"),
    ("lei", "RON"),
    ("ron", "RON"),
    ("$", "USD"),
)

_NON_NUMERIC = re.compile(r"[^\d.,\-]")
_GROUPED_THOUSANDS = re.compile(r"^\d{1,3}(?:\.\d{3})+$")
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
_DELIVERY_PATTERN = re.compile(r"(\d+)\s*(?:-\s*\d+\s*)?(day|business day|week|month)s?", re.IGNORECASE)
_FAST_DELIVERY_PATTERN = re.compile(r"same[- ]day|next[- ]day|overnight|1-day|2-day|express", re.IGNORECASE)


def parse_price(value: object) -> Optional[float]:
    """Parse a price given as a number or a display string.

    Handles "1.234,56" (European) and "1,234.56" (international). A lone
    separator followed by exactly three digits is read by currency: "1.234 lei"
    and "1.234 €" are thousands, "$1,234" is thousands. Zero is a valid price
    (free shipping, say); returns None for negative, empty or unparseable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None

    raw = str(value).strip()
    cleaned = _NON_NUMERIC.sub("", raw)
    if not cleaned or cleaned.startswith("-"):
        return None

    currency = infer_currency(raw, default="")
    last_comma = cleaned.rfind(",")
    last_dot = cleaned.rfind(".")
    if last_comma == -1 and _GROUPED_THOUSANDS.search(cleaned) and currency in ("RON", "EUR"):
        cleaned = cleaned.replace(".", "")
    elif last_dot == -1 and _GROUPED_THOUSANDS.search(cleaned.replace(",", ".")) and currency in ("USD", "GBP"):
        cleaned = cleaned.replace(",", "")
    elif last_comma > last_dot and len(cleaned) - last_comma <= 4:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")

    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if number >= 0 else None


def infer_currency(value: object, default: str = "USD") -> str:
    if not isinstance(value, str):
        return default
    lowered = value.lower()
    for symbol, code in _CURRENCY_SYMBOLS:
        if symbol in lowered:
            return code
    return default


def slugify(value: Optional[str]) -> str:
    return _SLUG_PATTERN.sub("-", (value or "").lower()).strip("-")


def title_merge_key(title: str, brand: Optional[str] = None) -> str:
    """Deterministic external id for listings that carry none."""
    return f"title:{slugify(brand)}:{slugify(title)}"


def store_from_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        host = urlparse(url).netloc.lower()
    except ValueError:
        return None
    if host.startswith("www."):
        host = host[4:]
    return host or None


def normalize_url(url: Optional[str]) -> Optional[str]:
    url = (url or "").strip()
    if not url:
        return None
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("www."):
        return f"https://{url}"
    return url


def parse_delivery_days(text: Optional[str]) -> Optional[int]:
    """Turn "Ships in 2 weeks" / "Ships overnight" style text into days."""
    if not text:
        return None
    if _FAST_DELIVERY_PATTERN.search(text):
        return 1
    match = _DELIVERY_PATTERN.search(text)
    if not match:
        return None
    amount = int(match.group(1))
    unit = match.group(2).lower()
    if unit.startswith("week"):
        return amount * 7
    if unit.startswith("month"):
        return amount * 30
    return amount


def is_fast_delivery_text(text: Optional[str]) -> bool:
    return bool(text and _FAST_DELIVERY_PATTERN.search(text))
