"""Text and number coercion helpers for upstream records."""

import math
from typing import Any

_TURKISH_MAP = str.maketrans({
    "ı": "i",
    "İ": "I",
    "ğ": "g",
    "Ğ": "G",
    "ü": "u",
    "Ü": "U",
    "ş": "s",
    "Ş": "S",
    "ö": "o",
    "Ö": "O",
    "ç": "c",
    "Ç": "C",
    "â": "a",
    "Â": "A",
})


def normalize_turkish(text: str | None) -> str:
    """Replace Turkish-specific letters with their ASCII counterparts.

    Example:
        >>> normalize_turkish("Tahtalı Barajı")
        'Tahtali Baraji'
    """
    if not text:
        return ""
    return text.translate(_TURKISH_MAP)


def name_key(text: str | None) -> str:
    """Case and accent insensitive key used to match names across sources."""
    return normalize_turkish(text).strip().lower()


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce an upstream value to float.

    Accepts ints, floats and strings using either '.' or the Turkish ','
    as decimal separator ("1.234,5" -> 1234.5). Anything unparseable,
    including NaN and infinities, yields ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(" ", "")
        if not text:
            return default
        if "," in text:
            # Dots are thousands separators when a decimal comma is present
            text = text.replace(".", "").replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def to_int(value: Any, default: int = 0) -> int:
    """Coerce an upstream value to int, truncating fractional parts."""
    return int(to_number(value, float(default)))
