"""
Input Normalizers

Pure functions that turn loosely formatted input into the strict values
the ledger stores. They never raise on bad input: invalid numbers become 0
and unusable names fall back to a fixed slug.

Keeping them here (instead of inline at each call site) means the model
validators, the controller, the AI client and the exporter all agree on
exactly one interpretation of "1.234.567 đồng".
"""

import re
import unicodedata
from typing import Any


_NON_DIGITS = re.compile(r"[^0-9]")
_NON_SLUG = re.compile(r"[^A-Za-z0-9]")

# Letters that NFD does not decompose into base + combining mark
_EXTRA_TRANSLITERATIONS = str.maketrans({"đ": "d", "Đ": "D"})

DEFAULT_SLUG = "S1a"


def sanitize_amount(value: str) -> int:
    """
    Parse a typed or dictated amount string into a non-negative integer.

    Every non-digit character is stripped, so vi-VN thousands separators
    ("1.234.567"), currency words and signs disappear. Nothing left means 0.

    >>> sanitize_amount("1.234.567")
    1234567
    >>> sanitize_amount("abc")
    0
    """
    digits = _NON_DIGITS.sub("", value or "")
    if not digits:
        return 0
    return int(digits)


def coerce_amount(value: Any) -> int:
    """
    Coerce any amount-like value (int, float, str, None) to a stored amount.

    Numbers are truncated toward zero and clamped at 0; strings go through
    sanitize_amount. Booleans and unknown types become 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return 0
        return max(int(value), 0)
    if isinstance(value, str):
        return sanitize_amount(value)
    return 0


def format_amount_display(amount: int) -> str:
    """
    Format an amount for the editing surface using vi-VN grouping.

    Zero renders as an empty string so the input shows its placeholder.

    >>> format_amount_display(2500000)
    '2.500.000'
    """
    if amount == 0:
        return ""
    return f"{amount:,}".replace(",", ".")


def transliterate_ascii(text: str) -> str:
    """Strip Vietnamese diacritics, leaving plain ASCII letters where possible."""
    decomposed = unicodedata.normalize("NFD", text.translate(_EXTRA_TRANSLITERATIONS))
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify_name(name: str) -> str:
    """
    Build a filesystem-safe ASCII slug from a taxpayer name.

    >>> slugify_name("Nguyễn Văn A")
    'Nguyen_Van_A'

    Only an empty name falls back to the default; whitespace is kept and
    becomes underscores like any other non-alphanumeric character.
    """
    if not name:
        return DEFAULT_SLUG
    return _NON_SLUG.sub("_", transliterate_ascii(name))


def clean_transcript(text: str) -> str:
    """Collapse whitespace and strip quotes the model sometimes wraps answers in."""
    collapsed = " ".join((text or "").split())
    return collapsed.strip().strip('"').strip("“”").strip()
