"""Input normalization package."""

from voice_ledger.validation.normalizers import (
    DEFAULT_SLUG,
    clean_transcript,
    coerce_amount,
    format_amount_display,
    sanitize_amount,
    slugify_name,
    transliterate_ascii,
)

__all__ = [
    "DEFAULT_SLUG",
    "clean_transcript",
    "coerce_amount",
    "format_amount_display",
    "sanitize_amount",
    "slugify_name",
    "transliterate_ascii",
]
