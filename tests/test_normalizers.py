"""Tests for the input normalizers."""

import math

import pytest

from voice_ledger.validation.normalizers import (
    DEFAULT_SLUG,
    clean_transcript,
    coerce_amount,
    format_amount_display,
    sanitize_amount,
    slugify_name,
    transliterate_ascii,
)


class TestSanitizeAmount:
    """Tests for typed amount parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("1.234.567", 1234567),
            ("2,500,000", 2500000),
            ("5000000 đồng", 5000000),
            ("-300", 300),
            ("abc", 0),
            ("", 0),
        ],
    )
    def test_strips_everything_but_digits(self, raw, expected):
        assert sanitize_amount(raw) == expected

    def test_none_is_zero(self):
        assert sanitize_amount(None) == 0


class TestCoerceAmount:
    """Tests for coercing arbitrary values to stored amounts."""

    def test_int_passes_through(self):
        assert coerce_amount(42) == 42

    def test_negative_clamped(self):
        assert coerce_amount(-1) == 0
        assert coerce_amount(-1.5) == 0

    def test_float_truncated(self):
        assert coerce_amount(10.99) == 10

    def test_non_finite_float_is_zero(self):
        assert coerce_amount(math.nan) == 0
        assert coerce_amount(math.inf) == 0

    def test_bool_and_none_are_zero(self):
        """Test that True is not silently stored as 1."""
        assert coerce_amount(True) == 0
        assert coerce_amount(None) == 0

    def test_string_sanitized(self):
        assert coerce_amount("1.000") == 1000

    def test_unknown_type_is_zero(self):
        assert coerce_amount(["1"]) == 0


class TestFormatAmountDisplay:
    def test_groups_thousands_with_dots(self):
        assert format_amount_display(2500000) == "2.500.000"
        assert format_amount_display(999) == "999"

    def test_zero_renders_empty(self):
        assert format_amount_display(0) == ""

    @pytest.mark.parametrize(
        "typed,shown",
        [("abc", ""), ("12a.3b4", "1.234"), ("2500000", "2.500.000")],
    )
    def test_typed_text_is_redisplayed_sanitized(self, typed, shown):
        assert format_amount_display(sanitize_amount(typed)) == shown


class TestSlugify:
    """Tests for export file name slugs."""

    def test_vietnamese_name(self):
        assert slugify_name("Nguyễn Văn A") == "Nguyen_Van_A"

    def test_d_with_stroke(self):
        assert transliterate_ascii("Đặng Đức") == "Dang Duc"
        assert slugify_name("Hộ kinh doanh Đức") == "Ho_kinh_doanh_Duc"

    def test_punctuation_replaced(self):
        assert slugify_name("Tạp hóa A/B") == "Tap_hoa_A_B"

    def test_empty_name_uses_default(self):
        assert slugify_name("") == DEFAULT_SLUG

    def test_whitespace_name_keeps_underscores(self):
        assert slugify_name("   ") == "___"
        assert slugify_name(" An ") == "_An_"


class TestCleanTranscript:
    def test_collapses_whitespace_and_quotes(self):
        assert clean_transcript('  "Bán hàng   tạp hóa"\n') == "Bán hàng tạp hóa"

    def test_none_is_empty(self):
        assert clean_transcript(None) == ""
