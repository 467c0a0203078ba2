"""
src/tests/test_text_extraction.py: Unit tests for OCR text cleanup and candidate extraction

Tests:
- Digit look-alike substitution and whitespace collapsing
- Primary 3-7 digit pass
- Decimal fallback pass
"""

import pytest

from src.ocr import Candidate, extract_candidates, normalize_text


class TestNormalizeText:
    """Test glyph substitution"""

    def test_leading_o_and_trailing_b(self):
        assert normalize_text("O123b") == "01236"

    @pytest.mark.parametrize("raw,expected", [
        ("o0O", "000"),
        ("lI|", "111"),
        ("sS", "55"),
        ("bB", "66"),
    ])
    def test_substitution_table(self, raw, expected):
        assert normalize_text(raw) == expected

    def test_whitespace_runs_collapse(self):
        assert normalize_text("12  \n\t 34") == "12 34"

    def test_other_characters_untouched(self):
        assert normalize_text("km 7x") == "km 7x"

    def test_empty(self):
        assert normalize_text("") == ""

    def test_single_pass(self):
        # Substituted digits are not substituted again
        assert normalize_text("Sb") == "56"


class TestExtractCandidates:
    """Test numeric candidate extraction"""

    def test_single_odometer_value(self):
        assert extract_candidates("12345") == [Candidate(value=12345, source="12345")]

    def test_leading_zero_parses_as_integer(self):
        candidates = extract_candidates(normalize_text("O123b"))
        assert [c.value for c in candidates] == [1236]
        assert candidates[0].source == "01236"

    def test_order_of_appearance(self):
        candidates = extract_candidates("4800 trip 4521")
        assert [c.value for c in candidates] == [4800, 4521]

    def test_short_runs_are_ignored_when_long_runs_exist(self):
        candidates = extract_candidates("12 45210 7")
        assert [c.value for c in candidates] == [45210]
        assert not candidates[0].fallback

    def test_run_longer_than_seven_digits_is_split(self):
        assert [c.value for c in extract_candidates("12345678")] == [1234567]

    def test_fallback_two_digit_value(self):
        candidates = extract_candidates("99")
        assert [c.value for c in candidates] == [99.0]
        assert candidates[0].fallback
        assert isinstance(candidates[0].value, float)

    def test_fallback_comma_is_decimal_separator(self):
        assert [c.value for c in extract_candidates("12,5 km")] == [12.5]

    def test_fallback_multiple_numbers(self):
        assert [c.value for c in extract_candidates("ab 12 3.7")] == [12.0, 3.7]

    def test_no_numbers(self):
        assert extract_candidates("km trip") == []

    def test_empty(self):
        assert extract_candidates("") == []
