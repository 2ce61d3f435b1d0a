"""
Tests for the bank CSV amount parser.
"""

from decimal import Decimal

import pytest

from app.pipeline.amount_parser import AmountParseError, parse_amount, require_amount


class TestParseAmount:
    """Test amount parsing conventions."""

    def test_plain_amount(self):
        result = parse_amount("1234.50")
        assert result.amount == Decimal("1234.50")
        assert not result.is_negative
        assert result.currency is None

    def test_dollar_sign_and_thousands_separator(self):
        result = parse_amount("$1,234.50")
        assert result.amount == Decimal("1234.50")
        assert not result.is_negative
        assert result.currency == "USD"

    def test_parentheses_negative(self):
        result = parse_amount("(1234.50)")
        assert result.amount == Decimal("-1234.50")
        assert result.is_negative
        assert result.sign_convention == "PARENTHESES"

    def test_parentheses_with_symbol(self):
        result = parse_amount("($1,234.50)")
        assert result.amount == Decimal("-1234.50")

    def test_leading_minus(self):
        result = parse_amount("-4.50")
        assert result.amount == Decimal("-4.50")
        assert result.sign_convention == "MINUS"

    def test_euro_and_pound_symbols(self):
        assert parse_amount("€10.00").currency == "EUR"
        assert parse_amount(chr(163) + "10.00").currency == "GBP"
        assert parse_amount(chr(163) + "10.00").amount == Decimal("10.00")

    def test_surrounding_and_inner_whitespace(self):
        result = parse_amount("  1 234.50 ")
        assert result.amount == Decimal("1234.50")

    def test_rounds_to_cents(self):
        assert parse_amount("10.005").amount == Decimal("10.01")
        assert parse_amount("7").amount == Decimal("7.00")

    def test_garbage_returns_none(self):
        assert parse_amount("abc").amount is None

    def test_non_finite_rejected(self):
        assert parse_amount("NaN").amount is None
        assert parse_amount("Infinity").amount is None

    def test_too_many_digits_returns_none(self):
        assert parse_amount("1e30").amount is None
        assert parse_amount("9" * 40).amount is None

    def test_empty_returns_none(self):
        assert parse_amount("").amount is None
        assert parse_amount("$").amount is None


class TestRequireAmount:
    """Test the raising variant used by the row parser."""

    def test_empty_cell_message(self):
        with pytest.raises(AmountParseError, match="Amount is empty"):
            require_amount("   ")

    def test_blank_as_zero(self):
        result = require_amount("  ", blank_as_zero=True)
        assert result.amount == Decimal("0.00")
        assert not result.is_negative

    def test_out_of_range(self):
        with pytest.raises(AmountParseError, match="Amount out of range: '123456789012345'"):
            require_amount("123456789012345")
        with pytest.raises(AmountParseError, match="Balance out of range"):
            require_amount("-10000000000.00", "balance")
        assert require_amount("9999999999.99").amount == Decimal("9999999999.99")

    def test_overlong_number_is_invalid_not_a_crash(self):
        with pytest.raises(AmountParseError, match="Invalid amount: '1e30'"):
            require_amount("1e30")

    def test_invalid_cell_message(self):
        with pytest.raises(AmountParseError, match="Invalid amount: 'ten'"):
            require_amount("ten")

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            require_amount("12..5")
