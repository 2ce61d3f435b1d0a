"""
Tests for header synonym matching.
"""

from itertools import permutations

import pytest

from app.pipeline.column_resolver import COLUMN_SYNONYMS, NOT_FOUND, find_column, resolve_columns


class TestResolveColumns:
    @pytest.mark.parametrize("headers", list(permutations(["date", "description", "amount", "balance"])))
    def test_order_independent(self, headers):
        mapping = resolve_columns(list(headers))
        assert mapping.date == headers.index("date")
        assert mapping.description == headers.index("description")
        assert mapping.amount == headers.index("amount")
        assert mapping.balance == headers.index("balance")

    def test_case_and_whitespace_insensitive(self):
        mapping = resolve_columns(["  Transaction Date ", "MEMO", "Value", "Running Balance"])
        assert (mapping.date, mapping.description, mapping.amount, mapping.balance) == (0, 1, 2, 3)

    def test_substring_match(self):
        mapping = resolve_columns(["Posting Date", "Details", "Debit Amount"])
        assert mapping.date == 0
        assert mapping.description == 1
        assert mapping.amount == 2

    def test_missing_balance_is_not_found(self):
        mapping = resolve_columns(["date", "description", "amount"])
        assert mapping.balance == NOT_FOUND
        assert mapping.missing_required == []

    def test_missing_required_columns_reported(self):
        mapping = resolve_columns(["Payee", "Notes"])
        assert mapping.missing_required == ["date", "amount"]

    def test_first_matching_header_wins(self):
        assert find_column(["Credit", "Debit"], COLUMN_SYNONYMS["amount"]) == 0


class TestSynonymTable:
    def test_exact_synonym_lists(self):
        assert COLUMN_SYNONYMS == {
            "date": ("date", "transaction date", "trans date"),
            "description": ("description", "desc", "memo", "details"),
            "amount": ("amount", "value", "debit", "credit"),
            "balance": ("balance", "running balance"),
        }
