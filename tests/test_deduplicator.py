"""
Unit tests for transaction deduplication.
"""
from decimal import Decimal

import pytest

from statement_ledger.reconciliation import TransactionDeduplicator
from statement_ledger.reconciliation.deduplicator import transaction_hash

from conftest import txn


class TestTransactionDeduplicator:
    """Tests for the single-pass dedup rules."""

    @pytest.fixture
    def dedup(self) -> TransactionDeduplicator:
        return TransactionDeduplicator()

    def test_continuation_merge(self, dedup):
        """Test a dateless row folding into the previous transaction."""
        rows = [
            txn("01/01/2024", "Transfer", credit="100", balance="500"),
            txn("", "ref 123"),
        ]
        result = dedup.deduplicate(rows)

        assert len(result) == 1
        assert result[0].description == "Transfer ref 123"
        assert result[0].credit == Decimal("100")
        assert result[0].balance == Decimal("500")

    @pytest.mark.parametrize("placeholder", ["-", "N/A", "..", ".", "  "])
    def test_placeholder_dates_are_continuations(self, dedup, placeholder):
        rows = [
            txn("01/01/2024", "POS purchase", debit="20", balance="480"),
            txn(placeholder, "CARREFOUR DXB"),
        ]
        result = dedup.deduplicate(rows)
        assert [t.description for t in result] == ["POS purchase CARREFOUR DXB"]

    def test_continuation_backfills_missing_amounts(self, dedup):
        rows = [
            txn("01/01/2024", "Cheque deposit"),
            txn("", "no 000123", credit="250", balance="750"),
        ]
        result = dedup.deduplicate(rows)

        assert result[0].credit == Decimal("250")
        assert result[0].balance == Decimal("750")
        assert result[0].debit == Decimal("0")

    def test_continuation_keeps_existing_balance(self, dedup):
        rows = [
            txn("01/01/2024", "Transfer", credit="100", balance="500"),
            txn("", "ref", balance="999"),
        ]
        assert dedup.deduplicate(rows)[0].balance == Decimal("500")

    def test_carry_over_drop(self, dedup):
        """Test that a repeated balance header row is dropped."""
        rows = [
            txn("31/01/2024", "Salary", credit="1000", balance="500"),
            txn("01/02/2024", "Balance brought forward", balance="500"),
        ]
        result = dedup.deduplicate(rows)
        assert [t.description for t in result] == ["Salary"]

    def test_exact_repeat_dropped(self, dedup):
        row = txn("01/01/2024", "ATM", debit="50", balance="450")
        other = txn("02/01/2024", "Fee", debit="1", balance="449")
        assert dedup.deduplicate([row, other, row]) == [row, other]

    def test_sequential_redundancy_dropped(self, dedup):
        rows = [
            txn("01/01/2024", "Card payment", debit="75", balance="425"),
            txn("01/01/2024", "CARD PAYMENT AMAZON", debit="75", balance="0"),
        ]
        assert len(dedup.deduplicate(rows)) == 1

    def test_same_day_different_amounts_kept(self, dedup):
        rows = [
            txn("01/01/2024", "Coffee", debit="5", balance="495"),
            txn("01/01/2024", "Lunch", debit="30", balance="465"),
        ]
        assert len(dedup.deduplicate(rows)) == 2

    def test_sanitizes_accepted_rows(self, dedup):
        result = dedup.deduplicate([txn(" 01/01/2024 ", "  Salary  ", credit="10", balance="10")])
        assert result[0].date == "01/01/2024"
        assert result[0].description == "Salary"

    def test_hash_format(self):
        row = txn("01/01/2024", "Transfer", debit="0", credit="100", balance="500.5")
        assert transaction_hash(row) == "01/01/2024|transfer|0.00|100.00|500.50"

    def test_idempotent(self, dedup):
        rows = [
            txn("01/01/2024", "Opening", balance="1000"),
            txn("01/01/2024", "Salary", credit="500", balance="1500"),
            txn("", "ACME LLC"),
            txn("01/01/2024", "Salary", credit="500", balance="1500"),
            txn("02/01/2024", "Balance b/f", balance="1500"),
            txn("02/01/2024", "Rent", debit="700", balance="800"),
            txn("02/01/2024", "Rent", debit="700", balance="800"),
            txn("03/01/2024", "DEWA", debit="120.55", balance="679.45"),
            txn("-", "Bill ref 42"),
        ]
        once = dedup.deduplicate(rows)
        assert dedup.deduplicate(once) == once

    def test_idempotent_when_row_repeats_merged_continuation(self, dedup):
        rows = [
            txn("01/01/2024", "Transfer", credit="100", balance="500"),
            txn("", "ref"),
            txn("02/01/2024", "Fee", debit="1", balance="499"),
            txn("01/01/2024", "Transfer ref", credit="100", balance="500"),
        ]
        once = dedup.deduplicate(rows)

        assert [t.description for t in once] == ["Transfer ref", "Fee"]
        assert dedup.deduplicate(once) == once

    def test_empty(self, dedup):
        assert dedup.deduplicate([]) == []
