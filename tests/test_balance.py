"""
Unit tests for running balance reconstruction.
"""
from decimal import Decimal

import pytest

from statement_ledger.models import BankStatementSummary
from statement_ledger.reconciliation import BalanceReconstructor

from conftest import txn


def assert_running_balance(opening, transactions):
    previous = opening
    for t in transactions:
        assert abs(t.balance - (previous - t.debit + t.credit)) < Decimal("0.01")
        previous = t.balance


class TestBalanceReconstructor:
    """Tests for balance recomputation and summary totals."""

    @pytest.fixture
    def reconstructor(self) -> BalanceReconstructor:
        return BalanceReconstructor()

    def test_running_balance_from_summary_opening(self, reconstructor):
        rows = [
            txn("01/01/2024", "Salary", credit="1000", balance="0"),
            txn("02/01/2024", "Rent", debit="400.10", balance="9999"),
            txn("03/01/2024", "Fee", debit="0.55", balance="1099.35"),
        ]
        summary = BankStatementSummary(opening_balance=Decimal("500"), closing_balance=Decimal("1099.35"))

        result, new_summary = reconstructor.reconstruct(rows, summary)

        assert [t.balance for t in result] == [Decimal("1500.00"), Decimal("1099.90"), Decimal("1099.35")]
        assert_running_balance(Decimal("500"), result)
        assert new_summary.opening_balance == Decimal("500")
        assert new_summary.closing_balance == Decimal("1099.35")
        assert new_summary.total_deposits == Decimal("1000")
        assert new_summary.total_withdrawals == Decimal("400.65")

    def test_back_computes_opening_from_first_row(self, reconstructor):
        rows = [
            txn("01/01/2024", "Card", debit="50", balance="950"),
            txn("02/01/2024", "Refund", credit="20", balance="970"),
        ]
        result, summary = reconstructor.reconstruct(rows, BankStatementSummary())

        assert summary.opening_balance == Decimal("1000.00")
        assert [t.balance for t in result] == [Decimal("950.00"), Decimal("970.00")]

    def test_diverging_closing_is_replaced(self, reconstructor):
        rows = [txn("01/01/2024", "Deposit", credit="100", balance="100")]
        summary = BankStatementSummary(opening_balance=Decimal("0"), closing_balance=Decimal("250"))

        _, new_summary = reconstructor.reconstruct(rows, summary)
        assert new_summary.closing_balance == Decimal("100.00")

    def test_closing_within_tolerance_uses_computed(self, reconstructor):
        rows = [txn("01/01/2024", "Deposit", credit="100", balance="100")]
        summary = BankStatementSummary(opening_balance=Decimal("0"), closing_balance=Decimal("100.005"))

        _, new_summary = reconstructor.reconstruct(rows, summary)
        assert new_summary.closing_balance == Decimal("100.00")

    def test_missing_summary_and_no_rows(self, reconstructor):
        result, summary = reconstructor.reconstruct([], None)
        assert result == []
        assert summary.opening_balance is None
        assert summary.total_deposits == Decimal("0")

    def test_invariant_on_noisy_rows(self, reconstructor):
        rows = [
            txn("01/01/2024", "a", credit="10.333", balance="1"),
            txn("02/01/2024", "b", debit="3.337", balance="-5"),
            txn("03/01/2024", "c", credit="0.004", balance="0"),
            txn("04/01/2024", "d", debit="1000", balance="2"),
        ]
        result, summary = reconstructor.reconstruct(rows, BankStatementSummary(opening_balance=Decimal("12.34")))

        for previous, current in zip(result, result[1:]):
            assert abs(current.balance - (previous.balance - current.debit + current.credit)) < Decimal("0.01")
        assert summary.closing_balance == result[-1].balance


class TestFixDirection:
    """Tests for swapped debit/credit detection."""

    @pytest.fixture
    def reconstructor(self) -> BalanceReconstructor:
        return BalanceReconstructor()

    def test_swapped_columns_are_swapped_back(self, reconstructor):
        rows = [
            txn("01/01/2024", "Salary", debit="500", balance="1500"),
            txn("02/01/2024", "Rent", credit="350", balance="1150"),
            txn("03/01/2024", "Fee", credit="10", balance="1140"),
        ]
        fixed = reconstructor.fix_direction(rows)

        assert [(t.debit, t.credit) for t in fixed] == [
            (Decimal("0"), Decimal("500")),
            (Decimal("350"), Decimal("0")),
            (Decimal("10"), Decimal("0")),
        ]

    def test_correct_ledger_unchanged(self, reconstructor):
        rows = [
            txn("01/01/2024", "Salary", credit="500", balance="1500"),
            txn("02/01/2024", "Rent", debit="350", balance="1150"),
            txn("03/01/2024", "Fee", debit="10", balance="1140"),
        ]
        assert reconstructor.fix_direction(rows) == rows

    def test_descending_ledger_unchanged(self, reconstructor):
        rows = [
            txn("03/01/2024", "Fee", debit="10", balance="1140"),
            txn("02/01/2024", "Rent", debit="350", balance="1150"),
            txn("01/01/2024", "Salary", credit="500", balance="1500"),
        ]
        assert reconstructor.fix_direction(rows) == rows

    def test_small_misfit_keeps_columns(self, reconstructor):
        rows = [
            txn("01/01/2024", "Opening", balance="100"),
            txn("02/01/2024", "Interest", debit="0.30", balance="100.30"),
        ]
        assert reconstructor.fix_direction(rows) == rows

    def test_too_few_balanced_rows(self, reconstructor):
        rows = [
            txn("01/01/2024", "Salary", debit="500", balance="1500"),
            txn("02/01/2024", "Rent", credit="350"),
        ]
        assert reconstructor.fix_direction(rows) == rows
        assert reconstructor.fix_direction(rows[:1]) == rows[:1]
