"""
Running balance reconstruction
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from ..models.transaction import BankStatementSummary, Transaction
from ..utils.parsing import to_cents

logger = logging.getLogger(__name__)

TOLERANCE = Decimal('0.01')
ZERO = Decimal('0')


def _pair_error(previous_balance: Decimal, row: Transaction, swapped: bool) -> Decimal:
    """Distance between the balance movement and the row's amounts"""
    debit, credit = (row.credit, row.debit) if swapped else (row.debit, row.credit)
    return abs((row.balance - previous_balance) - (credit - debit))


class BalanceReconstructor:
    """
    Recomputes the balance column from the opening balance and each
    row's debit/credit. The computed balance is authoritative: every row
    gets it, even when the extracted one already agrees, and the last one
    becomes the closing balance.

    Summary totals are always recomputed from the rows.
    """

    def fix_direction(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        """
        Swap debit/credit on every row when the columns were read the wrong way round

        The extracted balances are checked against four readings of the table
        (ascending or descending order, normal or swapped columns). A swapped
        reading wins only if no normal reading stays within half a unit per
        balanced row.
        """
        rows = [t for t in transactions if t.balance != 0]
        if len(transactions) < 2 or len(rows) < 2:
            return list(transactions)

        fits = [
            ("ascending", False),
            ("ascending swapped", True),
            ("descending", False),
            ("descending swapped", True),
        ]
        errors = [ZERO] * len(fits)

        for older, newer in zip(rows, rows[1:]):
            errors[0] += _pair_error(older.balance, newer, swapped=False)
            errors[1] += _pair_error(older.balance, newer, swapped=True)
            errors[2] += _pair_error(newer.balance, older, swapped=False)
            errors[3] += _pair_error(newer.balance, older, swapped=True)

        # Stable sort keeps declaration order on ties
        ranked = sorted(zip(fits, errors), key=lambda fit: fit[1])
        (name, swapped), _ = ranked[0]
        best_normal = next(error for (_, is_swapped), error in ranked if not is_swapped)

        if not swapped or best_normal < len(rows) * Decimal('0.5'):
            return list(transactions)

        logger.warning(f"Debit/credit columns fit the {name} reading, swapping them on all rows")
        return [replace(t, debit=t.credit, credit=t.debit) for t in transactions]

    def opening_balance(self, transactions: Sequence[Transaction],
                        summary: Optional[BankStatementSummary]) -> Decimal:
        """Summary opening balance, or one back-computed from the first row"""
        opening = summary.opening_balance if summary and summary.opening_balance is not None else ZERO
        if opening == 0 and transactions and transactions[0].balance != 0:
            first = transactions[0]
            opening = to_cents(first.balance - first.credit + first.debit)
            logger.info(f"Back-computed opening balance {opening} from first row")
        return opening

    def reconstruct(self, transactions: Sequence[Transaction],
                    summary: Optional[BankStatementSummary] = None
                    ) -> Tuple[List[Transaction], BankStatementSummary]:
        summary = summary or BankStatementSummary()

        if not transactions:
            return [], replace(summary, total_withdrawals=ZERO, total_deposits=ZERO)

        opening = self.opening_balance(transactions, summary)
        current = opening
        corrected = 0
        result = []

        for t in transactions:
            current = to_cents(current - t.debit + t.credit)
            if t.balance == 0 or abs(t.balance - current) > TOLERANCE:
                corrected += 1
            result.append(replace(t, balance=current))

        extracted = summary.closing_balance
        if extracted is not None and abs(extracted - current) > TOLERANCE:
            logger.warning(f"Extracted closing balance {extracted} diverges from computed {current}, replacing")

        if corrected:
            logger.info(f"Corrected {corrected}/{len(result)} extracted balances")

        return result, replace(
            summary,
            opening_balance=opening,
            closing_balance=current,
            total_withdrawals=sum((t.debit for t in result), ZERO),
            total_deposits=sum((t.credit for t in result), ZERO),
        )
