"""
Transaction deduplication
Single ordered pass that merges wrapped rows and drops repeated ones
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import List, Sequence, Set

from ..models.transaction import Transaction
from ..utils.parsing import parse_amount

logger = logging.getLogger(__name__)

PLACEHOLDER_DATES = {"", "-", "N/A", "..", "."}
TOLERANCE = Decimal('0.01')


def transaction_hash(transaction: Transaction) -> str:
    """Identity key: date|description|debit|credit|balance"""
    return (
        f"{transaction.date.strip()}|{transaction.description.strip().lower()}|"
        f"{transaction.debit:.2f}|{transaction.credit:.2f}|{transaction.balance:.2f}"
    )


def _close(a: Decimal, b: Decimal) -> bool:
    return abs(a - b) < TOLERANCE


def _sanitize(transaction: Transaction) -> Transaction:
    return replace(
        transaction,
        date=(transaction.date or "").strip(),
        description=(transaction.description or "").strip(),
        debit=parse_amount(transaction.debit),
        credit=parse_amount(transaction.credit),
        balance=parse_amount(transaction.balance),
    )


class TransactionDeduplicator:
    """
    Order-sensitive cleanup of harmonized rows

    For each row, in order:
    - exact repeats (same identity hash) are dropped
    - rows with a placeholder date are continuations of the previous row:
      their description is appended and empty amounts are backfilled
    - amount-less rows repeating the previous balance are carried-over
      headers and dropped
    - rows matching the previous row's date and amounts are OCR
      redundancy and dropped

    Running it on its own output changes nothing.
    """

    def deduplicate(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        result: List[Transaction] = []
        seen: Set[str] = set()
        merged = carried = redundant = repeated = 0

        for raw in transactions:
            row = _sanitize(raw)
            key = transaction_hash(row)

            if key in seen:
                repeated += 1
                continue

            if result:
                previous = result[-1]

                if row.date in PLACEHOLDER_DATES:
                    result[-1] = self._merge_continuation(previous, row)
                    seen.add(transaction_hash(result[-1]))
                    merged += 1
                    continue

                if (row.debit == 0 and row.credit == 0 and row.balance != 0
                        and _close(row.balance, previous.balance)):
                    carried += 1
                    continue

                if (row.date == previous.date
                        and _close(row.debit, previous.debit)
                        and _close(row.credit, previous.credit)
                        and (row.balance == 0 or previous.balance == 0
                             or _close(row.balance, previous.balance))):
                    redundant += 1
                    continue

            result.append(row)
            seen.add(key)

        logger.info(
            f"Deduplicated {len(transactions)} -> {len(result)} rows "
            f"(repeated={repeated}, continuations={merged}, carry-over={carried}, redundant={redundant})"
        )
        return result

    @staticmethod
    def _merge_continuation(previous: Transaction, row: Transaction) -> Transaction:
        description = " ".join(part for part in (previous.description, row.description) if part)
        return replace(
            previous,
            description=description,
            debit=previous.debit if previous.debit != 0 else row.debit,
            credit=previous.credit if previous.credit != 0 else row.credit,
            balance=previous.balance if previous.balance != 0 or row.balance == 0 else row.balance,
        )
