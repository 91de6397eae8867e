"""
Statement period filtering
"""

import logging
from typing import List, Optional, Sequence

from ..models.transaction import Transaction
from ..utils.parsing import parse_transaction_date

logger = logging.getLogger(__name__)


def filter_transactions_by_date(transactions: Sequence[Transaction],
                                start_date: Optional[str] = None,
                                end_date: Optional[str] = None) -> List[Transaction]:
    """
    Keep rows inside [start_date, end_date] (both inclusive, either optional)

    Rows whose date cannot be parsed are kept for manual review.
    """
    if not start_date and not end_date:
        return list(transactions)

    start = parse_transaction_date(start_date)
    end = parse_transaction_date(end_date)

    kept = []
    for t in transactions:
        when = parse_transaction_date(t.date)
        if when is None:
            kept.append(t)
            continue
        if start and when < start:
            continue
        if end and when > end:
            continue
        kept.append(t)

    if len(kept) != len(transactions):
        logger.info(f"Date filter {start_date or '...'} to {end_date or '...'}: kept {len(kept)}/{len(transactions)}")
    return kept
