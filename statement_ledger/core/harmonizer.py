"""
Structured harmonization
Turns every page's Markdown table into one list of transaction candidates
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from ..models.transaction import StatementLayout, Transaction
from ..utils.json_repair import parse_json_response
from ..utils.parsing import parse_amount
from .prompts import harmonization_prompt
from .retry import AIServiceError
from .schemas import STRUCTURED_TRANSACTIONS_SCHEMA, HarmonizedPayload, HarmonizedRow, validate_payload

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n---\n\n"
DEFAULT_CONFIDENCE = 80.0


def row_to_transaction(row: HarmonizedRow, source_file: str = "") -> Transaction:
    """
    Convert one harmonized row into a Transaction

    Amounts keep debit and credit non-negative: a negative debit is
    flipped, a negative credit with no debit becomes a debit.
    """
    debit = parse_amount(row.debit)
    credit = parse_amount(row.credit)

    if credit < 0 and debit == 0:
        debit, credit = -credit, Decimal('0')
    debit = abs(debit)
    credit = abs(credit)

    return Transaction(
        date=row.date.strip(),
        description=row.description.strip(),
        debit=debit,
        credit=credit,
        balance=parse_amount(row.balance),
        confidence=row.confidence if row.confidence is not None else DEFAULT_CONFIDENCE,
        source_file=source_file,
    )


class StructuredHarmonizer:
    """
    Single call over all collected evidence

    The model applies the discovered column mapping, merges wrapped rows
    and splits signed amount columns; numeric cleanup happens here.
    """

    def __init__(self, client, model: Optional[str] = None,
                 max_output_tokens: Optional[int] = 30000):
        self.client = client
        self.model = model
        self.max_output_tokens = max_output_tokens

    async def harmonize(self, markdown_tables: Sequence[str],
                        layout: Optional[StatementLayout] = None,
                        source_file: str = "") -> List[Transaction]:
        tables = [table for table in markdown_tables if table and table.strip()]
        if not tables:
            logger.warning("No table evidence to harmonize")
            return []

        combined = PAGE_SEPARATOR.join(tables).strip()

        try:
            text = await self.client.generate(
                harmonization_prompt(combined, layout),
                schema=STRUCTURED_TRANSACTIONS_SCHEMA,
                model=self.model,
                max_output_tokens=self.max_output_tokens,
                label="Harmonization"
            )
        except AIServiceError as e:
            if e.is_fatal:
                raise
            logger.error(f"Harmonization failed ({e.kind.value}): {e}")
            return []

        payload = validate_payload(HarmonizedPayload, parse_json_response(text), "Harmonization")
        if payload is None:
            return []

        transactions = [row_to_transaction(row, source_file) for row in payload.transactions]
        logger.info(f"Harmonized {len(transactions)} rows from {len(tables)} tables")
        return transactions
