"""
Transaction categorization against the chart of accounts

Local keyword rules run first; whatever stays uncategorized is sent to
the model in small batches of unique (description, direction) pairs.
"""

import json
import logging
import re
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from .prompts import categorization_prompt
from .retry import AIServiceError
from .schemas import CATEGORIES_SCHEMA, CategoriesPayload, validate_payload
from ..models.transaction import Transaction
from ..utils.json_repair import parse_json_response
from ..reconciliation.chart_of_accounts import (
    CHART_OF_ACCOUNTS, LOCAL_RULES, MONEY_IN_ROOTS, MONEY_OUT_ROOTS, is_uncategorized, resolve_category,
)

logger = logging.getLogger(__name__)

MONEY_IN = "MoneyIn(Credit)"
MONEY_OUT = "MoneyOut(Debit)"


def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(rf"(^|[^a-z0-9]){re.escape(keyword)}(?=[^a-z0-9]|$)", re.IGNORECASE)


_COMPILED_RULES = [([_keyword_pattern(k) for k in keywords], category) for keywords, category in LOCAL_RULES]


def direction_allows(category: str, money_in: bool) -> bool:
    """Money in never lands on expenses/assets, money out never on income/equity"""
    root = category.split("|", 1)[0]
    if root not in MONEY_IN_ROOTS + MONEY_OUT_ROOTS:
        return True
    return root in (MONEY_IN_ROOTS if money_in else MONEY_OUT_ROOTS)


def match_local_rule(transaction: Transaction) -> Optional[str]:
    description = transaction.description or ""
    money_in = transaction.is_money_in
    for patterns, category in _COMPILED_RULES:
        if not direction_allows(category, money_in):
            continue
        if any(pattern.search(description) for pattern in patterns):
            return category
    return None


class TransactionCategorizer:
    """Assigns chart-of-accounts categories to uncategorized transactions"""

    def __init__(self, client=None, model: Optional[str] = None, batch_size: int = 8,
                 max_output_tokens: Optional[int] = 30000):
        self.client = client
        self.model = model
        self.batch_size = max(1, batch_size)
        self.max_output_tokens = max_output_tokens

    def apply_local_rules(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        result = []
        for t in transactions:
            if is_uncategorized(t.category):
                category = match_local_rule(t)
                if category:
                    t = replace(t, category=category)
            result.append(t)
        return result

    async def categorize(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        result = self.apply_local_rules(transactions)

        pending: Dict[Tuple[str, str], List[int]] = {}
        for index, t in enumerate(result):
            if is_uncategorized(t.category):
                key = (t.description.strip(), MONEY_IN if t.is_money_in else MONEY_OUT)
                pending.setdefault(key, []).append(index)

        logger.info(f"Categorization: {len(result) - sum(map(len, pending.values()))} rows by local rules, "
                    f"{len(pending)} unique descriptions pending")

        if not pending or self.client is None:
            return result

        keys = list(pending)
        chart = json.dumps(CHART_OF_ACCOUNTS, ensure_ascii=False)

        for start in range(0, len(keys), self.batch_size):
            batch = keys[start:start + self.batch_size]
            categories = await self._categorize_batch(chart, batch, start // self.batch_size + 1)

            for key, label in zip(batch, categories):
                category = resolve_category(label)
                if category is None:
                    continue
                for index in pending[key]:
                    result[index] = replace(result[index], category=category)

        return result

    async def _categorize_batch(self, chart: str, batch: List[Tuple[str, str]], number: int) -> List[str]:
        items = [{"description": description, "type": direction} for description, direction in batch]
        try:
            text = await self.client.generate(
                categorization_prompt(chart, items),
                schema=CATEGORIES_SCHEMA,
                model=self.model,
                max_output_tokens=self.max_output_tokens,
                label=f"Categorization batch {number}"
            )
        except AIServiceError as e:
            if e.is_fatal:
                raise
            logger.error(f"Categorization batch {number} failed ({e.kind.value}): {e}")
            return []

        payload = validate_payload(CategoriesPayload, parse_json_response(text), f"Categorization batch {number}")
        if payload is None:
            return []
        if len(payload.categories) != len(batch):
            logger.warning(f"Categorization batch {number}: expected {len(batch)} categories, "
                           f"got {len(payload.categories)}")
        return payload.categories
