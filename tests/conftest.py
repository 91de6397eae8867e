"""
Pytest configuration and fixtures.
"""
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import pytest

from statement_ledger.models import DocumentPage, Transaction


class FakeAIClient:
    """
    Stand-in for GeminiClient.

    Responses are consumed in call order; an Exception instance is raised
    instead of returned. Dicts and lists are serialized to JSON text.
    """

    def __init__(self, responses: Optional[List[Union[str, dict, list, Exception]]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, prompt, pages=(), schema=None, *, model=None,
                       max_output_tokens=None, thinking_budget=None, label=""):
        self.calls.append({
            "prompt": prompt,
            "pages": list(pages),
            "schema": schema,
            "model": model,
            "thinking_budget": thinking_budget,
            "label": label,
        })
        if not self.responses:
            raise AssertionError(f"Unexpected AI call: {label}")

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


class FakeNormalizer:
    """Fixed conversion factors keyed by source label."""

    def __init__(self, rates: Optional[Dict[str, Decimal]] = None):
        self.rates = rates or {}
        self.calls: List[tuple] = []

    async def conversion_factor(self, source, target="AED"):
        self.calls.append((source, target))
        return self.rates.get((source or "").upper(), Decimal("1"))


async def no_sleep(_seconds):
    return None


@pytest.fixture
def page() -> DocumentPage:
    """Single fake PDF page."""
    return DocumentPage(content=b"%PDF-1.4 fake", mime_type="application/pdf", source_file="statement.pdf")


@pytest.fixture
def pages() -> List[DocumentPage]:
    """Two fake PDF pages."""
    return [
        DocumentPage(content=b"%PDF-1.4 page 1", source_file="statement.pdf"),
        DocumentPage(content=b"%PDF-1.4 page 2", source_file="statement.pdf"),
    ]


def txn(date: str, description: str, debit="0", credit="0", balance="0") -> Transaction:
    """Build a Transaction from string amounts."""
    return Transaction(
        date=date,
        description=description,
        debit=Decimal(debit),
        credit=Decimal(credit),
        balance=Decimal(balance),
    )
