"""
Shared parsing helpers for AI-extracted text normalization.
"""

from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional
import re


_DATE_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%d %b %Y",
    "%d %B %Y",
    "%d/%b/%Y",
    "%Y-%m-%dT%H:%M:%S",
)

_NUMERIC_TOKEN = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_DATE_SEPARATORS = re.compile(r"[/\-.]")

CENT = Decimal("0.01")


def to_cents(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Any) -> Decimal:
    """
    Parse a loosely formatted amount into a Decimal.

    Thousands separators are dropped and the first (optionally signed)
    numeric token wins, so "AED 1,234.50 CR" parses as 1234.50.
    Anything without a number parses as 0.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return Decimal("0")

    cleaned = str(value).replace(",", "").strip()
    match = _NUMERIC_TOKEN.search(cleaned)
    if not match:
        return Decimal("0")

    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")


def parse_optional_amount(value: Any) -> Optional[Decimal]:
    """Like parse_amount, but keeps "no value" distinguishable from zero."""
    if value is None:
        return None
    if isinstance(value, str) and not _NUMERIC_TOKEN.search(value.replace(",", "")):
        return None
    return parse_amount(value)


def parse_transaction_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a statement date.

    Numeric triples are read as YYYY-MM-DD when the first part has four
    digits and as DD/MM/YYYY otherwise; named-month formats are tried next.
    """
    if not value:
        return None

    cleaned = value.strip()
    if not cleaned:
        return None

    parts = _DATE_SEPARATORS.split(cleaned)
    if len(parts) == 3 and all(p.strip().isdigit() for p in parts):
        numbers = [int(p) for p in parts]
        if len(parts[0].strip()) == 4:
            year, month, day = numbers
        else:
            day, month, year = numbers
            if year < 100:
                year += 2000
        try:
            return date(year, month, day)
        except ValueError:
            return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue

    return None
