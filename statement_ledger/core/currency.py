"""
Currency normalization
Resolves freeform currency labels and fetches best-effort exchange rates
"""

import logging
import re
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import httpx

from ..models.transaction import BankStatementSummary, Transaction
from ..utils.parsing import to_cents

logger = logging.getLogger(__name__)

ONE = Decimal('1')

SYMBOL_MAP: Dict[str, str] = {
    "$": "USD",
    "DOLLAR": "USD",
    "US": "USD",
    "€": "EUR",
    "EURO": "EUR",
    "£": "GBP",
    "POUND": "GBP",
    "STERLING": "GBP",
    "¥": "JPY",
    "YEN": "JPY",
    "₹": "INR",
    "RUPEE": "INR",
    "SAR": "SAR",
    "RIYAL": "SAR",
    "AED": "AED",
    "DIRHAM": "AED",
}


@dataclass
class FXConfig:
    """Exchange-rate API configuration"""
    api_key: Optional[str] = None
    base_url: str = "https://v6.exchangerate-api.com/v6"
    timeout: float = 10.0


def normalize_currency_code(label: Optional[str]) -> Optional[str]:
    """
    Map a freeform label ("US$", "Dirham", "eur") to a 3-letter code

    Returns:
        The code, or None when the label cannot be resolved
    """
    if not label:
        return None

    raw = label.strip().upper()
    candidate = re.sub(r"[^A-Z]", "", raw)

    if raw in SYMBOL_MAP:
        return SYMBOL_MAP[raw]
    if candidate in SYMBOL_MAP:
        return SYMBOL_MAP[candidate]
    if len(candidate) == 3:
        return candidate

    for word, code in SYMBOL_MAP.items():
        if word in raw:
            return code
    return None


def _is_identity(source: Optional[str], target: str) -> bool:
    if not source:
        return True
    cleaned = source.strip().upper()
    return cleaned in ("", "N/A") or cleaned == target.upper()


class CurrencyNormalizer:
    """
    Multiplicative conversion factors between currencies

    Fail-open: unresolvable labels, missing API keys, network errors and
    malformed responses all yield a factor of 1. Never raises.
    """

    def __init__(self, config: Optional[FXConfig] = None,
                 http_client: Optional[httpx.AsyncClient] = None):
        self.config = config or FXConfig()
        self._http_client = http_client
        self._cache: Dict[Tuple[str, str], Decimal] = {}

    async def conversion_factor(self, source: Optional[str], target: str = "AED") -> Decimal:
        if _is_identity(source, target):
            return ONE

        target = target.strip().upper()
        base = normalize_currency_code(source)
        if base is None:
            logger.warning(f"Could not normalize currency from {source!r}, defaulting to 1.0")
            return ONE
        if base == target:
            return ONE

        key = (base, target)
        if key in self._cache:
            return self._cache[key]

        rate = await self._fetch_rate(base, target)
        if rate is None:
            return ONE

        self._cache[key] = rate
        return rate

    async def _fetch_rate(self, base: str, target: str) -> Optional[Decimal]:
        if not self.config.api_key:
            logger.warning(f"No exchange-rate API key configured, cannot convert {base}->{target}")
            return None

        url = f"{self.config.base_url.rstrip('/')}/{self.config.api_key}/pair/{base}/{target}"

        try:
            if self._http_client is not None:
                response = await self._http_client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                    response = await client.get(url)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Exchange rate fetch error for {base}->{target}: {e}")
            return None

        if response.status_code >= 400:
            logger.warning(f"ExchangeRate API returned HTTP {response.status_code} for {base}->{target}")
            return None

        result = data.get("result") if isinstance(data, dict) else None
        rate = data.get("conversion_rate") if isinstance(data, dict) else None
        if result != "success" or isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate <= 0:
            logger.warning(f"ExchangeRate API failed for {base}->{target} (result={result!r}), falling back to 1.0")
            return None

        logger.info(f"Exchange rate {base}->{target}: {rate}")
        return Decimal(str(rate))


def apply_conversion(transactions: List[Transaction],
                     summary: BankStatementSummary,
                     rate: Decimal,
                     source_currency: str,
                     target: str) -> Tuple[List[Transaction], BankStatementSummary]:
    """
    Convert a reconciled ledger into the target currency

    Debits/credits are converted row by row and the running balance is
    re-accumulated from the converted opening balance, so the ledger stays
    internally consistent after rounding. Source values are kept in the
    original_* fields.
    """
    opening = to_cents((summary.opening_balance or Decimal('0')) * rate)
    running = opening
    converted = []

    for t in transactions:
        debit = to_cents(t.debit * rate)
        credit = to_cents(t.credit * rate)
        running = to_cents(running - debit + credit)
        converted.append(replace(
            t,
            debit=debit,
            credit=credit,
            balance=running,
            currency=target,
            original_currency=source_currency,
            original_debit=t.debit,
            original_credit=t.credit,
            original_balance=t.balance,
        ))

    closing = running if converted else (
        to_cents(summary.closing_balance * rate) if summary.closing_balance is not None else None
    )

    converted_summary = replace(
        summary,
        opening_balance=opening if summary.opening_balance is not None or converted else None,
        closing_balance=closing,
        total_withdrawals=sum((t.debit for t in converted), Decimal('0')),
        total_deposits=sum((t.credit for t in converted), Decimal('0')),
        original_opening_balance=summary.opening_balance,
        original_closing_balance=summary.closing_balance,
    )
    return converted, converted_summary
