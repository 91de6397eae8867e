"""
Sales vs purchase classification of extracted invoices
"""

import re
from dataclasses import replace
from typing import Optional

from ..models.invoice import Invoice, PURCHASE, SALES

_NON_ALNUM = re.compile(r"[^a-z0-9]")

MIN_TRN_OVERLAP = 5
TOKEN_MATCH_RATIO = 0.6


def _normalize(value: Optional[str]) -> str:
    return _NON_ALNUM.sub("", (value or "").lower())


def _contains_either(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


class InvoiceClassifier:
    """
    Decides whether the filer issued an invoice (sales) or received it
    (purchase) by matching the filer against the vendor.

    - TRNs: equal, or one contains the other when the shorter is longer than 5 characters
    - Names: full containment, or at least 60% of the filer's name tokens
      found inside the vendor's tokens
    Anything else is a purchase.
    """

    def __init__(self, company_name: Optional[str] = None, company_trn: Optional[str] = None):
        self.company_name = (company_name or "").strip().lower()
        self.company_trn = _normalize(company_trn)

    def is_sales(self, invoice: Invoice) -> bool:
        vendor_trn = _normalize(invoice.vendor_trn)
        if self.company_trn and vendor_trn:
            if self.company_trn == vendor_trn:
                return True
            if (min(len(self.company_trn), len(vendor_trn)) > MIN_TRN_OVERLAP
                    and _contains_either(self.company_trn, vendor_trn)):
                return True

        company = _normalize(self.company_name)
        vendor_name = (invoice.vendor_name or "").strip().lower()
        if _contains_either(company, _normalize(vendor_name)):
            return True

        return self._token_ratio(vendor_name) >= TOKEN_MATCH_RATIO

    def _token_ratio(self, vendor_name: str) -> float:
        tokens = [token for token in self.company_name.split() if len(token) > 2]
        vendor_tokens = vendor_name.split()
        if not tokens or not vendor_tokens:
            return 0.0
        matched = sum(1 for token in tokens if any(token in vendor_token for vendor_token in vendor_tokens))
        return matched / len(tokens)

    def classify(self, invoice: Invoice) -> Invoice:
        return replace(invoice, invoice_type=SALES if self.is_sales(invoice) else PURCHASE)
