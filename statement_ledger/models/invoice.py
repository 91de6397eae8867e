"""
Invoice data models
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Dict, Any


ZERO = Decimal('0')

SALES = 'sales'
PURCHASE = 'purchase'


@dataclass(frozen=True)
class LineItem:
    """Single invoice line"""
    description: str = ""
    quantity: Decimal = ZERO
    unit_price: Decimal = ZERO
    subtotal: Decimal = ZERO
    tax_rate: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'quantity': float(self.quantity),
            'unit_price': float(self.unit_price),
            'subtotal': float(self.subtotal),
            'tax_rate': float(self.tax_rate),
            'tax_amount': float(self.tax_amount),
            'total': float(self.total),
        }


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice totals in one currency"""
    before_tax: Decimal = ZERO
    tax: Decimal = ZERO
    zero_rated: Decimal = ZERO
    amount: Decimal = ZERO

    def to_dict(self) -> Dict[str, float]:
        return {
            'before_tax': float(self.before_tax),
            'tax': float(self.tax),
            'zero_rated': float(self.zero_rated),
            'amount': float(self.amount),
        }


@dataclass(frozen=True)
class Invoice:
    """
    Extracted invoice

    invoice_type is derived (see InvoiceClassifier), never taken from
    the model output.
    """
    invoice_id: str = ""
    vendor_name: str = ""
    customer_name: str = ""
    invoice_date: str = ""
    due_date: str = ""
    currency: str = ""
    totals: InvoiceTotals = field(default_factory=InvoiceTotals)
    normalized_totals: InvoiceTotals = field(default_factory=InvoiceTotals)
    reporting_currency: str = ""
    line_items: List[LineItem] = field(default_factory=list)
    invoice_type: str = PURCHASE
    vendor_trn: str = ""
    customer_trn: str = ""
    confidence: float = 0.0
    source_file: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'invoice_id': self.invoice_id,
            'vendor_name': self.vendor_name,
            'customer_name': self.customer_name,
            'invoice_date': self.invoice_date,
            'due_date': self.due_date,
            'currency': self.currency,
            'totals': self.totals.to_dict(),
            'normalized_totals': self.normalized_totals.to_dict(),
            'reporting_currency': self.reporting_currency,
            'line_items': [item.to_dict() for item in self.line_items],
            'invoice_type': self.invoice_type,
            'vendor_trn': self.vendor_trn,
            'customer_trn': self.customer_trn,
            'confidence': self.confidence,
            'source_file': self.source_file,
        }


@dataclass(frozen=True)
class InvoiceBatchResult:
    """Invoices recovered from one batch of pages"""
    invoices: List[Invoice] = field(default_factory=list)
    failed_pages: List[int] = field(default_factory=list)

    @property
    def sales_invoices(self) -> List[Invoice]:
        return [inv for inv in self.invoices if inv.invoice_type == SALES]

    @property
    def purchase_invoices(self) -> List[Invoice]:
        return [inv for inv in self.invoices if inv.invoice_type == PURCHASE]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'invoices': [inv.to_dict() for inv in self.invoices],
            'sales_invoices': [inv.to_dict() for inv in self.sales_invoices],
            'purchase_invoices': [inv.to_dict() for inv in self.purchase_invoices],
            'failed_pages': list(self.failed_pages),
        }
