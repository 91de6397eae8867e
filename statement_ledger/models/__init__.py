"""
Data models for statement and invoice processing
"""

from .transaction import (
    DocumentPage,
    Transaction,
    BankStatementSummary,
    ColumnMapping,
    StatementLayout,
    StatementResult,
)
from .invoice import LineItem, InvoiceTotals, Invoice, InvoiceBatchResult, SALES, PURCHASE

__all__ = [
    'DocumentPage',
    'Transaction',
    'BankStatementSummary',
    'ColumnMapping',
    'StatementLayout',
    'StatementResult',
    'LineItem',
    'InvoiceTotals',
    'Invoice',
    'InvoiceBatchResult',
    'SALES',
    'PURCHASE',
]
