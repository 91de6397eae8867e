"""
Deterministic post-processing of extracted transactions and invoices
"""

from .balance import BalanceReconstructor
from .date_filter import filter_transactions_by_date
from .deduplicator import TransactionDeduplicator
from .invoice_classifier import InvoiceClassifier

__all__ = [
    'BalanceReconstructor',
    'filter_transactions_by_date',
    'TransactionDeduplicator',
    'InvoiceClassifier',
]
