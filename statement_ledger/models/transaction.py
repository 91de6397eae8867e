"""
Bank statement data models
"""

import mimetypes
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Dict, Any


ZERO = Decimal('0')


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass(frozen=True)
class DocumentPage:
    """Single page payload sent to the AI service"""
    content: bytes
    mime_type: str = "application/pdf"
    source_file: str = ""

    @classmethod
    def from_path(cls, path: str) -> 'DocumentPage':
        """Read a page (image or PDF) from disk"""
        page_file = Path(path)
        if not page_file.exists() or not page_file.is_file():
            raise FileNotFoundError(f"Input file not found: {path}")

        mime_type, _ = mimetypes.guess_type(str(page_file))
        return cls(
            content=page_file.read_bytes(),
            mime_type=mime_type or "application/pdf",
            source_file=page_file.name
        )


@dataclass(frozen=True)
class Transaction:
    """Single ledger row"""
    date: str
    description: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    balance: Decimal = ZERO
    confidence: float = 0.0
    source_file: str = ""
    category: Optional[str] = None

    # Currency provenance (set by conversion)
    currency: str = ""
    original_currency: Optional[str] = None
    original_debit: Optional[Decimal] = None
    original_credit: Optional[Decimal] = None
    original_balance: Optional[Decimal] = None

    @property
    def is_money_in(self) -> bool:
        return self.credit > 0 and self.credit > self.debit

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON export"""
        return {
            'date': self.date,
            'description': self.description,
            'debit': float(self.debit),
            'credit': float(self.credit),
            'balance': float(self.balance),
            'confidence': self.confidence,
            'source_file': self.source_file,
            'category': self.category,
            'currency': self.currency,
            'original_currency': self.original_currency,
            'original_debit': _money(self.original_debit),
            'original_credit': _money(self.original_credit),
            'original_balance': _money(self.original_balance),
        }


@dataclass(frozen=True)
class BankStatementSummary:
    """Statement-level figures"""
    account_holder: str = ""
    account_number: str = ""
    statement_period: str = ""
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None
    total_withdrawals: Decimal = ZERO
    total_deposits: Decimal = ZERO
    original_opening_balance: Optional[Decimal] = None
    original_closing_balance: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'account_holder': self.account_holder,
            'account_number': self.account_number,
            'statement_period': self.statement_period,
            'opening_balance': _money(self.opening_balance),
            'closing_balance': _money(self.closing_balance),
            'total_withdrawals': float(self.total_withdrawals),
            'total_deposits': float(self.total_deposits),
            'original_opening_balance': _money(self.original_opening_balance),
            'original_closing_balance': _money(self.original_closing_balance),
        }


@dataclass(frozen=True)
class ColumnMapping:
    """0-based column positions of the transaction table"""
    date_index: int
    description_index: int
    debit_index: int
    credit_index: int
    balance_index: int


@dataclass(frozen=True)
class StatementLayout:
    """Structural hint discovered from the first page"""
    column_mapping: ColumnMapping
    has_separate_debit_credit: bool = True
    currency: str = ""
    bank_name: str = ""
    date_format: str = ""


@dataclass(frozen=True)
class StatementResult:
    """Final output of the statement pipeline"""
    transactions: List[Transaction] = field(default_factory=list)
    summary: BankStatementSummary = field(default_factory=BankStatementSummary)
    currency: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'transactions': [t.to_dict() for t in self.transactions],
            'summary': self.summary.to_dict(),
            'currency': self.currency,
        }
