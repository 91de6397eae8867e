"""
Response schemas for model calls

Two views of each stage's output:
- wire schemas (types.Schema) declared to the model with the request
- pydantic payload models validating whatever actually came back

Payload models never trust the response: nulls fall back to defaults
(empty string for text, 0 or None for numbers) and unknown keys are ignored.
"""

import logging
from decimal import Decimal
from typing import Any, List, Optional, Type, TypeVar

from google.genai import types
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..models.transaction import BankStatementSummary, ColumnMapping, StatementLayout
from ..utils.parsing import parse_amount, parse_optional_amount

logger = logging.getLogger(__name__)

P = TypeVar('P', bound='Payload')


# ---------------------------------------------------------------------------
# Wire schemas
# ---------------------------------------------------------------------------

def _string(description: str = "", nullable: bool = False) -> types.Schema:
    return types.Schema(type=types.Type.STRING, description=description or None, nullable=nullable or None)


def _number(description: str = "", nullable: bool = False) -> types.Schema:
    return types.Schema(type=types.Type.NUMBER, description=description or None, nullable=nullable or None)


def _integer(description: str) -> types.Schema:
    return types.Schema(type=types.Type.INTEGER, description=description)


def _object(properties: dict, required: Optional[List[str]] = None, nullable: bool = False) -> types.Schema:
    return types.Schema(
        type=types.Type.OBJECT,
        properties=properties,
        required=required,
        nullable=nullable or None,
    )


def _array(items: types.Schema) -> types.Schema:
    return types.Schema(type=types.Type.ARRAY, items=items)


STATEMENT_LAYOUT_SCHEMA = _object(
    {
        "columnMapping": _object(
            {
                "dateIndex": _integer("0-based index of Date column"),
                "descriptionIndex": _integer("0-based index of Description column"),
                "debitIndex": _integer("0-based index of Debit/Withdrawal column"),
                "creditIndex": _integer("0-based index of Credit/Deposit column"),
                "balanceIndex": _integer("0-based index of Running Balance column"),
            },
            required=["dateIndex", "descriptionIndex", "debitIndex", "creditIndex", "balanceIndex"],
        ),
        "hasSeparateDebitCredit": types.Schema(
            type=types.Type.BOOLEAN,
            description="True if debit/credit are separate columns",
        ),
        "currency": _string("Detected currency (e.g., AED)"),
        "bankName": _string("Detected bank name"),
        "dateFormat": _string("Detected date format (e.g., DD/MM/YYYY)"),
    },
    required=["columnMapping", "hasSeparateDebitCredit", "currency"],
)

PAGE_EXTRACTION_SCHEMA = _object(
    {
        "summary": _object(
            {
                "accountHolder": _string(nullable=True),
                "accountNumber": _string(nullable=True),
                "statementPeriod": _string(nullable=True),
                "openingBalance": _number(nullable=True),
                "closingBalance": _number(nullable=True),
                "totalWithdrawals": _number(nullable=True),
                "totalDeposits": _number(nullable=True),
            },
            nullable=True,
        ),
        "currency": _string(nullable=True),
        "markdownTable": _string("Transaction table rendered as a Markdown table", nullable=True),
    }
)

STRUCTURED_TRANSACTIONS_SCHEMA = _object(
    {
        "transactions": _array(_object(
            {
                "date": _string("Transaction date"),
                "description": _string("Full transaction description"),
                "debit": _string("Debit amount (string)"),
                "credit": _string("Credit amount (string)"),
                "balance": _string("Running balance (string)"),
                "confidence": _number("0-100", nullable=True),
            },
            required=["date", "description", "debit", "credit", "balance"],
        )),
    },
    required=["transactions"],
)

_LINE_ITEM_SCHEMA = _object(
    {
        "description": _string(),
        "quantity": _number(),
        "unitPrice": _number(),
        "subtotal": _number(),
        "taxRate": _number(),
        "taxAmount": _number(),
        "total": _number(),
    },
    required=["description", "total"],
)

INVOICE_BATCH_SCHEMA = _object(
    {
        "invoices": _array(_object(
            {
                "invoiceId": _string(),
                "vendorName": _string(),
                "customerName": _string(),
                "invoiceDate": _string(),
                "dueDate": _string(),
                "totalBeforeTax": _number(),
                "totalTax": _number(),
                "zeroRated": _number(),
                "totalAmount": _number(),
                "currency": _string(),
                "vendorTrn": _string(),
                "customerTrn": _string(),
                "lineItems": _array(_LINE_ITEM_SCHEMA),
                "confidence": _number(),
            },
            required=["vendorName", "totalAmount", "invoiceDate"],
        )),
    }
)

CATEGORIES_SCHEMA = _object({"categories": _array(_string())})


# ---------------------------------------------------------------------------
# Payload models
# ---------------------------------------------------------------------------

class Payload(BaseModel):
    """Lenient base for model responses (camelCase on the wire)"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
        coerce_numbers_to_str=True,
    )

    @model_validator(mode='before')
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


def _dict_items(value: Any) -> List[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class ColumnMappingPayload(Payload):
    date_index: int
    description_index: int
    debit_index: int
    credit_index: int
    balance_index: int


class LayoutPayload(Payload):
    column_mapping: Optional[ColumnMappingPayload] = None
    has_separate_debit_credit: bool = True
    currency: str = ""
    bank_name: str = ""
    date_format: str = ""

    def to_layout(self) -> Optional[StatementLayout]:
        if self.column_mapping is None:
            return None
        mapping = self.column_mapping
        return StatementLayout(
            column_mapping=ColumnMapping(
                date_index=mapping.date_index,
                description_index=mapping.description_index,
                debit_index=mapping.debit_index,
                credit_index=mapping.credit_index,
                balance_index=mapping.balance_index,
            ),
            has_separate_debit_credit=self.has_separate_debit_credit,
            currency=self.currency.strip(),
            bank_name=self.bank_name.strip(),
            date_format=self.date_format.strip(),
        )


class SummaryPayload(Payload):
    account_holder: str = ""
    account_number: str = ""
    statement_period: str = ""
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None
    total_withdrawals: Optional[Decimal] = None
    total_deposits: Optional[Decimal] = None

    @field_validator('opening_balance', 'closing_balance', 'total_withdrawals', 'total_deposits',
                     mode='before')
    @classmethod
    def _amount(cls, value: Any) -> Optional[Decimal]:
        return parse_optional_amount(value)

    @property
    def is_usable(self) -> bool:
        """A fragment seeds the statement summary only if it identifies the account or opens it"""
        return bool(self.account_number.strip()) or self.opening_balance is not None

    def to_summary(self) -> BankStatementSummary:
        return BankStatementSummary(
            account_holder=self.account_holder.strip(),
            account_number=self.account_number.strip(),
            statement_period=self.statement_period.strip(),
            opening_balance=self.opening_balance,
            closing_balance=self.closing_balance,
            total_withdrawals=self.total_withdrawals or Decimal('0'),
            total_deposits=self.total_deposits or Decimal('0'),
        )


class PagePayload(Payload):
    summary: Optional[SummaryPayload] = None
    currency: str = ""
    markdown_table: str = ""

    @field_validator('summary', mode='before')
    @classmethod
    def _summary_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class HarmonizedRow(Payload):
    date: str = ""
    description: str = ""
    debit: str = "0"
    credit: str = "0"
    balance: str = "0"
    confidence: Optional[float] = None

    @field_validator('confidence', mode='before')
    @classmethod
    def _confidence(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        return float(parse_amount(value))


class HarmonizedPayload(Payload):
    transactions: List[HarmonizedRow] = []

    @field_validator('transactions', mode='before')
    @classmethod
    def _rows(cls, value: Any) -> List[dict]:
        return _dict_items(value)


class LineItemPayload(Payload):
    description: str = ""
    quantity: Decimal = Decimal('0')
    unit_price: Decimal = Decimal('0')
    subtotal: Decimal = Decimal('0')
    tax_rate: Decimal = Decimal('0')
    tax_amount: Decimal = Decimal('0')
    total: Decimal = Decimal('0')

    @field_validator('quantity', 'unit_price', 'subtotal', 'tax_rate', 'tax_amount', 'total',
                     mode='before')
    @classmethod
    def _amount(cls, value: Any) -> Decimal:
        return parse_amount(value)


class InvoicePayload(Payload):
    invoice_id: str = ""
    vendor_name: str = ""
    customer_name: str = ""
    invoice_date: str = ""
    due_date: str = ""
    total_before_tax: Optional[Decimal] = None
    total_tax: Optional[Decimal] = None
    zero_rated: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    currency: str = ""
    vendor_trn: str = ""
    customer_trn: str = ""
    line_items: List[LineItemPayload] = []
    confidence: Optional[float] = None

    @field_validator('total_before_tax', 'total_tax', 'zero_rated', 'total_amount', mode='before')
    @classmethod
    def _amount(cls, value: Any) -> Optional[Decimal]:
        return parse_optional_amount(value)

    @field_validator('line_items', mode='before')
    @classmethod
    def _items(cls, value: Any) -> List[dict]:
        return _dict_items(value)

    @field_validator('confidence', mode='before')
    @classmethod
    def _confidence(cls, value: Any) -> Optional[float]:
        return float(parse_amount(value)) if value not in (None, "") else None


class InvoiceBatchPayload(Payload):
    invoices: List[InvoicePayload] = []

    @field_validator('invoices', mode='before')
    @classmethod
    def _invoices(cls, value: Any) -> List[dict]:
        return _dict_items(value)


class CategoriesPayload(Payload):
    categories: List[str] = []

    @field_validator('categories', mode='before')
    @classmethod
    def _categories(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [item if isinstance(item, str) else "" for item in value]


def validate_payload(model: Type[P], data: Any, label: str) -> Optional[P]:
    """Validate parsed JSON against a payload model; None when it does not fit"""
    if not isinstance(data, dict):
        if data is not None:
            logger.warning(f"{label}: expected a JSON object, got {type(data).__name__}")
        return None
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"{label}: response did not match schema ({e.error_count()} errors)")
        return None
