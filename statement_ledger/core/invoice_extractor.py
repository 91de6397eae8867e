"""
Invoice extraction
Per-page invoice capture with totals backfill, FX normalization and
sales/purchase classification
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence

from ..models.invoice import Invoice, InvoiceBatchResult, InvoiceTotals, LineItem
from ..models.transaction import DocumentPage
from ..reconciliation.invoice_classifier import InvoiceClassifier
from ..utils.json_repair import parse_json_response
from ..utils.parsing import to_cents
from .currency import CurrencyNormalizer, normalize_currency_code
from .prompts import invoice_prompt
from .retry import AIServiceError
from .schemas import INVOICE_BATCH_SCHEMA, InvoiceBatchPayload, InvoicePayload, validate_payload

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def invoice_payloads(data: Any, label: str) -> List[InvoicePayload]:
    """Accept either {"invoices": [...]} or one bare invoice object"""
    if not isinstance(data, dict):
        return []
    if isinstance(data.get("invoices"), list):
        batch = validate_payload(InvoiceBatchPayload, data, label)
        return batch.invoices if batch else []
    if data.get("invoiceId") or data.get("invoice_id"):
        single = validate_payload(InvoicePayload, data, label)
        return [single] if single else []
    return []


def compute_totals(payload: InvoicePayload, line_items: Sequence[LineItem]) -> InvoiceTotals:
    """
    Fill totals the document left out

    - tax: sum of line tax amounts
    - before tax: sum of line subtotals (quantity * unit price when no subtotal)
    - amount: before tax + tax
    """
    tax = payload.total_tax or ZERO
    if not tax and line_items:
        tax = sum((item.tax_amount for item in line_items), ZERO)

    before_tax = payload.total_before_tax or ZERO
    if not before_tax and line_items:
        before_tax = sum((item.subtotal or item.quantity * item.unit_price for item in line_items), ZERO)

    amount = payload.total_amount or ZERO
    calculated = before_tax + tax
    if not amount and calculated > 0:
        amount = calculated

    return InvoiceTotals(
        before_tax=to_cents(before_tax),
        tax=to_cents(tax),
        zero_rated=to_cents(payload.zero_rated or ZERO),
        amount=to_cents(amount),
    )


def convert_totals(totals: InvoiceTotals, rate: Decimal) -> InvoiceTotals:
    return InvoiceTotals(
        before_tax=to_cents(totals.before_tax * rate),
        tax=to_cents(totals.tax * rate),
        zero_rated=to_cents(totals.zero_rated * rate),
        amount=to_cents(totals.amount * rate),
    )


class InvoiceExtractor:
    """
    Sequential invoice pass, one page per call

    Normalized totals are always computed here: copied when the invoice is
    already in the reporting currency, converted when an FX rate other than
    1 is available, zero otherwise.
    """

    def __init__(self, client,
                 normalizer: Optional[CurrencyNormalizer] = None,
                 model: Optional[str] = None,
                 reporting_currency: str = "AED",
                 page_delay: float = 10.0,
                 max_output_tokens: Optional[int] = 30000,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.client = client
        self.normalizer = normalizer or CurrencyNormalizer()
        self.model = model
        self.reporting_currency = reporting_currency.upper()
        self.page_delay = page_delay
        self.max_output_tokens = max_output_tokens
        self._sleep = sleep

    async def extract(self, pages: Sequence[DocumentPage],
                      company_name: Optional[str] = None,
                      company_trn: Optional[str] = None,
                      knowledge_base: Iterable[Invoice] = ()) -> InvoiceBatchResult:
        classifier = InvoiceClassifier(company_name, company_trn)
        prompt = invoice_prompt(company_name, company_trn, list(knowledge_base))

        invoices: List[Invoice] = []
        failed_pages: List[int] = []

        for index, page in enumerate(pages):
            if index > 0 and self.page_delay > 0:
                await self._sleep(self.page_delay)

            page_number = index + 1
            payloads = await self._extract_page(page, page_number, prompt)
            if payloads is None:
                failed_pages.append(page_number)
                continue

            for payload in payloads:
                invoice = await self._build_invoice(payload, page.source_file)
                invoices.append(classifier.classify(invoice))

            logger.info(f"Invoice page {page_number}/{len(pages)}: {len(payloads)} invoices")

        result = InvoiceBatchResult(invoices=invoices, failed_pages=failed_pages)
        logger.info(
            f"Invoice pass complete: {len(result.sales_invoices)} sales, "
            f"{len(result.purchase_invoices)} purchase, {len(failed_pages)} failed pages"
        )
        return result

    async def _extract_page(self, page: DocumentPage, page_number: int,
                            prompt: str) -> Optional[List[InvoicePayload]]:
        try:
            text = await self.client.generate(
                prompt,
                pages=[page],
                schema=INVOICE_BATCH_SCHEMA,
                model=self.model,
                max_output_tokens=self.max_output_tokens,
                label=f"Invoice page {page_number}"
            )
        except AIServiceError as e:
            if e.is_fatal:
                raise
            logger.error(f"Invoice page {page_number} failed ({e.kind.value}): {e}")
            return None

        data = parse_json_response(text)
        if data is None:
            logger.error(f"Invoice page {page_number}: response was not parseable")
            return None
        return invoice_payloads(data, f"Invoice page {page_number}")

    async def _build_invoice(self, payload: InvoicePayload, source_file: str) -> Invoice:
        line_items = [
            LineItem(
                description=item.description.strip(),
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
                tax_rate=item.tax_rate,
                tax_amount=item.tax_amount,
                total=item.total,
            )
            for item in payload.line_items
        ]
        totals = compute_totals(payload, line_items)
        currency = payload.currency.strip().upper() or self.reporting_currency

        return Invoice(
            invoice_id=payload.invoice_id.strip(),
            vendor_name=payload.vendor_name.strip(),
            customer_name=payload.customer_name.strip(),
            invoice_date=payload.invoice_date.strip(),
            due_date=payload.due_date.strip(),
            currency=currency,
            totals=totals,
            normalized_totals=await self._normalize(totals, currency),
            reporting_currency=self.reporting_currency,
            line_items=line_items,
            vendor_trn=payload.vendor_trn.strip(),
            customer_trn=payload.customer_trn.strip(),
            confidence=payload.confidence if payload.confidence is not None else 0.0,
            source_file=source_file,
        )

    async def _normalize(self, totals: InvoiceTotals, currency: str) -> InvoiceTotals:
        if self.reporting_currency in (currency, normalize_currency_code(currency)):
            return totals

        rate = await self.normalizer.conversion_factor(currency, self.reporting_currency)
        if rate == 1:
            logger.warning(f"No exchange rate for {currency}->{self.reporting_currency}, normalized totals left at 0")
            return InvoiceTotals()
        return convert_totals(totals, rate)
