"""
Main processing pipeline
Chains the extraction stages and the reconciliation passes
"""

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .categorizer import TransactionCategorizer
from .currency import CurrencyNormalizer, FXConfig, apply_conversion, normalize_currency_code
from .gemini_client import GeminiClient, GeminiConfig
from .harmonizer import StructuredHarmonizer
from .invoice_extractor import InvoiceExtractor
from .layout_discovery import LayoutDiscovery
from .raw_table_extractor import RawTableExtractor, is_known_currency
from .retry import RetryOrchestrator, RetryPolicy
from ..models.invoice import Invoice, InvoiceBatchResult
from ..models.transaction import BankStatementSummary, DocumentPage, StatementResult
from ..reconciliation import BalanceReconstructor, TransactionDeduplicator, filter_transactions_by_date

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
NOT_AVAILABLE = "N/A"


@dataclass
class PipelineConfig:
    """Pipeline configuration"""
    gemini_config: Optional[GeminiConfig] = None
    fx_config: FXConfig = field(default_factory=FXConfig)
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    reporting_currency: str = "AED"
    page_delay: float = 10.0
    rate_limit_cooldown: float = 45.0
    layout_model: Optional[str] = None
    extraction_model: Optional[str] = None
    harmonization_model: Optional[str] = None
    invoice_model: Optional[str] = None
    max_output_tokens: Optional[int] = 30000
    extraction_thinking_budget: Optional[int] = 4000
    categorize: bool = False


def _fill_text(summary: BankStatementSummary, placeholder: str) -> BankStatementSummary:
    return replace(
        summary,
        account_holder=summary.account_holder or placeholder,
        account_number=summary.account_number or placeholder,
        statement_period=summary.statement_period or placeholder,
    )


def _source_tag(pages: Sequence[DocumentPage]) -> str:
    names = []
    for page in pages:
        if page.source_file and page.source_file not in names:
            names.append(page.source_file)
    return ", ".join(names)


class LedgerPipeline:
    """
    Statement and invoice processing

    Statement path:
    1. Layout discovery on the first page (optional hint)
    2. Raw table capture, one page at a time
    3. Harmonization of all tables into transactions
    4. Deduplication, optional date filter, balance reconstruction
    5. Conversion into the reporting currency, optional categorization

    Invoice path: per-page extraction, totals backfill, classification.
    """

    def __init__(self, config: PipelineConfig,
                 client=None,
                 normalizer: Optional[CurrencyNormalizer] = None):
        self.config = config

        # Initialize AI client
        if client is not None:
            self.client = client
        elif config.gemini_config:
            self.client = GeminiClient(config.gemini_config, RetryOrchestrator(config.retry_policy))
        else:
            self.client = None
            logger.warning("Gemini not configured")

        self.normalizer = normalizer or CurrencyNormalizer(config.fx_config)
        self.reporting_currency = config.reporting_currency.upper()

        # Stages
        self.layout_discovery = LayoutDiscovery(self.client, config.layout_model)
        self.raw_extractor = RawTableExtractor(
            self.client,
            model=config.extraction_model,
            page_delay=config.page_delay,
            rate_limit_cooldown=config.rate_limit_cooldown,
            max_output_tokens=config.max_output_tokens,
            thinking_budget=config.extraction_thinking_budget,
        )
        self.harmonizer = StructuredHarmonizer(
            self.client,
            model=config.harmonization_model,
            max_output_tokens=config.max_output_tokens,
        )
        self.invoice_extractor = InvoiceExtractor(
            self.client,
            self.normalizer,
            model=config.invoice_model,
            reporting_currency=self.reporting_currency,
            page_delay=config.page_delay,
            max_output_tokens=config.max_output_tokens,
        )
        self.categorizer = TransactionCategorizer(self.client, max_output_tokens=config.max_output_tokens)
        self.deduplicator = TransactionDeduplicator()
        self.balance = BalanceReconstructor()

        logger.info("Pipeline initialized")

    def _require_client(self, pages: Sequence[DocumentPage]):
        if not self.client:
            raise ValueError("AI client not configured")
        if not pages:
            raise ValueError("No pages to process")

    async def process_statement(self, pages: Sequence[DocumentPage],
                                start_date: Optional[str] = None,
                                end_date: Optional[str] = None) -> StatementResult:
        """
        Extract and reconcile a bank statement

        Returns:
            StatementResult in the reporting currency when a rate was found
        """
        self._require_client(pages)
        source_file = _source_tag(pages)
        logger.info(f"Processing statement: {len(pages)} pages ({source_file or 'unnamed'})")

        layout = await self.layout_discovery.discover(pages[0])
        evidence = await self.raw_extractor.extract(pages, layout, start_date, end_date)
        transactions = await self.harmonizer.harmonize(evidence.markdown_tables, layout, source_file)

        if not transactions and evidence.summary is None:
            logger.warning("No transactions or summary recovered")
            return StatementResult(
                summary=_fill_text(
                    BankStatementSummary(opening_balance=Decimal('0'), closing_balance=Decimal('0')),
                    UNKNOWN
                ),
                currency=self.reporting_currency,
            )

        transactions = self.deduplicator.deduplicate(transactions)
        transactions = self.balance.fix_direction(transactions)

        if start_date or end_date:
            transactions = filter_transactions_by_date(transactions, start_date, end_date)

        transactions, summary = self.balance.reconstruct(transactions, evidence.summary)

        source_currency = self._statement_currency(evidence.currency, layout.currency if layout else "")
        rate = await self.normalizer.conversion_factor(source_currency, self.reporting_currency)

        if rate != 1:
            transactions, summary = apply_conversion(
                transactions, summary, rate, source_currency, self.reporting_currency
            )
            currency = self.reporting_currency
            logger.info(f"Converted {source_currency} -> {currency} at {rate}")
        else:
            currency = normalize_currency_code(source_currency) or source_currency.strip().upper()
            transactions = [replace(t, currency=currency) for t in transactions]

        if self.config.categorize:
            transactions = await self.categorizer.categorize(transactions)

        logger.info(
            f"Statement complete: {len(transactions)} transactions, "
            f"opening={summary.opening_balance} closing={summary.closing_balance} {currency}"
        )
        return StatementResult(
            transactions=transactions,
            summary=_fill_text(summary, NOT_AVAILABLE),
            currency=currency,
        )

    def _statement_currency(self, *labels: str) -> str:
        for label in labels:
            if is_known_currency(label):
                return label.strip()
        return self.reporting_currency

    async def process_invoices(self, pages: Sequence[DocumentPage],
                               company_name: Optional[str] = None,
                               company_trn: Optional[str] = None,
                               knowledge_base: Iterable[Invoice] = ()) -> InvoiceBatchResult:
        """
        Extract invoices and split them into sales and purchases

        Returns:
            InvoiceBatchResult
        """
        self._require_client(pages)
        logger.info(f"Processing invoices: {len(pages)} pages")
        return await self.invoice_extractor.extract(pages, company_name, company_trn, knowledge_base)

