"""
Raw table extraction
Per-page capture of the transaction table as Markdown plus a summary fragment
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from ..models.transaction import BankStatementSummary, DocumentPage, StatementLayout
from ..utils.json_repair import parse_json_response
from .prompts import STRICT_JSON_SUFFIX, page_extraction_prompt
from .retry import AIServiceError, ErrorKind
from .schemas import PAGE_EXTRACTION_SCHEMA, PagePayload, SummaryPayload, validate_payload

logger = logging.getLogger(__name__)

_UNKNOWN_CURRENCIES = {"", "N/A", "UNKNOWN", "NULL"}


@dataclass
class RawTableEvidence:
    """Everything collected from the per-page pass"""
    markdown_tables: List[str] = field(default_factory=list)
    summary: Optional[BankStatementSummary] = None
    currency: str = ""
    failed_pages: List[int] = field(default_factory=list)


def merge_summary(current: Optional[BankStatementSummary],
                  fragment: Optional[SummaryPayload]) -> Optional[BankStatementSummary]:
    """
    First usable fragment becomes the baseline; later pages may only
    move the closing balance.
    """
    if fragment is None:
        return current
    if current is None:
        return fragment.to_summary() if fragment.is_usable else None
    if fragment.closing_balance is not None:
        return replace(current, closing_balance=fragment.closing_balance)
    return current


def is_known_currency(label: Optional[str]) -> bool:
    return bool(label) and label.strip().upper() not in _UNKNOWN_CURRENCIES


class RawTableExtractor:
    """
    Sequential page loop with a fixed delay between calls

    - Primary extraction per page, one stricter fallback if it yields nothing
    - Failed pages are logged and skipped; the batch carries on
    - A page that exhausted rate-limit retries cools down and skips its fallback
    """

    def __init__(self, client,
                 model: Optional[str] = None,
                 page_delay: float = 10.0,
                 rate_limit_cooldown: float = 45.0,
                 max_output_tokens: Optional[int] = 30000,
                 thinking_budget: Optional[int] = 4000,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.client = client
        self.model = model
        self.page_delay = page_delay
        self.rate_limit_cooldown = rate_limit_cooldown
        self.max_output_tokens = max_output_tokens
        self.thinking_budget = thinking_budget
        self._sleep = sleep

    async def extract(self, pages: Sequence[DocumentPage],
                      layout: Optional[StatementLayout] = None,
                      start_date: Optional[str] = None,
                      end_date: Optional[str] = None) -> RawTableEvidence:
        """
        Run the per-page pass

        Returns:
            RawTableEvidence with markdown tables in page order
        """
        evidence = RawTableEvidence()
        prompt = page_extraction_prompt(layout, start_date, end_date)

        for index, page in enumerate(pages):
            if index > 0 and self.page_delay > 0:
                await self._sleep(self.page_delay)

            payload = await self._extract_page(page, index + 1, prompt)
            if payload is None:
                evidence.failed_pages.append(index + 1)
                continue

            table = payload.markdown_table.strip()
            if table:
                evidence.markdown_tables.append(table)

            evidence.summary = merge_summary(evidence.summary, payload.summary)

            if is_known_currency(payload.currency):
                evidence.currency = payload.currency.strip()

            logger.info(f"Page {index + 1}/{len(pages)}: table {len(table)} chars")

        logger.info(
            f"Raw table pass complete: {len(evidence.markdown_tables)} tables, "
            f"{len(evidence.failed_pages)} failed pages"
        )
        return evidence

    async def _extract_page(self, page: DocumentPage, page_number: int,
                            prompt: str) -> Optional[PagePayload]:
        try:
            text = await self.client.generate(
                prompt,
                pages=[page],
                schema=PAGE_EXTRACTION_SCHEMA,
                model=self.model,
                max_output_tokens=self.max_output_tokens,
                thinking_budget=self.thinking_budget,
                label=f"Page {page_number} extraction"
            )
            payload = validate_payload(PagePayload, parse_json_response(text), f"Page {page_number}")
            if payload is not None:
                return payload
            logger.warning(f"Page {page_number}: nothing parseable, trying fallback")
        except AIServiceError as e:
            if e.is_fatal:
                raise
            logger.warning(f"Page {page_number} extraction failed ({e.kind.value}): {e}")
            if e.kind is ErrorKind.RATE_LIMITED:
                if self.rate_limit_cooldown > 0:
                    await self._sleep(self.rate_limit_cooldown)
                logger.error(f"Page {page_number}: rate limited, skipping fallback")
                return None

        return await self._fallback(page, page_number, prompt)

    async def _fallback(self, page: DocumentPage, page_number: int,
                        prompt: str) -> Optional[PagePayload]:
        try:
            text = await self.client.generate(
                prompt + STRICT_JSON_SUFFIX,
                pages=[page],
                schema=PAGE_EXTRACTION_SCHEMA,
                model=self.model,
                max_output_tokens=self.max_output_tokens,
                label=f"Page {page_number} fallback"
            )
        except AIServiceError as e:
            if e.is_fatal:
                raise
            logger.error(f"Page {page_number} fallback failed ({e.kind.value}): {e}")
            return None

        payload = validate_payload(PagePayload, parse_json_response(text), f"Page {page_number} fallback")
        if payload is None:
            logger.error(f"Page {page_number}: fallback returned nothing parseable")
        return payload
