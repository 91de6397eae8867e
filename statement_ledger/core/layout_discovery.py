"""
Layout discovery
One-shot structural analysis of the first statement page
"""

import logging
from typing import Optional

from ..models.transaction import DocumentPage, StatementLayout
from ..utils.json_repair import parse_json_response
from .prompts import layout_discovery_prompt
from .retry import AIServiceError
from .schemas import STATEMENT_LAYOUT_SCHEMA, LayoutPayload, validate_payload

logger = logging.getLogger(__name__)


class LayoutDiscovery:
    """
    Infers column roles (date/description/debit/credit/balance) and
    statement metadata from the first page.

    The result is only a hint: None means every later stage falls back
    to its generic prompt.
    """

    def __init__(self, client, model: Optional[str] = None):
        self.client = client
        self.model = model

    async def discover(self, first_page: DocumentPage) -> Optional[StatementLayout]:
        try:
            text = await self.client.generate(
                layout_discovery_prompt(),
                pages=[first_page],
                schema=STATEMENT_LAYOUT_SCHEMA,
                model=self.model,
                label="Layout discovery"
            )
        except AIServiceError as e:
            if e.is_fatal:
                raise
            logger.warning(f"Layout discovery failed ({e.kind.value}), proceeding without layout hints: {e}")
            return None

        payload = validate_payload(LayoutPayload, parse_json_response(text), "Layout discovery")
        layout = payload.to_layout() if payload else None

        if layout is None:
            logger.warning("Layout discovery returned no column mapping, proceeding without layout hints")
            return None

        mapping = layout.column_mapping
        logger.info(
            f"Layout: date={mapping.date_index} desc={mapping.description_index} "
            f"debit={mapping.debit_index} credit={mapping.credit_index} balance={mapping.balance_index} "
            f"separate={layout.has_separate_debit_credit} currency={layout.currency or 'n/a'}"
        )
        return layout
