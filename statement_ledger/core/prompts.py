"""
Prompt builders for model calls
"""

import json
from typing import Iterable, Optional

from ..models.invoice import Invoice
from ..models.transaction import StatementLayout

DEBIT_CREDIT_RULES = """CRITICAL INSTRUCTIONS FOR DEBIT VS CREDIT:
- "Debit" / "Withdrawal" / "Money Out" / "Payment" / "Charge" / "Dr" -> means MONEY LEAVING the account.
- "Credit" / "Deposit" / "Money In" / "Receipt" / "Collection" / "Cr" -> means MONEY ENTERING the account."""

STRICT_JSON_SUFFIX = "\n\nCRITICAL: Return ONLY valid JSON."


def layout_discovery_prompt() -> str:
    return f"""Analyze the table structure of this bank statement image.
Identify the 0-based column indices for: Date, Description, Debit/Withdrawal, Credit/Deposit, Balance.

{DEBIT_CREDIT_RULES}

Many bank statements list Debit before Credit, but some might swap them or use labels.
Examine the header text and row entries carefully to distinguish Money In from Money Out.
If there is a single signed or labelled Amount column, use its index for both debit and credit
and set hasSeparateDebitCredit to false.

Return ONLY valid JSON matching the schema."""


def _layout_hint(layout: Optional[StatementLayout]) -> str:
    if layout is None:
        return ""
    mapping = layout.column_mapping
    return (
        f"LAYOUT HINT: Date col={mapping.date_index}, Desc col={mapping.description_index}, "
        f"Debit col={mapping.debit_index}, Credit col={mapping.credit_index}, "
        f"Balance col={mapping.balance_index}."
    )


def page_extraction_prompt(layout: Optional[StatementLayout] = None,
                           start_date: Optional[str] = None,
                           end_date: Optional[str] = None) -> str:
    """Per-page prompt: summary fragment plus the verbatim transaction table"""
    period = ""
    if start_date and end_date:
        period = f"\nCRITICAL: Focus on period {start_date} to {end_date}."

    return f"""Analyze this bank statement page.

1) SUMMARY:
Extract AccountHolder, AccountNumber, Period, Opening/Closing Balances, TotalWithdrawals, TotalDeposits, and Currency.

2) MARKDOWN TABLE:
Extract the transaction table EXACTLY as it appears into a valid Markdown table:
- Each physical row must be one Markdown row.
- Do not skip or summarize rows.
- Maintain the row order and the column order exactly as seen.

{_layout_hint(layout)}{period}

Return ONLY valid JSON:
{{
  "summary": {{
    "accountHolder": "string|null",
    "accountNumber": "string|null",
    "statementPeriod": "string|null",
    "openingBalance": number|null,
    "closingBalance": number|null,
    "totalWithdrawals": number|null,
    "totalDeposits": number|null
  }},
  "currency": "string|null",
  "markdownTable": "string|null"
}}

STRICT:
- Do NOT hallucinate. If unknown, return null.
- If only one Amount column exists, preserve signs/labels (+/- or DR/CR) in the markdown.

{DEBIT_CREDIT_RULES}"""


def harmonization_prompt(combined_markdown: str, layout: Optional[StatementLayout] = None) -> str:
    """Single call turning every page's markdown table into structured rows"""
    if layout is not None:
        mapping = layout.column_mapping
        columns = (
            f"- DateColumnIndex: {mapping.date_index}\n"
            f"- DescriptionColumnIndex: {mapping.description_index}\n"
            f"- DebitColumnIndex: {mapping.debit_index}\n"
            f"- CreditColumnIndex: {mapping.credit_index}\n"
            f"- BalanceColumnIndex: {mapping.balance_index}\n"
            f"- SeparateDebit/Credit: {str(layout.has_separate_debit_credit).lower()}"
        )
        if layout.date_format:
            columns += f"\n- DateFormat: {layout.date_format}"
    else:
        columns = "No layout detected. Rely on the table headers and semantic logic."

    return f"""The following are Markdown tables extracted from bank statement pages.

LAYOUT DETECTED:
{columns}

TASK:
1) Convert Markdown rows into structured JSON transactions, row by row (no summarization).
2) Use the column indices above to identify fields.
3) MULTI-LINE: If a row has a description but no date and it follows a valid transaction row, append its description to the previous transaction.
4) SIGNS: If debit/credit are in the same column, use the sign or labels (DR/CR/(-)) to determine the type. A negative amount is a Debit.
5) CRITICAL: Debit contains Withdrawals/Payments (Money Out) and Credit contains Deposits/Receipts (Money In). DO NOT SWAP THEM.
6) CLEANING: remove currency symbols (AED, $, £, SAR) from amount fields. Use "0.00" when a side is empty.
7) Keep numeric fields as STRINGS. Add a confidence score (0-100) per row.

EVIDENCE:
{combined_markdown}

Return JSON matching the schema: {{ "transactions": [ ... ] }}"""


def invoice_prompt(company_name: Optional[str] = None,
                   company_trn: Optional[str] = None,
                   knowledge_base: Iterable[Invoice] = ()) -> str:
    context = ""
    if company_name or company_trn:
        context = (
            f'UserCompany:"{company_name or "N/A"}" UserTRN:"{company_trn or "N/A"}"\n'
            "Extract vendor and customer exactly as printed; the system decides sales vs purchase.\n"
        )

    known = [
        {"name": inv.vendor_name, "idPattern": "".join("#" if c.isdigit() else c for c in inv.invoice_id)}
        for inv in knowledge_base
        if inv.vendor_name
    ]
    known_vendors = f"Known vendors: {json.dumps(known)}.\n" if known else ""

    return f"""Extract invoice details from this document. Return JSON with an "invoices" array.
{context}{known_vendors}
Fields:
- invoiceId
- invoiceDate (DD/MM/YYYY)
- dueDate
- vendorName
- vendorTrn
- customerName
- customerTrn
- totalBeforeTax
- totalTax
- zeroRated (amount subject to 0% tax)
- totalAmount
- currency (AED, USD, etc.)
- lineItems (extract all rows)
- confidence (0-100)

Return ONLY valid JSON."""


def categorization_prompt(chart_of_accounts: str, items: list) -> str:
    return f"""You are a professional accountant.
Assign the most appropriate specific leaf-level category from the provided Chart of Accounts (CoA) to each transaction.

CoA Structure: {chart_of_accounts}
Transactions to categorize: {json.dumps(items)}

Rules:
1) DIRECTION:
- "MoneyIn(Credit)" must be 'Income', 'Equity', or 'Liabilities'. NEVER 'Expenses' or 'Assets'.
- "MoneyOut(Debit)" must be 'Expenses', 'Assets', or 'Liabilities'. NEVER 'Income' or 'Equity'.

2) SPECIAL:
- "ATMCashDeposit" (MoneyIn) -> "Income|OperatingIncome|Sales Revenue"
- "CashWithdrawal"/"ATMWithdrawal" (MoneyOut) -> "Uncategorized"

3) OUTPUT:
Return JSON with key "categories": array of strings.
Array length MUST be {len(items)}.
You may return full path or leaf name."""
