"""
Chart of accounts and keyword rules used for transaction categorization

Categories are pipe-separated paths: "Expenses|OtherExpense|Bank Charges".
Equity has no sub-group, so its paths have two parts.
"""

from typing import Dict, List, Optional

UNCATEGORIZED = "Uncategorized"

CHART_OF_ACCOUNTS = {
    "Assets": {
        "CurrentAssets": [
            "Cash on Hand",
            "Bank Accounts",
            "Accounts Receivable",
            "Due from related Parties",
            "Advances to Suppliers",
            "Prepaid Expenses",
            "Deposits",
            "Inventory – Goods",
            "Work-in-Progress – Services",
            "VAT Recoverable (Input VAT)",
        ],
        "NonCurrentAssets": [
            "Furniture & Equipment",
            "Vehicles",
            "Intangibles (Software, Patents)",
            "Loans to related parties",
        ],
        "ContraAccounts": ["Accumulated Depreciation"],
    },
    "Liabilities": {
        "CurrentLiabilities": [
            "Accounts Payable",
            "Due to Related Parties",
            "Accrued Expenses",
            "Advances from Customers",
            "Short-Term Loans",
            "VAT Payable (Output VAT)",
            "Corporate Tax Payable",
        ],
        "Long-TermLiabilities": [
            "Long-Term Loans",
            "Loans from Related Parties",
            "Employee End-of-Service Benefits Provision",
        ],
    },
    "Equity": [
        "Share Capital / Owner’s Equity",
        "Retained Earnings",
        "Current Year Profit/Loss",
        "Dividends / Owner’s Drawings",
        "Owner's Current Account",
        "Investments in Subsidiaries / Associates",
    ],
    "Income": {
        "OperatingIncome": ["Sales Revenue", "Sales to related Parties"],
        "OtherIncome": [
            "Other Operating Income",
            "Interest Income",
            "Miscellaneous Income",
            "Interest from Related Parties",
        ],
    },
    "Expenses": {
        "DirectCosts": ["Direct Cost (COGS)", "Purchases from Related Parties"],
        "OtherExpense": [
            "Salaries & Wages",
            "Staff Benefits",
            "Training & Development",
            "Rent Expense",
            "Utility - Electricity & Water",
            "Utility - Telephone & Internet",
            "Office Supplies & Stationery",
            "Repairs & Maintenance",
            "Insurance Expense",
            "Marketing & Advertising",
            "Travel & Entertainment",
            "Professional Fees",
            "Legal Fees",
            "IT & Software Subscriptions",
            "Fuel Expenses",
            "Transportation & Logistics",
            "Interest Expense",
            "Interest to Related Parties",
            "Bank Charges",
            "VAT Expense (non-recoverable)",
            "Corporate Tax Expense",
            "Government Fees & Licenses",
            "Depreciation",
            "Amortization – Intangibles",
            "Bad Debt Expense",
            "Miscellaneous Expense",
        ],
    },
}

# Evaluated in order, first match wins
LOCAL_RULES = [
    (["FTA", "FederalTaxAuthority", "VATPayment", "VATReturn", "TaxPayment"],
     "Liabilities|CurrentLiabilities|VAT Payable (Output VAT)"),
    (["VATonCharges", "VATonFees", "TaxonCharges", "TaxonFees"],
     "Liabilities|CurrentLiabilities|VAT Payable (Output VAT)"),
    (["DEWA", "SEWA", "Dubaielectricity"], "Expenses|OtherExpense|Utility - Electricity & Water"),
    (["ENOC", "ADNOC", "EMARAT"], "Expenses|OtherExpense|Fuel Expenses"),
    (["RTA", "Salik", "Emirates", "Careem"], "Expenses|OtherExpense|Travel & Entertainment"),
    (["Google", "Facebook", "Godaddy", "DU", "MobileExpenses", "MYFATOORAH"],
     "Expenses|OtherExpense|IT & Software Subscriptions"),
    (["ETISALAT", "Mobily", "EmiratestechnologyIntegrated"], "Expenses|OtherExpense|Utility - Telephone & Internet"),
    (["Visaexpenses"], "Expenses|OtherExpense|Government Fees & Licenses"),
    (["TASAREEH", "SmartDubai", "MOFA", "Dubai"], "Expenses|OtherExpense|Legal Fees"),
    (["TheVATConsultant"], "Expenses|OtherExpense|Professional Fees"),
    (["BookkeepingServices"], "Expenses|OtherExpense|Professional Fees"),
    (["Salary", "ALansariexchange", "SIF", "WPS", "Payroll"], "Expenses|OtherExpense|Salaries & Wages"),
    (["DirectorsRemuneration"], "Expenses|OtherExpense|Salaries & Wages"),
    (["NetworkInternational", "POS"], "Income|OperatingIncome|Sales Revenue"),
    (["Charges", "fee", "Remittance", "MonthlyrelationshipFee", "Subscription"], "Expenses|OtherExpense|Bank Charges"),
    (["CashWithdrawal", "ATMWithdrawal", "CDMW", "ATMCWD", "CashWdl"], UNCATEGORIZED),
]

MONEY_IN_ROOTS = ("Income", "Equity", "Liabilities")
MONEY_OUT_ROOTS = ("Expenses", "Assets", "Liabilities")


def category_paths() -> List[str]:
    """Every leaf of the chart as a full pipe-separated path"""
    paths = []
    for root, groups in CHART_OF_ACCOUNTS.items():
        if isinstance(groups, dict):
            for group, leaves in groups.items():
                paths.extend(f"{root}|{group}|{leaf}" for leaf in leaves)
        else:
            paths.extend(f"{root}|{leaf}" for leaf in groups)
    return paths


_LEAF_INDEX: Dict[str, str] = {path.rsplit("|", 1)[-1].lower(): path for path in category_paths()}

TRANSACTION_CATEGORIES = [path.rsplit("|", 1)[-1] for path in category_paths()]


def resolve_category(label: Optional[str]) -> Optional[str]:
    """
    Normalize a model answer to a full chart path

    Accepts either a full path or a bare leaf name. Anything not in the
    chart is returned stripped, unchanged.
    """
    if not label or not label.strip():
        return None
    cleaned = label.strip()
    if "|" in cleaned:
        return cleaned
    return _LEAF_INDEX.get(cleaned.lower(), cleaned)


def is_uncategorized(category: Optional[str]) -> bool:
    return not category or UNCATEGORIZED.upper() in category.upper()
