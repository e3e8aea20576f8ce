import logging

from django.db import transaction

from ..models import AccountCategory, LedgerAccount

logger = logging.getLogger(__name__)

A = AccountCategory

# ---------- Well-known account codes used by automatic entries ----------
CASH = "1000"
BANK = "1010"
ACCOUNTS_RECEIVABLE = "1100"
CUSTOMER_DEPOSITS = "2000"
ACCRUED_PAYABLE = "2100"
RETAINED_EARNINGS = "3100"
REVENUE = "4000"
COMMISSION_EXPENSE = "5000"
LOADERS_FEES = "5100"
LAND_RATE_FEES = "5200"
OTHER_EXPENSES = "6900"


# (code, name, category, account_type, is_debit_normal, description)
DEFAULT_CHART = (
    # Current assets
    ("1000", "Cash and Cash Equivalents", A.ASSETS, "Cash", True, "Physical cash held by clerks."),
    ("1010", "Bank Account", A.ASSETS, "Bank", True, "Bank balances."),
    ("1100", "Trade and Other Receivables", A.ASSETS, "AccountsReceivable", True, "Unpaid customer sales."),
    ("1200", "Prepayments", A.ASSETS, "PrepaidExpenses", True, "Advance payments for services."),
    ("1300", "Inventories", A.ASSETS, "Inventory", True, "Stock of products held for sale."),
    # Non-current assets
    ("1500", "Property, Plant and Equipment", A.ASSETS, "FixedAssets", True, "Equipment, vehicles, machinery at cost."),
    # contra-asset: credit normal
    ("1510", "Accumulated Depreciation", A.ASSETS, "AccumulatedDepreciation", False, "Reduces PPE carrying amount."),
    # Current liabilities
    ("2000", "Contract Liabilities", A.LIABILITIES, "CustomerDeposits", False, "Customer prepayments before delivery."),
    ("2100", "Trade and Other Payables", A.LIABILITIES, "AccountsPayable", False, "Amounts owed to suppliers and brokers."),
    ("2110", "Accrued Expenses", A.LIABILITIES, "AccruedExpenses", False, "Broker commissions and fees payable."),
    ("2200", "Current Tax Liabilities", A.LIABILITIES, "CurrentTaxLiabilities", False, "Income taxes payable."),
    ("2300", "Provisions", A.LIABILITIES, "Provisions", False, "Liabilities of uncertain timing."),
    # Non-current liabilities
    ("2500", "Borrowings", A.LIABILITIES, "LoansPayable", False, "Loans and borrowed funds."),
    # Equity
    ("3000", "Share Capital", A.EQUITY, "OwnersEquity", False, "Owner's investment in the quarry."),
    ("3100", "Retained Earnings", A.EQUITY, "RetainedEarnings", False, "Accumulated profits from prior years."),
    ("3200", "Current Year Earnings", A.EQUITY, "CurrentYearEarnings", False, "Closed to Retained Earnings at year end."),
    # Revenue
    ("4000", "Revenue", A.REVENUE, "SalesRevenue", False, "Income from product sales."),
    ("4010", "Revenue - Size 6", A.REVENUE, "SalesRevenue", False, "Size 6 ballast sales."),
    ("4020", "Revenue - Size 9", A.REVENUE, "SalesRevenue", False, "Size 9 ballast sales."),
    ("4030", "Revenue - Size 4", A.REVENUE, "SalesRevenue", False, "Size 4 ballast sales."),
    ("4040", "Revenue - Reject", A.REVENUE, "SalesRevenue", False, "Reject product sales."),
    ("4050", "Revenue - Hardcore", A.REVENUE, "SalesRevenue", False, "Hardcore product sales."),
    ("4060", "Revenue - Beam", A.REVENUE, "SalesRevenue", False, "Beam product sales."),
    ("4500", "Other Income", A.REVENUE, "OtherIncome", False, "Miscellaneous non-operating income."),
    # Cost of sales
    ("5000", "Commission Expense", A.COST_OF_SALES, "CommissionExpense", True, "Broker commissions on sales."),
    ("5100", "Loaders Fees", A.COST_OF_SALES, "LoadersFees", True, "Per-unit fees for loader operations."),
    ("5200", "Land Rate Fees", A.COST_OF_SALES, "LandRateFees", True, "Per-unit land rate and royalty charges."),
    # Operating expenses
    ("6000", "Fuel Expense", A.EXPENSES, "FuelExpense", True, "Fuel for machines and equipment."),
    ("6100", "Transportation Hire", A.EXPENSES, "TransportationHire", True, "Hired transport and logistics."),
    ("6200", "Maintenance and Repairs", A.EXPENSES, "MaintenanceRepairs", True, "Equipment servicing."),
    ("6300", "Consumables and Utilities", A.EXPENSES, "ConsumablesUtilities", True, "Supplies and electricity."),
    ("6400", "Administrative Expenses", A.EXPENSES, "AdministrativeExpenses", True, "Office and management."),
    ("6500", "Marketing Expenses", A.EXPENSES, "MarketingExpenses", True, "Advertising and promotion."),
    ("6600", "Employee Benefits Expense", A.EXPENSES, "WagesSalaries", True, "Wages and salaries."),
    ("6700", "Finance Costs", A.EXPENSES, "BankCharges", True, "Bank charges and fees."),
    ("6800", "Taxes and Levies", A.EXPENSES, "CessRoadFees", True, "Cess, road fees and government levies."),
    ("6900", "Other Expenses", A.EXPENSES, "MiscellaneousExpenses", True, "Costs not classified elsewhere."),
    ("6950", "Depreciation Expense", A.EXPENSES, "DepreciationExpense", True, "PPE depreciation."),
)


# Expense category (as typed by clerks) → expense account
EXPENSE_CATEGORY_CODES = {
    "Fuel": "6000",
    "Transportation Hire": "6100",
    "Maintenance and Repairs": "6200",
    "Consumables and Utilities": "6300",
    "Administrative": "6400",
    "Marketing": "6500",
    "Wages": "6600",
    "Bank Charges": "6700",
    "Cess and Road Fees": "6800",
    "Commission": "5000",
    "Loaders Fees": "5100",
}

# Product name (lower-cased) → revenue account
PRODUCT_REVENUE_CODES = {
    "size 6": "4010",
    "size 9": "4020",
    "size 4": "4030",
    "reject": "4040",
    "hardcore": "4050",
    "beam": "4060",
}


def expense_account_code(category):
    """Expense account for a category; unknown categories land in Other Expenses."""
    return EXPENSE_CATEGORY_CODES.get((category or "").strip(), OTHER_EXPENSES)


def product_revenue_code(product_name):
    """Revenue account for a product; unknown products land in general Revenue."""
    return PRODUCT_REVENUE_CODES.get((product_name or "").strip().lower(), REVENUE)


@transaction.atomic
def seed_chart_of_accounts(quarry, actor="system"):
    """
    Create the standard chart for a quarry.
    Idempotent: codes that already exist are left untouched.
    Returns the number of accounts created.
    """
    existing = set(
        LedgerAccount.objects.for_quarry(quarry).values_list("code", flat=True)
    )
    created = 0
    for order, (code, name, category, account_type, debit_normal, description) in enumerate(
        DEFAULT_CHART, start=1
    ):
        if code in existing:
            continue
        LedgerAccount.objects.create(
            quarry=quarry,
            code=code,
            name=name,
            category=category,
            account_type=account_type,
            description=description,
            is_debit_normal=debit_normal,
            is_system_account=True,
            display_order=order,
            created_by=actor,
        )
        created += 1

    if created:
        logger.info(
            "Seeded chart of accounts",
            extra={"quarry_id": quarry.pk, "accounts_created": created},
        )
    return created
