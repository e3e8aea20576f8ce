"""Financial statement structures handed to exporters.

Plain dataclasses: report services fill the line lists and the derived
totals are computed properties, so a statement can never disagree with
its own lines.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from .money import ZERO, is_zero, money, percentage


def _total(items, attr="amount"):
    return money(sum((getattr(item, attr) for item in items), ZERO))


# ============================================================================
# Trial Balance
# ============================================================================

@dataclass
class TrialBalanceLine:
    account_code: str
    account_name: str
    category: str
    debit_balance: Decimal = ZERO
    credit_balance: Decimal = ZERO

    @property
    def net_balance(self):
        return self.debit_balance - self.credit_balance


@dataclass
class TrialBalanceReport:
    quarry_id: int
    quarry_name: str
    as_of_date: date
    generated_at: datetime
    lines: List[TrialBalanceLine] = field(default_factory=list)

    @property
    def total_debits(self):
        return _total(self.lines, "debit_balance")

    @property
    def total_credits(self):
        return _total(self.lines, "credit_balance")

    @property
    def difference(self):
        return self.total_debits - self.total_credits

    @property
    def is_balanced(self):
        return is_zero(self.difference)


# ============================================================================
# Profit & Loss
# ============================================================================

@dataclass
class ProfitLossLineItem:
    account_code: str
    description: str
    amount: Decimal
    percentage: Decimal = ZERO  # of total revenue
    # Filled only on comparative reports
    prior_amount: Optional[Decimal] = None

    @property
    def change(self):
        if self.prior_amount is None:
            return None
        return self.amount - self.prior_amount


@dataclass
class ProfitLossReport:
    quarry_id: int
    quarry_name: str
    period_start: date
    period_end: date
    generated_at: datetime
    revenue_items: List[ProfitLossLineItem] = field(default_factory=list)
    cost_of_sales_items: List[ProfitLossLineItem] = field(default_factory=list)
    operating_expenses: List[ProfitLossLineItem] = field(default_factory=list)
    # Same span one year earlier, when requested
    comparative: Optional["ProfitLossReport"] = None

    @property
    def total_revenue(self):
        return _total(self.revenue_items)

    @property
    def total_cost_of_sales(self):
        return _total(self.cost_of_sales_items)

    @property
    def gross_profit(self):
        return self.total_revenue - self.total_cost_of_sales

    @property
    def total_operating_expenses(self):
        return _total(self.operating_expenses)

    @property
    def operating_profit(self):
        return self.gross_profit - self.total_operating_expenses

    @property
    def net_profit(self):
        # no tax / interest lines in this model
        return self.operating_profit

    @property
    def total_expenses(self):
        return self.total_cost_of_sales + self.total_operating_expenses

    @property
    def gross_profit_margin(self):
        return percentage(self.gross_profit, self.total_revenue)

    @property
    def operating_profit_margin(self):
        return percentage(self.operating_profit, self.total_revenue)

    @property
    def net_profit_margin(self):
        return percentage(self.net_profit, self.total_revenue)


# ============================================================================
# Balance Sheet
# ============================================================================

@dataclass
class BalanceSheetLineItem:
    account_code: str
    description: str
    amount: Decimal
    prior_amount: Optional[Decimal] = None


@dataclass
class BalanceSheetReport:
    quarry_id: int
    quarry_name: str
    as_of_date: date
    generated_at: datetime
    current_assets: List[BalanceSheetLineItem] = field(default_factory=list)
    non_current_assets: List[BalanceSheetLineItem] = field(default_factory=list)
    current_liabilities: List[BalanceSheetLineItem] = field(default_factory=list)
    non_current_liabilities: List[BalanceSheetLineItem] = field(default_factory=list)
    equity_items: List[BalanceSheetLineItem] = field(default_factory=list)
    # Fiscal-year-to-date net profit, not yet closed to an equity account
    current_period_profit_loss: Decimal = ZERO
    # Profit of earlier years still sitting in P&L accounts (no closing entries)
    prior_years_earnings: Decimal = ZERO
    comparative: Optional["BalanceSheetReport"] = None

    @property
    def total_current_assets(self):
        return _total(self.current_assets)

    @property
    def total_non_current_assets(self):
        return _total(self.non_current_assets)

    @property
    def total_assets(self):
        return self.total_current_assets + self.total_non_current_assets

    @property
    def total_current_liabilities(self):
        return _total(self.current_liabilities)

    @property
    def total_non_current_liabilities(self):
        return _total(self.non_current_liabilities)

    @property
    def total_liabilities(self):
        return self.total_current_liabilities + self.total_non_current_liabilities

    @property
    def total_equity(self):
        return (_total(self.equity_items) + self.prior_years_earnings
                + self.current_period_profit_loss)

    @property
    def total_liabilities_and_equity(self):
        return self.total_liabilities + self.total_equity

    @property
    def difference(self):
        return self.total_assets - self.total_liabilities_and_equity

    @property
    def is_balanced(self):
        return is_zero(self.difference)


# ============================================================================
# Cash Flow
# ============================================================================

@dataclass
class CashFlowLineItem:
    description: str
    amount: Decimal
    notes: str = ""


@dataclass
class CashFlowReport:
    quarry_id: int
    quarry_name: str
    period_start: date
    period_end: date
    generated_at: datetime
    opening_cash_balance: Decimal = ZERO
    operating_inflows: List[CashFlowLineItem] = field(default_factory=list)
    operating_outflows: List[CashFlowLineItem] = field(default_factory=list)
    # Informational only: never part of the totals
    expense_breakdown: List[CashFlowLineItem] = field(default_factory=list)
    cash_from_direct_sales: Decimal = ZERO
    cash_from_prepayments: Decimal = ZERO
    cash_from_collections: Decimal = ZERO
    cash_banked: Decimal = ZERO

    @property
    def total_operating_inflows(self):
        return _total(self.operating_inflows)

    @property
    def total_operating_outflows(self):
        return _total(self.operating_outflows)

    @property
    def net_cash_change(self):
        return self.total_operating_inflows - self.total_operating_outflows

    @property
    def closing_cash_balance(self):
        return self.opening_cash_balance + self.net_cash_change


# ============================================================================
# Receivables aging
# ============================================================================

AGING_BUCKETS = ("Current", "1-30 Days", "31-60 Days", "61-90 Days", "90+ Days")


def age_bucket(days):
    """Bucket label for an invoice `days` old (0 → Current)."""
    if days <= 0:
        return AGING_BUCKETS[0]
    if days <= 30:
        return AGING_BUCKETS[1]
    if days <= 60:
        return AGING_BUCKETS[2]
    if days <= 90:
        return AGING_BUCKETS[3]
    return AGING_BUCKETS[4]


@dataclass
class ARAgingInvoice:
    sale_id: int
    sale_date: date
    days_outstanding: int
    product_name: str
    quantity: Decimal
    amount: Decimal
    clerk_name: str = ""

    @property
    def age_bucket(self):
        return age_bucket(self.days_outstanding)


@dataclass
class ARAgingCustomer:
    vehicle_registration: str  # customer key
    client_name: str = ""
    client_phone: str = ""
    current: Decimal = ZERO
    days_1_to_30: Decimal = ZERO
    days_31_to_60: Decimal = ZERO
    days_61_to_90: Decimal = ZERO
    over_90_days: Decimal = ZERO
    oldest_invoice_date: Optional[date] = None
    days_since_oldest: int = 0
    invoices: List[ARAgingInvoice] = field(default_factory=list)

    def add(self, invoice: ARAgingInvoice):
        bucket = invoice.age_bucket
        if bucket == AGING_BUCKETS[0]:
            self.current += invoice.amount
        elif bucket == AGING_BUCKETS[1]:
            self.days_1_to_30 += invoice.amount
        elif bucket == AGING_BUCKETS[2]:
            self.days_31_to_60 += invoice.amount
        elif bucket == AGING_BUCKETS[3]:
            self.days_61_to_90 += invoice.amount
        else:
            self.over_90_days += invoice.amount
        self.invoices.append(invoice)

    @property
    def invoice_count(self):
        return len(self.invoices)

    @property
    def total_outstanding(self):
        return (self.current + self.days_1_to_30 + self.days_31_to_60
                + self.days_61_to_90 + self.over_90_days)


@dataclass
class ARAgingReport:
    quarry_id: int
    quarry_name: str
    as_of_date: date
    generated_at: datetime
    customers: List[ARAgingCustomer] = field(default_factory=list)

    @property
    def total_current(self):
        return _total(self.customers, "current")

    @property
    def total_1_to_30_days(self):
        return _total(self.customers, "days_1_to_30")

    @property
    def total_31_to_60_days(self):
        return _total(self.customers, "days_31_to_60")

    @property
    def total_61_to_90_days(self):
        return _total(self.customers, "days_61_to_90")

    @property
    def total_over_90_days(self):
        return _total(self.customers, "over_90_days")

    @property
    def total_outstanding(self):
        return _total(self.customers, "total_outstanding")

    @property
    def invoice_count(self):
        return sum(c.invoice_count for c in self.customers)

    def bucket_percentage(self, total):
        return percentage(total, self.total_outstanding)


# ============================================================================
# Payables summary
# ============================================================================

@dataclass
class APCommissionSale:
    sale_id: int
    sale_date: date
    vehicle_registration: str
    product_name: str
    quantity: Decimal
    commission_per_unit: Decimal
    commission_amount: Decimal


@dataclass
class APBrokerPayable:
    broker_id: int
    broker_name: str
    phone: str
    period: str  # "July 2025"
    period_start: date
    period_end: date
    sales: List[APCommissionSale] = field(default_factory=list)

    @property
    def sales_count(self):
        return len(self.sales)

    @property
    def total_quantity(self):
        return sum((s.quantity for s in self.sales), ZERO)

    @property
    def amount_due(self):
        return _total(self.sales, "commission_amount")


@dataclass
class APAccruedFee:
    fee_type: str  # "Loaders Fees" / "Land Rate Fees"
    period: str
    period_start: date
    period_end: date
    sales_count: int
    total_quantity: Decimal
    fee_per_unit: Decimal
    amount_due: Decimal


@dataclass
class APSummaryReport:
    quarry_id: int
    quarry_name: str
    as_of_date: date
    generated_at: datetime
    broker_payables: List[APBrokerPayable] = field(default_factory=list)
    accrued_fees: List[APAccruedFee] = field(default_factory=list)

    @property
    def total_broker_commissions(self):
        return _total(self.broker_payables, "amount_due")

    @property
    def total_accrued_fees(self):
        return _total(self.accrued_fees, "amount_due")

    @property
    def total_accounts_payable(self):
        return self.total_broker_commissions + self.total_accrued_fees


# ============================================================================
# General Ledger
# ============================================================================

@dataclass
class GeneralLedgerEntry:
    entry_date: date
    reference: str
    description: str
    source_type: Optional[str]
    source_id: Optional[int]
    debit_amount: Decimal
    credit_amount: Decimal
    running_balance: Decimal
    memo: str = ""
    created_by: str = ""


@dataclass
class GeneralLedgerReport:
    quarry_id: int
    quarry_name: str
    account_code: str
    account_name: str
    category: str
    is_debit_normal: bool
    period_start: date
    period_end: date
    generated_at: datetime
    opening_balance: Decimal = ZERO
    entries: List[GeneralLedgerEntry] = field(default_factory=list)

    @property
    def total_debits(self):
        return _total(self.entries, "debit_amount")

    @property
    def total_credits(self):
        return _total(self.entries, "credit_amount")

    @property
    def net_activity(self):
        # expressed on the account's normal side
        if self.is_debit_normal:
            return self.total_debits - self.total_credits
        return self.total_credits - self.total_debits

    @property
    def closing_balance(self):
        return self.opening_balance + self.net_activity
