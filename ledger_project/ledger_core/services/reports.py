import logging
from collections import OrderedDict
from datetime import date, timedelta

from django.db.models import DecimalField, ExpressionWrapper, F, Q, Sum
from django.utils import timezone

from .. import conf
from ..exceptions import NotFoundError
from ..models import (AccountCategory, Banking, Expense, JournalEntryLine,
                      LedgerAccount, PaymentStatus, Prepayment, Sale)
from ..money import ZERO, is_zero, money, percentage
from ..reports import (APAccruedFee, APBrokerPayable, APCommissionSale,
                       APSummaryReport, ARAgingCustomer, ARAgingInvoice,
                       ARAgingReport, BalanceSheetLineItem,
                       BalanceSheetReport, CashFlowLineItem, CashFlowReport,
                       GeneralLedgerEntry, GeneralLedgerReport,
                       ProfitLossLineItem, ProfitLossReport,
                       TrialBalanceLine, TrialBalanceReport)
from . import chart
from .accounts import get_chart_of_accounts
from .balances import (account_balance, activity_by_account, all_balances,
                       totals_as_of)

logger = logging.getLogger(__name__)

C = AccountCategory

# Sections read from their natural side: credits - debits for these,
# debits - credits for everything else
CREDIT_SIDE_CATEGORIES = frozenset({C.LIABILITIES, C.EQUITY, C.REVENUE})

GROSS = ExpressionWrapper(
    F("quantity") * F("price_per_unit"),
    output_field=DecimalField(max_digits=24, decimal_places=4),
)


def _section_amount(category, debit, credit):
    if category in CREDIT_SIDE_CATEGORIES:
        return money(credit - debit)
    return money(debit - credit)


def _shift_year(day):
    """Same calendar day one year earlier (29 Feb → 28 Feb)."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


def _code_key(item):
    return (len(item.account_code), item.account_code)


def _match_by_code(current_items, prior_items, make_item):
    """
    Pair current and prior lines on account code. Prior-only accounts are
    kept with a zero current amount so nothing disappears from the comparison.
    """
    prior_by_code = {item.account_code: item.amount for item in prior_items}
    seen = set()
    for item in current_items:
        item.prior_amount = prior_by_code.get(item.account_code, ZERO)
        seen.add(item.account_code)
    for prior in prior_items:
        if prior.account_code not in seen:
            current_items.append(make_item(prior))
    current_items.sort(key=_code_key)


# ---------- Trial Balance ----------
def trial_balance(quarry, as_of):
    accounts = get_chart_of_accounts(quarry)
    balances = all_balances(quarry, as_of)
    report = TrialBalanceReport(quarry.pk, quarry.name, as_of, timezone.now())

    for account in accounts:
        balance = balances.get(account.pk, ZERO)
        if is_zero(balance):
            continue  # Skip zero balances
        line = TrialBalanceLine(account.code, account.name, account.category)
        # Place balance in the column of the account's normal side,
        # or the opposite one when it has flipped sign
        on_debit_side = (balance >= 0) == account.is_debit_normal
        if on_debit_side:
            line.debit_balance = abs(balance)
        else:
            line.credit_balance = abs(balance)
        report.lines.append(line)

    report.lines.sort(key=_code_key)
    logger.info(
        "Generated trial balance",
        extra={"quarry_id": quarry.pk, "as_of": str(as_of),
               "balanced": report.is_balanced},
    )
    return report


# ---------- Profit & Loss ----------
def _build_profit_and_loss(quarry, date_from, date_to):
    report = ProfitLossReport(quarry.pk, quarry.name, date_from, date_to, timezone.now())
    activity = activity_by_account(quarry, date_from, date_to)
    accounts = LedgerAccount.objects.for_quarry(quarry).filter(
        pk__in=activity.keys(),
        category__in=[C.REVENUE, C.COST_OF_SALES, C.EXPENSES],
    )
    sections = {
        C.REVENUE: report.revenue_items,
        C.COST_OF_SALES: report.cost_of_sales_items,
        C.EXPENSES: report.operating_expenses,
    }
    for account in accounts:
        debit, credit = activity[account.pk]
        amount = _section_amount(account.category, debit, credit)
        if is_zero(amount):
            continue
        sections[account.category].append(
            ProfitLossLineItem(account.code, account.name, amount)
        )

    total_revenue = report.total_revenue
    for items in sections.values():
        items.sort(key=_code_key)
        for item in items:
            item.percentage = percentage(item.amount, total_revenue)
    return report


def profit_and_loss(quarry, date_from, date_to, compare_prior_year=False):
    report = _build_profit_and_loss(quarry, date_from, date_to)

    if compare_prior_year:
        prior = _build_profit_and_loss(
            quarry, _shift_year(date_from), _shift_year(date_to)
        )

        def prior_only(item):
            return ProfitLossLineItem(item.account_code, item.description, ZERO,
                                      prior_amount=item.amount)

        _match_by_code(report.revenue_items, prior.revenue_items, prior_only)
        _match_by_code(report.cost_of_sales_items, prior.cost_of_sales_items, prior_only)
        _match_by_code(report.operating_expenses, prior.operating_expenses, prior_only)
        report.comparative = prior

    logger.info(
        "Generated profit and loss",
        extra={"quarry_id": quarry.pk, "date_from": str(date_from),
               "date_to": str(date_to), "net_profit": str(report.net_profit)},
    )
    return report


# ---------- Balance Sheet ----------
def _unclosed_prior_earnings(quarry, as_of):
    """Profit of earlier fiscal years still sitting in P&L accounts."""
    year_end = date(as_of.year - 1, 12, 31)
    grouped = totals_as_of(quarry, year_end)
    if not grouped:
        return ZERO
    earnings = ZERO
    accounts = LedgerAccount.objects.for_quarry(quarry).filter(
        pk__in=grouped.keys(),
        category__in=[C.REVENUE, C.COST_OF_SALES, C.EXPENSES],
    )
    for account in accounts:
        debit, credit = grouped[account.pk]
        # revenue adds, costs subtract: credits - debits across the board
        earnings += credit - debit
    return money(earnings)


def _build_balance_sheet(quarry, as_of):
    report = BalanceSheetReport(quarry.pk, quarry.name, as_of, timezone.now())
    asset_limit = conf.current_asset_code_limit()
    liability_limit = conf.current_liability_code_limit()

    grouped = totals_as_of(quarry, as_of)
    accounts = LedgerAccount.objects.active(quarry).filter(
        category__in=[C.ASSETS, C.LIABILITIES, C.EQUITY]
    )
    for account in accounts:
        debit, credit = grouped.get(account.pk, (ZERO, ZERO))
        # Signed on the section's side: a contra-asset reduces total assets
        amount = _section_amount(account.category, debit, credit)
        if is_zero(amount):
            continue
        line = BalanceSheetLineItem(account.code, account.name, amount)
        if account.category == C.ASSETS:
            target = report.current_assets if int(account.code) < asset_limit else report.non_current_assets
        elif account.category == C.LIABILITIES:
            target = report.current_liabilities if int(account.code) < liability_limit else report.non_current_liabilities
        else:
            target = report.equity_items
        target.append(line)

    # Kept off equity_items: comparatives pair those lines by account code
    report.prior_years_earnings = _unclosed_prior_earnings(quarry, as_of)

    # Fiscal year = calendar year
    pnl = _build_profit_and_loss(quarry, date(as_of.year, 1, 1), as_of)
    report.current_period_profit_loss = pnl.net_profit

    for items in (report.current_assets, report.non_current_assets,
                  report.current_liabilities, report.non_current_liabilities,
                  report.equity_items):
        items.sort(key=_code_key)
    return report


def balance_sheet(quarry, as_of, compare_prior_year=False):
    report = _build_balance_sheet(quarry, as_of)

    if compare_prior_year:
        prior = _build_balance_sheet(quarry, _shift_year(as_of))

        def prior_only(item):
            return BalanceSheetLineItem(item.account_code, item.description, ZERO,
                                        prior_amount=item.amount)

        for section in ("current_assets", "non_current_assets",
                        "current_liabilities", "non_current_liabilities",
                        "equity_items"):
            _match_by_code(getattr(report, section), getattr(prior, section), prior_only)
        report.comparative = prior

    if not report.is_balanced:
        logger.warning(
            "Balance sheet does not balance",
            extra={"quarry_id": quarry.pk, "as_of": str(as_of),
                   "difference": str(report.difference)},
        )
    logger.info(
        "Generated balance sheet",
        extra={"quarry_id": quarry.pk, "as_of": str(as_of)},
    )
    return report


# ---------- Cash Flow ----------
def _sum(queryset, expression):
    return money(queryset.aggregate(total=Sum(expression))["total"] or ZERO)


def cash_flow(quarry, date_from, date_to):
    report = CashFlowReport(quarry.pk, quarry.name, date_from, date_to, timezone.now())

    # Opening = Cash balance at the end of the day before the range
    cash_account = LedgerAccount.objects.active(quarry).filter(code=chart.CASH).first()
    if cash_account is not None:
        report.opening_cash_balance = account_balance(
            cash_account, date_from - timedelta(days=1)
        )

    sales = Sale.objects.active(quarry)

    # Sales paid on the spot; late payments are counted as collections instead
    direct = sales.filter(
        sale_date__gte=date_from, sale_date__lte=date_to,
        payment_status=PaymentStatus.PAID,
    ).filter(Q(payment_received_date__isnull=True) | Q(payment_received_date=F("sale_date")))
    report.cash_from_direct_sales = _sum(direct, GROSS)
    report.operating_inflows.append(CashFlowLineItem(
        "Cash received from customers (paid sales)", report.cash_from_direct_sales
    ))

    report.cash_from_prepayments = _sum(
        Prepayment.objects.active(quarry).filter(
            prepayment_date__gte=date_from, prepayment_date__lte=date_to
        ),
        "total_amount_paid",
    )
    if report.cash_from_prepayments > 0:
        report.operating_inflows.append(CashFlowLineItem(
            "Cash received from customer prepayments", report.cash_from_prepayments
        ))

    collections = sales.filter(
        payment_status=PaymentStatus.PAID,
        payment_received_date__gte=date_from,
        payment_received_date__lte=date_to,
    ).exclude(payment_received_date=F("sale_date"))
    report.cash_from_collections = _sum(collections, GROSS)
    if report.cash_from_collections > 0:
        report.operating_inflows.append(CashFlowLineItem(
            "Cash received from collections (past sales)", report.cash_from_collections
        ))

    expenses = Expense.objects.active(quarry).filter(
        expense_date__gte=date_from, expense_date__lte=date_to
    )
    total_expenses = _sum(expenses, "amount")
    if total_expenses > 0:
        report.operating_outflows.append(CashFlowLineItem(
            "Cash paid for operating expenses", total_expenses
        ))

    by_category = OrderedDict()
    for category, amount in expenses.values_list("category", "amount"):
        key = category or "Miscellaneous"
        by_category[key] = by_category.get(key, ZERO) + amount
    for category, amount in sorted(by_category.items(), key=lambda kv: kv[1], reverse=True):
        if amount > 0:
            report.expense_breakdown.append(CashFlowLineItem(
                f"  - {category}", money(amount), notes="Expense category breakdown"
            ))

    report.cash_banked = _sum(
        Banking.objects.active(quarry).filter(
            banking_date__gte=date_from, banking_date__lte=date_to
        ),
        "amount_banked",
    )

    logger.info(
        "Generated cash flow",
        extra={"quarry_id": quarry.pk, "date_from": str(date_from),
               "date_to": str(date_to)},
    )
    return report


# ---------- Receivables aging ----------
def ar_aging(quarry, as_of):
    report = ARAgingReport(quarry.pk, quarry.name, as_of, timezone.now())
    unpaid = (
        Sale.objects.active(quarry)
        .filter(payment_status=PaymentStatus.NOT_PAID, sale_date__lte=as_of)
        .select_related("product")
        .order_by("vehicle_registration", "sale_date", "id")
    )

    # Customer key is the vehicle registration
    customers = OrderedDict()
    for sale in unpaid:
        customer = customers.get(sale.vehicle_registration)
        if customer is None:
            customer = ARAgingCustomer(
                vehicle_registration=sale.vehicle_registration,
                client_name=sale.client_name,
                client_phone=sale.client_phone,
                oldest_invoice_date=sale.sale_date,
                days_since_oldest=(as_of - sale.sale_date).days,
            )
            customers[sale.vehicle_registration] = customer
        customer.add(ARAgingInvoice(
            sale_id=sale.pk,
            sale_date=sale.sale_date,
            days_outstanding=(as_of - sale.sale_date).days,
            product_name=sale.product.name if sale.product_id else "Unknown",
            quantity=sale.quantity,
            amount=money(sale.gross_amount),
            clerk_name=sale.clerk_name,
        ))

    # Largest balances first
    report.customers = sorted(
        customers.values(), key=lambda c: c.total_outstanding, reverse=True
    )
    logger.info(
        "Generated AR aging",
        extra={"quarry_id": quarry.pk, "as_of": str(as_of),
               "total_outstanding": str(report.total_outstanding)},
    )
    return report


# ---------- Payables summary ----------
def _month_bounds(day):
    start = day.replace(day=1)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(days=1)


def ap_summary(quarry, as_of):
    report = APSummaryReport(quarry.pk, quarry.name, as_of, timezone.now())
    period_start, period_end = _month_bounds(as_of)
    period = period_start.strftime("%B %Y")

    month_sales = (
        Sale.objects.active(quarry)
        .filter(sale_date__gte=period_start, sale_date__lte=period_end)
        .select_related("product", "broker")
        .order_by("sale_date", "id")
    )

    brokers = OrderedDict()
    for sale in month_sales:
        if sale.broker_id is None or sale.commission_per_unit <= 0:
            continue
        payable = brokers.get(sale.broker_id)
        if payable is None:
            payable = APBrokerPayable(
                broker_id=sale.broker_id,
                broker_name=sale.broker.name,
                phone=sale.broker.phone,
                period=period,
                period_start=period_start,
                period_end=period_end,
            )
            brokers[sale.broker_id] = payable
        payable.sales.append(APCommissionSale(
            sale_id=sale.pk,
            sale_date=sale.sale_date,
            vehicle_registration=sale.vehicle_registration,
            product_name=sale.product.name if sale.product_id else "Unknown",
            quantity=sale.quantity,
            commission_per_unit=sale.commission_per_unit,
            commission_amount=money(sale.quantity * sale.commission_per_unit),
        ))
    report.broker_payables = sorted(
        brokers.values(), key=lambda b: b.amount_due, reverse=True
    )

    # Fees accrued at the quarry's configured per-unit rates
    sales = list(month_sales)
    total_quantity = sum((s.quantity for s in sales), ZERO)
    loaders_fee = quarry.loaders_fee or ZERO
    if loaders_fee > 0:
        report.accrued_fees.append(APAccruedFee(
            fee_type="Loaders Fees",
            period=period,
            period_start=period_start,
            period_end=period_end,
            sales_count=len(sales),
            total_quantity=total_quantity,
            fee_per_unit=loaders_fee,
            amount_due=money(total_quantity * loaders_fee),
        ))

    land_rate_fee = quarry.land_rate_fee or ZERO
    if land_rate_fee > 0:
        # rejects are charged at their own rate
        amount = sum(
            (s.quantity * quarry.land_rate_for(s.product.name if s.product_id else "")
             for s in sales),
            ZERO,
        )
        report.accrued_fees.append(APAccruedFee(
            fee_type="Land Rate Fees",
            period=period,
            period_start=period_start,
            period_end=period_end,
            sales_count=len(sales),
            total_quantity=total_quantity,
            fee_per_unit=land_rate_fee,
            amount_due=money(amount),
        ))

    logger.info(
        "Generated AP summary",
        extra={"quarry_id": quarry.pk, "as_of": str(as_of),
               "total_payable": str(report.total_accounts_payable)},
    )
    return report


# ---------- General Ledger ----------
def general_ledger(quarry, account_id, date_from, date_to):
    account = LedgerAccount.objects.for_quarry(quarry).filter(pk=account_id).first()
    if account is None:
        raise NotFoundError(f"Ledger account {account_id} not found for {quarry}")

    report = GeneralLedgerReport(
        quarry_id=quarry.pk,
        quarry_name=quarry.name,
        account_code=account.code,
        account_name=account.name,
        category=account.category,
        is_debit_normal=account.is_debit_normal,
        period_start=date_from,
        period_end=date_to,
        generated_at=timezone.now(),
        opening_balance=account_balance(account, date_from - timedelta(days=1)),
    )

    lines = (
        JournalEntryLine.objects.posted()
        .filter(ledger_account=account,
                entry__entry_date__gte=date_from,
                entry__entry_date__lte=date_to)
        .select_related("entry")
        .order_by("entry__entry_date", "entry__created_at", "entry__id", "line_number")
    )

    running = report.opening_balance
    for line in lines:
        running += account.signed_balance(line.debit_amount, line.credit_amount)
        entry = line.entry
        report.entries.append(GeneralLedgerEntry(
            entry_date=entry.entry_date,
            reference=entry.reference,
            description=entry.description,
            source_type=entry.source_entity_type,
            source_id=entry.source_entity_id,
            debit_amount=line.debit_amount,
            credit_amount=line.credit_amount,
            running_balance=money(running),
            memo=line.memo,
            created_by=entry.created_by,
        ))

    logger.info(
        "Generated general ledger",
        extra={"quarry_id": quarry.pk, "code": account.code},
    )
    return report
