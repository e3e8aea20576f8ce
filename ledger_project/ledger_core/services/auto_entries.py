"""
Automatic journal entries derived from operational transactions.

Each source kind has a frozen record carrying only what its posting rule
needs, and one builder registered on ``build_entry``. Builders are pure:
they turn a source record into an ``EntryDraft`` (or None) using a
read-only ``BuildContext``; persistence happens separately so batch
regeneration can group many drafts per transaction.

    Sale        SL  Dr Cash/AR          Cr Revenue (+ commission & fee accruals)
    Expense     EX  Dr Expense          Cr Cash
    Banking     BK  Dr Bank             Cr Cash
    Prepayment  PP  Dr Cash             Cr Customer Deposits
    Collection  CL  Dr Cash             Cr AR   (late payment of a sale)
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from functools import singledispatch
from typing import Callable, Optional

from django.db import IntegrityError, transaction

from .. import conf
from ..exceptions import EntryValidationFailed, MissingAccountError
from ..models import (Banking, EntryType, Expense, JournalEntry,
                      LedgerAccount, PaymentStatus, Prepayment, Sale,
                      SourceKind)
from ..money import ZERO, money
from . import chart
from .journals import LineDraft, assert_balanced, find_by_source, persist_entry

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

PREFIXES = {
    SourceKind.SALE: "SL",
    SourceKind.EXPENSE: "EX",
    SourceKind.BANKING: "BK",
    SourceKind.PREPAYMENT: "PP",
    SourceKind.COLLECTION: "CL",
}


# ---------- Source records ----------
@dataclass(frozen=True)
class SaleSource:
    id: int
    sale_date: date
    vehicle_registration: str
    product_name: str
    quantity: Decimal
    price_per_unit: Decimal
    commission_per_unit: Decimal
    paid_at_sale: bool

    kind = SourceKind.SALE

    @classmethod
    def from_model(cls, sale: Sale):
        return cls(
            id=sale.pk,
            sale_date=sale.sale_date,
            vehicle_registration=sale.vehicle_registration,
            product_name=sale.product.name if sale.product_id else "",
            quantity=sale.quantity or ZERO,
            price_per_unit=sale.price_per_unit or ZERO,
            commission_per_unit=sale.commission_per_unit or ZERO,
            paid_at_sale=sale.is_paid_at_sale,
        )


@dataclass(frozen=True)
class ExpenseSource:
    id: int
    expense_date: date
    item: str
    amount: Decimal
    category: str

    kind = SourceKind.EXPENSE

    @classmethod
    def from_model(cls, expense: Expense):
        return cls(expense.pk, expense.expense_date, expense.item,
                   expense.amount or ZERO, expense.category)


@dataclass(frozen=True)
class BankingSource:
    id: int
    banking_date: date
    amount_banked: Decimal
    txn_reference: str

    kind = SourceKind.BANKING

    @classmethod
    def from_model(cls, banking: Banking):
        return cls(banking.pk, banking.banking_date,
                   banking.amount_banked or ZERO, banking.txn_reference)


@dataclass(frozen=True)
class PrepaymentSource:
    id: int
    prepayment_date: date
    vehicle_registration: str
    total_amount_paid: Decimal

    kind = SourceKind.PREPAYMENT

    @classmethod
    def from_model(cls, prepayment: Prepayment):
        return cls(prepayment.pk, prepayment.prepayment_date,
                   prepayment.vehicle_registration,
                   prepayment.total_amount_paid or ZERO)


@dataclass(frozen=True)
class CollectionSource:
    id: int  # the sale's id
    payment_date: date
    vehicle_registration: str
    amount: Decimal

    kind = SourceKind.COLLECTION

    @classmethod
    def from_sale(cls, sale: Sale):
        """None unless the sale was settled after its sale date."""
        if (
            sale.payment_received_date is None
            or sale.payment_status != PaymentStatus.PAID
            or sale.payment_received_date == sale.sale_date
        ):
            return None
        return cls(sale.pk, sale.payment_received_date,
                   sale.vehicle_registration, sale.gross_amount)


# ---------- Build context ----------
class AccountCache:
    """Read-only code → account map, loaded once per build run."""

    def __init__(self, accounts):
        self._by_code = {account.code: account for account in accounts}

    @classmethod
    def load(cls, quarry):
        return cls(LedgerAccount.objects.active(quarry))

    def require(self, code) -> LedgerAccount:
        try:
            return self._by_code[code]
        except KeyError:
            raise MissingAccountError(code) from None

    def __contains__(self, code):
        return code in self._by_code


@dataclass(frozen=True)
class BuildContext:
    quarry: object
    accounts: AccountCache
    revenue_code_lookup: Callable[[str], str] = chart.product_revenue_code
    expense_code_lookup: Callable[[str], str] = chart.expense_account_code

    @classmethod
    def load(cls, quarry, revenue_code_lookup=None, expense_code_lookup=None):
        return cls(
            quarry=quarry,
            accounts=AccountCache.load(quarry),
            revenue_code_lookup=revenue_code_lookup or chart.product_revenue_code,
            expense_code_lookup=expense_code_lookup or chart.expense_account_code,
        )


@dataclass(frozen=True)
class EntryDraft:
    kind: str
    source_id: int
    entry_date: date
    description: str
    lines: tuple

    @property
    def key(self):
        return (self.kind, self.source_id)


def _draft(source, entry_date, description, lines):
    # An unbalanced draft is a bug in a builder, never a data problem
    assert_balanced(lines)
    return EntryDraft(source.kind, source.id, entry_date, description, tuple(lines))


def _require_positive(amount, what):
    if amount <= 0:
        raise EntryValidationFailed(f"{what} must be greater than zero (got {amount})")


def _accrual(ctx, expense_code, amount, label):
    """Dr cost-of-sales / Cr accrued payable pair."""
    return [
        LineDraft(ctx.accounts.require(expense_code), debit=amount, memo=f"{label} expense"),
        LineDraft(ctx.accounts.require(chart.ACCRUED_PAYABLE), credit=amount, memo=f"{label} payable"),
    ]


# ---------- Builders ----------
@singledispatch
def build_entry(source, ctx: BuildContext) -> Optional[EntryDraft]:
    raise TypeError(f"No journal rule for {type(source).__name__}")


@build_entry.register
def _build_sale(source: SaleSource, ctx: BuildContext):
    gross = money(source.quantity * source.price_per_unit)
    _require_positive(gross, "Sale amount")
    product = source.product_name or "Product"

    # Paid on the spot → Cash; otherwise a receivable cleared later by a Collection
    if source.paid_at_sale:
        lines = [LineDraft(ctx.accounts.require(chart.CASH), debit=gross,
                           memo=f"Cash from sale {source.vehicle_registration}")]
    else:
        lines = [LineDraft(ctx.accounts.require(chart.ACCOUNTS_RECEIVABLE), debit=gross,
                           memo=f"A/R from sale {source.vehicle_registration}")]
    revenue = ctx.accounts.require(ctx.revenue_code_lookup(source.product_name))
    lines.append(LineDraft(revenue, credit=gross, memo=f"Revenue from {product}"))

    # Per-unit costs accrued against the sale; zero rates add no lines
    commission = money(source.quantity * source.commission_per_unit)
    if commission > 0:
        lines += _accrual(ctx, chart.COMMISSION_EXPENSE, commission, "Commission")

    loaders_fee = money(source.quantity * (ctx.quarry.loaders_fee or ZERO))
    if loaders_fee > 0:
        lines += _accrual(ctx, chart.LOADERS_FEES, loaders_fee, "Loaders fee")

    land_rate = money(source.quantity * ctx.quarry.land_rate_for(source.product_name))
    if land_rate > 0:
        lines += _accrual(ctx, chart.LAND_RATE_FEES, land_rate, "Land rate fee")

    description = f"Sale - {source.vehicle_registration} - {product} x {source.quantity.normalize():,f}"
    return _draft(source, source.sale_date, description, lines)


@build_entry.register
def _build_expense(source: ExpenseSource, ctx: BuildContext):
    amount = money(source.amount)
    _require_positive(amount, "Expense amount")
    expense_account = ctx.accounts.require(ctx.expense_code_lookup(source.category))
    lines = [
        LineDraft(expense_account, debit=amount, memo=source.item),
        LineDraft(ctx.accounts.require(chart.CASH), credit=amount,
                  memo=f"Cash paid for {source.item}"),
    ]
    return _draft(source, source.expense_date, f"Expense - {source.item}", lines)


@build_entry.register
def _build_banking(source: BankingSource, ctx: BuildContext):
    amount = money(source.amount_banked)
    _require_positive(amount, "Banked amount")
    lines = [
        LineDraft(ctx.accounts.require(chart.BANK), debit=amount,
                  memo=f"Deposit ref: {source.txn_reference}"),
        LineDraft(ctx.accounts.require(chart.CASH), credit=amount, memo="Cash deposited"),
    ]
    description = f"Bank Deposit - {source.txn_reference or 'Deposit'}"
    return _draft(source, source.banking_date, description, lines)


@build_entry.register
def _build_prepayment(source: PrepaymentSource, ctx: BuildContext):
    amount = money(source.total_amount_paid)
    _require_positive(amount, "Prepayment amount")
    lines = [
        LineDraft(ctx.accounts.require(chart.CASH), debit=amount,
                  memo=f"Prepayment from {source.vehicle_registration}"),
        LineDraft(ctx.accounts.require(chart.CUSTOMER_DEPOSITS), credit=amount,
                  memo="Customer deposit liability"),
    ]
    description = f"Prepayment - {source.vehicle_registration}"
    return _draft(source, source.prepayment_date, description, lines)


@build_entry.register
def _build_collection(source: CollectionSource, ctx: BuildContext):
    amount = money(source.amount)
    if amount <= 0:
        return None
    lines = [
        LineDraft(ctx.accounts.require(chart.CASH), debit=amount,
                  memo=f"Collection from {source.vehicle_registration}"),
        LineDraft(ctx.accounts.require(chart.ACCOUNTS_RECEIVABLE), credit=amount,
                  memo="Reduce A/R"),
    ]
    description = f"Collection - {source.vehicle_registration}"
    return _draft(source, source.payment_date, description, lines)


# ---------- Persistence ----------
def _persist_draft(quarry, draft: EntryDraft, actor):
    return persist_entry(
        quarry,
        entry_date=draft.entry_date,
        description=draft.description,
        lines=list(draft.lines),
        prefix=PREFIXES[draft.kind],
        actor=actor,
        entry_type=EntryType.AUTO,
        source_kind=draft.kind,
        source_id=draft.source_id,
    )


def _generate(quarry, source, actor, revenue_code_lookup, expense_code_lookup):
    """Idempotent: the first entry for (kind, id) wins and is returned thereafter."""
    existing = find_by_source(quarry, source.kind, source.id)
    if existing is not None:
        return existing

    ctx = BuildContext.load(quarry, revenue_code_lookup, expense_code_lookup)
    draft = build_entry(source, ctx)
    if draft is None:
        return None

    try:
        with transaction.atomic():
            return _persist_draft(quarry, draft, actor)
    except IntegrityError:
        # Lost the race on the (quarry, kind, id) constraint
        existing = find_by_source(quarry, source.kind, source.id)
        if existing is None:
            raise
        return existing


def generate_for_sale(sale, actor=SYSTEM_ACTOR, *, revenue_code_lookup=None,
                      expense_code_lookup=None):
    return _generate(sale.quarry, SaleSource.from_model(sale), actor,
                     revenue_code_lookup, expense_code_lookup)


def generate_for_expense(expense, actor=SYSTEM_ACTOR, *, revenue_code_lookup=None,
                         expense_code_lookup=None):
    return _generate(expense.quarry, ExpenseSource.from_model(expense), actor,
                     revenue_code_lookup, expense_code_lookup)


def generate_for_banking(banking, actor=SYSTEM_ACTOR, *, revenue_code_lookup=None,
                         expense_code_lookup=None):
    return _generate(banking.quarry, BankingSource.from_model(banking), actor,
                     revenue_code_lookup, expense_code_lookup)


def generate_for_prepayment(prepayment, actor=SYSTEM_ACTOR, *, revenue_code_lookup=None,
                            expense_code_lookup=None):
    return _generate(prepayment.quarry, PrepaymentSource.from_model(prepayment), actor,
                     revenue_code_lookup, expense_code_lookup)


def generate_for_collection(sale, actor=SYSTEM_ACTOR, *, revenue_code_lookup=None,
                            expense_code_lookup=None):
    """None when the sale was not settled after its sale date."""
    source = CollectionSource.from_sale(sale)
    if source is None:
        return None
    return _generate(sale.quarry, source, actor,
                     revenue_code_lookup, expense_code_lookup)


# ---------- Batch regeneration ----------
@dataclass
class RegenerationResult:
    created: Counter = field(default_factory=Counter)
    skipped: Counter = field(default_factory=Counter)

    @property
    def total_created(self):
        return sum(self.created.values())

    def as_dict(self):
        return {
            "created": {str(kind): n for kind, n in self.created.items()},
            "skipped": {str(kind): n for kind, n in self.skipped.items()},
        }


def _iter_sources(quarry, date_from, date_to):
    """All source records of the range, in a stable order."""
    sales = (
        Sale.objects.active(quarry)
        .filter(sale_date__gte=date_from, sale_date__lte=date_to)
        .select_related("product")
        .order_by("sale_date", "id")
    )
    for sale in sales:
        yield SaleSource.from_model(sale)
        collection = CollectionSource.from_sale(sale)
        if collection is not None:
            yield collection

    for expense in (Expense.objects.active(quarry)
                    .filter(expense_date__gte=date_from, expense_date__lte=date_to)
                    .order_by("expense_date", "id")):
        yield ExpenseSource.from_model(expense)

    for banking in (Banking.objects.active(quarry)
                    .filter(banking_date__gte=date_from, banking_date__lte=date_to)
                    .order_by("banking_date", "id")):
        yield BankingSource.from_model(banking)

    for prepayment in (Prepayment.objects.active(quarry)
                       .filter(prepayment_date__gte=date_from, prepayment_date__lte=date_to)
                       .order_by("prepayment_date", "id")):
        yield PrepaymentSource.from_model(prepayment)


def _flush(quarry, pending, actor, result):
    # One atomic transaction per batch; a savepoint per draft so a
    # concurrent writer that already created the entry only drops that draft
    with transaction.atomic():
        for draft in pending:
            try:
                with transaction.atomic():
                    _persist_draft(quarry, draft, actor)
            except IntegrityError:
                logger.info(
                    "Entry already generated elsewhere",
                    extra={"quarry_id": quarry.pk, "kind": str(draft.kind),
                           "source_id": draft.source_id},
                )
                continue
            result.created[draft.kind] += 1
    pending.clear()


def regenerate_all(quarry, date_from, date_to, batch_size=None, actor=SYSTEM_ACTOR, *,
                   revenue_code_lookup=None, expense_code_lookup=None):
    """
    Generate the missing automatic entries for every transaction dated in
    [date_from, date_to]. Safe to re-run: existing entries are skipped.

    Transactions whose entry cannot be built (missing mapped account,
    non-positive amount) are skipped and counted; an unbalanced builder
    result aborts the run. Batches committed before an abort are kept.
    """
    batch_size = batch_size or conf.regeneration_batch_size()
    logger.info(
        "Regenerating journal entries",
        extra={"quarry_id": quarry.pk, "date_from": str(date_from),
               "date_to": str(date_to)},
    )

    ctx = BuildContext.load(quarry, revenue_code_lookup, expense_code_lookup)
    existing_keys = set(
        JournalEntry.objects.for_quarry(quarry)
        .filter(source_entity_type__isnull=False)
        .values_list("source_entity_type", "source_entity_id")
    )
    result = RegenerationResult()
    pending = []

    for source in _iter_sources(quarry, date_from, date_to):
        if (source.kind, source.id) in existing_keys:
            continue
        try:
            draft = build_entry(source, ctx)
        except EntryValidationFailed as exc:
            logger.warning(
                "Skipping transaction: %s", exc,
                extra={"quarry_id": quarry.pk, "kind": str(source.kind),
                       "source_id": source.id},
            )
            result.skipped[source.kind] += 1
            continue
        if draft is None:
            continue

        existing_keys.add(draft.key)
        pending.append(draft)
        if len(pending) >= batch_size:
            _flush(quarry, pending, actor, result)

    if pending:
        _flush(quarry, pending, actor, result)

    logger.info(
        "Journal entry regeneration completed",
        extra={"quarry_id": quarry.pk, "result": result.as_dict()},
    )
    return result
