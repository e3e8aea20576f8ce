import logging
from dataclasses import dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import (AlreadyPostedError, ConflictError,
                          ForbiddenOperation, NotFoundError,
                          PeriodClosedError, UnbalancedJournalError)
from ..models import (EntryType, JournalEntry, JournalEntryLine,
                      LedgerAccount)
from ..money import ZERO, is_zero, money
from .audit_helper import log_action
from .periods import period_for_date
from .sequences import MANUAL_PREFIX, next_reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineDraft:
    """One unsaved debit or credit against a ledger account."""
    account: LedgerAccount
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    memo: str = ""


def totals(lines):
    """Return (debits, credits) of a list of LineDraft."""
    debit = sum((line.debit for line in lines), ZERO)
    credit = sum((line.credit for line in lines), ZERO)
    return money(debit), money(credit)


def assert_balanced(lines):
    """Enforce double-entry rule: debits = credits (within LEDGER_EPSILON)"""
    debit, credit = totals(lines)
    if not is_zero(debit - credit):
        raise UnbalancedJournalError(
            f"Journal not balanced: debits={debit}, credits={credit}"
        )
    return debit, credit


def _resolve_account(quarry, account):
    # Accept an instance or a primary key; either way it must be an
    # active account of this quarry
    account_id = account.pk if isinstance(account, LedgerAccount) else account
    found = LedgerAccount.objects.active(quarry).filter(pk=account_id).first()
    if found is None:
        raise NotFoundError(f"Ledger account {account_id} not found for {quarry}")
    return found


def _normalize_lines(quarry, lines):
    """
    Lines come in as LineDraft or dicts:
        {"account": <LedgerAccount|pk>, "debit": ..., "credit": ..., "memo": ...}
    """
    drafts = []
    for line in lines:
        if isinstance(line, LineDraft):
            account, debit, credit, memo = line.account, line.debit, line.credit, line.memo
        else:
            account = line.get("account")
            debit, credit, memo = line.get("debit"), line.get("credit"), line.get("memo", "")
        drafts.append(
            LineDraft(
                account=_resolve_account(quarry, account),
                debit=money(debit),
                credit=money(credit),
                memo=memo or "",
            )
        )
    if not drafts:
        raise ValidationError("Journal entry must have at least one line.")
    return drafts


def _write_lines(entry, drafts):
    # Lines are numbered 1..n in the order given
    for number, draft in enumerate(drafts, start=1):
        JournalEntryLine.objects.create(
            entry=entry,
            ledger_account=draft.account,
            debit_amount=draft.debit,
            credit_amount=draft.credit,
            memo=draft.memo[:400],
            line_number=number,
        )


def persist_entry(quarry, *, entry_date, description, lines, prefix, actor,
                  entry_type=EntryType.MANUAL, source_kind=None,
                  source_id=None):
    """
    Validate balance, allocate the reference and write header + lines.
    Must be called inside transaction.atomic(); nothing is written
    when the lines do not balance.
    """
    total_debit, total_credit = assert_balanced(lines)

    is_auto = entry_type == EntryType.AUTO
    now = timezone.now()
    entry = JournalEntry.objects.create(
        quarry=quarry,
        entry_date=entry_date,
        reference=next_reference(quarry, entry_date.year, prefix),
        description=(description or "")[:500],
        entry_type=entry_type,
        source_entity_type=source_kind,
        source_entity_id=source_id,
        fiscal_year=entry_date.year,
        fiscal_period=entry_date.month,
        # Auto entries are born posted
        is_posted=is_auto,
        posted_by=actor if is_auto else "",
        posted_date=now if is_auto else None,
        total_debit=total_debit,
        total_credit=total_credit,
        created_by=actor,
    )
    _write_lines(entry, lines)
    return entry


# ---------- Reads ----------
def get_entry(entry_id):
    try:
        return JournalEntry.objects.prefetch_related("lines__ledger_account").get(
            pk=entry_id, is_active=True
        )
    except JournalEntry.DoesNotExist:
        raise NotFoundError(f"Journal entry {entry_id} not found")


def list_entries(quarry, date_from, date_to):
    """Active entries in [date_from, date_to], newest first."""
    return list(
        JournalEntry.objects.active(quarry)
        .filter(entry_date__gte=date_from, entry_date__lte=date_to)
        .prefetch_related("lines__ledger_account")
        .order_by("-entry_date", "-created_at", "-id")
    )


def find_by_source(quarry, kind, source_id):
    """The entry generated for (kind, source_id), or None."""
    return (
        JournalEntry.objects.for_quarry(quarry)
        .filter(source_entity_type=kind, source_entity_id=source_id)
        .first()
    )


def _lock_entry(entry_id):
    # Lock the row to avoid race conditions
    entry = JournalEntry.objects.select_for_update().filter(
        pk=entry_id, is_active=True
    ).first()
    if entry is None:
        raise NotFoundError(f"Journal entry {entry_id} not found")
    return entry


# ---------- Manual entries ----------
def create_manual_entry(quarry, entry_date, description, lines, actor):
    """Create an unposted ADJ entry; debits must equal credits."""
    with transaction.atomic():
        drafts = _normalize_lines(quarry, lines)
        entry = persist_entry(
            quarry,
            entry_date=entry_date,
            description=description,
            lines=drafts,
            prefix=MANUAL_PREFIX,
            actor=actor,
        )
        log_action(action="create", instance=entry, actor=actor,
                   changes={"reference": entry.reference,
                            "total": str(entry.total_debit)})

    logger.info(
        "Created manual journal entry",
        extra={"quarry_id": quarry.pk, "reference": entry.reference},
    )
    return entry


def update_manual_entry(entry_id, lines, actor, entry_date=None, description=None):
    """Replace the lines (and optionally date/description) of an unposted manual entry."""
    with transaction.atomic():
        entry = _lock_entry(entry_id)
        if entry.is_auto:
            raise ForbiddenOperation(
                f"Automatic entry {entry.reference} cannot be edited"
            )
        if entry.is_posted:
            raise AlreadyPostedError(
                f"Entry {entry.reference} is posted; unpost it before editing"
            )

        drafts = _normalize_lines(entry.quarry, lines)
        total_debit, total_credit = assert_balanced(drafts)

        if entry_date is not None:
            # References are numbered per year
            if entry_date.year != entry.fiscal_year:
                entry.reference = next_reference(entry.quarry, entry_date.year, MANUAL_PREFIX)
            entry.entry_date = entry_date
            entry.fiscal_year = entry_date.year
            entry.fiscal_period = entry_date.month
        if description is not None:
            entry.description = description[:500]
        entry.total_debit = total_debit
        entry.total_credit = total_credit
        entry.modified_at = timezone.now()
        entry.modified_by = actor
        entry.save()

        # Lines are replaced wholesale
        entry.lines.all().delete()
        _write_lines(entry, drafts)
        log_action(action="update", instance=entry, actor=actor,
                   changes={"lines": len(drafts), "total": str(total_debit)})
    return entry


def delete_manual_entry(entry_id, actor):
    """Soft delete; only unposted manual entries can go."""
    with transaction.atomic():
        entry = _lock_entry(entry_id)
        if entry.is_auto:
            raise ForbiddenOperation(
                f"Automatic entry {entry.reference} cannot be deleted"
            )
        if entry.is_posted:
            raise AlreadyPostedError(
                f"Entry {entry.reference} is posted and cannot be deleted"
            )

        entry.is_active = False
        entry.modified_at = timezone.now()
        entry.modified_by = actor
        entry.save()
        log_action(action="delete", instance=entry, actor=actor)
    return entry


# ---------- Posting ----------
def post_entry(entry_id, actor):
    """
    Mark an entry as posted so it counts towards balances.
    Closed periods do not block posting.
    """
    with transaction.atomic():
        entry = _lock_entry(entry_id)
        if entry.is_posted:
            raise ConflictError(f"Entry {entry.reference} is already posted")

        entry.is_posted = True
        entry.posted_by = actor
        entry.posted_date = timezone.now()
        entry.modified_at = entry.posted_date
        entry.modified_by = actor
        entry.save()
        log_action(action="post", instance=entry, actor=actor)

    logger.info(
        "Posted journal entry",
        extra={"quarry_id": entry.quarry_id, "reference": entry.reference},
    )
    return entry


def unpost_entry(entry_id, actor):
    with transaction.atomic():
        entry = _lock_entry(entry_id)
        if not entry.is_posted:
            raise ConflictError(f"Entry {entry.reference} is not posted")

        period = period_for_date(entry.quarry, entry.entry_date)
        if period is not None and period.is_closed:
            raise PeriodClosedError(
                f"Cannot unpost {entry.reference}: period {period.name} is closed"
            )

        entry.is_posted = False
        entry.posted_by = ""
        entry.posted_date = None
        entry.modified_at = timezone.now()
        entry.modified_by = actor
        entry.save()
        log_action(action="unpost", instance=entry, actor=actor)

    logger.info(
        "Unposted journal entry",
        extra={"quarry_id": entry.quarry_id, "reference": entry.reference},
    )
    return entry
