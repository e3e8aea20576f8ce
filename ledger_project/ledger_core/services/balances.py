from django.db.models import Sum

from ..models import JournalEntryLine, LedgerAccount
from ..money import ZERO, money

""" Balances only ever count posted, active entries.
    Every aggregate below is one grouped query, never one query per account. """


def _posted_lines(quarry):
    return JournalEntryLine.objects.for_quarry(quarry).posted()


def _grouped_totals(lines):
    """{account_id: (debits, credits)} for a line queryset."""
    rows = (
        lines.values("ledger_account_id")
        .annotate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
        .order_by()
    )
    return {
        row["ledger_account_id"]: (row["debit"] or ZERO, row["credit"] or ZERO)
        for row in rows
    }


def account_balance(account: LedgerAccount, as_of):
    """Debits - credits (debit-normal) or credits - debits, up to and including as_of."""
    aggs = (
        JournalEntryLine.objects.posted()
        .filter(ledger_account=account, entry__entry_date__lte=as_of)
        .aggregate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
    )
    return money(account.signed_balance(aggs["debit"] or ZERO, aggs["credit"] or ZERO))


def totals_as_of(quarry, as_of):
    """{account_id: (debits, credits)} of posted lines dated on or before as_of."""
    return _grouped_totals(_posted_lines(quarry).filter(entry__entry_date__lte=as_of))


def all_balances(quarry, as_of):
    """
    {account_id: signed balance} for every active account of the quarry;
    accounts without activity are present with 0.00.
    """
    grouped = totals_as_of(quarry, as_of)
    balances = {}
    for account in LedgerAccount.objects.active(quarry):
        debit, credit = grouped.get(account.pk, (ZERO, ZERO))
        balances[account.pk] = money(account.signed_balance(debit, credit))
    return balances


def activity_by_account(quarry, date_from, date_to):
    """{account_id: (debits, credits)} of posted lines dated within [date_from, date_to]."""
    return _grouped_totals(
        _posted_lines(quarry).filter(
            entry__entry_date__gte=date_from, entry__entry_date__lte=date_to
        )
    )
