import calendar
import logging
from datetime import date

from django.db import transaction
from django.utils import timezone

from ..exceptions import ConflictError, NotFoundError
from ..models.period import AccountingPeriod, PeriodType
from .audit_helper import log_action

logger = logging.getLogger(__name__)

"""
    Entry date determines the period.
    Periods only gate unposting; posting into a closed period is allowed
    so late automatic entries can still land.
"""
def period_for_date(quarry, day):
    """The active period containing `day`, or None."""
    return (
        AccountingPeriod.objects.active(quarry)
        .filter(start_date__lte=day, end_date__gte=day)
        .first()
    )


def get_period(period_id):
    try:
        return AccountingPeriod.objects.get(pk=period_id, is_active=True)
    except AccountingPeriod.DoesNotExist:
        raise NotFoundError(f"Accounting period {period_id} not found")


def list_periods(quarry, fiscal_year=None):
    qs = AccountingPeriod.objects.active(quarry)
    if fiscal_year is not None:
        qs = qs.filter(fiscal_year=fiscal_year)
    return list(qs.order_by("fiscal_year", "period_number"))


def current_period(quarry, today=None):
    return period_for_date(quarry, today or timezone.localdate())


def close_period(period_id, actor, notes=None):
    with transaction.atomic():
        # Lock the row to avoid racing close/reopen
        period = AccountingPeriod.objects.select_for_update().filter(
            pk=period_id, is_active=True
        ).first()
        if period is None:
            raise NotFoundError(f"Accounting period {period_id} not found")
        if period.is_closed:
            raise ConflictError(f"Period {period.name} is already closed")

        period.is_closed = True
        period.closed_by = actor
        period.closed_date = timezone.now()
        period.closing_notes = notes or ""
        period.save()
        log_action(action="close", instance=period, actor=actor,
                   changes={"notes": period.closing_notes})

    logger.info(
        "Closed accounting period",
        extra={"quarry_id": period.quarry_id, "period": period.name},
    )
    return period


def reopen_period(period_id, actor):
    with transaction.atomic():
        period = AccountingPeriod.objects.select_for_update().filter(
            pk=period_id, is_active=True
        ).first()
        if period is None:
            raise NotFoundError(f"Accounting period {period_id} not found")
        if not period.is_closed:
            raise ConflictError(f"Period {period.name} is not closed")

        period.is_closed = False
        period.closed_by = ""
        period.closed_date = None
        period.save()
        log_action(action="reopen", instance=period, actor=actor)

    logger.info(
        "Reopened accounting period",
        extra={"quarry_id": period.quarry_id, "period": period.name},
    )
    return period


@transaction.atomic
def provision_fiscal_year(quarry, fiscal_year):
    """
    Create the twelve monthly periods of a fiscal year.
    Idempotent: months that already exist are skipped.
    Returns the periods of that year.
    """
    existing = set(
        AccountingPeriod.objects.for_quarry(quarry)
        .filter(fiscal_year=fiscal_year)
        .values_list("period_number", flat=True)
    )
    for month in range(1, 13):
        if month in existing:
            continue
        start = date(fiscal_year, month, 1)
        end = date(fiscal_year, month, calendar.monthrange(fiscal_year, month)[1])
        AccountingPeriod.objects.create(
            quarry=quarry,
            name=start.strftime("%B %Y"),  # "July 2025"
            fiscal_year=fiscal_year,
            period_number=month,
            period_type=PeriodType.MONTHLY,
            start_date=start,
            end_date=end,
        )
    return list_periods(quarry, fiscal_year)
