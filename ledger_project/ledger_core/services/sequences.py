from django.db import IntegrityError, transaction

from ..models import JournalSequence

# Reference prefixes per entry origin
MANUAL_PREFIX = "ADJ"


def next_value(quarry, fiscal_year, prefix) -> int:
    """
    Allocate the next sequence value for a quarry/year/prefix triple.
    Uses select_for_update to avoid concurrent duplicates; must run
    inside the caller's transaction so the row lock is held until commit.
    """
    with transaction.atomic():
        try:
            seq = JournalSequence.objects.select_for_update().get(
                quarry=quarry,
                fiscal_year=fiscal_year,
                prefix=prefix,
            )
        except JournalSequence.DoesNotExist:
            try:
                # savepoint: a losing racer must not poison the outer transaction
                with transaction.atomic():
                    seq = JournalSequence.objects.create(
                        quarry=quarry,
                        fiscal_year=fiscal_year,
                        prefix=prefix,
                        next_value=1,
                    )
            except IntegrityError:
                seq = JournalSequence.objects.select_for_update().get(
                    quarry=quarry,
                    fiscal_year=fiscal_year,
                    prefix=prefix,
                )

        value = seq.next_value
        seq.next_value = value + 1
        seq.save(update_fields=["next_value"])
        return value


def format_reference(prefix, fiscal_year, value) -> str:
    return f"{prefix}-{fiscal_year}-{value:05d}"


def next_reference(quarry, fiscal_year, prefix) -> str:
    """e.g. "SL-2025-00042"."""
    return format_reference(prefix, fiscal_year, next_value(quarry, fiscal_year, prefix))
