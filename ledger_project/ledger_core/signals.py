from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import AccountingPeriod, JournalEntry, LedgerAccount

""" Hard deletes are rare (admin shell, cascades); the services only
    soft delete. These receivers keep history intact when they happen. """


# pre_delete signal auto-fires just before Django deletes a model instance
@receiver(pre_delete, sender=LedgerAccount)
def prevent_delete_system_account(sender, instance, **kwargs):
    if instance.is_system_account:
        raise ValidationError("Cannot delete a system account.")


"""Block deletion if account has ever been used in a journal line."""


@receiver(pre_delete, sender=LedgerAccount)
def prevent_delete_account_with_journal_lines(sender, instance, **kwargs):
    if instance.journal_lines.exists():
        raise ValidationError("Cannot delete account used in journal lines.")


"""Block deletion if period has posted journals."""


@receiver(pre_delete, sender=AccountingPeriod)
def prevent_delete_period_with_posted_journals(sender, instance, **kwargs):
    if JournalEntry.objects.for_quarry(instance.quarry_id).filter(
        entry_date__gte=instance.start_date,
        entry_date__lte=instance.end_date,
        is_posted=True,
        is_active=True,
    ).exists():
        raise ValidationError(
            "Cannot delete a period with posted journal entries.")
