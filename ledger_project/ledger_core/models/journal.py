from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from .. import conf
from ..managers import JournalLineManager, TenantManager
from .account import LedgerAccount
from .quarry import Quarry


class EntryType(models.TextChoices):
    MANUAL = "Manual", "Manual"  # keyed in by an accountant, starts unposted
    AUTO = "Auto", "Auto"  # derived from a source transaction, created posted


# Closed set of source transactions an Auto entry can be derived from
class SourceKind(models.TextChoices):
    SALE = "Sale", "Sale"
    EXPENSE = "Expense", "Expense"
    BANKING = "Banking", "Banking"
    PREPAYMENT = "Prepayment", "Prepayment"
    COLLECTION = "Collection", "Collection"


# ---------- JournalEntry (Header) & JournalEntryLine ----------
class JournalEntry(models.Model):  # Represents one accounting transaction
    # Multi-tenant: every entry belongs to a quarry
    quarry = models.ForeignKey(Quarry, on_delete=models.CASCADE,
                               related_name="journal_entries")
    # Business metadata
    entry_date = models.DateField()
    # "{PREFIX}-{fiscal_year}-{00000}", allocated from JournalSequence
    reference = models.CharField(max_length=40)
    description = models.CharField(max_length=500, blank=True)
    entry_type = models.CharField(
        max_length=10,
        choices=EntryType.choices,
        default=EntryType.MANUAL,
    )

    # Source info (Auto entries only)
    # Helps trace back where the entry originated & guards idempotency
    source_entity_type = models.CharField(
        max_length=20, choices=SourceKind.choices, null=True, blank=True
    )
    source_entity_id = models.BigIntegerField(null=True, blank=True)

    fiscal_year = models.PositiveIntegerField()
    fiscal_period = models.PositiveSmallIntegerField()  # month number 1..12

    # Posting state
    is_posted = models.BooleanField(default=False)
    posted_by = models.CharField(max_length=150, blank=True)
    posted_date = models.DateTimeField(null=True, blank=True)

    # Denormalized totals, kept equal to the sum of the lines
    total_debit = models.DecimalField(
        max_digits=18, decimal_places=2, default=0)
    total_credit = models.DecimalField(
        max_digits=18, decimal_places=2, default=0)

    is_active = models.BooleanField(default=True)  # soft delete
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.CharField(max_length=150, blank=True)
    modified_at = models.DateTimeField(null=True, blank=True)
    modified_by = models.CharField(max_length=150, blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # Speed up listing & filtering
        # (e.g. show all posted entries this month)
        indexes = [
            models.Index(fields=["quarry", "entry_date"], name="je_quarry_date_idx"),
            models.Index(fields=["quarry", "is_posted"], name="je_quarry_posted_idx"),
        ]

        constraints = [
            # Within one quarry, each reference must be unique
            # Across quarries, duplicates are allowed
            models.UniqueConstraint(
                fields=["quarry", "reference"], name="uq_je_quarry_ref"
            ),
            # One Auto entry per source transaction: the serialization point
            # for concurrent generators
            models.UniqueConstraint(
                fields=["quarry", "source_entity_type", "source_entity_id"],
                condition=models.Q(source_entity_type__isnull=False),
                name="uq_je_quarry_source",
            ),
            models.CheckConstraint(
                condition=models.Q(total_debit__gte=0) & models.Q(total_credit__gte=0),
                name="je_non_negative_totals",
            ),
        ]
        ordering = ("entry_date", "id")

    def __str__(self):
        state = "posted" if self.is_posted else "unposted"
        return f"JE {self.reference} {self.entry_date} [{state}]"

    @property
    def is_auto(self):
        return self.entry_type == EntryType.AUTO

    # Aggregate all debit and credit amounts across entry's lines
    def compute_totals(self):
        """Return debits, credits sums for lines"""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    # True if double-entry rule holds: total debits = total credits
    def is_balanced(self):
        debit, credit = self.compute_totals()
        return abs(debit - credit) < conf.epsilon()

    def clean(self):
        # Source key is only meaningful for Auto entries, and then it is mandatory
        has_source = self.source_entity_type is not None or self.source_entity_id is not None
        if self.entry_type == EntryType.MANUAL and has_source:
            raise ValidationError("Manual entries cannot reference a source transaction.")
        if self.entry_type == EntryType.AUTO and (
            self.source_entity_type is None or self.source_entity_id is None
        ):
            raise ValidationError("Auto entries must reference their source transaction.")

        if self.entry_date and self.fiscal_year != self.entry_date.year:
            raise ValidationError("fiscal_year must match the entry date.")

    def save(self, *args, **kwargs):
        # uniqueness is left to the database constraints
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)


class JournalEntryLine(models.Model):  # Stores Lines ( credits / debits )
    """
    Each line belongs to a journal entry and to a ledger account
    of the same quarry. Exactly one of debit/credit is non-zero.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",  # default reverse name
    )

    # Must point to one account (can't delete account if lines exist → PROTECT)
    ledger_account = models.ForeignKey(
        LedgerAccount, on_delete=models.PROTECT, related_name="journal_lines"
    )

    debit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=0)
    credit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=0)
    memo = models.CharField(max_length=400, blank=True)

    line_number = models.PositiveIntegerField()  # 1-based within the entry

    # Lines are scoped through entry.quarry
    objects = JournalLineManager()

    class Meta:
        # For fast queries like "all lines for this account" /
        # "all lines in this JE."
        indexes = [
            models.Index(fields=["ledger_account"], name="jel_account_idx"),
            models.Index(fields=["entry", "line_number"], name="jel_entry_line_idx"),
        ]

        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_number"], name="uq_jel_entry_line_number"
            ),
            # Enforce debits and credits must be non-negative
            models.CheckConstraint(
                condition=(
                    models.Q(debit_amount__gte=0) &
                    models.Q(credit_amount__gte=0)
                ),
                name="jel_non_negative_amounts",
            ),
            # One side only
            models.CheckConstraint(
                condition=~(models.Q(debit_amount=0) &
                            models.Q(credit_amount=0)),
                name="jel_debit_or_credit_nonzero",
            ),
            models.CheckConstraint(
                condition=~(models.Q(debit_amount__gt=0) &
                            models.Q(credit_amount__gt=0)),
                name="jel_not_both_sides",
            ),
        ]
        ordering = ("entry", "line_number")

    # Show entry, account, and amounts in debug logs
    def __str__(self):
        ref = self.entry.reference
        acc = self.ledger_account.code
        acn = self.ledger_account.name
        return f"{ref}#{self.line_number} | {acc} {acn} | D:{self.debit_amount} C:{self.credit_amount}"

    def clean(self):
        # Ensure no negative values sneak in
        # (redundant with CheckConstraint but useful at app-level)
        if self.debit_amount < 0 or self.credit_amount < 0:
            raise ValidationError("Debit and credit must be >= 0")

        if (self.debit_amount > 0) and (self.credit_amount > 0):
            raise ValidationError(
                "JournalEntryLine should not have both debit and credit > 0"
            )
        if (self.debit_amount == 0) and (self.credit_amount == 0):
            raise ValidationError(
                "JournalEntryLine requires a non-0 amount on either debit or credit"
            )

        # Prevent cross-quarry contamination
        if (
            self.entry_id
            and self.ledger_account_id
            and self.ledger_account.quarry_id != self.entry.quarry_id
        ):
            raise ValidationError(
                "JournalEntryLine.ledger_account must belong to the entry's quarry."
            )

    def save(self, *args, **kwargs):
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)
