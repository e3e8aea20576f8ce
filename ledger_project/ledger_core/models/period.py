from django.db import models        # ORM base classes to define database tables as Python classes
from .quarry import Quarry
from ..managers import TenantManager
from django.core.exceptions import ValidationError  # Built-in way to raise validation errors


class PeriodType(models.TextChoices):
    MONTHLY = "Monthly", "Monthly"
    QUARTERLY = "Quarterly", "Quarterly"
    ANNUAL = "Annual", "Annual"


# ---------- AccountingPeriod (fiscal period) ----------
class AccountingPeriod(models.Model): # A time bucket that can be locked against unposting

    # Every quarry has its own independent calendar of periods
    quarry = models.ForeignKey(Quarry,
                               on_delete=models.CASCADE,
                               related_name="accounting_periods",
                               )
    """
        Tenant isolation:
        "North Pit" can close July while "South Pit" is still open.
    """

    # Human-readable label for the period
    name = models.CharField(max_length=50)  # Example: "July 2025"
    fiscal_year = models.PositiveIntegerField()
    period_number = models.PositiveSmallIntegerField()  # 1..12 for monthly periods
    period_type = models.CharField(max_length=20,
                                   choices=PeriodType.choices,
                                   default=PeriodType.MONTHLY)

    # Inclusive date range of the accounting period
    start_date = models.DateField()
    end_date = models.DateField()

    # Indicate whether the books for this period are closed
    is_closed = models.BooleanField(default=False)
    """
        When is_closed=True:
            Entries dated inside the period can no longer be unposted.
            Posting (late Auto entries) is still accepted.
    """
    closed_by = models.CharField(max_length=150, blank=True)
    closed_date = models.DateTimeField(null=True, blank=True)
    closing_notes = models.TextField(blank=True)

    is_active = models.BooleanField(default=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:

        # for filtering open periods
        indexes = [
                    models.Index(fields=["quarry", "start_date"], name="period_quarry_start_idx"),
                    models.Index(fields=["quarry", "is_closed"], name="period_quarry_closed_idx"),
                ]

        # Prevent duplicate period numbers inside the same fiscal year
        constraints = [
          models.UniqueConstraint(fields=["quarry", "fiscal_year", "period_number"],
                                  name="uq_quarry_period_number"),
      ]

        # Default query ordering: chronologically
        ordering = ("quarry", "start_date") # no need to sort manually

    def __str__(self):
        return f"{self.quarry.slug} {self.name}" # Example: "north-pit July 2025".

    def contains(self, day):
        return self.start_date <= day <= self.end_date

    def clean(self):
        if self.start_date > self.end_date:
            raise ValidationError("start_date must not be after end_date")

        # Two active periods of the same quarry may never share a day
        overlapping = AccountingPeriod.objects.filter(
            quarry_id=self.quarry_id,
            is_active=True,
            start_date__lte=self.end_date,
            end_date__gte=self.start_date,
        )
        if self.pk:
            overlapping = overlapping.exclude(pk=self.pk)
        if self.is_active and overlapping.exists():
            raise ValidationError(
                f"Period {self.start_date}..{self.end_date} overlaps an existing period"
            )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
