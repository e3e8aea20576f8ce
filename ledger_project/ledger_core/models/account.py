from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .quarry import Quarry


# Reporting category: decides Balance Sheet vs P&L placement
class AccountCategory(models.TextChoices):
    ASSETS = "Assets", "Assets"
    LIABILITIES = "Liabilities", "Liabilities"
    EQUITY = "Equity", "Equity"
    REVENUE = "Revenue", "Revenue"
    COST_OF_SALES = "CostOfSales", "Cost of Sales"
    EXPENSES = "Expenses", "Expenses"


# Categories whose balance normally increases on the debit side
DEBIT_NORMAL_CATEGORIES = frozenset({
    AccountCategory.ASSETS,
    AccountCategory.EXPENSES,
    AccountCategory.COST_OF_SALES,
})

BALANCE_SHEET_CATEGORIES = frozenset({
    AccountCategory.ASSETS,
    AccountCategory.LIABILITIES,
    AccountCategory.EQUITY,
})


def default_debit_normal(category):
    return category in DEBIT_NORMAL_CATEGORIES


class LedgerAccount(models.Model):
    """
    Ledger account in a quarry's Chart of Accounts.
    - code is a numeric string, unique per quarry
    - category: determines reporting - BS vs P&L
    - is_debit_normal: used to interpret sign when building balances
    """

    quarry = models.ForeignKey(  # Each account belongs to one quarry
        Quarry,  # All reports must filter by quarry to prevent data leaks
        on_delete=models.CASCADE,
        related_name="ledger_accounts",
    )
    # Every account has a code
    # which lets you sort/group accounts consistently in reports.
    code = models.CharField(max_length=16)
    name = models.CharField(max_length=200)  # "Cash and Cash Equivalents"

    category = models.CharField(max_length=16, choices=AccountCategory.choices)
    # Informational sub-type ("Cash", "AccountsReceivable", ...)
    account_type = models.CharField(max_length=40, blank=True)
    description = models.CharField(max_length=400, blank=True)

    # Optional hierarchy (e.g. 4000 Revenue → 4010 Revenue - Size 6)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        # you can't delete a parent if children exist
        related_name="children",
    )

    # Assets/Expenses/CostOfSales → True; Liabilities/Equity/Revenue → False.
    # Contra accounts (accumulated depreciation) flip it.
    is_debit_normal = models.BooleanField(default=True)
    # Seeded at provisioning; cannot be modified or deleted
    is_system_account = models.BooleanField(default=False)
    display_order = models.PositiveIntegerField(default=0)

    # "soft delete" accounts without deleting history
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.CharField(max_length=150, blank=True)
    modified_at = models.DateTimeField(null=True, blank=True)
    modified_by = models.CharField(max_length=150, blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [  # Optimize queries
            # For reports grouped by category
            models.Index(fields=["quarry", "category"], name="la_quarry_category_idx"),
            # For looking up accounts by code
            models.Index(fields=["quarry", "code"], name="la_quarry_code_idx"),
        ]

        """ Each quarry defines its own chart of accounts.
               Codes repeat across quarries but must be unique within one. """
        constraints = [
            models.UniqueConstraint(
                fields=["quarry", "code"], name="uq_quarry_ledger_account_code"
            )
        ]
        ordering = ("display_order", "code")

    def __str__(self):
        # Example: "north-pit:1000 – Cash and Cash Equivalents"
        return f"{self.quarry.slug}:{self.code} – {self.name}"

    @property
    def is_balance_sheet(self):
        return self.category in BALANCE_SHEET_CATEGORIES

    def signed_balance(self, debits, credits):
        """Net of debits/credits expressed on the account's normal side."""
        if self.is_debit_normal:
            return debits - credits
        return credits - debits

    def clean(self):
        if not self.code or not self.code.isdigit():
            raise ValidationError({"code": "Account code must be numeric."})

        # Check if parent account belongs to same quarry
        if self.parent_id and self.parent.quarry_id != self.quarry_id:
            raise ValidationError(
                "Parent & child accounts must belong to the same quarry"
            )

    def save(self, *args, **kwargs):
        """Enforce business immutability
        (can't disable accounts used in journal lines)"""
        if self.pk:
            # Fetch the previous version of account from DB
            old = LedgerAccount.objects.filter(pk=self.pk).first()

            # If account was active before, but now being set to inactive
            if old and old.is_active and not self.is_active:
                if self.journal_lines.exists():
                    raise ValidationError(
                        "Cannot disable an account that is used in journal lines."
                    )
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
