from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .quarry import Broker, Product, Quarry

""" Operational transactions.
    They are recorded by the quarry's daily-operations screens;
    the ledger only reads them to derive automatic journal entries. """


class PaymentStatus(models.TextChoices):
    PAID = "Paid", "Paid"
    NOT_PAID = "NotPaid", "Not paid"


# ---------- Sale ----------
class Sale(models.Model):
    quarry = models.ForeignKey(Quarry, on_delete=models.CASCADE, related_name="sales")
    sale_date = models.DateField()

    vehicle_registration = models.CharField(max_length=32)
    client_name = models.CharField(max_length=200, blank=True)
    client_phone = models.CharField(max_length=32, blank=True)

    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="sales")
    broker = models.ForeignKey(
        Broker, null=True, blank=True, on_delete=models.SET_NULL, related_name="sales"
    )

    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    price_per_unit = models.DecimalField(max_digits=12, decimal_places=2)
    commission_per_unit = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PAID
    )
    payment_mode = models.CharField(max_length=30, blank=True)  # Cash, MPESA, Bank...
    payment_reference = models.CharField(max_length=100, blank=True)
    # Set when a NotPaid sale is later settled
    payment_received_date = models.DateField(null=True, blank=True)

    clerk_name = models.CharField(max_length=150, blank=True)
    is_active = models.BooleanField(default=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["quarry", "sale_date"], name="sale_quarry_date_idx")]

    def __str__(self):
        return f"Sale {self.pk} {self.sale_date} {self.vehicle_registration}"

    @property
    def gross_amount(self):
        return (self.quantity or Decimal("0")) * (self.price_per_unit or Decimal("0"))

    @property
    def is_paid_at_sale(self):
        """Cash changed hands on the sale date itself."""
        return self.payment_status == PaymentStatus.PAID and (
            self.payment_received_date is None
            or self.payment_received_date == self.sale_date
        )

    def clean(self):
        if self.broker_id and self.broker.quarry_id != self.quarry_id:
            raise ValidationError("Sale.broker must belong to the same quarry.")
        if self.payment_received_date and self.payment_received_date < self.sale_date:
            raise ValidationError("payment_received_date cannot precede sale_date.")


# ---------- Expense ----------
class Expense(models.Model):
    quarry = models.ForeignKey(Quarry, on_delete=models.CASCADE, related_name="expenses")
    expense_date = models.DateField()
    item = models.CharField(max_length=300)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    # Free-text category mapped to an expense account ("Fuel", "Wages", ...)
    category = models.CharField(max_length=60, blank=True)
    txn_reference = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["quarry", "expense_date"], name="expense_quarry_date_idx")]

    def __str__(self):
        return f"Expense {self.pk} {self.expense_date} {self.item}"


# ---------- Banking (cash deposited to bank) ----------
class Banking(models.Model):
    quarry = models.ForeignKey(Quarry, on_delete=models.CASCADE, related_name="bankings")
    banking_date = models.DateField()
    item = models.CharField(max_length=300, blank=True)
    amount_banked = models.DecimalField(max_digits=12, decimal_places=2)
    txn_reference = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["quarry", "banking_date"], name="banking_quarry_date_idx")]

    def __str__(self):
        return f"Banking {self.pk} {self.banking_date} {self.amount_banked}"


class PrepaymentStatus(models.TextChoices):
    ACTIVE = "Active", "Active"
    PARTIALLY_USED = "PartiallyUsed", "Partially used"
    FULLY_USED = "FullyUsed", "Fully used"
    REFUNDED = "Refunded", "Refunded"


# ---------- Prepayment (customer deposit) ----------
class Prepayment(models.Model):
    quarry = models.ForeignKey(Quarry, on_delete=models.CASCADE, related_name="prepayments")
    prepayment_date = models.DateField()
    vehicle_registration = models.CharField(max_length=32, blank=True)
    client_name = models.CharField(max_length=200, blank=True)
    total_amount_paid = models.DecimalField(max_digits=12, decimal_places=2)
    amount_used = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    payment_mode = models.CharField(max_length=30, blank=True)
    payment_reference = models.CharField(max_length=100, blank=True)
    status = models.CharField(
        max_length=20, choices=PrepaymentStatus.choices, default=PrepaymentStatus.ACTIVE
    )
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["quarry", "prepayment_date"], name="prepay_quarry_date_idx")]

    def __str__(self):
        return f"Prepayment {self.pk} {self.prepayment_date} {self.client_name}"

    @property
    def remaining_balance(self):
        return self.total_amount_paid - self.amount_used
