from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager


# ---------- Tenant / Quarry ----------
class Quarry(models.Model):

    """Tenant: one quarry site with its own books"""
    # Store quarry's full display name
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two quarries can have the same slug
    )
    location = models.CharField(max_length=200, blank=True)

    # Per-unit fee rates seeded at provisioning and consumed by
    # automatic sale entries (None or 0 → fee not charged)
    loaders_fee = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True)
    land_rate_fee = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True)
    # Replaces land_rate_fee on "reject" product lines
    rejects_fee = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True)

    is_active = models.BooleanField(default=True)
    # Store timestamp when the record is first created
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "quarries"

    def __str__(self):
        return self.name

    def clean(self):
        for field in ("loaders_fee", "land_rate_fee", "rejects_fee"):
            value = getattr(self, field)
            if value is not None and value < 0:
                raise ValidationError({field: "Fee rates cannot be negative."})

    def land_rate_for(self, product_name):
        """Per-unit land rate for a product line (rejects use their own rate)."""
        if product_name and "reject" in product_name.lower():
            return self.rejects_fee or Decimal("0")
        return self.land_rate_fee or Decimal("0")


# ---------- Product ----------
class Product(models.Model):
    # Products are shared across quarries (prices are not part of the ledger)
    name = models.CharField(max_length=100, unique=True)
    description = models.CharField(max_length=400, blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


# ---------- Broker ----------
class Broker(models.Model):
    # Sales agent earning a per-unit commission
    quarry = models.ForeignKey(Quarry, on_delete=models.CASCADE, related_name="brokers")
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32, blank=True)
    is_active = models.BooleanField(default=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["quarry", "name"], name="broker_quarry_name_idx")]

    def __str__(self):
        return f"{self.quarry.slug}: {self.name}"
