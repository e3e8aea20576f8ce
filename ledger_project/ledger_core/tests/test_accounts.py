from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db.models.deletion import ProtectedError
from django.test import TestCase

from ledger_core.exceptions import (ConflictError, ForbiddenOperation,
                                    NotFoundError)
from ledger_core.models import AccountCategory, AuditLog, LedgerAccount
from ledger_core.services import accounts, chart
from ledger_core.services.journals import create_manual_entry

from .factories import D, make_quarry


class ChartSeedingTests(TestCase):

    def setUp(self):
        self.quarry = make_quarry(with_chart=False)

    def test_seed_creates_standard_chart(self):
        created = chart.seed_chart_of_accounts(self.quarry)

        self.assertEqual(created, len(chart.DEFAULT_CHART))
        codes = [a.code for a in accounts.get_chart_of_accounts(self.quarry)]
        self.assertIn(chart.CASH, codes)
        self.assertIn(chart.ACCRUED_PAYABLE, codes)
        # every seeded account is a system account
        self.assertFalse(
            LedgerAccount.objects.for_quarry(self.quarry).filter(is_system_account=False).exists()
        )

    def test_seed_is_idempotent(self):
        chart.seed_chart_of_accounts(self.quarry)
        self.assertEqual(chart.seed_chart_of_accounts(self.quarry), 0)
        self.assertEqual(
            LedgerAccount.objects.for_quarry(self.quarry).count(), len(chart.DEFAULT_CHART)
        )

    def test_accumulated_depreciation_is_credit_normal(self):
        chart.seed_chart_of_accounts(self.quarry)
        contra = accounts.get_account_by_code(self.quarry, "1510")
        self.assertEqual(contra.category, AccountCategory.ASSETS)
        self.assertFalse(contra.is_debit_normal)

    def test_mapping_falls_back_for_unknown_names(self):
        self.assertEqual(chart.product_revenue_code("SIZE 9"), "4020")
        self.assertEqual(chart.product_revenue_code("Gravel"), chart.REVENUE)
        self.assertEqual(chart.expense_account_code("Fuel"), "6000")
        self.assertEqual(chart.expense_account_code("Snacks"), chart.OTHER_EXPENSES)
        self.assertEqual(chart.expense_account_code(None), chart.OTHER_EXPENSES)


class AccountServiceTests(TestCase):

    def setUp(self):
        self.quarry = make_quarry()
        self.other = make_quarry(name="South Pit")

    def test_create_account_defaults_normal_side_from_category(self):
        account = accounts.create_account(
            self.quarry, "4090", "Revenue - Ballast", AccountCategory.REVENUE, "alice"
        )
        self.assertFalse(account.is_debit_normal)
        self.assertFalse(account.is_system_account)
        self.assertTrue(
            AuditLog.objects.for_quarry(self.quarry)
            .filter(action="create", object_type="LedgerAccount", actor="alice")
            .exists()
        )

    def test_duplicate_code_conflicts(self):
        with self.assertRaises(ConflictError):
            accounts.create_account(self.quarry, chart.CASH, "Petty Cash",
                                    AccountCategory.ASSETS, "alice")

    def test_same_code_allowed_in_another_quarry(self):
        accounts.create_account(self.quarry, "7000", "Misc", AccountCategory.EXPENSES, "alice")
        account = accounts.create_account(self.other, "7000", "Misc", AccountCategory.EXPENSES, "bob")
        self.assertEqual(account.quarry, self.other)

    def test_non_numeric_code_rejected(self):
        with self.assertRaises(ValidationError):
            accounts.create_account(self.quarry, "CASH2", "Cash 2",
                                    AccountCategory.ASSETS, "alice")

    def test_system_account_is_read_only(self):
        cash = accounts.get_account_by_code(self.quarry, chart.CASH)
        with self.assertRaises(ForbiddenOperation):
            accounts.update_account(cash.pk, "alice", name="Money")
        with self.assertRaises(ForbiddenOperation):
            accounts.soft_delete_account(cash.pk, "alice")
        with self.assertRaises(ValidationError):
            cash.delete()

    def test_update_descriptive_fields(self):
        account = accounts.create_account(self.quarry, "7000", "Misc", AccountCategory.EXPENSES, "alice")
        updated = accounts.update_account(account.pk, "bob", name="Sundry", display_order=99)

        self.assertEqual(updated.name, "Sundry")
        self.assertEqual(updated.display_order, 99)
        self.assertEqual(updated.modified_by, "bob")

    def test_soft_delete_unused_account(self):
        account = accounts.create_account(self.quarry, "7000", "Misc", AccountCategory.EXPENSES, "alice")
        accounts.soft_delete_account(account.pk, "alice")

        account.refresh_from_db()
        self.assertFalse(account.is_active)
        with self.assertRaises(NotFoundError):
            accounts.get_account(account.pk)
        self.assertNotIn(account, accounts.get_chart_of_accounts(self.quarry))

    def test_account_with_lines_cannot_be_deleted(self):
        account = accounts.create_account(self.quarry, "7000", "Misc", AccountCategory.EXPENSES, "alice")
        cash = accounts.get_account_by_code(self.quarry, chart.CASH)
        # Unposted lines count too
        create_manual_entry(self.quarry, D(2025, 7, 1), "Misc spend", [
            {"account": account, "debit": "25"},
            {"account": cash, "credit": "25"},
        ], "alice")

        with self.assertRaises(ConflictError):
            accounts.soft_delete_account(account.pk, "alice")
        # PROTECT on the line FK stops hard deletes as well
        with self.assertRaises(ProtectedError):
            account.delete()

    def test_lookup_is_tenant_scoped(self):
        with self.assertRaises(NotFoundError):
            accounts.get_account_by_code(self.other, "9999")


@pytest.mark.django_db
def test_signed_balance_follows_normal_side():
    quarry = make_quarry()
    cash = accounts.get_account_by_code(quarry, chart.CASH)
    revenue = accounts.get_account_by_code(quarry, chart.REVENUE)

    assert cash.signed_balance(Decimal("100"), Decimal("30")) == Decimal("70")
    assert revenue.signed_balance(Decimal("100"), Decimal("30")) == Decimal("-70")
