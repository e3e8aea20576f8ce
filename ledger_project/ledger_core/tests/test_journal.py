from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase

from ledger_core.exceptions import (AlreadyPostedError, ConflictError,
                                    ForbiddenOperation, NotFoundError,
                                    PeriodClosedError, UnbalancedJournalError)
from ledger_core.models import EntryType, JournalEntry, JournalEntryLine
from ledger_core.services import journals
from ledger_core.services.accounts import get_account_by_code
from ledger_core.services.auto_entries import generate_for_sale
from ledger_core.services.periods import (close_period, period_for_date,
                                          provision_fiscal_year, reopen_period)
from ledger_core.services.sequences import format_reference

from .factories import D, make_quarry, make_sale

""" Success tests """
class ManualEntryTests(TestCase):

    def setUp(self):
        self.quarry = make_quarry()
        self.cash = get_account_by_code(self.quarry, "1000")
        self.bank = get_account_by_code(self.quarry, "1010")
        self.fuel = get_account_by_code(self.quarry, "6000")

    def _entry(self, amount="100", day=D(2025, 7, 15)):
        return journals.create_manual_entry(self.quarry, day, "Fuel top-up", [
            {"account": self.fuel, "debit": amount, "memo": "Diesel"},
            {"account": self.cash.pk, "credit": amount},
        ], "alice")

    def test_create_balanced_entry(self):
        entry = self._entry()

        self.assertEqual(entry.reference, "ADJ-2025-00001")
        self.assertEqual(entry.entry_type, EntryType.MANUAL)
        self.assertFalse(entry.is_posted)
        self.assertEqual(entry.total_debit, Decimal("100.00"))
        self.assertEqual(entry.total_credit, Decimal("100.00"))
        self.assertEqual(entry.fiscal_year, 2025)
        self.assertEqual(entry.fiscal_period, 7)
        self.assertTrue(entry.is_balanced())
        # lines numbered in the order given
        self.assertListEqual(
            list(entry.lines.values_list("line_number", "ledger_account__code")),
            [(1, "6000"), (2, "1000")],
        )

    def test_references_are_sequential_per_year(self):
        first = self._entry()
        second = self._entry()
        next_year = self._entry(day=D(2026, 1, 2))

        self.assertEqual(second.reference, "ADJ-2025-00002")
        self.assertNotEqual(first.reference, second.reference)
        self.assertEqual(next_year.reference, "ADJ-2026-00001")
        self.assertEqual(format_reference("SL", 2025, 42), "SL-2025-00042")

    def test_amounts_rounded_to_cents(self):
        entry = journals.create_manual_entry(self.quarry, D(2025, 7, 1), "Rounding", [
            {"account": self.fuel, "debit": "10.005"},
            {"account": self.cash, "credit": "10.01"},
        ], "alice")
        self.assertEqual(entry.total_debit, Decimal("10.01"))

    def test_post_then_unpost(self):
        entry = self._entry()
        journals.post_entry(entry.pk, "bob")
        entry.refresh_from_db()
        self.assertTrue(entry.is_posted)
        self.assertEqual(entry.posted_by, "bob")
        self.assertIsNotNone(entry.posted_date)

        journals.unpost_entry(entry.pk, "bob")
        entry.refresh_from_db()
        self.assertFalse(entry.is_posted)
        self.assertIsNone(entry.posted_date)

    def test_update_replaces_lines(self):
        entry = self._entry()
        journals.update_manual_entry(entry.pk, [
            journals.LineDraft(self.bank, debit=Decimal("40")),
            journals.LineDraft(self.cash, credit=Decimal("40")),
        ], "bob", description="Deposit")

        entry.refresh_from_db()
        self.assertEqual(entry.description, "Deposit")
        self.assertEqual(entry.total_debit, Decimal("40.00"))
        self.assertEqual(entry.lines.count(), 2)
        self.assertFalse(entry.lines.filter(ledger_account=self.fuel).exists())

    def test_update_into_next_year_takes_new_reference(self):
        entry = self._entry()
        self.assertEqual(entry.reference, "ADJ-2025-00001")
        journals.update_manual_entry(entry.pk, [
            journals.LineDraft(self.fuel, debit=Decimal("100")),
            journals.LineDraft(self.cash, credit=Decimal("100")),
        ], "bob", entry_date=D(2026, 1, 3))

        entry.refresh_from_db()
        self.assertEqual(entry.fiscal_year, 2026)
        self.assertEqual(entry.reference, "ADJ-2026-00001")

        # same-year date changes keep the reference
        journals.update_manual_entry(entry.pk, [
            journals.LineDraft(self.fuel, debit=Decimal("100")),
            journals.LineDraft(self.cash, credit=Decimal("100")),
        ], "bob", entry_date=D(2026, 2, 1))
        entry.refresh_from_db()
        self.assertEqual(entry.reference, "ADJ-2026-00001")

    def test_delete_is_soft(self):
        entry = self._entry()
        journals.delete_manual_entry(entry.pk, "alice")

        self.assertTrue(JournalEntry.objects.filter(pk=entry.pk, is_active=False).exists())
        with self.assertRaises(NotFoundError):
            journals.get_entry(entry.pk)
        self.assertListEqual(journals.list_entries(self.quarry, D(2025, 1, 1), D(2025, 12, 31)), [])

    def test_list_entries_newest_first(self):
        older = self._entry(day=D(2025, 7, 1))
        newer = self._entry(day=D(2025, 7, 20))
        listed = journals.list_entries(self.quarry, D(2025, 7, 1), D(2025, 7, 31))
        self.assertListEqual([e.pk for e in listed], [newer.pk, older.pk])


""" Failure tests """
class ManualEntryFailureTests(TestCase):

    def setUp(self):
        self.quarry = make_quarry()
        self.other = make_quarry(name="South Pit")
        self.cash = get_account_by_code(self.quarry, "1000")
        self.fuel = get_account_by_code(self.quarry, "6000")
        self.entry = journals.create_manual_entry(self.quarry, D(2025, 7, 15), "Fuel", [
            {"account": self.fuel, "debit": "100"},
            {"account": self.cash, "credit": "100"},
        ], "alice")

    def test_unbalanced_entry_writes_nothing(self):
        before = JournalEntry.objects.count()
        with self.assertRaises(UnbalancedJournalError):
            journals.create_manual_entry(self.quarry, D(2025, 7, 15), "Bad", [
                {"account": self.fuel, "debit": "100"},
                {"account": self.cash, "credit": "90"},
            ], "alice")
        self.assertEqual(JournalEntry.objects.count(), before)

    def test_empty_lines_rejected(self):
        with self.assertRaises(ValidationError):
            journals.create_manual_entry(self.quarry, D(2025, 7, 15), "Empty", [], "alice")

    def test_line_with_both_sides_rejected(self):
        with self.assertRaises(ValidationError):
            journals.create_manual_entry(self.quarry, D(2025, 7, 15), "Both", [
                {"account": self.fuel, "debit": "50", "credit": "50"},
            ], "alice")

    def test_zero_line_rejected(self):
        with self.assertRaises(ValidationError):
            journals.create_manual_entry(self.quarry, D(2025, 7, 15), "Zero", [
                {"account": self.fuel, "debit": "0"},
                {"account": self.cash, "credit": "0"},
            ], "alice")

    def test_foreign_account_not_found(self):
        foreign_cash = get_account_by_code(self.other, "1000")
        with self.assertRaises(NotFoundError):
            journals.create_manual_entry(self.quarry, D(2025, 7, 15), "Leak", [
                {"account": self.fuel, "debit": "10"},
                {"account": foreign_cash, "credit": "10"},
            ], "alice")

    def test_posted_entry_cannot_be_edited_or_deleted(self):
        journals.post_entry(self.entry.pk, "bob")
        lines = [{"account": self.fuel, "debit": "5"}, {"account": self.cash, "credit": "5"}]

        with self.assertRaises(AlreadyPostedError):
            journals.update_manual_entry(self.entry.pk, lines, "bob")
        with self.assertRaises(AlreadyPostedError):
            journals.delete_manual_entry(self.entry.pk, "bob")

    def test_double_post_conflicts(self):
        journals.post_entry(self.entry.pk, "bob")
        with self.assertRaises(ConflictError):
            journals.post_entry(self.entry.pk, "bob")

    def test_unpost_unposted_conflicts(self):
        with self.assertRaises(ConflictError):
            journals.unpost_entry(self.entry.pk, "bob")

    def test_auto_entry_cannot_be_edited_or_deleted(self):
        sale = make_sale(self.quarry, D(2025, 7, 15))
        auto = generate_for_sale(sale)
        lines = [{"account": self.fuel, "debit": "5"}, {"account": self.cash, "credit": "5"}]

        with self.assertRaises(ForbiddenOperation):
            journals.update_manual_entry(auto.pk, lines, "bob")
        with self.assertRaises(ForbiddenOperation):
            journals.delete_manual_entry(auto.pk, "bob")

    def test_line_constraint_enforced_by_database(self):
        # Bypass model validation and hit the CheckConstraint directly
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                JournalEntryLine.objects.bulk_create([
                    JournalEntryLine(entry=self.entry, ledger_account=self.cash,
                                     debit_amount=Decimal("-1"), credit_amount=0,
                                     line_number=9),
                ])


class ClosedPeriodTests(TestCase):

    def setUp(self):
        self.quarry = make_quarry()
        provision_fiscal_year(self.quarry, 2025)
        self.july = period_for_date(self.quarry, D(2025, 7, 15))
        cash = get_account_by_code(self.quarry, "1000")
        fuel = get_account_by_code(self.quarry, "6000")
        self.entry = journals.create_manual_entry(self.quarry, D(2025, 7, 15), "Fuel", [
            {"account": fuel, "debit": "100"},
            {"account": cash, "credit": "100"},
        ], "alice")
        journals.post_entry(self.entry.pk, "alice")

    def test_unpost_blocked_until_period_reopened(self):
        close_period(self.july.pk, "controller", notes="Month end")

        with self.assertRaises(PeriodClosedError):
            journals.unpost_entry(self.entry.pk, "alice")
        self.entry.refresh_from_db()
        self.assertTrue(self.entry.is_posted)

        reopen_period(self.july.pk, "controller")
        journals.unpost_entry(self.entry.pk, "alice")
        self.entry.refresh_from_db()
        self.assertFalse(self.entry.is_posted)

    def test_posting_into_closed_period_is_allowed(self):
        journals.unpost_entry(self.entry.pk, "alice")
        close_period(self.july.pk, "controller")

        journals.post_entry(self.entry.pk, "alice")
        self.entry.refresh_from_db()
        self.assertTrue(self.entry.is_posted)
