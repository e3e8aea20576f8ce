from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from ledger_core.models import (AccountingPeriod, JournalEntry,
                                LedgerAccount, Quarry)
from ledger_core.services.chart import DEFAULT_CHART
from ledger_core.tasks import regenerate_journal_entries

from .factories import D, make_expense, make_quarry, make_sale


class RegenerationTaskTests(TestCase):

    def setUp(self):
        self.quarry = make_quarry()
        make_sale(self.quarry, D(2025, 7, 2))
        make_expense(self.quarry, D(2025, 7, 4), "100")

    def test_task_returns_counts(self):
        # .apply() runs the task in-process, like a worker would
        result = regenerate_journal_entries.apply(
            args=(self.quarry.pk, "2025-07-01", "2025-07-31")
        ).get()

        self.assertDictEqual(result, {
            "created": {"Sale": 1, "Expense": 1},
            "skipped": {},
        })
        self.assertEqual(JournalEntry.objects.for_quarry(self.quarry).count(), 2)

    def test_task_is_rerunnable(self):
        regenerate_journal_entries(self.quarry.pk, "2025-07-01", "2025-07-31")
        result = regenerate_journal_entries(self.quarry.pk, "2025-07-01", "2025-07-31")
        self.assertDictEqual(result["created"], {})


class ManagementCommandTests(TestCase):

    def test_provision_quarry(self):
        out = StringIO()
        call_command("provision_quarry", "East Pit", "--fiscal-year", "2025",
                     "--loaders-fee", "5", stdout=out)

        quarry = Quarry.objects.get(slug="east-pit")
        self.assertEqual(quarry.loaders_fee, Decimal("5"))
        self.assertEqual(LedgerAccount.objects.for_quarry(quarry).count(), len(DEFAULT_CHART))
        self.assertEqual(AccountingPeriod.objects.for_quarry(quarry).count(), 12)
        self.assertIn("Created quarry", out.getvalue())

        # second run reuses the quarry and creates nothing new
        out = StringIO()
        call_command("provision_quarry", "East Pit", "--fiscal-year", "2025", stdout=out)
        self.assertIn("Seeded 0 ledger accounts", out.getvalue())

    def test_regenerate_entries(self):
        quarry = make_quarry()
        make_sale(quarry, D(2025, 7, 2))
        out = StringIO()
        call_command("regenerate_entries", quarry.slug, "2025-07-01", "2025-07-31", stdout=out)

        self.assertEqual(JournalEntry.objects.for_quarry(quarry).count(), 1)
        self.assertIn("1 entries created", out.getvalue())

    def test_regenerate_entries_unknown_quarry(self):
        with self.assertRaises(CommandError):
            call_command("regenerate_entries", "nowhere", "2025-07-01", "2025-07-31")

    def test_migrations_match_models(self):
        # --check exits non-zero when the models drift from the migrations
        out = StringIO()
        call_command("makemigrations", "ledger_core", "--check", "--dry-run", stdout=out)
        self.assertIn("No changes detected", out.getvalue())
