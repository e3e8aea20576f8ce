from decimal import Decimal

from django.test import TestCase, override_settings

from ledger_core.exceptions import (EntryValidationFailed,
                                    MissingAccountError,
                                    UnbalancedJournalError)
from ledger_core.models import (EntryType, JournalEntry, LedgerAccount,
                                SourceKind)
from ledger_core.services import auto_entries
from ledger_core.services.accounts import get_account_by_code
from ledger_core.services.journals import LineDraft

from .factories import (D, make_banking, make_broker, make_expense,
                        make_prepayment, make_quarry, make_sale)


def _lines(entry):
    """[(code, debit, credit)] in line order."""
    return [
        (line.ledger_account.code, line.debit_amount, line.credit_amount)
        for line in entry.lines.select_related("ledger_account").order_by("line_number")
    ]


class GenerateEntryTests(TestCase):

    def setUp(self):
        self.quarry = make_quarry()

    def test_paid_sale_debits_cash(self):
        sale = make_sale(self.quarry, D(2025, 7, 15), quantity="10", price="50")
        entry = auto_entries.generate_for_sale(sale)

        self.assertEqual(entry.entry_type, EntryType.AUTO)
        self.assertTrue(entry.is_posted)
        self.assertEqual(entry.posted_by, auto_entries.SYSTEM_ACTOR)
        self.assertEqual(entry.reference, "SL-2025-00001")
        self.assertEqual(entry.source_entity_type, SourceKind.SALE)
        self.assertEqual(entry.source_entity_id, sale.pk)
        self.assertEqual(entry.description, "Sale - KAA 123A - Size 6 x 10")
        self.assertListEqual(_lines(entry), [
            ("1000", Decimal("500.00"), Decimal("0.00")),
            ("4010", Decimal("0.00"), Decimal("500.00")),
        ])

    def test_description_keeps_fractional_quantity(self):
        sale = make_sale(self.quarry, D(2025, 7, 15), quantity="2.5", price="100")
        sale.refresh_from_db()
        entry = auto_entries.generate_for_sale(sale)

        self.assertEqual(entry.description, "Sale - KAA 123A - Size 6 x 2.5")
        self.assertEqual(entry.total_debit, Decimal("250.00"))

    def test_unmapped_product_credits_general_revenue(self):
        sale = make_sale(self.quarry, D(2025, 7, 15), product_name="Ballast")
        entry = auto_entries.generate_for_sale(sale)

        self.assertListEqual(_lines(entry), [
            ("1000", Decimal("500.00"), Decimal("0.00")),
            ("4000", Decimal("0.00"), Decimal("500.00")),
        ])
        self.assertEqual(entry.total_debit, entry.total_credit)

    def test_unpaid_sale_debits_receivable(self):
        sale = make_sale(self.quarry, D(2025, 7, 15), paid=False)
        entry = auto_entries.generate_for_sale(sale)
        self.assertEqual(_lines(entry)[0][0], "1100")

    def test_late_payment_books_receivable_then_collection(self):
        sale = make_sale(self.quarry, D(2025, 7, 15), received=D(2025, 7, 20))
        sale_entry = auto_entries.generate_for_sale(sale)
        collection = auto_entries.generate_for_collection(sale)

        self.assertEqual(_lines(sale_entry)[0][0], "1100")
        self.assertEqual(collection.entry_date, D(2025, 7, 20))
        self.assertEqual(collection.reference, "CL-2025-00001")
        self.assertListEqual(_lines(collection), [
            ("1000", Decimal("500.00"), Decimal("0.00")),
            ("1100", Decimal("0.00"), Decimal("500.00")),
        ])

    def test_no_collection_for_same_day_payment(self):
        sale = make_sale(self.quarry, D(2025, 7, 15), received=D(2025, 7, 15))
        self.assertIsNone(auto_entries.generate_for_collection(sale))

    def test_sale_accrues_commission_and_fees(self):
        self.quarry.loaders_fee = Decimal("5")
        self.quarry.land_rate_fee = Decimal("3")
        self.quarry.rejects_fee = Decimal("1")
        self.quarry.save()
        broker = make_broker(self.quarry)
        sale = make_sale(self.quarry, D(2025, 7, 15), quantity="10", price="50",
                         broker=broker, commission="2", product_name="Reject")

        entry = auto_entries.generate_for_sale(sale)

        self.assertListEqual(_lines(entry), [
            ("1000", Decimal("500.00"), Decimal("0.00")),
            ("4040", Decimal("0.00"), Decimal("500.00")),
            ("5000", Decimal("20.00"), Decimal("0.00")),
            ("2100", Decimal("0.00"), Decimal("20.00")),
            ("5100", Decimal("50.00"), Decimal("0.00")),
            ("2100", Decimal("0.00"), Decimal("50.00")),
            # rejects are charged at the rejects rate
            ("5200", Decimal("10.00"), Decimal("0.00")),
            ("2100", Decimal("0.00"), Decimal("10.00")),
        ])
        self.assertEqual(entry.total_debit, Decimal("580.00"))

    def test_expense_banking_prepayment(self):
        expense = auto_entries.generate_for_expense(
            make_expense(self.quarry, D(2025, 7, 3), "120", category="Fuel"))
        banking = auto_entries.generate_for_banking(
            make_banking(self.quarry, D(2025, 7, 4), "300"))
        prepayment = auto_entries.generate_for_prepayment(
            make_prepayment(self.quarry, D(2025, 7, 5), "1000"))

        self.assertListEqual(_lines(expense), [
            ("6000", Decimal("120.00"), Decimal("0.00")),
            ("1000", Decimal("0.00"), Decimal("120.00")),
        ])
        self.assertEqual(expense.reference, "EX-2025-00001")
        self.assertListEqual(_lines(banking), [
            ("1010", Decimal("300.00"), Decimal("0.00")),
            ("1000", Decimal("0.00"), Decimal("300.00")),
        ])
        self.assertEqual(banking.description, "Bank Deposit - DEP-1")
        self.assertListEqual(_lines(prepayment), [
            ("1000", Decimal("1000.00"), Decimal("0.00")),
            ("2000", Decimal("0.00"), Decimal("1000.00")),
        ])

    def test_unknown_expense_category_goes_to_other_expenses(self):
        entry = auto_entries.generate_for_expense(
            make_expense(self.quarry, D(2025, 7, 3), "15", category="Snacks"))
        self.assertEqual(_lines(entry)[0][0], "6900")

    def test_custom_lookup(self):
        entry = auto_entries.generate_for_sale(
            make_sale(self.quarry, D(2025, 7, 15)),
            revenue_code_lookup=lambda name: "4500",
        )
        self.assertEqual(_lines(entry)[1][0], "4500")

    def test_generation_is_idempotent(self):
        sale = make_sale(self.quarry, D(2025, 7, 15))
        first = auto_entries.generate_for_sale(sale)
        second = auto_entries.generate_for_sale(sale)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(
            JournalEntry.objects.for_quarry(self.quarry)
            .filter(source_entity_type=SourceKind.SALE, source_entity_id=sale.pk)
            .count(),
            1,
        )

    def test_missing_account_fails_validation(self):
        cash = get_account_by_code(self.quarry, "1000")
        LedgerAccount.objects.filter(pk=cash.pk).update(is_active=False)
        sale = make_sale(self.quarry, D(2025, 7, 15))

        with self.assertRaises(MissingAccountError) as ctx:
            auto_entries.generate_for_sale(sale)
        self.assertEqual(ctx.exception.code, "1000")
        self.assertFalse(JournalEntry.objects.for_quarry(self.quarry).exists())

    def test_non_positive_amount_fails_validation(self):
        expense = make_expense(self.quarry, D(2025, 7, 3), "0")
        with self.assertRaises(EntryValidationFailed):
            auto_entries.generate_for_expense(expense)

    def test_unbalanced_draft_is_rejected(self):
        cash = get_account_by_code(self.quarry, "1000")
        source = auto_entries.SaleSource(
            1, D(2025, 7, 1), "KAA", "Size 6", Decimal("1"), Decimal("1"), Decimal("0"), True
        )
        with self.assertRaises(UnbalancedJournalError):
            auto_entries._draft(source, D(2025, 7, 1), "Broken",
                                [LineDraft(cash, debit=Decimal("1"))])


class RegenerateAllTests(TestCase):

    def setUp(self):
        self.quarry = make_quarry()
        self.other = make_quarry(name="South Pit")
        self.start, self.end = D(2025, 7, 1), D(2025, 7, 31)

        make_sale(self.quarry, D(2025, 7, 2))
        self.late = make_sale(self.quarry, D(2025, 7, 3), paid=False, vehicle="KCC 789C")
        make_expense(self.quarry, D(2025, 7, 4), "100")
        make_banking(self.quarry, D(2025, 7, 5), "200")
        make_prepayment(self.quarry, D(2025, 7, 6), "300")
        # outside the range / another quarry
        make_sale(self.quarry, D(2025, 8, 1))
        make_sale(self.other, D(2025, 7, 2))

    def test_regenerate_creates_each_entry_once(self):
        result = auto_entries.regenerate_all(self.quarry, self.start, self.end)

        self.assertEqual(result.created[SourceKind.SALE], 2)
        self.assertEqual(result.created[SourceKind.EXPENSE], 1)
        self.assertEqual(result.created[SourceKind.BANKING], 1)
        self.assertEqual(result.created[SourceKind.PREPAYMENT], 1)
        self.assertEqual(result.total_created, 5)
        self.assertFalse(JournalEntry.objects.for_quarry(self.other).exists())

        again = auto_entries.regenerate_all(self.quarry, self.start, self.end)
        self.assertEqual(again.total_created, 0)
        self.assertEqual(JournalEntry.objects.for_quarry(self.quarry).count(), 5)

    def test_collection_created_once_after_payment(self):
        auto_entries.regenerate_all(self.quarry, self.start, self.end)

        # the unpaid sale is settled later in the month
        self.late.payment_status = "Paid"
        self.late.payment_received_date = D(2025, 7, 25)
        self.late.save()

        first = auto_entries.regenerate_all(self.quarry, self.start, self.end)
        second = auto_entries.regenerate_all(self.quarry, self.start, self.end)

        self.assertEqual(first.created[SourceKind.COLLECTION], 1)
        self.assertEqual(second.total_created, 0)
        self.assertEqual(
            JournalEntry.objects.for_quarry(self.quarry)
            .filter(source_entity_type=SourceKind.COLLECTION, source_entity_id=self.late.pk)
            .count(),
            1,
        )

    @override_settings(LEDGER_REGENERATION_BATCH_SIZE=2)
    def test_small_batches(self):
        result = auto_entries.regenerate_all(self.quarry, self.start, self.end)
        self.assertEqual(result.total_created, 5)

    def test_invalid_transactions_are_skipped(self):
        make_expense(self.quarry, D(2025, 7, 10), "0", item="Nothing")
        result = auto_entries.regenerate_all(self.quarry, self.start, self.end)

        self.assertEqual(result.skipped[SourceKind.EXPENSE], 1)
        self.assertEqual(result.total_created, 5)
        self.assertDictEqual(result.as_dict()["skipped"], {"Expense": 1})
