import argparse
import datetime

from django.core.management.base import BaseCommand, CommandError

from ledger_core.exceptions import LedgerError
from ledger_core.models import Quarry
from ledger_core.services.auto_entries import regenerate_all


def _iso_date(value):
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD")


class Command(BaseCommand):
    help = "Generate missing automatic journal entries for a quarry and date range."

    def add_arguments(self, parser):
        parser.add_argument("quarry", help="Quarry slug.")
        parser.add_argument("date_from", type=_iso_date)
        parser.add_argument("date_to", type=_iso_date)
        parser.add_argument(
            "--batch-size", type=int, default=None,
            help="Entries per transaction (default: LEDGER_REGENERATION_BATCH_SIZE).",
        )

    def handle(self, *args, **options):
        try:
            quarry = Quarry.objects.get(slug=options["quarry"])
        except Quarry.DoesNotExist:
            raise CommandError(f"Quarry {options['quarry']!r} does not exist")

        if options["date_from"] > options["date_to"]:
            raise CommandError("date_from must not be after date_to")

        self.stdout.write(self.style.NOTICE(
            f"Regenerating entries for {quarry} "
            f"{options['date_from']}..{options['date_to']}..."))
        try:
            result = regenerate_all(
                quarry, options["date_from"], options["date_to"],
                batch_size=options["batch_size"],
            )
        except LedgerError as exc:
            raise CommandError(str(exc))

        for kind, count in sorted(result.created.items()):
            self.stdout.write(f"  {kind}: {count} created")
        for kind, count in sorted(result.skipped.items()):
            self.stdout.write(self.style.WARNING(f"  {kind}: {count} skipped"))
        self.stdout.write(self.style.SUCCESS(
            f"Done: {result.total_created} entries created"))
