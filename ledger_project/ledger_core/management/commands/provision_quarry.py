import datetime
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils.text import slugify

from ledger_core.models import Quarry
from ledger_core.services.chart import seed_chart_of_accounts
from ledger_core.services.periods import provision_fiscal_year


class Command(BaseCommand):
    help = (
        "Create a quarry (or reuse one by slug), seed its chart of accounts "
        "and open the monthly periods of a fiscal year."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument("name", help="Display name of the quarry.")
        parser.add_argument(
            "--slug", default=None, help="Slug (defaults to the slugified name)."
        )
        parser.add_argument("--location", default="")
        parser.add_argument(
            "--fiscal-year",  # Define flag
            type=int,
            default=datetime.date.today().year,
            help="Fiscal year whose periods are created (default: current year).",
        )
        parser.add_argument("--loaders-fee", type=Decimal, default=None)
        parser.add_argument("--land-rate-fee", type=Decimal, default=None)
        parser.add_argument("--rejects-fee", type=Decimal, default=None)

    @transaction.atomic
    def handle(self, *args, **options):
        # Read arguments from add_arguments()
        name = options["name"]
        slug = options["slug"] or slugify(name)
        if not slug:
            raise CommandError(f"Cannot derive a slug from {name!r}; pass --slug")

        # get_or_create returns (object, created)
        quarry, created = Quarry.objects.get_or_create(
            slug=slug,
            defaults={
                "name": name,
                "location": options["location"],
                "loaders_fee": options["loaders_fee"],
                "land_rate_fee": options["land_rate_fee"],
                "rejects_fee": options["rejects_fee"],
            },
        )
        verb = "Created" if created else "Using existing"
        self.stdout.write(self.style.SUCCESS(f"{verb} quarry: {quarry} ({quarry.slug})"))

        accounts = seed_chart_of_accounts(quarry)
        self.stdout.write(self.style.SUCCESS(f"Seeded {accounts} ledger accounts"))

        periods = provision_fiscal_year(quarry, options["fiscal_year"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Fiscal year {options['fiscal_year']}: {len(periods)} periods open"
            )
        )
