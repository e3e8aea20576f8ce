import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Quarry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("location", models.CharField(blank=True, max_length=200)),
                ("loaders_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("land_rate_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("rejects_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name_plural": "quarries",
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("description", models.CharField(blank=True, max_length=400)),
                ("is_active", models.BooleanField(default=True)),
            ],
        ),
        migrations.CreateModel(
            name="Broker",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("is_active", models.BooleanField(default=True)),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="brokers", to="ledger_core.quarry")),
            ],
            options={
                "indexes": [models.Index(fields=["quarry", "name"], name="broker_quarry_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="LedgerAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=16)),
                ("name", models.CharField(max_length=200)),
                ("category", models.CharField(choices=[("Assets", "Assets"), ("Liabilities", "Liabilities"), ("Equity", "Equity"), ("Revenue", "Revenue"), ("CostOfSales", "Cost of Sales"), ("Expenses", "Expenses")], max_length=16)),
                ("account_type", models.CharField(blank=True, max_length=40)),
                ("description", models.CharField(blank=True, max_length=400)),
                ("is_debit_normal", models.BooleanField(default=True)),
                ("is_system_account", models.BooleanField(default=False)),
                ("display_order", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.CharField(blank=True, max_length=150)),
                ("modified_at", models.DateTimeField(blank=True, null=True)),
                ("modified_by", models.CharField(blank=True, max_length=150)),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="children", to="ledger_core.ledgeraccount")),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="ledger_accounts", to="ledger_core.quarry")),
            ],
            options={
                "ordering": ("display_order", "code"),
                "indexes": [
                    models.Index(fields=["quarry", "category"], name="la_quarry_category_idx"),
                    models.Index(fields=["quarry", "code"], name="la_quarry_code_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("quarry", "code"), name="uq_quarry_ledger_account_code"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AccountingPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50)),
                ("fiscal_year", models.PositiveIntegerField()),
                ("period_number", models.PositiveSmallIntegerField()),
                ("period_type", models.CharField(choices=[("Monthly", "Monthly"), ("Quarterly", "Quarterly"), ("Annual", "Annual")], default="Monthly", max_length=20)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("is_closed", models.BooleanField(default=False)),
                ("closed_by", models.CharField(blank=True, max_length=150)),
                ("closed_date", models.DateTimeField(blank=True, null=True)),
                ("closing_notes", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="accounting_periods", to="ledger_core.quarry")),
            ],
            options={
                "ordering": ("quarry", "start_date"),
                "indexes": [
                    models.Index(fields=["quarry", "start_date"], name="period_quarry_start_idx"),
                    models.Index(fields=["quarry", "is_closed"], name="period_quarry_closed_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("quarry", "fiscal_year", "period_number"), name="uq_quarry_period_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_date", models.DateField()),
                ("reference", models.CharField(max_length=40)),
                ("description", models.CharField(blank=True, max_length=500)),
                ("entry_type", models.CharField(choices=[("Manual", "Manual"), ("Auto", "Auto")], default="Manual", max_length=10)),
                ("source_entity_type", models.CharField(blank=True, choices=[("Sale", "Sale"), ("Expense", "Expense"), ("Banking", "Banking"), ("Prepayment", "Prepayment"), ("Collection", "Collection")], max_length=20, null=True)),
                ("source_entity_id", models.BigIntegerField(blank=True, null=True)),
                ("fiscal_year", models.PositiveIntegerField()),
                ("fiscal_period", models.PositiveSmallIntegerField()),
                ("is_posted", models.BooleanField(default=False)),
                ("posted_by", models.CharField(blank=True, max_length=150)),
                ("posted_date", models.DateTimeField(blank=True, null=True)),
                ("total_debit", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("total_credit", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.CharField(blank=True, max_length=150)),
                ("modified_at", models.DateTimeField(blank=True, null=True)),
                ("modified_by", models.CharField(blank=True, max_length=150)),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="journal_entries", to="ledger_core.quarry")),
            ],
            options={
                "ordering": ("entry_date", "id"),
                "indexes": [
                    models.Index(fields=["quarry", "entry_date"], name="je_quarry_date_idx"),
                    models.Index(fields=["quarry", "is_posted"], name="je_quarry_posted_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("quarry", "reference"), name="uq_je_quarry_ref"),
                    models.UniqueConstraint(condition=models.Q(("source_entity_type__isnull", False)), fields=("quarry", "source_entity_type", "source_entity_id"), name="uq_je_quarry_source"),
                    models.CheckConstraint(condition=models.Q(("total_debit__gte", 0), ("total_credit__gte", 0)), name="je_non_negative_totals"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntryLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("debit_amount", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("credit_amount", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("memo", models.CharField(blank=True, max_length=400)),
                ("line_number", models.PositiveIntegerField()),
                ("entry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.journalentry")),
                ("ledger_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="journal_lines", to="ledger_core.ledgeraccount")),
            ],
            options={
                "ordering": ("entry", "line_number"),
                "indexes": [
                    models.Index(fields=["ledger_account"], name="jel_account_idx"),
                    models.Index(fields=["entry", "line_number"], name="jel_entry_line_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("entry", "line_number"), name="uq_jel_entry_line_number"),
                    models.CheckConstraint(condition=models.Q(("debit_amount__gte", 0), ("credit_amount__gte", 0)), name="jel_non_negative_amounts"),
                    models.CheckConstraint(condition=models.Q(("debit_amount", 0), ("credit_amount", 0), _negated=True), name="jel_debit_or_credit_nonzero"),
                    models.CheckConstraint(condition=models.Q(("debit_amount__gt", 0), ("credit_amount__gt", 0), _negated=True), name="jel_not_both_sides"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("fiscal_year", models.PositiveIntegerField()),
                ("prefix", models.CharField(max_length=8)),
                ("next_value", models.PositiveIntegerField(default=1)),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="journal_sequences", to="ledger_core.quarry")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("quarry", "fiscal_year", "prefix"), name="uq_journal_sequence_key"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sale_date", models.DateField()),
                ("vehicle_registration", models.CharField(max_length=32)),
                ("client_name", models.CharField(blank=True, max_length=200)),
                ("client_phone", models.CharField(blank=True, max_length=32)),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=12)),
                ("price_per_unit", models.DecimalField(decimal_places=2, max_digits=12)),
                ("commission_per_unit", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("payment_status", models.CharField(choices=[("Paid", "Paid"), ("NotPaid", "Not paid")], default="Paid", max_length=10)),
                ("payment_mode", models.CharField(blank=True, max_length=30)),
                ("payment_reference", models.CharField(blank=True, max_length=100)),
                ("payment_received_date", models.DateField(blank=True, null=True)),
                ("clerk_name", models.CharField(blank=True, max_length=150)),
                ("is_active", models.BooleanField(default=True)),
                ("broker", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="sales", to="ledger_core.broker")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sales", to="ledger_core.product")),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sales", to="ledger_core.quarry")),
            ],
            options={
                "indexes": [models.Index(fields=["quarry", "sale_date"], name="sale_quarry_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("expense_date", models.DateField()),
                ("item", models.CharField(max_length=300)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("category", models.CharField(blank=True, max_length=60)),
                ("txn_reference", models.CharField(blank=True, max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="expenses", to="ledger_core.quarry")),
            ],
            options={
                "indexes": [models.Index(fields=["quarry", "expense_date"], name="expense_quarry_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="Banking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("banking_date", models.DateField()),
                ("item", models.CharField(blank=True, max_length=300)),
                ("amount_banked", models.DecimalField(decimal_places=2, max_digits=12)),
                ("txn_reference", models.CharField(blank=True, max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="bankings", to="ledger_core.quarry")),
            ],
            options={
                "indexes": [models.Index(fields=["quarry", "banking_date"], name="banking_quarry_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="Prepayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("prepayment_date", models.DateField()),
                ("vehicle_registration", models.CharField(blank=True, max_length=32)),
                ("client_name", models.CharField(blank=True, max_length=200)),
                ("total_amount_paid", models.DecimalField(decimal_places=2, max_digits=12)),
                ("amount_used", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("payment_mode", models.CharField(blank=True, max_length=30)),
                ("payment_reference", models.CharField(blank=True, max_length=100)),
                ("status", models.CharField(choices=[("Active", "Active"), ("PartiallyUsed", "Partially used"), ("FullyUsed", "Fully used"), ("Refunded", "Refunded")], default="Active", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("quarry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="prepayments", to="ledger_core.quarry")),
            ],
            options={
                "indexes": [models.Index(fields=["quarry", "prepayment_date"], name="prepay_quarry_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor", models.CharField(blank=True, max_length=150)),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("quarry", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="ledger_core.quarry")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["quarry", "actor"], name="audit_quarry_actor_idx"),
                    models.Index(fields=["quarry", "created_at"], name="audit_quarry_created_idx"),
                ],
            },
        ),
    ]
