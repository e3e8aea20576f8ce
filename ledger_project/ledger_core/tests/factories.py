import datetime
from decimal import Decimal

from ledger_core.models import (Banking, Broker, Expense, PaymentStatus,
                                Prepayment, Product, Quarry, Sale)
from ledger_core.services.chart import seed_chart_of_accounts

""" Small builders shared by the test modules. """


def make_quarry(name="North Pit", slug=None, with_chart=True, **fees):
    quarry = Quarry.objects.create(name=name, slug=slug or name.lower().replace(" ", "-"), **fees)
    if with_chart:
        seed_chart_of_accounts(quarry)
    return quarry


def product(name="Size 6"):
    prod, _ = Product.objects.get_or_create(name=name)
    return prod


def make_sale(quarry, sale_date, quantity="10", price="50", *, paid=True,
              received=None, product_name="Size 6", vehicle="KAA 123A",
              broker=None, commission="0"):
    return Sale.objects.create(
        quarry=quarry,
        sale_date=sale_date,
        vehicle_registration=vehicle,
        client_name="Client " + vehicle,
        product=product(product_name),
        broker=broker,
        quantity=Decimal(quantity),
        price_per_unit=Decimal(price),
        commission_per_unit=Decimal(commission),
        payment_status=PaymentStatus.PAID if paid else PaymentStatus.NOT_PAID,
        payment_received_date=received,
        clerk_name="clerk",
    )


def make_expense(quarry, expense_date, amount, category="Fuel", item="Diesel"):
    return Expense.objects.create(
        quarry=quarry, expense_date=expense_date, item=item,
        amount=Decimal(amount), category=category,
    )


def make_banking(quarry, banking_date, amount, ref="DEP-1"):
    return Banking.objects.create(
        quarry=quarry, banking_date=banking_date, item="Deposit",
        amount_banked=Decimal(amount), txn_reference=ref,
    )


def make_prepayment(quarry, prepayment_date, amount, vehicle="KBB 456B"):
    return Prepayment.objects.create(
        quarry=quarry, prepayment_date=prepayment_date,
        vehicle_registration=vehicle, client_name="Prepaid client",
        total_amount_paid=Decimal(amount),
    )


def make_broker(quarry, name="Broker Joe", phone="0700000000"):
    return Broker.objects.create(quarry=quarry, name=name, phone=phone)


D = datetime.date
