from decimal import Decimal

from django.conf import settings

""" Ledger settings with their defaults.
    Read lazily so tests can override them with override_settings(). """


def epsilon() -> Decimal:
    return Decimal(str(getattr(settings, "LEDGER_EPSILON", "0.01")))


def regeneration_batch_size() -> int:
    return int(getattr(settings, "LEDGER_REGENERATION_BATCH_SIZE", 100))


def current_asset_code_limit() -> int:
    return int(getattr(settings, "LEDGER_CURRENT_ASSET_CODE_LIMIT", 1500))


def current_liability_code_limit() -> int:
    return int(getattr(settings, "LEDGER_CURRENT_LIABILITY_CODE_LIMIT", 2300))
