import logging

from django.db import transaction
from django.utils import timezone

from ..exceptions import ConflictError, ForbiddenOperation, NotFoundError
from ..models import LedgerAccount, default_debit_normal
from .audit_helper import log_action

logger = logging.getLogger(__name__)


# ---------- Chart of Accounts ----------
def get_chart_of_accounts(quarry):
    """Active accounts of a quarry, in display order then code."""
    return list(
        LedgerAccount.objects.active(quarry).order_by("display_order", "code")
    )


def get_account(account_id):
    try:
        return LedgerAccount.objects.get(pk=account_id, is_active=True)
    except LedgerAccount.DoesNotExist:
        raise NotFoundError(f"Ledger account {account_id} not found")


def get_account_by_code(quarry, code):
    try:
        return LedgerAccount.objects.active(quarry).get(code=code)
    except LedgerAccount.DoesNotExist:
        raise NotFoundError(f"Ledger account {code} not found for {quarry}")


@transaction.atomic
def create_account(quarry, code, name, category, actor, *, account_type="",
                   description="", parent=None, is_debit_normal=None,
                   display_order=0):
    """
    Add a (non-system) account to the quarry's chart.
    Codes are compared as given: "1000" and "01000" are different codes.
    """
    code = (code or "").strip()
    # Codes are unique per quarry, inactive accounts included
    if LedgerAccount.objects.for_quarry(quarry).filter(code=code).exists():
        raise ConflictError(f"Account code {code} already exists for {quarry}")

    if is_debit_normal is None:
        is_debit_normal = default_debit_normal(category)

    account = LedgerAccount.objects.create(  # save() runs full_clean (numeric code)
        quarry=quarry,
        code=code,
        name=name,
        category=category,
        account_type=account_type,
        description=description,
        parent=parent,
        is_debit_normal=is_debit_normal,
        is_system_account=False,
        display_order=display_order,
        created_by=actor,
    )
    log_action(action="create", instance=account, actor=actor,
               changes={"code": code, "name": name, "category": category})
    logger.info(
        "Created ledger account",
        extra={"quarry_id": quarry.pk, "code": code, "account_name": name},
    )
    return account


@transaction.atomic
def update_account(account_id, actor, *, name=None, description=None,
                   display_order=None):
    """Only descriptive fields can change; code and category are permanent."""
    account = get_account(account_id)
    if account.is_system_account:
        raise ForbiddenOperation(f"System account {account.code} cannot be modified")

    changes = {}
    for field, value in (("name", name), ("description", description),
                         ("display_order", display_order)):
        if value is not None and getattr(account, field) != value:
            changes[field] = {"old": getattr(account, field), "new": value}
            setattr(account, field, value)

    account.modified_at = timezone.now()
    account.modified_by = actor
    account.save()
    if changes:
        log_action(action="update", instance=account, actor=actor, changes=changes)
    return account


@transaction.atomic
def soft_delete_account(account_id, actor):
    account = get_account(account_id)
    if account.is_system_account:
        raise ForbiddenOperation(f"System account {account.code} cannot be deleted")

    # Posted or not, any line keeps the account alive
    if account.journal_lines.exists():
        raise ConflictError(
            f"Account {account.code} has journal lines and cannot be deleted"
        )

    account.is_active = False
    account.modified_at = timezone.now()
    account.modified_by = actor
    account.save()
    log_action(action="delete", instance=account, actor=actor)
    logger.info(
        "Deactivated ledger account",
        extra={"quarry_id": account.quarry_id, "code": account.code},
    )
    return account
