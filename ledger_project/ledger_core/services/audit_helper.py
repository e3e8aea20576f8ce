from typing import Optional
from ..models import AuditLog, Quarry

def log_action(
    *,
    action: str,
    instance,
    actor: str = "",
    quarry: Optional[Quarry] = None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Safe to call multiple times (caller ensures idempotency).
    """

    if not quarry:
        quarry = getattr(instance, "quarry", None)

    AuditLog.objects.create(
        quarry=quarry,
        actor=actor or "",
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
