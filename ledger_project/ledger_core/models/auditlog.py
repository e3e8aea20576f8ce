from django.db import models
from ..managers import TenantManager
from .quarry import Quarry


# ---------- Audit / Event log ----------
class AuditLog(
    models.Model
):  # Gives accountability and traceability across the ledger
    # Associate log entry with a tenant
    quarry = models.ForeignKey(
        Quarry,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    # Who performed the action, as supplied by the caller
    # (stored as given, never validated; "system" for automated runs)
    actor = models.CharField(max_length=150, blank=True)
    # Type of event being logged
    action = models.CharField(
        max_length=50
    )  # Common choices: create, update, delete, post, unpost, close, reopen
    # What kind of object was affected
    object_type = models.CharField(
        max_length=100
    )  # (e.g., "JournalEntry", "LedgerAccount", "AccountingPeriod")
    # The primary key (or identifier) of the object
    object_id = models.CharField(max_length=100)
    # Store actual before/after details of what changed, in JSON format
    changes = models.JSONField(null=True, blank=True)
    # Timestamp when the event was logged
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # Filter logs quickly
        indexes = [
            models.Index(fields=["quarry", "actor"], name="audit_quarry_actor_idx"),
            models.Index(fields=["quarry", "created_at"], name="audit_quarry_created_idx"),
        ]

    # Show created_at, actor, action, object_type and object_id in debug logs
    def __str__(self):
        time = self.created_at
        return f"[{time:%Y-%m-%d %H:%M}] {self.actor} {self.action} {self.object_type}({self.object_id})"
