from django.db import models
from .quarry import Quarry


# ---------- JournalSequence (reference counter) ----------
class JournalSequence(models.Model):
    """
    Next reference number per (quarry, fiscal year, prefix).
    Rows are locked with select_for_update while a value is taken,
    so references never repeat even under concurrent writers.
    """

    quarry = models.ForeignKey(Quarry, on_delete=models.CASCADE,
                               related_name="journal_sequences")
    fiscal_year = models.PositiveIntegerField()
    prefix = models.CharField(max_length=8)  # ADJ, SL, EX, BK, PP, CL
    next_value = models.PositiveIntegerField(default=1)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["quarry", "fiscal_year", "prefix"],
                name="uq_journal_sequence_key",
            )
        ]

    def __str__(self):
        return f"{self.quarry_id}:{self.prefix}-{self.fiscal_year} next={self.next_value}"
