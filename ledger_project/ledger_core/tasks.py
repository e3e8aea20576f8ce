import logging
from datetime import date

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def regenerate_journal_entries(quarry_id, date_from, date_to):
    """
    Backfill automatic journal entries for one quarry.
    Dates travel as ISO strings ("2025-07-01") so the task stays JSON-serializable.
    """
    # import lazily to avoid circular imports at module import time
    from .models import Quarry
    from .services.auto_entries import regenerate_all

    quarry = Quarry.objects.get(pk=quarry_id)
    result = regenerate_all(
        quarry,
        date.fromisoformat(str(date_from)),
        date.fromisoformat(str(date_to)),
    )
    # Celery result backend stores plain dicts
    return result.as_dict()
