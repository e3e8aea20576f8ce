# Celery instance is defined in ledger_project/celery.py
# It creates celery_app object and points it to Django settings
from .celery import celery_app

# 'from ledger_project import *', only exports celery_app
__all__ = ("celery_app",)

""" When you run Celery workers, "celery -A ledger_project worker -l info"
    The -A ledger_project means:
    Import ledger_project/__init__.py →
    which exposes celery_app →  now Celery knows what to run. """
