import os
import sys
from decimal import Decimal
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

from .logging_config import get_logging_config

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("SECRET_KEY", os.environ.get("DJANGO_SECRET_KEY", "changeme"))
DEBUG = os.getenv("DEBUG", os.getenv("DJANGO_DEBUG", "True")) == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",")

# Include Django's manage.py test invocation.
TESTING = (
    "PYTEST_CURRENT_TEST" in os.environ
    or any("pytest" in arg for arg in sys.argv[:1])
    or "test" in sys.argv
)

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "ledger_core.apps.LedgerCoreConfig",
]

DATABASES = {
    "default": dj_database_url.config(
        env="DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

# =============================================================================
# Celery
# =============================================================================
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", None)
CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_TASK_ALWAYS_EAGER", str(TESTING)) == "True"
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_TASK_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]

# =============================================================================
# Ledger
# =============================================================================
# Money comparisons against zero treat anything smaller than this as zero
LEDGER_EPSILON = Decimal(os.getenv("LEDGER_EPSILON", "0.01"))
# Entries persisted per atomic batch during regeneration
LEDGER_REGENERATION_BATCH_SIZE = int(os.getenv("LEDGER_REGENERATION_BATCH_SIZE", "100"))
# Balance sheet split: codes below the limit are "current"
LEDGER_CURRENT_ASSET_CODE_LIMIT = int(os.getenv("LEDGER_CURRENT_ASSET_CODE_LIMIT", "1500"))
LEDGER_CURRENT_LIABILITY_CODE_LIMIT = int(os.getenv("LEDGER_CURRENT_LIABILITY_CODE_LIMIT", "2300"))

LOGGING = get_logging_config(DEBUG)
