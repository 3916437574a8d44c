""" Start a worker with "celery -A bizops_project worker -l info".
    The -A bizops_project flag imports bizops_project/__init__.py,
    which exposes celery_app. """
from __future__ import annotations
import os
from celery import Celery

# ensure Django settings are set for Celery
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bizops_project.settings")

celery_app = Celery("bizops_project")

# read config from Django settings, using CELERY_ prefix
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# autoload tasks from installed apps (ledger_core/tasks.py)
celery_app.autodiscover_tasks()
