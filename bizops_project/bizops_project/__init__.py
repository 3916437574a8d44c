# Celery instance is defined in bizops_project/celery.py
# It points the worker at the Django settings of this project
from .celery import celery_app

__all__ = ("celery_app",)
