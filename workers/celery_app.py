"""Celery app factory."""

from celery import Celery

celery_app = Celery("screening", include=["workers.tasks.notifications"])
celery_app.config_from_object("workers.celery_config")
