"""Celery tasks package."""
