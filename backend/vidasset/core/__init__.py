"""Core module for configuration and utilities."""

from vidasset.core.celery_app import celery_app
from vidasset.core.config import settings
from vidasset.core.database import Base, get_db

__all__ = [
    "celery_app",
    "settings",
    "Base",
    "get_db",
]
