"""Модели SQLAlchemy."""
from apps.storefront.models.activity_log import ActivityLog

__all__ = [
    "ActivityLog",
]
