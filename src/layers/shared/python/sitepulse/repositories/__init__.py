"""Repository classes for DynamoDB data access."""

from sitepulse.repositories.activity_log import ActivityLogRepository
from sitepulse.repositories.base import BaseRepository
from sitepulse.repositories.payment_click import PaymentClickRepository

__all__ = [
    "ActivityLogRepository",
    "BaseRepository",
    "PaymentClickRepository",
]
