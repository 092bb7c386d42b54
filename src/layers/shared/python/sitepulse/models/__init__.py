"""Pydantic models for Sitepulse entities."""

from sitepulse.models.activity_log import ActivityLogEntry, GeoRecord, MAX_TEXT_LENGTH
from sitepulse.models.base import BaseModel, TimestampMixin, WireModel
from sitepulse.models.payment_click import PaymentClick

__all__ = [
    "ActivityLogEntry",
    "BaseModel",
    "GeoRecord",
    "MAX_TEXT_LENGTH",
    "PaymentClick",
    "TimestampMixin",
    "WireModel",
]
