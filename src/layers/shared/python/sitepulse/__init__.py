"""Sitepulse: client identity capture and engagement metrics."""

__version__ = "1.0.0"
