"""Utility functions and helpers."""

from sitepulse.utils.client_ip import get_client_ip
from sitepulse.utils.exceptions import (
    NotFoundError,
    PersistenceError,
    SitepulseError,
    UpstreamProviderError,
    ValidationError,
)
from sitepulse.utils.request_context import (
    clean_identifier,
    clean_text,
    get_header,
    get_user_agent,
    parse_json_body,
    parse_limit,
    parse_timestamp,
)
from sitepulse.utils.responses import created, error, no_content, not_found, success, validation_error

__all__ = [
    # Request helpers
    "clean_identifier",
    "clean_text",
    "get_client_ip",
    "get_header",
    "get_user_agent",
    "parse_json_body",
    "parse_limit",
    "parse_timestamp",
    # Response helpers
    "created",
    "error",
    "no_content",
    "not_found",
    "success",
    "validation_error",
    # Exceptions
    "NotFoundError",
    "PersistenceError",
    "SitepulseError",
    "UpstreamProviderError",
    "ValidationError",
]
