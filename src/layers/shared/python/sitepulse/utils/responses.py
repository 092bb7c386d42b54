"""API response helper functions."""

import json
import os
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel as PydanticBaseModel

# "*" reflects the caller's Origin so credentialed requests still work
_ALLOWED_ORIGIN = os.environ.get("CORS_ALLOWED_ORIGIN", "*")
_STAGE = os.environ.get("STAGE", "dev")


def _get_cors_origin(request_origin: str | None = None) -> str:
    """Get the appropriate CORS origin for the response.

    In dev, also allows localhost for local development.
    """
    if _ALLOWED_ORIGIN == "*":
        return request_origin or "*"

    if _STAGE == "dev" and request_origin:
        if request_origin.startswith("http://localhost:"):
            return request_origin

    return _ALLOWED_ORIGIN


def get_cors_headers(request_origin: str | None = None) -> dict:
    """Get CORS headers with the appropriate origin."""
    return {
        "Access-Control-Allow-Origin": _get_cors_origin(request_origin),
        "Access-Control-Allow-Headers": "Content-Type,Authorization",
        "Access-Control-Allow-Methods": "GET,POST,PUT,PATCH,DELETE,OPTIONS",
        "Access-Control-Allow-Credentials": "true",
        "Content-Type": "application/json",
        "Vary": "Origin",
    }


# Default CORS headers (no Origin on the request)
CORS_HEADERS = get_cors_headers()


def with_request_origin(response: dict, request_origin: str | None) -> dict:
    """Return a copy of ``response`` with CORS headers for ``request_origin``."""
    if not request_origin:
        return response
    headers = {**response.get("headers", {}), **get_cors_headers(request_origin)}
    return {**response, "headers": headers}


def _json_serializer(obj: Any) -> Any:
    """JSON serializer for objects not serializable by default."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return int(obj) if obj % 1 == 0 else float(obj)
    if isinstance(obj, PydanticBaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _serialize(data: Any) -> str:
    """Serialize data to JSON string."""
    return json.dumps(data, default=_json_serializer)


def success(data: Any, status_code: int = 200) -> dict:
    """Create a successful API response.

    Args:
        data: Response data (dict, list, or Pydantic model).
        status_code: HTTP status code (default 200).

    Returns:
        API Gateway response dict.
    """
    if isinstance(data, PydanticBaseModel):
        body = data.model_dump(mode="json", by_alias=True, exclude_none=True)
    else:
        body = data

    return {
        "statusCode": status_code,
        "headers": CORS_HEADERS,
        "body": _serialize(body),
    }


def created(data: Any) -> dict:
    """Create a 201 Created response."""
    return success(data, status_code=201)


def no_content() -> dict:
    """Create a 204 No Content response."""
    return {
        "statusCode": 204,
        "headers": CORS_HEADERS,
        "body": "",
    }


def error(
    message: str,
    status_code: int = 500,
    error_code: str | None = None,
    details: dict | None = None,
) -> dict:
    """Create an error API response.

    Args:
        message: Error message.
        status_code: HTTP status code.
        error_code: Machine-readable error code.
        details: Additional error details.

    Returns:
        API Gateway response dict.
    """
    body: dict[str, Any] = {
        "error": True,
        "message": message,
    }

    if error_code:
        body["error_code"] = error_code
    if details:
        body["details"] = details

    return {
        "statusCode": status_code,
        "headers": CORS_HEADERS,
        "body": _serialize(body),
    }


def validation_error(errors: list[dict], message: str = "Validation failed") -> dict:
    """Create a validation error response.

    Args:
        errors: List of validation errors with field and message.
        message: Summary message.

    Returns:
        API Gateway response dict.
    """
    return error(
        message=message,
        status_code=400,
        error_code="VALIDATION_ERROR",
        details={"errors": errors} if errors else None,
    )


def not_found(message: str = "Not found") -> dict:
    """Create a 404 Not Found response with a generic body."""
    return error(message=message, status_code=404, error_code="NOT_FOUND")


def server_error() -> dict:
    """Create a generic 500 response that leaks no internals."""
    return error("Internal server error", 500)
