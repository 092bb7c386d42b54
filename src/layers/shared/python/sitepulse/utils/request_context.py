"""Defensive extraction of request fields from API Gateway events.

Everything here is pure and never rejects input, with the single
exception of a body that is not valid JSON.
"""

import base64
import binascii
import json
import math
from datetime import datetime, timezone
from typing import Any

from sitepulse.utils.exceptions import ValidationError

DEFAULT_TEXT_LIMIT = 200


def clean_text(value: Any, limit: int = DEFAULT_TEXT_LIMIT) -> str:
    """Coerce a raw value to a string of at most ``limit`` characters.

    ``None`` becomes the empty string; anything else is ``str()``-coerced.
    Whitespace is kept, so the result is exactly the first ``limit``
    characters of the input.
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    return text[:limit]


def clean_identifier(value: Any, limit: int = DEFAULT_TEXT_LIMIT) -> str:
    """Like :func:`clean_text`, but surrounding whitespace is trimmed first.

    Used for ids and IP addresses, where padding is never meaningful.
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    return text.strip()[:limit]


def _find_key(mapping: dict, name: str) -> str | None:
    """Find a key in ``mapping`` case-insensitively."""
    if name in mapping:
        return name
    lowered = name.lower()
    for key in mapping:
        if isinstance(key, str) and key.lower() == lowered:
            return key
    return None


def get_header(event: dict, name: str) -> str | None:
    """Read a single-valued header, ignoring case."""
    headers = event.get("headers", {}) or {}
    key = _find_key(headers, name)
    if key is None:
        return None
    return headers[key]


def get_multi_value_header(event: dict, name: str) -> list[str]:
    """Read all values of a header from ``multiValueHeaders``, ignoring case."""
    headers = event.get("multiValueHeaders", {}) or {}
    key = _find_key(headers, name)
    if key is None:
        return []
    values = headers[key]
    if isinstance(values, list):
        return [v for v in values if v is not None]
    return [values] if values is not None else []


def get_query_param(event: dict, name: str) -> str | None:
    """Read a query string parameter."""
    query_params = event.get("queryStringParameters", {}) or {}
    return query_params.get(name)


def get_user_agent(event: dict, override: Any = None, limit: int = DEFAULT_TEXT_LIMIT) -> str:
    """User agent reported in the body, else the User-Agent header."""
    reported = clean_text(override, limit)
    if reported:
        return reported
    return clean_text(get_header(event, "User-Agent"), limit)


def _reject_constant(name: str) -> Any:
    """NaN and Infinity are not JSON and cannot be stored."""
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_json_body(event: dict) -> dict:
    """Parse the JSON request body.

    An absent or empty body, or a JSON value that is not an object, yields
    an empty dict.

    Raises:
        ValidationError: If the body is not valid JSON (including the
            non-standard NaN and Infinity literals).
    """
    raw = event.get("body")
    if not raw:
        return {}

    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise ValidationError("Invalid JSON body")

    try:
        body = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, TypeError):
        raise ValidationError("Invalid JSON body")

    return body if isinstance(body, dict) else {}


def clamp_int(value: Any, default: int, minimum: int, maximum: int) -> int:
    """Parse ``value`` as an integer clamped to ``[minimum, maximum]``.

    Absent, unparsable, zero or non-finite values fall back to ``default``.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or int(number) == 0:
        return default
    return max(minimum, min(maximum, int(number)))


def parse_limit(value: Any, default: int = 50, minimum: int = 1, maximum: int = 1000) -> int:
    """Parse a ``limit`` query parameter."""
    return clamp_int(value, default, minimum, maximum)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp or epoch milliseconds.

    Naive timestamps are taken as UTC.

    Returns:
        Timezone-aware datetime, or None if the value does not parse.
    """
    text = clean_identifier(value, 64)
    if not text:
        return None

    if text.isdigit():
        try:
            return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def prefers_minimal_response(event: dict) -> bool:
    """Whether the client asked for no response body (``Prefer: return=minimal``)."""
    prefer = get_header(event, "Prefer") or ""
    return "return=minimal" in prefer.lower()


def get_http_method(event: dict) -> str:
    """Request method for REST (v1) and HTTP API (v2) payloads."""
    method = event.get("httpMethod")
    if not method:
        http = (event.get("requestContext", {}) or {}).get("http", {}) or {}
        method = http.get("method") or ""
    return method.upper()


def get_path(event: dict) -> str:
    """Request path without a trailing slash, for REST (v1) and HTTP API (v2) payloads."""
    path = event.get("path") or event.get("rawPath") or ""
    return path.rstrip("/") or "/"
