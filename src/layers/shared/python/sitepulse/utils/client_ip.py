"""Client IP resolution for requests behind CDNs and proxies."""

from sitepulse.utils.request_context import get_header, get_multi_value_header

CDN_CONNECTING_IP_HEADER = "CF-Connecting-IP"
FORWARDED_FOR_HEADER = "X-Forwarded-For"


def _first_forwarded(value: str) -> str:
    """Return the first (client-most) entry of an X-Forwarded-For value."""
    return value.split(",")[0].strip()


def get_client_ip(event: dict) -> str:
    """Extract the best-guess originating client IP from an API Gateway event.

    Precedence, first present wins:
        1. CF-Connecting-IP, verbatim.
        2. X-Forwarded-For, first comma-separated entry. When the header
           arrives multi-valued, the first value's first entry.
        3. The peer address API Gateway saw (``requestContext.identity.sourceIp``
           for REST APIs, ``requestContext.http.sourceIp`` for HTTP APIs).

    Never raises; returns an empty string when nothing is available.

    Args:
        event: API Gateway event dict.

    Returns:
        Client IP address string.
    """
    cdn_ip = get_header(event, CDN_CONNECTING_IP_HEADER)
    if cdn_ip:
        return str(cdn_ip)

    forwarded_values = get_multi_value_header(event, FORWARDED_FOR_HEADER)
    if forwarded_values and forwarded_values[0]:
        return _first_forwarded(str(forwarded_values[0]))

    forwarded_for = get_header(event, FORWARDED_FOR_HEADER)
    if forwarded_for:
        return _first_forwarded(str(forwarded_for))

    request_context = event.get("requestContext", {}) or {}
    identity = request_context.get("identity", {}) or {}
    http = request_context.get("http", {}) or {}

    return identity.get("sourceIp") or http.get("sourceIp") or ""
