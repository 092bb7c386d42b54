"""Client activity logging API handler (no authentication required)."""

from typing import Any

import structlog

from sitepulse.models.activity_log import MAX_TEXT_LENGTH, ActivityLogEntry
from sitepulse.repositories.activity_log import ActivityLogRepository
from sitepulse.services.geolocation import GeoLocationResolver, geolocation_enabled
from sitepulse.utils.client_ip import get_client_ip
from sitepulse.utils.exceptions import NotFoundError, PersistenceError, ValidationError
from sitepulse.utils.request_context import (
    clean_identifier,
    clean_text,
    get_header,
    get_http_method,
    get_path,
    get_query_param,
    get_user_agent,
    parse_json_body,
    parse_limit,
    parse_timestamp,
    prefers_minimal_response,
)
from sitepulse.utils.responses import (
    created,
    no_content,
    not_found,
    server_error,
    success,
    validation_error,
    with_request_origin,
)

logger = structlog.get_logger()

LIST_PATHS = ("/log-ip/recent", "/log-ip", "/ip-logs")


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle activity log API requests.

    Routes:
        POST /log-ip          - Log a visit (geo-enriched when possible)
        GET  /log-ip/recent   - List recent entries, newest first
        GET  /log-ip          - Alias of /log-ip/recent
        GET  /ip-logs         - Alias of /log-ip/recent
    """
    try:
        http_method = get_http_method(event)
        path = get_path(event)

        if http_method == "OPTIONS":
            response = no_content()
        elif path == "/log-ip" and http_method == "POST":
            response = log_ip(event)
        elif path in LIST_PATHS and http_method == "GET":
            response = list_recent(event)
        else:
            raise NotFoundError("Route", f"{http_method} {path}")

    except ValidationError as e:
        response = validation_error(e.errors, message=e.message)
    except NotFoundError:
        response = not_found()
    except PersistenceError as e:
        logger.error(
            "Activity log store failure",
            operation=e.operation,
            error=e.original_error,
            path=event.get("path"),
        )
        response = server_error()
    except Exception as e:
        logger.exception("Activity log handler error", error=str(e), path=event.get("path"))
        response = server_error()

    return with_request_origin(response, get_header(event, "Origin"))


def log_ip(event: dict) -> dict:
    """Record a visit.

    Body: { ipFromClient?, userAgent?, page?, note? }

    The client-reported IP is geolocated when present, otherwise the IP
    derived from proxy headers.
    """
    body = parse_json_body(event)

    server_ip = clean_identifier(get_client_ip(event), MAX_TEXT_LENGTH)
    client_ip = clean_identifier(body.get("ipFromClient"), MAX_TEXT_LENGTH)

    geo = None
    if geolocation_enabled():
        geo = GeoLocationResolver.from_environment().resolve(client_ip or server_ip)

    entry = ActivityLogEntry(
        server_detected_ip=server_ip,
        client_reported_ip=client_ip,
        user_agent=get_user_agent(event, body.get("userAgent"), MAX_TEXT_LENGTH),
        page=clean_text(body.get("page"), MAX_TEXT_LENGTH),
        note=clean_text(body.get("note"), MAX_TEXT_LENGTH),
        geo=geo,
    )
    ActivityLogRepository().append(entry)

    logger.info(
        "Visit logged",
        log_id=entry.id,
        ip=server_ip,
        has_geo=geo is not None,
    )

    if prefers_minimal_response(event):
        return no_content()
    return created({"id": entry.id, "createdAt": entry.created_at})


def list_recent(event: dict) -> dict:
    """List recent entries.

    Query: limit (1-1000, default 50), after (ISO-8601 or epoch ms cursor).
    """
    limit = parse_limit(get_query_param(event, "limit"))

    after = get_query_param(event, "after")
    before = None
    if after:
        before = parse_timestamp(after)
        if before is None:
            raise ValidationError(
                "after must be an ISO-8601 timestamp",
                errors=[{"field": "after", "message": "Invalid timestamp cursor"}],
            )

    rows = ActivityLogRepository().query_recent(limit=limit, before=before)
    return success({"count": len(rows), "rows": rows})
