"""Engagement metrics API handler (no authentication required)."""

from typing import Any

import structlog

from sitepulse.services.engagement_counter import EngagementCounter
from sitepulse.utils.client_ip import get_client_ip
from sitepulse.utils.exceptions import NotFoundError, PersistenceError, ValidationError
from sitepulse.utils.request_context import (
    get_header,
    get_http_method,
    get_path,
    get_query_param,
    get_user_agent,
    parse_json_body,
    parse_limit,
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


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle engagement metrics API requests.

    Routes:
        POST /metrics/payment-click        - Count a payment-button click
        GET  /metrics/payment-click        - List recent counters
        GET  /metrics/payment-click/stats  - Creation stats (?days=14)
        GET  /metrics/payment-clicks       - Counters of one order (?orderId=)
    """
    try:
        http_method = get_http_method(event)
        path = get_path(event)

        if http_method == "OPTIONS":
            response = no_content()
        elif path == "/metrics/payment-click" and http_method == "POST":
            response = record_payment_click(event)
        elif path == "/metrics/payment-click" and http_method == "GET":
            response = list_payment_clicks(event)
        elif path == "/metrics/payment-click/stats" and http_method == "GET":
            response = payment_click_stats(event)
        elif path == "/metrics/payment-clicks" and http_method == "GET":
            response = order_payment_clicks(event)
        else:
            raise NotFoundError("Route", f"{http_method} {path}")

    except ValidationError as e:
        response = validation_error(e.errors, message=e.message)
    except NotFoundError:
        response = not_found()
    except PersistenceError as e:
        logger.error(
            "Metrics store failure",
            operation=e.operation,
            error=e.original_error,
            path=event.get("path"),
        )
        response = server_error()
    except Exception as e:
        logger.exception("Metrics handler error", error=str(e), path=event.get("path"))
        response = server_error()

    return with_request_origin(response, get_header(event, "Origin"))


def record_payment_click(event: dict) -> dict:
    """Count a click.

    Body: { orderId, amount, currency, address, sessionId?, meta? }
    """
    body = parse_json_body(event)

    clicks = EngagementCounter().record_click(
        order_id=body.get("orderId"),
        session_id=body.get("sessionId"),
        amount=body.get("amount"),
        currency=body.get("currency"),
        address=body.get("address"),
        meta=body.get("meta"),
        ip=get_client_ip(event),
        user_agent=get_user_agent(event),
    )
    return created({"ok": True, "clicks": clicks})


def list_payment_clicks(event: dict) -> dict:
    """List the most recently created counters."""
    limit = parse_limit(get_query_param(event, "limit"))
    counters = EngagementCounter().list_recent(limit=limit)
    rows = [c.to_api() for c in counters]
    return success({"count": len(rows), "rows": rows})


def payment_click_stats(event: dict) -> dict:
    """Counter totals, last 24h and per-day creation counts."""
    return success(EngagementCounter().stats(get_query_param(event, "days")))


def order_payment_clicks(event: dict) -> dict:
    """Counters of one order with the summed click total."""
    return success(EngagementCounter().order_summary(get_query_param(event, "orderId")))
