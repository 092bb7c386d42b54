"""Engagement counter service for payment-button clicks."""

import decimal
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from boto3.dynamodb.types import TypeSerializer

from sitepulse.models.base import serialize_value
from sitepulse.models.payment_click import PaymentClick
from sitepulse.repositories.payment_click import PaymentClickRepository
from sitepulse.utils.exceptions import ValidationError
from sitepulse.utils.request_context import clamp_int, clean_identifier, clean_text

logger = structlog.get_logger()

MAX_ID_LENGTH = 128
MAX_VALUE_LENGTH = 200
MAX_META_BYTES = 2048

DEFAULT_WINDOW_DAYS = 14
MAX_WINDOW_DAYS = 90

_SERIALIZER = TypeSerializer()


def _clean_meta(meta: Any) -> dict[str, Any] | None:
    """Keep ``meta`` only when it is a small JSON object the store can hold.

    Values DynamoDB cannot represent (infinite numbers, numbers beyond 38
    significant digits) drop the whole object instead of failing the click.
    """
    if meta is None:
        return None
    if not isinstance(meta, dict):
        logger.debug("Dropping non-object meta", meta_type=type(meta).__name__)
        return None
    try:
        size = len(json.dumps(meta, default=str, allow_nan=False))
    except (TypeError, ValueError):
        logger.debug("Dropping non-serializable meta")
        return None
    if size > MAX_META_BYTES:
        logger.warning("Dropping oversized meta", size=size, limit=MAX_META_BYTES)
        return None
    try:
        _SERIALIZER.serialize(serialize_value(meta))
    except (TypeError, decimal.DecimalException) as e:
        logger.debug("Dropping meta the store cannot hold", error=str(e))
        return None
    return meta


def _bucket_by_day(
    timestamps: list[datetime], window_days: int, now: datetime
) -> list[dict[str, Any]]:
    """Count timestamps per calendar day (UTC) over the trailing window.

    Every day of the window is present, zero-count days included, sorted
    ascending.
    """
    today = now.date()
    start_day = today - timedelta(days=window_days - 1)
    buckets: dict[str, int] = {}

    for i in range(window_days):
        day = start_day + timedelta(days=i)
        buckets[day.isoformat()] = 0

    for ts in timestamps:
        day_key = ts.astimezone(timezone.utc).date().isoformat()
        if day_key in buckets:
            buckets[day_key] += 1

    return [{"day": day, "count": count} for day, count in buckets.items()]


def _parse_first_at(value: Any) -> datetime | None:
    """Parse a stored ISO timestamp."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class EngagementCounter:
    """Counts interactions per (order, session) identity.

    Increment safety is delegated to the store's atomic update; nothing
    here reads a counter before writing it.
    """

    def __init__(self, repository: PaymentClickRepository | None = None):
        self.repository = repository or PaymentClickRepository()

    def record_click(
        self,
        order_id: Any,
        session_id: Any = None,
        amount: Any = "",
        currency: Any = "",
        address: Any = "",
        meta: Any = None,
        ip: str = "",
        user_agent: str = "",
    ) -> int:
        """Record one click and return the counter's new click total.

        Args:
            order_id: Order identifier, required.
            session_id: Optional session id. Without one, all anonymous
                clicks for the order share a single counter.
            amount: Amount shown to the user (stored as text).
            currency: Currency code.
            address: Payment address.
            meta: Small auxiliary object, stored only on the first click.
            ip: Client IP.
            user_agent: Client user agent.

        Returns:
            The post-update ``clicks`` value.

        Raises:
            ValidationError: If ``order_id`` is empty. Nothing is written.
        """
        order_id = clean_identifier(order_id, MAX_ID_LENGTH)
        if not order_id:
            raise ValidationError(
                "orderId required",
                errors=[{"field": "orderId", "message": "orderId is required"}],
            )

        counter = self.repository.increment(
            order_id=order_id,
            session_id=clean_identifier(session_id, MAX_ID_LENGTH) or None,
            amount=clean_text(amount, MAX_VALUE_LENGTH),
            currency=clean_text(currency, MAX_VALUE_LENGTH),
            address=clean_text(address, MAX_VALUE_LENGTH),
            ip=clean_identifier(ip, MAX_VALUE_LENGTH),
            user_agent=clean_text(user_agent, MAX_VALUE_LENGTH),
            meta=_clean_meta(meta),
        )

        logger.info(
            "Payment click recorded",
            order_id=order_id,
            session_id=counter.session_id,
            clicks=counter.clicks,
        )
        return counter.clicks

    def stats(self, window_days: Any = DEFAULT_WINDOW_DAYS, now: datetime | None = None) -> dict:
        """Aggregate counter creation over time.

        ``total`` counts counter records (distinct identities);
        ``totalClicks`` sums their clicks. ``last24h`` and ``byDay`` are
        based on record creation time.

        Args:
            window_days: Days covered by ``byDay``, clamped to [1, 90].
            now: Reference time (defaults to current UTC time).

        Returns:
            Dict with total, totalClicks, last24h, byDay and windowDays.
        """
        window_days = clamp_int(window_days, DEFAULT_WINDOW_DAYS, 1, MAX_WINDOW_DAYS)
        now = now or datetime.now(timezone.utc)
        day_cutoff = now - timedelta(hours=24)

        rows = self.repository.list_creation_stats()

        created: list[datetime] = []
        total_clicks = 0
        for row in rows:
            total_clicks += int(row.get("clicks") or 0)
            first_at = _parse_first_at(row.get("first_at"))
            if first_at is not None:
                created.append(first_at)

        return {
            "total": len(rows),
            "totalClicks": total_clicks,
            "last24h": sum(1 for ts in created if day_cutoff <= ts <= now),
            "byDay": _bucket_by_day(created, window_days, now),
            "windowDays": window_days,
        }

    def list_recent(self, limit: int = 50) -> list[PaymentClick]:
        """Most recently created counters first."""
        return self.repository.list_recent(limit=limit)

    def order_summary(self, order_id: Any) -> dict:
        """Counters of one order with the summed click total.

        Raises:
            ValidationError: If ``order_id`` is empty.
        """
        order_id = clean_identifier(order_id, MAX_ID_LENGTH)
        if not order_id:
            raise ValidationError(
                "orderId required",
                errors=[{"field": "orderId", "message": "orderId is required"}],
            )

        counters = self.repository.list_by_order(order_id)
        return {
            "orderId": order_id,
            "total": sum(c.clicks for c in counters),
            "rows": [c.to_api() for c in counters],
        }
