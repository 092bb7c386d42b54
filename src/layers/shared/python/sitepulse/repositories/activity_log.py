"""Activity log repository: append-only visit events with cursor pagination."""

from datetime import datetime
from typing import Any

import structlog

from sitepulse.models.activity_log import (
    ACTIVITY_LOG_PK,
    ACTIVITY_LOG_SK_PREFIX,
    ActivityLogEntry,
)
from sitepulse.models.base import format_sort_timestamp
from sitepulse.repositories.base import BaseRepository

logger = structlog.get_logger()

DEFAULT_QUERY_LIMIT = 50
MAX_QUERY_LIMIT = 1000

# Compact listing projection: keeps list payloads small
_PROJECTION_NAMES = {
    "#id": "id",
    "#created_at": "created_at",
    "#server_ip": "server_detected_ip",
    "#client_ip": "client_reported_ip",
    "#page": "page",
    "#geo": "geo",
    "#city": "city",
    "#region": "region",
    "#country": "country",
}
_PROJECTION = (
    "#id, #created_at, #server_ip, #client_ip, #page, "
    "#geo.#city, #geo.#region, #geo.#country"
)


def _compact_row(item: dict[str, Any]) -> dict[str, Any]:
    """Map a projected item to its wire shape."""
    row = {
        "id": item.get("id"),
        "createdAt": item.get("created_at"),
        "serverDetectedIp": item.get("server_detected_ip", ""),
        "clientReportedIp": item.get("client_reported_ip", ""),
        "page": item.get("page", ""),
    }
    geo = item.get("geo")
    if geo:
        row["geo"] = {k: geo[k] for k in ("city", "region", "country") if k in geo}
    return row


class ActivityLogRepository(BaseRepository[ActivityLogEntry]):
    """Repository for ActivityLogEntry records.

    All entries share one partition; the sort key starts with the creation
    timestamp so a descending query is newest-first.
    """

    def __init__(self, table_name: str | None = None):
        super().__init__(ActivityLogEntry, table_name)

    def append(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        """Insert a log entry.

        Free-text fields must already be truncated by the caller.

        Args:
            entry: Entry to persist.

        Returns:
            The persisted entry (carrying its id and created_at).
        """
        self.create(entry)
        logger.debug("Activity log appended", log_id=entry.id)
        return entry

    def query_recent(
        self,
        limit: int = DEFAULT_QUERY_LIMIT,
        before: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """List entries newest first, optionally strictly before a timestamp.

        Args:
            limit: Maximum rows, clamped to [1, 1000].
            before: Cursor; only entries created strictly earlier are returned.

        Returns:
            Compact rows (id, createdAt, both IPs, page, geo city/region/country).
        """
        limit = max(1, min(MAX_QUERY_LIMIT, limit))
        values: dict[str, Any] = {":pk": ACTIVITY_LOG_PK}

        if before is not None:
            # Entries at exactly ``before`` sort after this bound (SK has an #id suffix)
            key_condition = "PK = :pk AND SK BETWEEN :lower AND :upper"
            values[":lower"] = ACTIVITY_LOG_SK_PREFIX
            values[":upper"] = f"{ACTIVITY_LOG_SK_PREFIX}{format_sort_timestamp(before)}"
        else:
            key_condition = "PK = :pk AND begins_with(SK, :prefix)"
            values[":prefix"] = ACTIVITY_LOG_SK_PREFIX

        items, _ = self.query_items(
            key_condition=key_condition,
            expression_values=values,
            expression_names=_PROJECTION_NAMES,
            projection=_PROJECTION,
            limit=limit,
            scan_forward=False,
        )
        return [_compact_row(item) for item in items]
