"""Activity log model for client visit events.

One entry is written per logging event and never mutated afterwards.

DynamoDB keys:
    PK: IPLOG
    SK: LOG#{created_at}#{id}
"""

from pydantic import Field

from sitepulse.models.base import BaseModel, WireModel, format_sort_timestamp

# Max characters kept for free-text fields (user agent, page, note, IPs)
MAX_TEXT_LENGTH = 200

ACTIVITY_LOG_PK = "IPLOG"
ACTIVITY_LOG_SK_PREFIX = "LOG#"


class GeoRecord(WireModel):
    """Approximate geographic and network metadata for an IP.

    Fields a provider did not report stay ``None`` (and are omitted on
    persistence) instead of being defaulted to empty values.
    """

    ip: str | None = None
    city: str | None = None
    region: str | None = None
    country: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    asn: str | None = None
    org: str | None = None
    timezone: str | None = None


class ActivityLogEntry(BaseModel):
    """A single visit/log event.

    Key Pattern:
        PK: IPLOG
        SK: LOG#{created_at}#{id}
    """

    server_detected_ip: str = Field(default="", max_length=MAX_TEXT_LENGTH)
    client_reported_ip: str = Field(default="", max_length=MAX_TEXT_LENGTH)
    user_agent: str = Field(default="", max_length=MAX_TEXT_LENGTH)
    page: str = Field(default="", max_length=MAX_TEXT_LENGTH)
    note: str = Field(default="", max_length=MAX_TEXT_LENGTH)

    # Present only when geolocation succeeded
    geo: GeoRecord | None = None

    def get_pk(self) -> str:
        """Get the partition key."""
        return ACTIVITY_LOG_PK

    def get_sk(self) -> str:
        """Get the sort key (creation time first, id as tiebreaker)."""
        return f"{ACTIVITY_LOG_SK_PREFIX}{format_sort_timestamp(self.created_at)}#{self.id}"
