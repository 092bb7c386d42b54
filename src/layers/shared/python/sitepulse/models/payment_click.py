"""Payment click counter model.

Aggregates payment-button clicks per (order, session). Anonymous clicks
(no session) for an order collapse into a single record.

DynamoDB keys:
    PK: ORDER#{order_id}
    SK: SESSION#{session_id} | ANON
    GSI1PK: PAYCLICK
    GSI1SK: {first_at}#{order_id}
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from sitepulse.models.base import BaseModel, format_sort_timestamp

PAYMENT_CLICK_GSI1_PK = "PAYCLICK"
ANONYMOUS_SESSION_SK = "ANON"


def order_pk(order_id: str) -> str:
    """Partition key for all counters of an order."""
    return f"ORDER#{order_id}"


def session_sk(session_id: str | None) -> str:
    """Sort key for a session counter, or the shared anonymous counter."""
    if not session_id:
        return ANONYMOUS_SESSION_SK
    return f"SESSION#{session_id}"


def creation_gsi1_sk(first_at: datetime, order_id: str) -> str:
    """GSI1 sort key ordering counters by creation time."""
    return f"{format_sort_timestamp(first_at)}#{order_id}"


class PaymentClick(BaseModel):
    """Click counter for a (order, session) identity.

    ``amount``, ``currency``, ``address``, ``ip`` and ``user_agent`` hold
    the last observed values. ``first_at`` and ``meta`` are written only
    when the record is created.
    """

    order_id: str = Field(..., min_length=1)
    session_id: str | None = None

    clicks: int = Field(default=0, ge=0)

    # Last observed values
    currency: str = ""
    amount: str = ""
    address: str = ""
    ip: str = ""
    user_agent: str = ""

    meta: dict[str, Any] | None = None

    first_at: datetime | None = None
    last_at: datetime | None = None

    def get_pk(self) -> str:
        """Get the partition key."""
        return order_pk(self.order_id)

    def get_sk(self) -> str:
        """Get the sort key."""
        return session_sk(self.session_id)
