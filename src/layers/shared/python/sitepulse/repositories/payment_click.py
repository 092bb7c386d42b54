"""Payment click counter repository.

Increments use a single UpdateItem with ADD and if_not_exists, so
concurrent clicks on the same (order, session) never lose an update and
creation-only fields are never overwritten.
"""

from datetime import datetime
from typing import Any

import structlog
from botocore.exceptions import ClientError

from sitepulse.models.base import generate_ulid, serialize_value, utc_now
from sitepulse.models.payment_click import (
    PAYMENT_CLICK_GSI1_PK,
    PaymentClick,
    creation_gsi1_sk,
    order_pk,
    session_sk,
)
from sitepulse.repositories.base import BaseRepository
from sitepulse.utils.exceptions import PersistenceError

logger = structlog.get_logger()


class PaymentClickRepository(BaseRepository[PaymentClick]):
    """Repository for PaymentClick counters."""

    def __init__(self, table_name: str | None = None):
        super().__init__(PaymentClick, table_name)

    def get_counter(self, order_id: str, session_id: str | None = None) -> PaymentClick | None:
        """Get the counter for an (order, session) identity."""
        return self.get(order_pk(order_id), session_sk(session_id))

    def increment(
        self,
        order_id: str,
        session_id: str | None = None,
        amount: str = "",
        currency: str = "",
        address: str = "",
        ip: str = "",
        user_agent: str = "",
        meta: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> PaymentClick:
        """Atomically count one click, creating the counter if needed.

        Args:
            order_id: Order identifier (required, already validated).
            session_id: Optional per-tab session id; None shares the anonymous counter.
            amount: Last observed amount.
            currency: Last observed currency.
            address: Last observed payment address.
            ip: Last observed client IP.
            user_agent: Last observed user agent.
            meta: Auxiliary payload, stored only when the counter is created.
            now: Event time (defaults to current UTC time).

        Returns:
            The counter after the update.
        """
        now = now or utc_now()
        now_iso = now.isoformat()

        # Creation-only fields keep their first value
        creation_fields = {
            "id": ":id",
            "order_id": ":order_id",
            "first_at": ":now",
            "created_at": ":now",
            "GSI1PK": ":gsi1pk",
            "GSI1SK": ":gsi1sk",
        }
        # Last observed values are overwritten on every click
        observed_fields = {
            "amount": ":amount",
            "currency": ":currency",
            "address": ":address",
            "ip": ":ip",
            "user_agent": ":ua",
            "last_at": ":now",
            "updated_at": ":now",
        }
        expr_values: dict[str, Any] = {
            ":id": generate_ulid(),
            ":order_id": order_id,
            ":now": now_iso,
            ":gsi1pk": PAYMENT_CLICK_GSI1_PK,
            ":gsi1sk": creation_gsi1_sk(now, order_id),
            ":amount": amount,
            ":currency": currency,
            ":address": address,
            ":ip": ip,
            ":ua": user_agent,
            ":one": 1,
        }

        if session_id:
            creation_fields["session_id"] = ":session_id"
            expr_values[":session_id"] = session_id
        if meta is not None:
            creation_fields["meta"] = ":meta"
            expr_values[":meta"] = serialize_value(meta)

        # Attribute names go through placeholders; several are DynamoDB reserved words
        expr_names = {"#clicks": "clicks"}
        set_parts = []
        for attr, placeholder in creation_fields.items():
            expr_names[f"#{attr}"] = attr
            set_parts.append(f"#{attr} = if_not_exists(#{attr}, {placeholder})")
        for attr, placeholder in observed_fields.items():
            expr_names[f"#{attr}"] = attr
            set_parts.append(f"#{attr} = {placeholder}")

        update_expr = f"SET {', '.join(set_parts)} ADD #clicks :one"

        try:
            response = self.table.update_item(
                Key=self._build_key(order_pk(order_id), session_sk(session_id)),
                UpdateExpression=update_expr,
                ExpressionAttributeNames=expr_names,
                ExpressionAttributeValues=expr_values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            logger.exception(
                "Failed to increment payment click counter",
                order_id=order_id,
                session_id=session_id,
                error=str(e),
            )
            raise PersistenceError("update_item", str(e)) from e

        return PaymentClick.from_dynamodb(response["Attributes"])

    def list_by_order(self, order_id: str) -> list[PaymentClick]:
        """All counters (every session plus anonymous) for an order."""
        items = self.query_all_items(
            key_condition="PK = :pk",
            expression_values={":pk": order_pk(order_id)},
        )
        return [PaymentClick.from_dynamodb(item) for item in items]

    def list_recent(self, limit: int = 50) -> list[PaymentClick]:
        """Counters ordered by creation time, newest first."""
        counters, _ = self.query(
            pk=PAYMENT_CLICK_GSI1_PK,
            index_name="GSI1",
            limit=limit,
            scan_forward=False,
        )
        return counters

    def list_creation_stats(self) -> list[dict[str, Any]]:
        """Creation time and click count of every counter, oldest first.

        Returns:
            Dicts with ``first_at`` (ISO string) and ``clicks``.
        """
        names = {"#first_at": "first_at", "#clicks": "clicks"}
        return self.query_all_items(
            key_condition="GSI1PK = :pk",
            expression_values={":pk": PAYMENT_CLICK_GSI1_PK},
            expression_names=names,
            index_name="GSI1",
            projection="#first_at, #clicks",
        )
