"""Base repository class for DynamoDB operations."""

import os
from typing import Any, Generic, TypeVar

import boto3
import structlog
from botocore.exceptions import ClientError

from sitepulse.models.base import BaseModel, deserialize_value
from sitepulse.utils.exceptions import PersistenceError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

# Key attribute names per index
INDEX_KEYS = {
    None: ("PK", "SK"),
    "GSI1": ("GSI1PK", "GSI1SK"),
}


class BaseRepository(Generic[T]):
    """Base repository for DynamoDB single-table design.

    Store failures are logged with full context and re-raised as
    PersistenceError.
    """

    def __init__(
        self,
        model_class: type[T],
        table_name: str | None = None,
    ):
        """Initialize repository.

        Args:
            model_class: The Pydantic model class for this repository.
            table_name: DynamoDB table name. Defaults to TABLE_NAME env var.
        """
        self.model_class = model_class
        self.table_name = table_name or os.environ.get("TABLE_NAME", "sitepulse-dev")
        self._dynamodb = None
        self._table = None

    @property
    def dynamodb(self):
        """Get DynamoDB resource (lazy initialization)."""
        if self._dynamodb is None:
            self._dynamodb = boto3.resource("dynamodb")
        return self._dynamodb

    @property
    def table(self):
        """Get DynamoDB table (lazy initialization)."""
        if self._table is None:
            self._table = self.dynamodb.Table(self.table_name)
        return self._table

    def _build_key(self, pk: str, sk: str) -> dict[str, str]:
        """Build key dictionary for DynamoDB operations."""
        return {"PK": pk, "SK": sk}

    def get(self, pk: str, sk: str) -> T | None:
        """Get an item by its primary key.

        Args:
            pk: Partition key value.
            sk: Sort key value.

        Returns:
            Model instance or None if not found.
        """
        try:
            response = self.table.get_item(Key=self._build_key(pk, sk))
        except ClientError as e:
            logger.error("DynamoDB get_item failed", error=str(e), pk=pk, sk=sk)
            raise PersistenceError("get_item", str(e)) from e

        item = response.get("Item")
        if not item:
            return None
        return self.model_class.from_dynamodb(item)

    def create(self, item: T, gsi_keys: dict[str, str] | None = None) -> T:
        """Insert a new item (fails if the key already exists).

        Args:
            item: Model instance to save.
            gsi_keys: Optional GSI key values to add.

        Returns:
            The saved model instance.
        """
        db_item = item.to_dynamodb()
        db_item.update(item.get_keys())
        if gsi_keys:
            db_item.update(gsi_keys)

        try:
            self.table.put_item(
                Item=db_item,
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as e:
            logger.error(
                "DynamoDB put_item failed",
                error=str(e),
                pk=db_item["PK"],
                sk=db_item["SK"],
                model=self.model_class.__name__,
            )
            raise PersistenceError("put_item", str(e)) from e

        logger.debug(
            "Item saved",
            pk=db_item["PK"],
            sk=db_item["SK"],
            model=self.model_class.__name__,
        )
        return item

    def query_items(
        self,
        key_condition: str,
        expression_values: dict[str, Any],
        expression_names: dict[str, str] | None = None,
        index_name: str | None = None,
        projection: str | None = None,
        limit: int | None = None,
        scan_forward: bool = True,
        last_key: dict | None = None,
    ) -> tuple[list[dict[str, Any]], dict | None]:
        """Run a single query page and return raw (deserialized) items.

        Args:
            key_condition: KeyConditionExpression.
            expression_values: Expression attribute values.
            expression_names: Expression attribute names.
            index_name: Optional GSI name.
            projection: Optional ProjectionExpression.
            limit: Maximum items to return.
            scan_forward: Sort direction (True = ascending).
            last_key: Last evaluated key for pagination.

        Returns:
            Tuple of (items, last_evaluated_key).
        """
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ExpressionAttributeValues": expression_values,
            "ScanIndexForward": scan_forward,
        }
        if expression_names:
            kwargs["ExpressionAttributeNames"] = expression_names
        if index_name:
            kwargs["IndexName"] = index_name
        if projection:
            kwargs["ProjectionExpression"] = projection
        if limit:
            kwargs["Limit"] = limit
        if last_key:
            kwargs["ExclusiveStartKey"] = last_key

        try:
            response = self.table.query(**kwargs)
        except ClientError as e:
            logger.error(
                "DynamoDB query failed",
                error=str(e),
                index=index_name,
                key_condition=key_condition,
            )
            raise PersistenceError("query", str(e)) from e

        items = [deserialize_value(item) for item in response.get("Items", [])]
        return items, response.get("LastEvaluatedKey")

    def query_all_items(self, **kwargs: Any) -> list[dict[str, Any]]:
        """Run a query and follow pagination until exhausted."""
        items: list[dict[str, Any]] = []
        last_key = None
        while True:
            page, last_key = self.query_items(last_key=last_key, **kwargs)
            items.extend(page)
            if not last_key:
                return items

    def query(
        self,
        pk: str,
        sk_begins_with: str | None = None,
        index_name: str | None = None,
        limit: int | None = None,
        scan_forward: bool = True,
        last_key: dict | None = None,
    ) -> tuple[list[T], dict | None]:
        """Query items by partition key.

        Args:
            pk: Partition key value.
            sk_begins_with: Sort key prefix for begins_with condition.
            index_name: Optional GSI name.
            limit: Maximum items to return.
            scan_forward: Sort direction (True = ascending).
            last_key: Last evaluated key for pagination.

        Returns:
            Tuple of (items, last_evaluated_key).
        """
        pk_name, sk_name = INDEX_KEYS[index_name]
        names = {"#pk": pk_name}
        values: dict[str, Any] = {":pk": pk}
        key_condition = "#pk = :pk"

        if sk_begins_with:
            names["#sk"] = sk_name
            values[":sk_prefix"] = sk_begins_with
            key_condition += " AND begins_with(#sk, :sk_prefix)"

        items, next_key = self.query_items(
            key_condition=key_condition,
            expression_values=values,
            expression_names=names,
            index_name=index_name,
            limit=limit,
            scan_forward=scan_forward,
            last_key=last_key,
        )
        return [self.model_class.model_validate(item) for item in items], next_key
