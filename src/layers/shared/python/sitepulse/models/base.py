"""Base Pydantic models with DynamoDB serialization."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Self

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def format_sort_timestamp(value: datetime) -> str:
    """Format a datetime for use inside a sort key.

    Always UTC with microsecond precision so that lexicographic order of
    the string matches chronological order. The year is always four
    digits and the fractional part is kept even when it is zero.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc_value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return utc_value.isoformat(timespec="microseconds") + "Z"


class WireModel(PydanticBaseModel):
    """Pydantic model that speaks camelCase on the wire.

    Attributes are snake_case in Python and in DynamoDB; API payloads use
    the camelCase aliases.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
    )

    def to_api(self) -> dict[str, Any]:
        """Serialize for an API response (camelCase, no empty optionals)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TimestampMixin(WireModel):
    """Mixin for created_at and updated_at timestamps."""

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class BaseModel(TimestampMixin):
    """Base model with ID generation and DynamoDB serialization.

    All persisted entity models should inherit from this class.
    """

    id: str = Field(default_factory=generate_ulid)

    def to_dynamodb(self) -> dict[str, Any]:
        """Serialize model to DynamoDB item format.

        Datetimes become ISO strings, floats become Decimal and ``None``
        values are dropped so that unknown fields stay absent.
        """
        data = self.model_dump(mode="json")
        return serialize_value(data)

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> Self:
        """Deserialize DynamoDB item to model instance.

        Key attributes (PK, SK, GSI keys) are ignored by validation.
        """
        return cls.model_validate(deserialize_value(item))

    def get_pk(self) -> str:
        """Get the partition key for this entity."""
        raise NotImplementedError("Subclasses must implement get_pk()")

    def get_sk(self) -> str:
        """Get the sort key for this entity."""
        raise NotImplementedError("Subclasses must implement get_sk()")

    def get_keys(self) -> dict[str, str]:
        """Get both PK and SK as a dictionary."""
        return {"PK": self.get_pk(), "SK": self.get_sk()}


def serialize_value(value: Any) -> Any:
    """Recursively serialize values for DynamoDB.

    Converts floats to Decimal (DynamoDB requirement) and datetimes to ISO strings.
    """
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def deserialize_value(value: Any) -> Any:
    """Recursively deserialize values from DynamoDB.

    Converts Decimals back to int or float. Strings are left alone; typed
    datetime fields are parsed by Pydantic during validation.
    """
    if isinstance(value, dict):
        return {k: deserialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [deserialize_value(item) for item in value]
    if isinstance(value, Decimal):
        if value % 1 == 0:
            return int(value)
        return float(value)
    return value
