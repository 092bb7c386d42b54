"""Tests for Pydantic models."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sitepulse.models.activity_log import ActivityLogEntry, GeoRecord
from sitepulse.models.base import format_sort_timestamp, generate_ulid
from sitepulse.models.payment_click import (
    ANONYMOUS_SESSION_SK,
    PaymentClick,
    creation_gsi1_sk,
    session_sk,
)


class TestBaseModel:
    """Tests for BaseModel."""

    def test_generate_ulid(self):
        """Test ULID generation."""
        ulid1 = generate_ulid()
        ulid2 = generate_ulid()

        assert len(ulid1) == 26
        assert ulid1 != ulid2

    def test_sort_timestamp_keeps_microseconds(self):
        """Whole-second datetimes still carry a fractional part."""
        value = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

        assert format_sort_timestamp(value) == "2024-03-01T12:00:00.000000Z"

    def test_sort_timestamp_orders_lexicographically(self):
        """String order of sort timestamps matches time order."""
        earlier = datetime(2024, 3, 1, 12, 0, 0, 999999, tzinfo=timezone.utc)
        later = datetime(2024, 3, 1, 12, 0, 1, tzinfo=timezone.utc)

        assert format_sort_timestamp(earlier) < format_sort_timestamp(later)

    def test_sort_timestamp_pads_early_years(self):
        """Years before 1000 keep four digits so they sort before later years."""
        ancient = datetime(999, 1, 1, tzinfo=timezone.utc)
        recent = datetime(2024, 3, 1, tzinfo=timezone.utc)

        assert format_sort_timestamp(ancient) == "0999-01-01T00:00:00.000000Z"
        assert format_sort_timestamp(ancient) < format_sort_timestamp(recent)

    def test_sort_timestamp_converts_to_utc(self):
        """Offsets are normalised to UTC."""
        value = datetime(2024, 3, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_sort_timestamp(value) == "2024-03-01T12:00:00.000000Z"


class TestActivityLogEntry:
    """Tests for ActivityLogEntry."""

    def test_keys(self):
        """Entries share one partition and sort by creation time."""
        entry = ActivityLogEntry(
            id="01HXTEST",
            created_at=datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc),
        )

        assert entry.get_pk() == "IPLOG"
        assert entry.get_sk() == "LOG#2024-03-01T12:00:00.000000Z#01HXTEST"

    def test_serialization_omits_missing_geo(self):
        """An entry without geo has no geo attribute in the stored item."""
        entry = ActivityLogEntry(server_detected_ip="203.0.113.10", page="/home")

        db_item = entry.to_dynamodb()

        assert "geo" not in db_item
        assert db_item["server_detected_ip"] == "203.0.113.10"
        assert isinstance(db_item["created_at"], str)

    def test_serialization_converts_coordinates(self):
        """Geo floats are stored as Decimal and unknown fields stay absent."""
        entry = ActivityLogEntry(
            geo=GeoRecord(ip="8.8.8.8", city="Mountain View", latitude=37.4, longitude=-122.1),
        )

        geo = entry.to_dynamodb()["geo"]

        assert geo["latitude"] == Decimal("37.4")
        assert geo["longitude"] == Decimal("-122.1")
        assert "asn" not in geo
        assert "country" not in geo

    def test_round_trip_from_dynamodb(self):
        """Stored items deserialize back to typed models."""
        entry = ActivityLogEntry(geo=GeoRecord(city="Lisbon", latitude=38.7))
        db_item = entry.to_dynamodb()
        db_item.update(entry.get_keys())

        restored = ActivityLogEntry.from_dynamodb(db_item)

        assert restored.id == entry.id
        assert restored.created_at == entry.created_at
        assert restored.geo.latitude == 38.7

    def test_api_output_is_camel_case(self):
        """API payloads use camelCase names."""
        entry = ActivityLogEntry(client_reported_ip="198.51.100.7")

        data = entry.to_api()

        assert data["clientReportedIp"] == "198.51.100.7"
        assert "createdAt" in data
        assert "client_reported_ip" not in data


class TestPaymentClick:
    """Tests for PaymentClick."""

    def test_session_keys(self):
        """Session counters are keyed by order and session."""
        click = PaymentClick(order_id="A1", session_id="s1")

        assert click.get_keys() == {"PK": "ORDER#A1", "SK": "SESSION#s1"}

    def test_anonymous_key(self):
        """Clicks without a session share one anonymous counter."""
        assert session_sk(None) == ANONYMOUS_SESSION_SK
        assert session_sk("") == ANONYMOUS_SESSION_SK
        assert PaymentClick(order_id="A1").get_sk() == ANONYMOUS_SESSION_SK

    def test_creation_index_key(self):
        """The creation index sorts by first click time, then order."""
        first_at = datetime(2024, 3, 1, tzinfo=timezone.utc)

        assert creation_gsi1_sk(first_at, "A1") == "2024-03-01T00:00:00.000000Z#A1"

    def test_from_dynamodb_ignores_key_attributes(self):
        """Key attributes in the stored item do not break validation."""
        item = {
            "PK": "ORDER#A1",
            "SK": "SESSION#s1",
            "GSI1PK": "PAYCLICK",
            "GSI1SK": "2024-03-01T00:00:00.000000Z#A1",
            "id": "01HXTEST",
            "order_id": "A1",
            "session_id": "s1",
            "clicks": Decimal("3"),
            "amount": "10.00",
            "first_at": "2024-03-01T00:00:00+00:00",
            "last_at": "2024-03-01T00:05:00+00:00",
            "created_at": "2024-03-01T00:00:00+00:00",
            "updated_at": "2024-03-01T00:05:00+00:00",
        }

        click = PaymentClick.from_dynamodb(item)

        assert click.clicks == 3
        assert click.amount == "10.00"
        assert click.first_at < click.last_at
        assert click.to_api()["orderId"] == "A1"
