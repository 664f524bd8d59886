"""Tests for Alert24 data models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from alert24.models import (
    DeliveryResult,
    DeliveryStats,
    Destination,
    DispatchReport,
    EventEnvelope,
    HealthUpdate,
    generate_id,
    load_json,
    utc_timestamp,
)


class TestHelpers:
    """Tests for shared model helpers."""

    def test_generate_id_prefix(self):
        """IDs should carry the prefix and be unique."""
        first = generate_id("step")
        assert first.startswith("step_")
        assert first != generate_id("step")

    def test_utc_timestamp_format(self):
        """Timestamps are ISO-8601 UTC with milliseconds and a Z suffix."""
        stamp = utc_timestamp()
        assert stamp.endswith("Z")
        assert len(stamp.split(".")[1]) == 4  # "123Z"

    def test_load_json_text_and_structures(self):
        """Text is parsed, parsed values pass through unchanged."""
        assert load_json('{"a": 1}') == {"a": 1}
        structure = {"a": 1}
        assert load_json(structure) is structure
        with pytest.raises(ValueError):
            load_json("{not json")


class TestDestination:
    """Tests for the Destination model."""

    def test_defaults(self):
        """New destinations are active and subscribed to everything."""
        destination = Destination(url="https://example.com/hook")
        assert destination.id.startswith("whk_")
        assert destination.is_active
        assert destination.events == ["*"]
        assert destination.failure_count == 0

    def test_ignores_unknown_columns(self):
        """Rows from storage may carry columns the engine does not use."""
        destination = Destination(url="https://example.com", created_by="user_1")
        assert not hasattr(destination, "created_by")

    @pytest.mark.parametrize(
        ("events", "event", "expected"),
        [
            (["*"], "incident.created", True),
            ("*", "service.down", True),
            (["incident.created"], "incident.created", True),
            (["incident.created"], "service.down", False),
            ([], "anything", True),
        ],
    )
    def test_subscribes_to(self, events, event, expected):
        """Subscription honors the wildcard and explicit tags."""
        destination = Destination(url="https://example.com", events=events)
        assert destination.subscribes_to(event) is expected

    def test_inactive_subscribes_to_nothing(self):
        destination = Destination(url="https://example.com", is_active=False)
        assert not destination.subscribes_to("incident.created")


class TestHealthUpdate:
    """Tests for HealthUpdate."""

    def test_as_row_omits_unchanged_timestamp(self):
        """Only the timestamp that changed is written back."""
        now = datetime.now(UTC)
        update = HealthUpdate(destination_id="whk_1", last_success_at=now, failure_count=0)
        assert update.as_row() == {"last_success_at": now, "failure_count": 0}


class TestDeliveryResult:
    """Tests for DeliveryResult."""

    def test_failure_builder(self):
        result = DeliveryResult.failure("HTTP 500: Internal Server Error", status_code=500)
        assert not result.success
        assert result.attempt == 1
        assert result.error == "HTTP 500: Internal Server Error"
        assert not result.is_client_error

    def test_is_client_error(self):
        """Only 4xx statuses are client errors."""
        assert DeliveryResult(success=False, status_code=401).is_client_error
        assert not DeliveryResult(success=False, status_code=503).is_client_error
        assert not DeliveryResult(success=False).is_client_error

    def test_attempt_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            DeliveryResult(success=False, attempt=-1)

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            DeliveryResult(success=True, surprise=1)


class TestDeliveryStats:
    """Tests for DeliveryStats labels."""

    @pytest.mark.parametrize(
        ("successful", "total", "label"),
        [
            (10, 10, "delivered"),
            (8, 10, "delivered"),
            (5, 10, "partial_failure"),
            (0, 10, "failed"),
            (0, 0, "failed"),
        ],
    )
    def test_delivery_label(self, successful, total, label):
        """A round is delivered above the threshold, partial below it."""
        stats = DeliveryStats(
            total=total,
            successful=successful,
            failed=total - successful,
            success_rate=successful / total * 100 if total else 0.0,
        )
        assert stats.delivery_label() == label

    def test_report_success_means_any_succeeded(self):
        report = DispatchReport(event="test", stats=DeliveryStats(total=3, successful=1, failed=2))
        assert report.success


class TestEventEnvelope:
    """Tests for EventEnvelope."""

    def test_to_document(self):
        """The document is a fresh JSON-ready dict with all envelope fields."""
        envelope = EventEnvelope(id="evt_1", event="incident.created", data={"id": "inc_1"})
        document = envelope.to_document()
        assert set(document) == {
            "id",
            "timestamp",
            "event",
            "organization_id",
            "destination_id",
            "data",
        }
        document["data"]["id"] = "changed"
        assert envelope.data == {"id": "inc_1"}

    def test_is_frozen(self):
        envelope = EventEnvelope(id="evt_1")
        with pytest.raises(ValidationError):
            envelope.event = "other"
