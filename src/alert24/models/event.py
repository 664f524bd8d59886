"""Event envelope sent to webhook destinations."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .base import utc_timestamp

# Event tags with a dedicated payload shape
INCIDENT_EVENTS: tuple[str, ...] = ("incident.created", "incident.updated", "incident.resolved")
SERVICE_EVENTS: tuple[str, ...] = ("service.down", "service.up", "service.degraded")
MONITORING_EVENTS: tuple[str, ...] = ("monitoring.alert",)

DEFAULT_EVENT = "notification"
TEST_EVENT = "test"
PAYLOAD_VERSION = "1.0"


class EventEnvelope(BaseModel):
    """Normalized wrapper around an event, before any per-destination transform.

    A new envelope (with a new id) is built for every delivery attempt.

    Attributes:
        id: Unique identifier for this attempt's payload.
        timestamp: When the envelope was built.
        event: Event tag (e.g. "incident.created").
        organization_id: Organization that owns the destination.
        destination_id: Destination the envelope is addressed to.
        data: Event data, treated as opaque JSON.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    timestamp: str = Field(default_factory=utc_timestamp)
    event: str = DEFAULT_EVENT
    organization_id: str | None = None
    destination_id: str | None = None
    data: Any = None

    def to_document(self) -> dict[str, Any]:
        """Return the envelope as a fresh JSON-ready dict."""
        return self.model_dump(mode="json")


__all__ = [
    "DEFAULT_EVENT",
    "INCIDENT_EVENTS",
    "MONITORING_EVENTS",
    "PAYLOAD_VERSION",
    "SERVICE_EVENTS",
    "TEST_EVENT",
    "EventEnvelope",
]
