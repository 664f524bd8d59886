"""Destination models for outbound notifications.

A destination is a configured webhook endpoint with its auth, template and
health metadata. The dispatch engine treats destinations as read-only
input and reports counter changes as HealthUpdate values for the caller
to persist.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .base import JSONValue, generate_id

AuthType = Literal["bearer", "basic", "api_key", "custom"]

# Auth schemes that produce headers; anything else is logged and ignored
KNOWN_AUTH_TYPES: tuple[str, ...] = ("bearer", "basic", "api_key", "custom")

WILDCARD_EVENT = "*"


class Destination(BaseModel):
    """A configured webhook destination.

    Attributes:
        id: Unique identifier for this destination.
        organization_id: Owning organization.
        name: Human-readable label.
        url: Target URL. Optional here so validation can report it missing.
        is_active: Inactive destinations are never retried.
        secret: Shared secret for HMAC-SHA256 signatures.
        auth_type: Authentication scheme (bearer, basic, api_key, custom).
        auth_config: Scheme settings, as JSON text or a parsed object.
        headers: Extra request headers, as JSON text or a parsed object.
        payload_template: Document with {{dotted.path}} placeholders.
        field_mapping: Table of target_path -> source_path.
        events: Event tags this destination wants, or "*" for all.
        last_success_at: Last successful delivery.
        last_failure_at: Last failed delivery.
        failure_count: Consecutive failures since the last success.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: generate_id("whk"))
    organization_id: str | None = Field(default=None, description="Owning organization")
    name: str | None = Field(default=None, description="Human-readable label")
    url: str | None = Field(default=None, description="Target URL")
    is_active: bool = Field(default=True, description="Whether deliveries are allowed")
    secret: str | None = Field(default=None, description="Shared secret for signatures")
    auth_type: str | None = Field(default=None, description="Authentication scheme")
    auth_config: JSONValue = Field(default=None, description="Authentication settings")
    headers: JSONValue = Field(default=None, description="Custom request headers")
    payload_template: JSONValue = Field(default=None, description="Payload template document")
    field_mapping: JSONValue = Field(default=None, description="target_path -> source_path")
    events: list[str] | str = Field(
        default_factory=lambda: [WILDCARD_EVENT],
        description="Subscribed event tags or '*'",
    )
    last_success_at: datetime | None = Field(default=None)
    last_failure_at: datetime | None = Field(default=None)
    failure_count: int = Field(default=0, ge=0)

    def subscribes_to(self, event: str) -> bool:
        """Check if this destination is active and wants the given event.

        An empty event list means every event, as does the "*" wildcard.
        """
        if not self.is_active:
            return False
        if isinstance(self.events, str):
            return self.events in (WILDCARD_EVENT, event)
        if not self.events:
            return True
        return WILDCARD_EVENT in self.events or event in self.events


class ValidationResult(BaseModel):
    """Outcome of pre-flight destination validation."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class HealthUpdate(BaseModel):
    """Counter changes for a destination after a delivery.

    Only one of last_success_at / last_failure_at is set.
    """

    model_config = ConfigDict(extra="forbid")

    destination_id: str | None
    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None
    failure_count: int = Field(ge=0)

    def as_row(self) -> dict[str, Any]:
        """Columns to write back, omitting the timestamp that did not change."""
        return self.model_dump(exclude_none=True, exclude={"destination_id"})


__all__ = [
    "KNOWN_AUTH_TYPES",
    "WILDCARD_EVENT",
    "AuthType",
    "Destination",
    "HealthUpdate",
    "ValidationResult",
]
