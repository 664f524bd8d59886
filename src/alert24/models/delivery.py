"""Delivery result and statistics models.

One DeliveryResult is produced per physical network call. The retry
controller returns only the last one of a sequence, with `attempt` telling
how far it got and `outcome` telling why it stopped.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .base import utc_timestamp
from .destination import HealthUpdate

# Terminal states of a retry sequence. "invalid" means pre-flight validation
# failed and nothing was sent.
DeliveryOutcome = Literal["delivered", "exhausted", "rejected", "invalid"]

DeliveryLabel = Literal["delivered", "partial_failure", "failed"]


class DeliveryResult(BaseModel):
    """Result of one delivery attempt.

    Attributes:
        success: Whether the provider accepted the delivery.
        destination_id: Destination this attempt targeted.
        address: Target URL or phone number.
        status_code: Transport status code, if a response was received.
        response_time_ms: Round-trip latency, on success.
        response_headers: Response headers, on success.
        response_body: Response body (success, or failure diagnostics).
        error: Human-readable failure description.
        error_code: Transport or provider error code.
        attempt: 1-based attempt ordinal (0 when never attempted).
        timestamp: When the attempt finished.
        outcome: Why the retry sequence stopped, set by the retry controller.
        provider: Channel provider name (e.g. "twilio").
        message_id: Provider message or call identifier.
        cost: Provider-reported price (Twilio reports negative amounts).
        currency: Currency of cost.
    """

    model_config = ConfigDict(extra="forbid")

    success: bool
    destination_id: str | None = None
    address: str | None = None
    status_code: int | None = None
    response_time_ms: float | None = None
    response_headers: dict[str, str] | None = None
    response_body: str | None = None
    error: str | None = None
    error_code: str | None = None
    attempt: int = Field(default=1, ge=0)
    timestamp: str = Field(default_factory=utc_timestamp)
    outcome: DeliveryOutcome | None = None
    provider: str | None = None
    message_id: str | None = None
    cost: str | None = None
    currency: str | None = None

    @property
    def is_client_error(self) -> bool:
        """True for 4xx responses, which are never retried."""
        return self.status_code is not None and 400 <= self.status_code < 500

    @classmethod
    def failure(
        cls,
        error: str,
        *,
        destination_id: str | None = None,
        address: str | None = None,
        attempt: int = 1,
        **fields: Any,
    ) -> "DeliveryResult":
        """Build a failed result."""
        return cls(
            success=False,
            error=error,
            destination_id=destination_id,
            address=address,
            attempt=attempt,
            **fields,
        )


class DeliveryStats(BaseModel):
    """Aggregate view of a batch of delivery results.

    Attributes:
        total: Number of results.
        successful: Results that succeeded.
        failed: Results that failed.
        success_rate: Percentage 0-100 (0 for an empty batch).
        avg_response_time_ms: Mean latency over timed successes.
        errors: Failure count per error key.
        total_cost: Sum of absolute provider costs.
        currencies: Cost per currency.
    """

    model_config = ConfigDict(extra="forbid")

    total: int = 0
    successful: int = 0
    failed: int = 0
    success_rate: float = 0.0
    avg_response_time_ms: float = 0.0
    errors: dict[str, int] = Field(default_factory=dict)
    total_cost: float = 0.0
    currencies: dict[str, float] = Field(default_factory=dict)

    @property
    def any_succeeded(self) -> bool:
        """A batch counts as sent if at least one destination accepted it."""
        return self.successful > 0

    def delivery_label(self, threshold: float = 80.0) -> DeliveryLabel:
        """Classify the batch for display.

        Args:
            threshold: Minimum success rate to call the round delivered.
        """
        if self.total == 0 or not self.any_succeeded:
            return "failed"
        if self.success_rate >= threshold:
            return "delivered"
        return "partial_failure"


class DispatchReport(BaseModel):
    """Everything the caller needs to persist after dispatching an event.

    `results[i]` and `health_updates[i]` belong to `destination_ids[i]`.
    """

    model_config = ConfigDict(extra="forbid")

    event: str
    destination_ids: list[str] = Field(default_factory=list)
    results: list[DeliveryResult] = Field(default_factory=list)
    stats: DeliveryStats = Field(default_factory=DeliveryStats)
    health_updates: list[HealthUpdate] = Field(default_factory=list)
    skipped: list[str] = Field(
        default_factory=list,
        description="Destinations that were inactive or not subscribed",
    )

    @property
    def success(self) -> bool:
        return self.stats.any_succeeded


__all__ = [
    "DeliveryLabel",
    "DeliveryOutcome",
    "DeliveryResult",
    "DeliveryStats",
    "DispatchReport",
]
