"""Webhook delivery with signatures, retry and batched fan-out.

Pipeline for one destination and one attempt:
    build envelope -> transform -> serialize -> sign/auth headers -> HTTP call

The retry controller repeats that pipeline (with a fresh envelope id and
delivery id each time) and the fan-out engine runs it across destinations.
Every failure comes back as a DeliveryResult; nothing here raises across
a batch boundary.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import httpx

from alert24.dispatch import RetryController, fan_out, summarize
from alert24.exceptions import DeliveryError, PayloadTooLargeError
from alert24.logging import dispatch_context
from alert24.models import (
    DEFAULT_EVENT,
    TEST_EVENT,
    DeliveryResult,
    Destination,
    DispatchReport,
    HealthUpdate,
    utc_now,
    utc_timestamp,
)

from .signing import build_headers
from .transform import build_envelope, create_event_payload, transform_payload
from .validation import validate_destination

if TYPE_CHECKING:
    from alert24.config import Settings

logger = logging.getLogger(__name__)

RESPONSE_BODY_LIMIT = 1000


def serialize_payload(payload: Any) -> bytes:
    """Serialize a payload once; these exact bytes are signed and sent."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str).encode(
        "utf-8"
    )


def health_update(
    destination: Destination,
    result: DeliveryResult,
    now: datetime | None = None,
) -> HealthUpdate:
    """Counter changes for a destination after a delivery.

    Success resets the failure count; failure increments it.
    """
    now = now or utc_now()
    if result.success:
        return HealthUpdate(destination_id=destination.id, last_success_at=now, failure_count=0)
    return HealthUpdate(
        destination_id=destination.id,
        last_failure_at=now,
        failure_count=destination.failure_count + 1,
    )


class WebhookService:
    """Delivers events to webhook destinations.

    Example:
        ```python
        service = WebhookService(settings)

        # One destination, with retries
        result = await service.deliver_with_retry(destination, data, event="incident.created")

        # Every subscribed destination, with stats and health updates
        report = await service.dispatch_event(destinations, "incident.created", incident)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the webhook service.

        Args:
            settings: Configuration; the global settings when omitted.
            sleep: Awaitable sleep used for backoff and batch delays.
        """
        if settings is None:
            from alert24.config import settings as default_settings

            settings = default_settings

        self._settings = settings
        self._policy = settings.webhook
        self._sleep = sleep or asyncio.sleep
        self._retry = RetryController(
            max_retries=self._policy.max_retries,
            base_delay_ms=self._policy.retry_delay_ms,
            sleep=self._sleep,
        )

    @property
    def retry_controller(self) -> RetryController:
        return self._retry

    async def deliver_once(
        self,
        destination: Destination,
        body: bytes,
        headers: dict[str, str],
        *,
        timeout_ms: int | None = None,
        method: str = "POST",
        attempt: int = 1,
    ) -> DeliveryResult:
        """Make one HTTP attempt.

        Args:
            destination: Destination to deliver to.
            body: Serialized payload bytes.
            headers: Complete request headers.
            timeout_ms: Wall-clock limit for the whole request.
            method: HTTP method.
            attempt: Ordinal recorded on the result.

        Returns:
            Success for status < 400; failure otherwise, or when the payload
            is too large, the request times out, or the network fails.
        """
        timeout_ms = timeout_ms or self._policy.timeout_ms
        timeout_s = timeout_ms / 1000
        label = {
            "destination_id": destination.id,
            "address": destination.url,
            "attempt": attempt,
        }

        start = time.perf_counter()
        try:
            if len(body) > self._policy.max_payload_bytes:
                raise PayloadTooLargeError(len(body), self._policy.max_payload_bytes)

            async with asyncio.timeout(timeout_s):
                async with httpx.AsyncClient(timeout=timeout_s) as client:
                    response = await client.request(
                        method,
                        str(destination.url),
                        content=body,
                        headers=headers,
                    )
        except DeliveryError as e:
            logger.warning("Webhook %s not sent: %s", destination.id, e.message)
            return DeliveryResult.failure(e.message, error_code=e.error_code, **label)
        except (TimeoutError, httpx.TimeoutException):
            logger.warning("Webhook %s timed out after %dms", destination.id, timeout_ms)
            return DeliveryResult.failure(
                f"Request timed out after {timeout_ms}ms", error_code="timeout", **label
            )
        except httpx.RequestError as e:
            logger.warning("Webhook %s network error: %s", destination.id, e)
            return DeliveryResult.failure(
                str(e) or type(e).__name__, error_code="network_error", **label
            )
        except Exception as e:
            logger.exception("Webhook delivery error: %s", e)
            return DeliveryResult.failure(f"Unexpected error: {e}", **label)

        response_time_ms = round((time.perf_counter() - start) * 1000, 2)
        response_body = response.text[:RESPONSE_BODY_LIMIT] if response.text else None

        if response.status_code >= 400:
            logger.warning(
                "Webhook rejected: %s (status %d, attempt %d)",
                destination.url,
                response.status_code,
                attempt,
            )
            return DeliveryResult.failure(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
                response_body=response_body,
                **label,
            )

        logger.info(
            "Webhook delivered: %s (status %d, %.0fms)",
            destination.url,
            response.status_code,
            response_time_ms,
        )
        return DeliveryResult(
            success=True,
            status_code=response.status_code,
            response_time_ms=response_time_ms,
            response_headers=dict(response.headers),
            response_body=response_body,
            timestamp=utc_timestamp(),
            **label,
        )

    async def send_webhook(
        self,
        destination: Destination,
        data: Any,
        *,
        event: str = DEFAULT_EVENT,
        attempt: int = 1,
        method: str = "POST",
        timeout_ms: int | None = None,
    ) -> DeliveryResult:
        """Build, sign and send one attempt to a destination."""
        envelope = build_envelope(destination, data, event)
        payload = transform_payload(destination, envelope)

        try:
            body = serialize_payload(payload)
        except (TypeError, ValueError) as e:
            return DeliveryResult.failure(
                f"Payload serialization failed: {e}",
                error_code="serialization_error",
                destination_id=destination.id,
                address=destination.url,
                attempt=attempt,
            )

        headers = build_headers(
            destination,
            body,
            delivery_id=str(uuid4()),
            user_agent=self._policy.user_agent,
        )
        return await self.deliver_once(
            destination,
            body,
            headers,
            timeout_ms=timeout_ms,
            method=method,
            attempt=attempt,
        )

    def _invalid_result(self, destination: Destination, errors: list[str]) -> DeliveryResult:
        return DeliveryResult.failure(
            f"Webhook validation failed: {', '.join(errors)}",
            error_code="validation_error",
            destination_id=destination.id,
            address=destination.url,
            attempt=0,
            outcome="invalid",
        )

    async def deliver_with_retry(
        self,
        destination: Destination,
        data: Any,
        *,
        event: str = DEFAULT_EVENT,
        method: str = "POST",
        timeout_ms: int | None = None,
    ) -> DeliveryResult:
        """Validate, then deliver with bounded exponential-backoff retry.

        Returns:
            The last attempt's result. Invalid destinations are never
            attempted and come back with attempt 0 and outcome "invalid".
        """
        validation = validate_destination(destination)
        for warning in validation.warnings:
            logger.warning("Webhook %s: %s", destination.id, warning)
        if not validation.is_valid:
            logger.warning(
                "Webhook %s failed validation: %s", destination.id, "; ".join(validation.errors)
            )
            return self._invalid_result(destination, validation.errors)

        async def _send(attempt: int) -> DeliveryResult:
            return await self.send_webhook(
                destination,
                data,
                event=event,
                attempt=attempt,
                method=method,
                timeout_ms=timeout_ms,
            )

        return await self._retry.run(
            _send,
            is_active=destination.is_active,
            destination_id=destination.id,
            address=destination.url,
        )

    async def send_batch(
        self,
        destinations: Sequence[Destination],
        data: Any,
        *,
        event: str = DEFAULT_EVENT,
        batch_size: int | None = None,
        batch_delay_ms: int | None = None,
    ) -> list[DeliveryResult]:
        """Deliver to many destinations in bounded concurrent chunks.

        Returns:
            One result per destination, in input order.
        """

        def _on_error(destination: Destination, exc: BaseException) -> DeliveryResult:
            return DeliveryResult.failure(
                str(exc) or "Unknown error",
                destination_id=destination.id,
                address=destination.url,
            )

        return await fan_out(
            destinations,
            lambda destination: self.deliver_with_retry(destination, data, event=event),
            batch_size=batch_size or self._policy.batch_size,
            batch_delay_ms=(
                self._policy.batch_delay_ms if batch_delay_ms is None else batch_delay_ms
            ),
            on_error=_on_error,
            sleep=self._sleep,
        )

    async def test_webhook(
        self,
        destination: Destination,
        payload: Any = None,
    ) -> DeliveryResult:
        """Send a single test event, without retries."""
        validation = validate_destination(destination)
        if not validation.is_valid:
            return self._invalid_result(destination, validation.errors)

        payload = payload or {
            "test": True,
            "message": "This is a test webhook from Alert24",
            "timestamp": utc_timestamp(),
        }
        return await self.send_webhook(destination, payload, event=TEST_EVENT)

    async def dispatch_event(
        self,
        destinations: Sequence[Destination],
        event_type: str,
        data: dict[str, Any],
    ) -> DispatchReport:
        """Send an event to every active destination subscribed to it.

        Args:
            destinations: Candidate destinations for the organization.
            event_type: Event tag, e.g. "incident.created".
            data: Raw event fields.

        Returns:
            Results, stats and health updates aligned with the dispatched
            destinations, plus the ids that were skipped.
        """
        targets = [d for d in destinations if d.subscribes_to(event_type)]
        skipped = [d.id for d in destinations if not d.subscribes_to(event_type)]

        if not targets:
            logger.debug("No webhooks subscribed to event %s", event_type)
            return DispatchReport(event=event_type, skipped=skipped)

        payload = create_event_payload(event_type, data, self._settings.base_url)
        with dispatch_context(
            organization_id=targets[0].organization_id, event_type=event_type
        ):
            results = await self.send_batch(targets, payload, event=event_type)
            stats = summarize(results)
            logger.info(
                "Dispatched %s to %d webhooks: %d delivered, %d failed",
                event_type,
                stats.total,
                stats.successful,
                stats.failed,
            )

        now = utc_now()
        updates = [health_update(d, r, now) for d, r in zip(targets, results, strict=True)]
        return DispatchReport(
            event=event_type,
            destination_ids=[d.id for d in targets],
            results=results,
            stats=stats,
            health_updates=updates,
            skipped=skipped,
        )
