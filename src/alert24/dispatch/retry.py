"""Bounded exponential-backoff retry for delivery attempts.

Wraps a single-attempt send function with tenacity. Unlike the usual
exception-driven decorator, retries are driven by the returned
DeliveryResult: a failed result is retried unless it is a client error
(4xx) or the destination is inactive. The controller never raises; the
final attempt's result is returned with its `outcome` set.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from alert24.models import DeliveryOutcome, DeliveryResult

logger = logging.getLogger(__name__)

# Receives the 1-based attempt ordinal
SendAttempt = Callable[[int], Awaitable[DeliveryResult]]
Sleep = Callable[[float], Awaitable[None]]


def _log_retry(retry_state: RetryCallState) -> None:
    """Log the failed attempt and the upcoming backoff."""
    outcome = retry_state.outcome
    result = outcome.result() if outcome is not None and not outcome.failed else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Delivery attempt %d to %s failed (%s); retrying in %.2fs",
        retry_state.attempt_number,
        result.address if result else "unknown",
        result.error if result else "no result",
        wait,
    )


def _last_result(retry_state: RetryCallState) -> DeliveryResult:
    """Return the final attempt's result instead of raising RetryError."""
    return retry_state.outcome.result()  # type: ignore[union-attr]


class RetryController:
    """Runs a send function until it succeeds, is rejected, or runs out of attempts.

    Backoff between attempts is base_delay_ms * 2^(attempt-1): with the
    defaults, 1s after the first failure and 2s after the second.

    Example:
        ```python
        controller = RetryController(max_retries=3)
        result = await controller.run(lambda attempt: send_once(attempt))
        ```
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        sleep: Sleep | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            max_retries: Total attempts, including the first one.
            base_delay_ms: Delay after the first failed attempt.
            sleep: Awaitable sleep, replaceable in tests.
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep or asyncio.sleep

    def backoff_delay_ms(self, attempt: int) -> float:
        """Delay after the given failed attempt."""
        return self.base_delay_ms * 2 ** (attempt - 1)

    async def run(
        self,
        send: SendAttempt,
        *,
        is_active: bool = True,
        destination_id: str | None = None,
        address: str | None = None,
    ) -> DeliveryResult:
        """Run the retry loop.

        Args:
            send: Performs one attempt given its 1-based ordinal.
            is_active: Inactive destinations get a single attempt.
            destination_id: Used to label synthesized failure results.
            address: Used to label synthesized failure results.

        Returns:
            The last attempt's result, annotated with its outcome.
        """
        attempt = 0

        async def _once() -> DeliveryResult:
            nonlocal attempt
            attempt += 1
            try:
                return await send(attempt)
            except Exception as e:
                logger.exception("Unexpected error in delivery attempt %d: %s", attempt, e)
                return DeliveryResult.failure(
                    f"Unexpected error: {e}",
                    destination_id=destination_id,
                    address=address,
                    attempt=attempt,
                )

        def _should_retry(result: DeliveryResult) -> bool:
            return not result.success and not result.is_client_error and is_active

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.base_delay_ms / 1000),
            retry=retry_if_result(_should_retry),
            before_sleep=_log_retry,
            retry_error_callback=_last_result,
            sleep=self._sleep,
        )

        result: DeliveryResult = await retrying(_once)
        return result.model_copy(update={"outcome": self._outcome(result, is_active)})

    @staticmethod
    def _outcome(result: DeliveryResult, is_active: bool) -> DeliveryOutcome:
        if result.success:
            return "delivered"
        if result.is_client_error or not is_active:
            return "rejected"
        return "exhausted"
