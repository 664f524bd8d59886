"""Batched concurrent fan-out.

Destinations are processed in fixed-size chunks. Each chunk runs
concurrently and is allowed to settle completely before the inter-batch
delay starts; chunks never overlap. The delay is rate-limiting for paid
and metered channels and must stay even when it costs throughput.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from alert24.models import DeliveryResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def fan_out(
    items: Sequence[T],
    send: Callable[[T], Awaitable[DeliveryResult]],
    *,
    batch_size: int,
    batch_delay_ms: int,
    on_error: Callable[[T, BaseException], DeliveryResult],
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> list[DeliveryResult]:
    """Send to every item in bounded concurrent chunks.

    Args:
        items: Destinations or recipients, in the caller's order.
        send: Retry-wrapped delivery for one item.
        batch_size: Items dispatched concurrently per chunk.
        batch_delay_ms: Pause between chunks.
        on_error: Builds a failure result when `send` raises.
        sleep: Awaitable sleep, replaceable in tests.

    Returns:
        One result per item; results[i] belongs to items[i].
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    sleep = sleep or asyncio.sleep
    results: list[DeliveryResult] = []

    for start in range(0, len(items), batch_size):
        chunk = items[start : start + batch_size]
        settled = await asyncio.gather(*(send(item) for item in chunk), return_exceptions=True)

        for item, outcome in zip(chunk, settled, strict=True):
            if isinstance(outcome, BaseException):
                logger.error("Delivery raised instead of returning a result: %s", outcome)
                results.append(on_error(item, outcome))
            else:
                results.append(outcome)

        if start + batch_size < len(items):
            await sleep(batch_delay_ms / 1000)

    return results
