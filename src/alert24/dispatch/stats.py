"""Reduce per-destination results into batch statistics."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable

from alert24.models import DeliveryResult, DeliveryStats

logger = logging.getLogger(__name__)


def error_key(result: DeliveryResult) -> str:
    """Bucket for a failure: provider code first, then message.

    Distinct destinations failing the same way share a bucket, which is how
    callers tell a systemic outage from isolated failures.
    """
    return result.error_code or result.error or "unknown"


def _parse_cost(cost: str | None) -> float:
    if not cost:
        return 0.0
    try:
        return abs(float(cost))
    except ValueError:
        logger.debug("Ignoring unparseable cost %r", cost)
        return 0.0


def summarize(results: Iterable[DeliveryResult]) -> DeliveryStats:
    """Summarize a batch of delivery results.

    The average latency only counts successes that reported a response
    time. Provider costs are summed as absolute values since Twilio reports
    prices as negative amounts.
    """
    total = successful = 0
    timed_total = 0.0
    timed_count = 0
    errors: Counter[str] = Counter()
    currencies: defaultdict[str, float] = defaultdict(float)

    for result in results:
        total += 1
        if result.success:
            successful += 1
            if result.response_time_ms is not None:
                timed_total += result.response_time_ms
                timed_count += 1
            cost = _parse_cost(result.cost)
            if cost:
                currencies[result.currency or "USD"] += cost
        else:
            errors[error_key(result)] += 1

    return DeliveryStats(
        total=total,
        successful=successful,
        failed=total - successful,
        success_rate=round(successful / total * 100, 2) if total else 0.0,
        avg_response_time_ms=round(timed_total / timed_count, 2) if timed_count else 0.0,
        errors=dict(errors),
        total_cost=round(sum(currencies.values()), 6),
        currencies=dict(currencies),
    )
