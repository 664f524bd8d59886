"""Tests for batched concurrent fan-out."""

from __future__ import annotations

import asyncio

import pytest
from conftest import SleepRecorder, make_result

from alert24.dispatch import fan_out
from alert24.models import DeliveryResult


def _on_error(item: str, exc: BaseException) -> DeliveryResult:
    return DeliveryResult.failure(str(exc), address=item)


class TestFanOut:
    """Tests for fan_out."""

    @pytest.mark.asyncio
    async def test_results_align_with_input(self, sleep: SleepRecorder):
        """results[i] belongs to items[i] even when later items finish first."""
        items = [f"dest_{i}" for i in range(7)]

        async def send(item: str) -> DeliveryResult:
            # Earlier items finish later
            await asyncio.sleep(0.001 * (7 - int(item.split("_")[1])))
            return make_result(address=item)

        results = await fan_out(
            items, send, batch_size=3, batch_delay_ms=100, on_error=_on_error, sleep=sleep
        )

        assert [r.address for r in results] == items

    @pytest.mark.asyncio
    async def test_delay_only_between_chunks(self, sleep: SleepRecorder):
        """Seven items in chunks of three means two pauses, none after the last chunk."""

        async def send(item: str) -> DeliveryResult:
            return make_result(address=item)

        await fan_out(
            [str(i) for i in range(7)],
            send,
            batch_size=3,
            batch_delay_ms=100,
            on_error=_on_error,
            sleep=sleep,
        )

        assert sleep.calls == [0.1, 0.1]

    @pytest.mark.asyncio
    async def test_chunk_settles_before_next_starts(self, sleep: SleepRecorder):
        """No more than batch_size sends are in flight at once."""
        in_flight = 0
        peak = 0

        async def send(item: str) -> DeliveryResult:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return make_result(address=item)

        await fan_out(
            [str(i) for i in range(10)],
            send,
            batch_size=4,
            batch_delay_ms=0,
            on_error=_on_error,
            sleep=sleep,
        )

        assert peak == 4

    @pytest.mark.asyncio
    async def test_exception_isolated_to_its_item(self, sleep: SleepRecorder):
        """One raising send becomes a failure without affecting its chunk."""

        async def send(item: str) -> DeliveryResult:
            if item == "bad":
                raise RuntimeError("exploded")
            return make_result(address=item)

        results = await fan_out(
            ["a", "bad", "c"], send, batch_size=10, batch_delay_ms=0, on_error=_on_error, sleep=sleep
        )

        assert [r.success for r in results] == [True, False, True]
        assert results[1].error == "exploded"
        assert results[1].address == "bad"

    @pytest.mark.asyncio
    async def test_empty_input(self, sleep: SleepRecorder):
        async def send(item: str) -> DeliveryResult:
            raise AssertionError("not called")

        results = await fan_out(
            [], send, batch_size=10, batch_delay_ms=100, on_error=_on_error, sleep=sleep
        )

        assert results == []
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self, sleep: SleepRecorder):
        async def send(item: str) -> DeliveryResult:
            return make_result()

        with pytest.raises(ValueError):
            await fan_out(["a"], send, batch_size=0, batch_delay_ms=0, on_error=_on_error)
