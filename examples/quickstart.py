#!/usr/bin/env python3
"""Quickstart demo - dispatch an incident event to webhook destinations.

Demonstrates:
- validate_destination(): Offline checks before anything is sent
- dispatch_event(): Fan-out with retries, signatures and templates
- DispatchReport: Stats and health updates for the caller to persist

Prerequisites:
    - A request bin or local receiver, e.g. ALERT24_DEMO_URL=https://example.com/hook
"""

import asyncio
import os

from alert24 import Destination, Settings, WebhookService, configure_logging
from alert24.webhooks import validate_destination


async def main() -> None:
    print("=" * 70)
    print("Alert24 Dispatch Quickstart")
    print("=" * 70)

    settings = Settings()
    configure_logging(level="INFO", format="text")
    url = os.environ.get("ALERT24_DEMO_URL", "https://example.com/hook")

    destinations = [
        Destination(
            name="Signed receiver",
            url=url,
            secret="demo_secret",
            events=["incident.created"],
        ),
        Destination(
            name="Chat bridge",
            url=url,
            events="*",
            payload_template={
                "text": "{{data.incident.title}} ({{data.incident.severity}})",
                "link": "{{data.incident.url}}",
            },
        ),
        Destination(name="Paused", url=url, is_active=False),
    ]

    # =====================================================================
    # 1. VALIDATE: Offline checks
    # =====================================================================
    print("\n1. VALIDATING DESTINATIONS")
    print("-" * 70)
    for destination in destinations:
        result = validate_destination(destination)
        status = "ok" if result.is_valid else f"invalid: {result.errors}"
        print(f"  {destination.name}: {status}")
        for warning in result.warnings:
            print(f"    warning: {warning}")

    # =====================================================================
    # 2. DISPATCH: Fan out one event
    # =====================================================================
    print("\n2. DISPATCHING incident.created")
    print("-" * 70)
    service = WebhookService(settings)
    report = await service.dispatch_event(
        destinations,
        "incident.created",
        {
            "id": "inc_demo",
            "title": "API latency above threshold",
            "severity": "high",
            "status": "open",
            "service_name": "Public API",
        },
    )

    for destination_id, result in zip(report.destination_ids, report.results, strict=True):
        outcome = "delivered" if result.success else f"failed ({result.error})"
        print(f"  {destination_id}: {outcome} after {result.attempt} attempt(s)")
    print(f"  skipped: {report.skipped}")

    # =====================================================================
    # 3. REPORT: What the caller persists
    # =====================================================================
    print("\n3. REPORT")
    print("-" * 70)
    print(f"  success rate: {report.stats.success_rate}%")
    print(f"  errors: {report.stats.errors}")
    for update in report.health_updates:
        print(f"  {update.destination_id}: failure_count={update.failure_count}")


if __name__ == "__main__":
    asyncio.run(main())
