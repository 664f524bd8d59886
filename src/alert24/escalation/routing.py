"""Escalation level advancement and channel selection.

Pure functions over an EscalationPolicy; scheduling the timeouts and
sending the notifications belong to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from alert24.models import DEFAULT_STEP_DELAY_MINUTES, EscalationPolicy, EscalationStep

logger = logging.getLogger(__name__)


class EscalationAdvance(BaseModel):
    """The level an incident moves to and how long to wait there.

    Attributes:
        step: Step to notify.
        level: 1-based level of that step.
        cycle: Pass through the policy (1 = first pass).
        timeout_minutes: Wait before escalating past this level.
    """

    model_config = ConfigDict(frozen=True)

    step: EscalationStep
    level: int
    cycle: int = 1
    timeout_minutes: int


def _advance(step: EscalationStep, cycle: int) -> EscalationAdvance:
    return EscalationAdvance(
        step=step,
        level=step.level,
        cycle=cycle,
        timeout_minutes=step.delay_minutes or DEFAULT_STEP_DELAY_MINUTES,
    )


def first_escalation(policy: EscalationPolicy) -> EscalationAdvance:
    """Level 1 of the first pass."""
    return _advance(policy.steps[0], 1)


def next_escalation(
    policy: EscalationPolicy,
    current_level: int,
    cycle: int = 1,
) -> EscalationAdvance | None:
    """The level after `current_level`, or None when escalation is complete.

    After the last level the policy restarts at level 1 if repeats are
    enabled and the repeat budget allows another pass.
    """
    step = policy.step_for_level(current_level + 1)
    if step is not None:
        return _advance(step, cycle)

    if policy.repeat.allows_cycle(cycle + 1):
        logger.info("Escalation policy %s restarting, pass %d", policy.id, cycle + 1)
        return _advance(policy.steps[0], cycle + 1)

    logger.debug("No more escalation levels after %d in policy %s", current_level, policy.id)
    return None


def determine_channels(
    requested: Iterable[str],
    preferences: Mapping[str, Any],
    severity: str | None = "normal",
) -> list[str]:
    """Filter a step's channels by the recipient's notification preferences.

    SMS and voice are used for critical incidents when the recipient opted
    into critical alerts, and for any escalation when they opted into
    escalations. Slack and webhook channels have no per-user preference.
    Email is always used when nothing else qualifies.

    Args:
        requested: Channels configured on the escalation step.
        preferences: Recipient's notification_preferences flags.
        severity: Incident severity.

    Returns:
        Channels to notify on, in the step's order, without duplicates.
    """
    critical = severity == "critical"
    channels: list[str] = []

    for channel in requested:
        match channel:
            case "email":
                allowed = bool(
                    preferences.get("email_incidents") or preferences.get("email_escalations")
                )
            case "sms":
                allowed = bool(
                    (critical and preferences.get("sms_critical"))
                    or preferences.get("sms_escalations")
                )
            case "voice" | "call":
                channel = "voice"
                allowed = bool(
                    (critical and preferences.get("call_critical"))
                    or preferences.get("call_escalations")
                )
            case "slack" | "webhook":
                allowed = True
            case _:
                logger.warning("Unknown notification channel: %s", channel)
                allowed = False

        if allowed and channel not in channels:
            channels.append(channel)

    return channels or ["email"]


def notification_priority(severity: str | None) -> str:
    return "high" if severity == "critical" else "normal"


def escalation_subject(incident: Mapping[str, Any]) -> str:
    return f"Incident Escalation: {incident.get('title') or 'Untitled incident'}"


def escalation_message(incident: Mapping[str, Any], level: int) -> str:
    """Text sent to the recipients of an escalation level."""
    level_text = f" (Escalation Level {level})" if level > 1 else ""
    return (
        f"This incident has been escalated to you{level_text}:\n"
        "\n"
        f"Service: {incident.get('service_name') or 'Unknown'}\n"
        f"Status: {incident.get('status') or 'Open'}\n"
        f"Severity: {incident.get('severity') or 'Normal'}\n"
        "\n"
        f"{incident.get('description') or 'No additional details available.'}\n"
        "\n"
        "Please review the incident dashboard for more information: "
        f"{incident.get('url') or 'N/A'}"
    )
