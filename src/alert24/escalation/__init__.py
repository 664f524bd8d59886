"""Escalation routing: which level comes next and which channels to use."""

from .routing import (
    EscalationAdvance,
    determine_channels,
    escalation_message,
    escalation_subject,
    first_escalation,
    next_escalation,
    notification_priority,
)

__all__ = [
    "EscalationAdvance",
    "determine_channels",
    "escalation_message",
    "escalation_subject",
    "first_escalation",
    "next_escalation",
    "notification_priority",
]
