"""SMS message templates, voice TwiML and Twilio pricing tables."""

from __future__ import annotations

import math
import re
from typing import Any, Literal
from xml.sax.saxutils import escape

from pydantic import BaseModel, ConfigDict, Field

from alert24.exceptions import ValidationError

Priority = Literal["high", "normal"]
TemplateType = Literal[
    "incident_alert",
    "incident_update",
    "monitoring_alert",
    "maintenance_notice",
    "service_recovery",
]

SEGMENT_LENGTH = 160

# (body, priority); fields are filled with str.format_map
MESSAGE_TEMPLATES: dict[str, tuple[str, Priority]] = {
    "incident_alert": (
        "🚨 INCIDENT ALERT\n{title}\nSeverity: {severity}\nStatus: {status}\nView: {url}",
        "high",
    ),
    "incident_update": (
        "📋 INCIDENT UPDATE\n{title}\nStatus: {status}\n{message}\nView: {url}",
        "normal",
    ),
    "monitoring_alert": (
        "⚠️ SERVICE ALERT\n{service_name} is {status}\nCheck: {check_name}\nView: {url}",
        "high",
    ),
    "maintenance_notice": (
        "🔧 MAINTENANCE\n{title}\nScheduled: {scheduled_at}\nDuration: {duration}\nView: {url}",
        "normal",
    ),
    "service_recovery": (
        "✅ SERVICE RECOVERED\n{service_name} is now operational\nDowntime: {downtime}\n"
        "View: {url}",
        "normal",
    ),
}

SUPPORTED_COUNTRIES = frozenset(
    {
        "US", "CA", "GB", "DE", "FR", "ES", "IT", "NL", "BE", "AU", "NZ",
        "JP", "KR", "IN", "SG", "HK", "BR", "MX", "AR", "CL", "CO",
    }
)  # fmt: skip

# USD per segment
PRICING: dict[str, dict[str, float]] = {
    "US": {"base": 0.0075, "mms": 0.02},
    "CA": {"base": 0.0075, "mms": 0.02},
    "GB": {"base": 0.04, "mms": 0.05},
    "DE": {"base": 0.075, "mms": 0.09},
    "FR": {"base": 0.075, "mms": 0.09},
    "AU": {"base": 0.054, "mms": 0.25},
    "IN": {"base": 0.0051, "mms": 0.0051},
}
DEFAULT_PRICING = {"base": 0.05, "mms": 0.075}

_VALIDITY_BY_REGION: dict[str, int] = {
    "US": 259200,
    "CA": 259200,
    "GB": 172800,
    "DE": 172800,
    "FR": 172800,
    "IN": 86400,
    "CN": 86400,
    "JP": 86400,
}
_LOW_PRICE_COUNTRIES = frozenset({"IN", "CN", "JP"})
DEFAULT_VALIDITY_SECONDS = 86400


class MessageTemplate(BaseModel):
    """A rendered SMS body and the priority it should be sent with."""

    model_config = ConfigDict(frozen=True)

    message: str
    priority: Priority = "normal"


class CostEstimate(BaseModel):
    """Rough SMS cost for a message length and destination country."""

    model_config = ConfigDict(frozen=True)

    estimated_cost: float
    currency: str = "USD"
    segments: int
    rate_per_segment: float


class CarrierOptimizations(BaseModel):
    """Send options tuned to the recipient's country and line type."""

    validity_period: int = DEFAULT_VALIDITY_SECONDS
    max_price: str | None = None
    fallback_to_voice: bool = Field(
        default=False, description="Landlines may not receive SMS; call instead"
    )


class _Blank(dict[str, Any]):
    def __missing__(self, key: str) -> str:
        return ""


def render_template(template_type: str, data: dict[str, Any]) -> MessageTemplate:
    """Fill one of the built-in message templates.

    Missing fields render as empty text.

    Raises:
        ValidationError: For an unknown template type.
    """
    try:
        body, priority = MESSAGE_TEMPLATES[template_type]
    except KeyError:
        raise ValidationError(
            "template_type", f"Unknown message template type: {template_type}"
        ) from None
    fields = _Blank({k: "" if v is None else v for k, v in data.items()})
    return MessageTemplate(message=body.format_map(fields), priority=priority)


def is_sms_supported(country_code: str | None) -> bool:
    return bool(country_code) and country_code.upper() in SUPPORTED_COUNTRIES


def cost_estimate(country_code: str | None, message_length: int = SEGMENT_LENGTH) -> CostEstimate:
    """Estimate the cost of one message from the static price table."""
    rates = PRICING.get((country_code or "").upper(), DEFAULT_PRICING)
    segments = max(1, math.ceil(message_length / SEGMENT_LENGTH))
    return CostEstimate(
        estimated_cost=round(rates["base"] * segments, 6),
        segments=segments,
        rate_per_segment=rates["base"],
    )


def carrier_optimizations(
    country_code: str | None, line_type: str | None = None
) -> CarrierOptimizations:
    """Validity period and price cap for a recipient's country and line type."""
    country = (country_code or "").upper()
    return CarrierOptimizations(
        validity_period=_VALIDITY_BY_REGION.get(country, DEFAULT_VALIDITY_SECONDS),
        max_price="0.10" if country in _LOW_PRICE_COUNTRIES else None,
        fallback_to_voice=line_type == "landline",
    )


def clean_for_speech(message: str) -> str:
    """Strip characters speech synthesis reads badly and collapse whitespace."""
    cleaned = re.sub(r"[^\w\s.,!?-]", " ", message)
    return re.sub(r"\s+", " ", cleaned).strip()


def call_twiml(message: str, priority: Priority = "normal") -> str:
    """TwiML that reads an alert twice."""
    if priority == "high":
        intro = "URGENT ALERT! This is a critical incident notification."
    else:
        intro = "Alert notification."
    spoken = escape(clean_for_speech(message))
    return (
        "<Response>"
        '<Say voice="alice" language="en-US">'
        f"{intro} {spoken} "
        "Please check your monitoring dashboard for more details. "
        "This message will repeat once."
        "</Say>"
        '<Pause length="2"/>'
        '<Say voice="alice" language="en-US">'
        f"Repeating: {spoken} End of notification. Goodbye."
        "</Say>"
        "</Response>"
    )


def sms_text(subject: str, message: str, severity: str | None = None) -> str:
    """Short alert text kept within one SMS segment."""
    prefix = "🚨 CRITICAL: " if severity == "critical" else "⚠️ ALERT: "
    text = f"{prefix}{subject}. {message}"
    if len(text) > SEGMENT_LENGTH:
        return text[: SEGMENT_LENGTH - 3] + "..."
    return text
