"""SMS and voice models.

Twilio responses are reduced to these shapes so callers never handle raw
provider JSON.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PhoneValidation(BaseModel):
    """Outcome of phone number validation.

    Attributes:
        is_valid: Whether the number can be used.
        formatted: E.164 form of the number, when valid.
        error: Why the number was rejected.
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    formatted: str | None = None
    error: str | None = None


class SMSRecipient(BaseModel):
    """One recipient of a batch SMS, with optional per-recipient overrides."""

    model_config = ConfigDict(extra="forbid")

    phone_number: str
    message: str | None = Field(default=None, description="Replaces the batch message")
    options: dict[str, Any] = Field(
        default_factory=dict, description="send_sms keyword overrides"
    )


class PhoneNumberInfo(BaseModel):
    """Carrier lookup result used for send optimizations."""

    phone_number: str
    country_code: str | None = None
    carrier: Any = None
    line_type: str | None = Field(default=None, description="mobile, landline or voip")
    is_valid: bool = True
    error: str | None = None


class MessageStatus(BaseModel):
    """Delivery status of a sent message as reported by Twilio."""

    message_id: str
    status: str | None = None
    to: str | None = None
    from_: str | None = Field(default=None, alias="from")
    cost: str | None = None
    currency: str | None = None
    date_created: str | None = None
    date_sent: str | None = None
    date_updated: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    num_segments: str | None = None
    direction: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class AccountInfo(BaseModel):
    """Twilio balance and today's usage records."""

    balance: str | None = None
    currency: str | None = None
    usage_today: list[dict[str, Any]] = Field(default_factory=list)


__all__ = [
    "AccountInfo",
    "MessageStatus",
    "PhoneNumberInfo",
    "PhoneValidation",
    "SMSRecipient",
]
