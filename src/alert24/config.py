"""Configuration management for Alert24 dispatch."""

import logging
import os
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

ONE_MIB = 1024 * 1024


class WebhookSettings(BaseModel):
    """Delivery policy for outbound webhooks.

    Attributes:
        max_retries: Total delivery attempts per destination (3 default).
        retry_delay_ms: Base backoff delay, doubled after each attempt.
        timeout_ms: Wall-clock timeout for a single attempt.
        max_payload_bytes: Serialized payload ceiling (1 MiB default).
        batch_size: Destinations dispatched concurrently per chunk.
        batch_delay_ms: Pause between chunks.
        user_agent: User-Agent header sent with every request.
    """

    max_retries: int = Field(default=3, ge=1, le=10, description="Attempts per destination")
    retry_delay_ms: int = Field(
        default=1000, ge=0, le=60000, description="Base backoff delay (doubles each attempt)"
    )
    timeout_ms: int = Field(default=30000, ge=100, le=300000, description="Per-attempt timeout")
    max_payload_bytes: int = Field(
        default=ONE_MIB, ge=1, description="Maximum serialized payload size"
    )
    batch_size: int = Field(default=10, ge=1, le=500, description="Concurrent deliveries per chunk")
    batch_delay_ms: int = Field(default=100, ge=0, le=60000, description="Delay between chunks")
    user_agent: str = Field(default="Alert24-Webhook/1.0", description="User-Agent header")


class TwilioSettings(BaseModel):
    """Twilio credentials and endpoints.

    When the ALERT24_TWILIO__* variables are not set, the conventional
    TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER and
    TWILIO_MESSAGING_SERVICE_SID variables are used instead.
    """

    account_sid: str | None = Field(default=None, description="Twilio account SID")
    auth_token: str | None = Field(default=None, description="Twilio auth token")
    phone_number: str | None = Field(default=None, description="Default sender number")
    messaging_service_sid: str | None = Field(
        default=None, description="Messaging service SID (preferred over phone_number)"
    )
    api_base_url: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL",
    )
    status_callback_url: str | None = Field(
        default=None, description="Callback URL for voice call status updates"
    )

    @model_validator(mode="after")
    def _fill_from_twilio_env(self) -> "TwilioSettings":
        """Fall back to the TWILIO_* variables used by Twilio tooling."""
        fallbacks = {
            "account_sid": "TWILIO_ACCOUNT_SID",
            "auth_token": "TWILIO_AUTH_TOKEN",
            "phone_number": "TWILIO_PHONE_NUMBER",
            "messaging_service_sid": "TWILIO_MESSAGING_SERVICE_SID",
        }
        for field_name, env_name in fallbacks.items():
            if getattr(self, field_name) is None and os.environ.get(env_name):
                object.__setattr__(self, field_name, os.environ[env_name])
                logger.debug("Using %s as fallback for twilio.%s", env_name, field_name)
        return self


class SMSSettings(BaseModel):
    """Delivery policy for SMS and voice.

    Batches are larger and slower than webhooks because every message is
    billed and Twilio enforces per-account rate limits.
    """

    batch_size: int = Field(default=50, ge=1, le=1000, description="Messages per chunk")
    batch_delay_ms: int = Field(default=1000, ge=0, le=60000, description="Delay between chunks")
    max_retries: int = Field(default=1, ge=1, le=5, description="Attempts per recipient")
    retry_delay_ms: int = Field(default=1000, ge=0, le=60000, description="Base backoff delay")
    timeout_ms: int = Field(default=30000, ge=100, le=300000, description="Per-request timeout")
    default_max_price: str = Field(default="0.50", description="USD price cap per message")


class Settings(BaseSettings):
    """Alert24 dispatch configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the ALERT24_ prefix. Nested sections use a double underscore:
        ALERT24_BASE_URL=https://alert24.app
        ALERT24_WEBHOOK__MAX_RETRIES=5
        ALERT24_SMS__BATCH_SIZE=20

    Settings are passed explicitly to the services so tests can inject
    fake credentials and endpoints.
    """

    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json for production, text for development",
    )

    base_url: str = Field(
        default="http://localhost:3000",
        description="Public Alert24 URL used for links in notifications",
    )

    webhook: WebhookSettings = Field(
        default_factory=WebhookSettings,
        description="Webhook delivery policy",
    )
    twilio: TwilioSettings = Field(
        default_factory=TwilioSettings,
        description="Twilio credentials",
    )
    sms: SMSSettings = Field(
        default_factory=SMSSettings,
        description="SMS and voice delivery policy",
    )

    model_config = {
        "env_prefix": "ALERT24_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }


# Global settings instance
settings = Settings()
