"""Alert24 Dispatch: outbound notifications for incident management.

Delivers incident, service and monitoring events to webhook endpoints and
to phones over SMS and voice, and decides who is notified at each
escalation level.

Quick Start:
    from alert24 import Destination, WebhookService

    service = WebhookService()
    report = await service.dispatch_event(
        [Destination(url="https://hooks.example.com/alerts", secret="s3cret")],
        "incident.created",
        {"id": "inc_1", "title": "API down", "severity": "critical"},
    )
    print(report.stats.success_rate, report.stats.errors)

Delivery:
    - Webhooks: HMAC-signed, authenticated, templated, retried with backoff
    - SMS/voice: Twilio messages and calls with templates and cost tracking
    - Batches: bounded concurrent chunks with a pause between them

Escalation:
    - EscalationPolicy: ordered, validated steps with repeat settings
    - next_escalation / determine_channels: level advancement and channels
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, SMSSettings, TwilioSettings, WebhookSettings, settings

# Dispatch machinery
from .dispatch import RetryController, fan_out, summarize

# Escalation routing
from .escalation import (
    EscalationAdvance,
    determine_channels,
    escalation_message,
    next_escalation,
)

# Exceptions
from .exceptions import (
    Alert24Error,
    ConfigurationError,
    DeliveryError,
    EscalationValidationError,
    PayloadTooLargeError,
    ValidationError,
)

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    dispatch_context,
    get_logger,
    redact_secrets,
    unbind_context,
)

# Models
from .models import (
    DeliveryResult,
    DeliveryStats,
    Destination,
    DispatchReport,
    EscalationPolicy,
    EscalationStep,
    EscalationTarget,
    EventEnvelope,
    HealthUpdate,
    RepeatConfig,
    ValidationResult,
)

# Services
from .sms import SMSService
from .webhooks import WebhookService, compute_signature, verify_signature

__all__ = [
    # Version
    "__version__",
    # Configuration
    "Settings",
    "WebhookSettings",
    "TwilioSettings",
    "SMSSettings",
    "settings",
    # Exceptions
    "Alert24Error",
    "ValidationError",
    "ConfigurationError",
    "DeliveryError",
    "PayloadTooLargeError",
    "EscalationValidationError",
    # Logging
    "configure_logging",
    "get_logger",
    "redact_secrets",
    "bind_context",
    "dispatch_context",
    "clear_context",
    "unbind_context",
    # Dispatch
    "RetryController",
    "fan_out",
    "summarize",
    # Services
    "WebhookService",
    "SMSService",
    "compute_signature",
    "verify_signature",
    # Escalation
    "EscalationAdvance",
    "next_escalation",
    "determine_channels",
    "escalation_message",
    # Models
    "Destination",
    "ValidationResult",
    "HealthUpdate",
    "EventEnvelope",
    "DeliveryResult",
    "DeliveryStats",
    "DispatchReport",
    "EscalationPolicy",
    "EscalationStep",
    "EscalationTarget",
    "RepeatConfig",
]
