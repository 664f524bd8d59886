"""Data models for Alert24 dispatch.

Destinations:
    - Destination: Webhook target with auth, template and health metadata
    - ValidationResult: Pre-flight validation outcome
    - HealthUpdate: Counter changes for the caller to persist

Delivery:
    - EventEnvelope: Normalized event wrapper, one per attempt
    - DeliveryResult: Outcome of one physical attempt
    - DeliveryStats: Aggregate over a batch of results
    - DispatchReport: Results, stats and health updates for one event

Escalation:
    - EscalationPolicy, EscalationStep, EscalationTarget, RepeatConfig

SMS:
    - PhoneValidation, PhoneNumberInfo, SMSRecipient, MessageStatus, AccountInfo
"""

from .base import JSONValue, generate_id, load_json, utc_now, utc_timestamp
from .delivery import (
    DeliveryLabel,
    DeliveryOutcome,
    DeliveryResult,
    DeliveryStats,
    DispatchReport,
)
from .destination import (
    KNOWN_AUTH_TYPES,
    WILDCARD_EVENT,
    AuthType,
    Destination,
    HealthUpdate,
    ValidationResult,
)
from .escalation import (
    ALL_CHANNELS,
    DEFAULT_MAX_STEPS,
    DEFAULT_STEP_DELAY_MINUTES,
    EscalationPolicy,
    EscalationStep,
    EscalationTarget,
    NotificationChannel,
    RepeatConfig,
    TargetType,
)
from .event import (
    DEFAULT_EVENT,
    INCIDENT_EVENTS,
    MONITORING_EVENTS,
    PAYLOAD_VERSION,
    SERVICE_EVENTS,
    TEST_EVENT,
    EventEnvelope,
)
from .sms import (
    AccountInfo,
    MessageStatus,
    PhoneNumberInfo,
    PhoneValidation,
    SMSRecipient,
)

__all__ = [
    # Base helpers
    "JSONValue",
    "generate_id",
    "load_json",
    "utc_now",
    "utc_timestamp",
    # Destinations
    "KNOWN_AUTH_TYPES",
    "WILDCARD_EVENT",
    "AuthType",
    "Destination",
    "HealthUpdate",
    "ValidationResult",
    # Delivery
    "DeliveryLabel",
    "DeliveryOutcome",
    "DeliveryResult",
    "DeliveryStats",
    "DispatchReport",
    # Events
    "DEFAULT_EVENT",
    "INCIDENT_EVENTS",
    "MONITORING_EVENTS",
    "PAYLOAD_VERSION",
    "SERVICE_EVENTS",
    "TEST_EVENT",
    "EventEnvelope",
    # Escalation
    "ALL_CHANNELS",
    "DEFAULT_MAX_STEPS",
    "DEFAULT_STEP_DELAY_MINUTES",
    "EscalationPolicy",
    "EscalationStep",
    "EscalationTarget",
    "NotificationChannel",
    "RepeatConfig",
    "TargetType",
    # SMS
    "AccountInfo",
    "MessageStatus",
    "PhoneNumberInfo",
    "PhoneValidation",
    "SMSRecipient",
]
