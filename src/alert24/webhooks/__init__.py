"""Webhook delivery for Alert24.

Provides HMAC-signed, authenticated webhook delivery with payload
templates, exponential backoff retry and batched fan-out.

Example:
    ```python
    from alert24.webhooks import WebhookService

    service = WebhookService(settings)
    report = await service.dispatch_event(destinations, "incident.created", incident)
    print(report.stats.success_rate)
    ```
"""

from .delivery import WebhookService, health_update, serialize_payload
from .signing import (
    build_auth_headers,
    build_headers,
    compute_signature,
    signature_headers,
    verify_signature,
)
from .transform import (
    MISSING,
    apply_field_mapping,
    apply_template,
    build_envelope,
    create_event_payload,
    get_path,
    set_path,
    transform_payload,
)
from .validation import validate_destination

__all__ = [
    "MISSING",
    "WebhookService",
    "apply_field_mapping",
    "apply_template",
    "build_auth_headers",
    "build_envelope",
    "build_headers",
    "compute_signature",
    "create_event_payload",
    "get_path",
    "health_update",
    "serialize_payload",
    "set_path",
    "signature_headers",
    "transform_payload",
    "validate_destination",
    "verify_signature",
]
