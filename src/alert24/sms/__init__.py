"""SMS and voice notifications through Twilio.

Example:
    ```python
    from alert24.sms import SMSService

    service = SMSService(settings)
    results = await service.send_batch_sms(numbers, "API is down")
    ```
"""

from .service import SMSService, format_phone_number, validate_phone_number
from .templates import (
    MESSAGE_TEMPLATES,
    SUPPORTED_COUNTRIES,
    CarrierOptimizations,
    CostEstimate,
    MessageTemplate,
    call_twiml,
    carrier_optimizations,
    cost_estimate,
    is_sms_supported,
    render_template,
    sms_text,
)

__all__ = [
    "MESSAGE_TEMPLATES",
    "SUPPORTED_COUNTRIES",
    "CarrierOptimizations",
    "CostEstimate",
    "MessageTemplate",
    "SMSService",
    "call_twiml",
    "carrier_optimizations",
    "cost_estimate",
    "format_phone_number",
    "is_sms_supported",
    "render_template",
    "sms_text",
    "validate_phone_number",
]
