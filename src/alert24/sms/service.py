"""SMS and voice delivery through the Twilio REST API.

Uses the same retry controller, fan-out engine and statistics as webhook
delivery. Sends report failures as DeliveryResult values with Twilio's
error code in `error_code`; account and status lookups raise DeliveryError.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from alert24.dispatch import RetryController, fan_out, summarize
from alert24.exceptions import ConfigurationError, DeliveryError, ValidationError
from alert24.models import (
    AccountInfo,
    DeliveryResult,
    DeliveryStats,
    MessageStatus,
    PhoneNumberInfo,
    PhoneValidation,
    SMSRecipient,
)

from .templates import (
    CarrierOptimizations,
    CostEstimate,
    MessageTemplate,
    Priority,
    call_twiml,
    carrier_optimizations,
    cost_estimate,
    is_sms_supported,
    render_template,
)

if TYPE_CHECKING:
    from alert24.config import Settings

logger = logging.getLogger(__name__)

PROVIDER = "twilio"
HIGH_PRIORITY_CALL_PRICE = "1.00"
CALL_STATUS_PATH = "/api/webhooks/twilio/call-status"

# Substrings Twilio uses when an account cannot place calls
_BLOCKED_MARKERS = ("blocked", "suspended", "forbidden")


def validate_phone_number(phone_number: str | None) -> PhoneValidation:
    """Normalize a phone number to E.164.

    Numbers with a leading + and 10-15 characters are accepted as given.
    Bare 10-digit numbers are assumed to be US/Canada and get +1.
    """
    if not phone_number:
        return PhoneValidation(is_valid=False, error="Phone number is required")

    cleaned = re.sub(r"[^\d+]", "", phone_number)
    if cleaned.startswith("+") and 10 <= len(cleaned) <= 15:
        return PhoneValidation(is_valid=True, formatted=cleaned)
    if not cleaned.startswith("+") and len(cleaned) == 10:
        return PhoneValidation(is_valid=True, formatted=f"+1{cleaned}")
    return PhoneValidation(is_valid=False, error="Invalid phone number format")


def format_phone_number(phone_number: str | None) -> str:
    """E.164 form of a phone number.

    Raises:
        ValidationError: If the number cannot be normalized.
    """
    validation = validate_phone_number(phone_number)
    if not validation.is_valid or validation.formatted is None:
        raise ValidationError("phone_number", validation.error or "Invalid phone number")
    return validation.formatted


class SMSService:
    """Sends SMS messages and voice calls via Twilio.

    Example:
        ```python
        service = SMSService(settings)
        result = await service.send_templated_sms(
            "+15551234567",
            "incident_alert",
            {"title": "API down", "severity": "critical", "status": "open", "url": url},
        )
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the SMS service.

        Args:
            settings: Configuration; the global settings when omitted.
            sleep: Awaitable sleep used for backoff and batch delays.

        Raises:
            ConfigurationError: If Twilio credentials or a sender are missing.
        """
        if settings is None:
            from alert24.config import settings as default_settings

            settings = default_settings

        twilio = settings.twilio
        if not twilio.account_sid or not twilio.auth_token:
            raise ConfigurationError("Twilio credentials not configured")
        if not twilio.phone_number and not twilio.messaging_service_sid:
            raise ConfigurationError(
                "Either Twilio phone number or messaging service SID must be configured"
            )

        self._settings = settings
        self._twilio = twilio
        self._policy = settings.sms
        self._sleep = sleep or asyncio.sleep
        self._retry = RetryController(
            max_retries=self._policy.max_retries,
            base_delay_ms=self._policy.retry_delay_ms,
            sleep=self._sleep,
        )

    validate_phone_number = staticmethod(validate_phone_number)
    format_phone_number = staticmethod(format_phone_number)

    def _from_identifier(self, from_: str | None = None) -> dict[str, str]:
        if from_:
            return {"From": format_phone_number(from_)}
        if self._twilio.messaging_service_sid:
            return {"MessagingServiceSid": self._twilio.messaging_service_sid}
        if self._twilio.phone_number:
            return {"From": self._twilio.phone_number}
        raise ConfigurationError("No from identifier configured")

    def _url(self, endpoint: str) -> str:
        base = self._twilio.api_base_url.rstrip("/")
        return f"{base}/Accounts/{self._twilio.account_sid}/{endpoint}.json"

    async def _request(
        self,
        endpoint: str,
        data: dict[str, str] | None = None,
        method: str = "POST",
    ) -> dict[str, Any]:
        """Call the Twilio REST API.

        Raises:
            DeliveryError: On an error response, timeout or network failure,
                carrying Twilio's error code when one was returned.
        """
        timeout_s = self._policy.timeout_ms / 1000
        try:
            async with asyncio.timeout(timeout_s):
                async with httpx.AsyncClient(
                    timeout=timeout_s,
                    auth=(self._twilio.account_sid or "", self._twilio.auth_token or ""),
                ) as client:
                    response = await client.request(
                        method,
                        self._url(endpoint),
                        data=data if method != "GET" else None,
                    )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise DeliveryError(
                f"Twilio request timed out after {self._policy.timeout_ms}ms",
                error_code="timeout",
            ) from e
        except httpx.RequestError as e:
            raise DeliveryError(
                f"Twilio request failed: {e}", error_code="network_error"
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code >= 400:
            code = body.get("code")
            raise DeliveryError(
                body.get("message") or f"Twilio API error (HTTP {response.status_code})",
                status_code=response.status_code,
                error_code=str(code) if code is not None else None,
            )
        return body

    async def send_sms(
        self,
        to: str,
        message: str,
        *,
        from_: str | None = None,
        status_callback: str | None = None,
        max_price: str | None = None,
        media_urls: Sequence[str] | None = None,
        validity_period: int | None = None,
        priority: Priority = "normal",
        attempt: int = 1,
    ) -> DeliveryResult:
        """Send one message.

        Args:
            to: Recipient phone number.
            message: Message body.
            from_: Sender number; the configured sender when omitted.
            status_callback: URL Twilio posts delivery updates to.
            max_price: USD price cap; the configured default when omitted.
            media_urls: Attachments, which make the message an MMS.
            validity_period: Seconds Twilio keeps trying to deliver.
            priority: "high" sends as MMS for better delivery.
            attempt: Ordinal recorded on the result.
        """
        label = {"address": to, "attempt": attempt, "provider": PROVIDER}
        start = time.perf_counter()
        try:
            payload = {
                "To": format_phone_number(to),
                "Body": message,
                **self._from_identifier(from_),
                "MaxPrice": max_price or self._policy.default_max_price,
                "ProvideFeedback": "true",
            }
            if status_callback:
                payload["StatusCallback"] = status_callback
            for index, url in enumerate(media_urls or ()):
                payload[f"MediaUrl{index}"] = url
            if validity_period:
                payload["ValidityPeriod"] = str(validity_period)
            if priority == "high":
                payload["SendAsMms"] = "true"

            data = await self._request("Messages", payload)
        except ValidationError as e:
            return DeliveryResult.failure(e.message, error_code="invalid_phone_number", **label)
        except DeliveryError as e:
            logger.error("SMS sending failed: %s", e.message)
            return DeliveryResult.failure(
                e.message, status_code=e.status_code, error_code=e.error_code, **label
            )

        price = data.get("price")
        logger.info("SMS sent to %s (sid %s)", data.get("to", to), data.get("sid"))
        label["address"] = data.get("to") or to
        return DeliveryResult(
            success=True,
            message_id=data.get("sid"),
            cost=str(price) if price is not None else None,
            currency=data.get("price_unit"),
            response_time_ms=round((time.perf_counter() - start) * 1000, 2),
            **label,
        )

    async def send_sms_with_retry(self, to: str, message: str, **options: Any) -> DeliveryResult:
        """Send one message through the retry controller.

        Numbers that cannot be normalized are never sent and come back with
        attempt 0 and outcome "invalid".
        """
        validation = validate_phone_number(to)
        if not validation.is_valid:
            return DeliveryResult.failure(
                validation.error or "Invalid phone number",
                address=to,
                attempt=0,
                error_code="invalid_phone_number",
                outcome="invalid",
                provider=PROVIDER,
            )

        async def _send(attempt: int) -> DeliveryResult:
            return await self.send_sms(to, message, attempt=attempt, **options)

        return await self._retry.run(_send, address=to)

    async def send_batch_sms(
        self,
        recipients: Sequence[str | SMSRecipient],
        message: str,
        *,
        batch_size: int | None = None,
        batch_delay_ms: int | None = None,
        **options: Any,
    ) -> list[DeliveryResult]:
        """Send a message to many recipients in rate-limited chunks.

        Args:
            recipients: Phone numbers, or SMSRecipient entries carrying their
                own message and options.
            message: Default message body.
            batch_size: Messages per chunk (50 by default).
            batch_delay_ms: Pause between chunks (1000 by default).
            **options: send_sms keyword arguments for every recipient.

        Returns:
            One result per recipient, in input order.
        """

        def _send(recipient: str | SMSRecipient) -> Awaitable[DeliveryResult]:
            if isinstance(recipient, SMSRecipient):
                return self.send_sms_with_retry(
                    recipient.phone_number,
                    recipient.message or message,
                    **{**options, **recipient.options},
                )
            return self.send_sms_with_retry(recipient, message, **options)

        def _on_error(recipient: str | SMSRecipient, exc: BaseException) -> DeliveryResult:
            address = recipient.phone_number if isinstance(recipient, SMSRecipient) else recipient
            return DeliveryResult.failure(
                str(exc) or "Unknown error", address=address, provider=PROVIDER
            )

        results = await fan_out(
            recipients,
            _send,
            batch_size=batch_size or self._policy.batch_size,
            batch_delay_ms=(
                self._policy.batch_delay_ms if batch_delay_ms is None else batch_delay_ms
            ),
            on_error=_on_error,
            sleep=self._sleep,
        )
        logger.info(
            "Batch SMS: %d sent, %d failed",
            sum(r.success for r in results),
            sum(not r.success for r in results),
        )
        return results

    def _call_status_callback(self) -> str:
        if self._twilio.status_callback_url:
            return self._twilio.status_callback_url
        return f"{self._settings.base_url.rstrip('/')}{CALL_STATUS_PATH}"

    async def make_call(
        self,
        to: str,
        message: str,
        priority: Priority = "normal",
    ) -> DeliveryResult:
        """Place a voice call that reads the message aloud.

        High priority calls use an urgent introduction and a higher price cap.
        """
        label = {"address": to, "provider": PROVIDER}
        if not self._twilio.phone_number:
            return DeliveryResult.failure(
                "Twilio configuration incomplete for phone calls",
                error_code="configuration_error",
                **label,
            )

        try:
            payload = {
                "To": format_phone_number(to),
                "From": self._twilio.phone_number,
                "Twiml": call_twiml(message, priority),
                "MaxPrice": (
                    HIGH_PRIORITY_CALL_PRICE
                    if priority == "high"
                    else self._policy.default_max_price
                ),
                "StatusCallback": self._call_status_callback(),
            }
            data = await self._request("Calls", payload)
        except ValidationError as e:
            return DeliveryResult.failure(e.message, error_code="invalid_phone_number", **label)
        except DeliveryError as e:
            logger.error("Phone call failed: %s", e.message)
            if any(marker in e.message.lower() for marker in _BLOCKED_MARKERS):
                logger.warning("Twilio account appears to be blocked or suspended for calls")
                return DeliveryResult.failure(
                    "Phone service temporarily unavailable - account blocked",
                    status_code=e.status_code,
                    error_code=e.error_code,
                    **label,
                )
            return DeliveryResult.failure(
                e.message, status_code=e.status_code, error_code=e.error_code, **label
            )

        logger.info("Call placed to %s (sid %s)", data.get("to", to), data.get("sid"))
        label["address"] = data.get("to") or to
        return DeliveryResult(success=True, message_id=data.get("sid"), **label)

    def create_message_template(self, template_type: str, data: dict[str, Any]) -> MessageTemplate:
        """Render a built-in message template.

        Raises:
            ValidationError: For an unknown template type.
        """
        return render_template(template_type, data)

    async def send_templated_sms(
        self,
        to: str,
        template_type: str,
        data: dict[str, Any],
        **options: Any,
    ) -> DeliveryResult:
        """Render a template and send it with the template's priority."""
        template = self.create_message_template(template_type, data)
        options["priority"] = template.priority
        return await self.send_sms(to, template.message, **options)

    async def get_message_status(self, message_id: str) -> MessageStatus:
        """Fetch the current delivery status of a sent message.

        Raises:
            DeliveryError: If Twilio cannot be reached or rejects the lookup.
        """
        data = await self._request(f"Messages/{quote(message_id)}", method="GET")
        error_code = data.get("error_code")
        num_segments = data.get("num_segments")
        return MessageStatus(
            message_id=data.get("sid") or message_id,
            status=data.get("status"),
            to=data.get("to"),
            from_=data.get("from"),
            cost=data.get("price"),
            currency=data.get("price_unit"),
            date_created=data.get("date_created"),
            date_sent=data.get("date_sent"),
            date_updated=data.get("date_updated"),
            error_code=str(error_code) if error_code is not None else None,
            error_message=data.get("error_message"),
            num_segments=str(num_segments) if num_segments is not None else None,
            direction=data.get("direction"),
        )

    async def get_phone_number_info(self, phone_number: str) -> PhoneNumberInfo:
        """Look up country, carrier and line type for a number.

        Lookup failures are reported in the result rather than raised.
        """
        try:
            formatted = format_phone_number(phone_number)
            data = await self._request(f"PhoneNumbers/{quote(formatted)}", method="GET")
        except (ValidationError, DeliveryError) as e:
            logger.warning("Phone number lookup failed: %s", e.message)
            return PhoneNumberInfo(phone_number=phone_number, is_valid=False, error=e.message)

        return PhoneNumberInfo(
            phone_number=data.get("phone_number") or formatted,
            country_code=data.get("country_code"),
            carrier=data.get("carrier"),
            line_type=data.get("type"),
        )

    def get_carrier_optimizations(self, info: PhoneNumberInfo) -> CarrierOptimizations:
        return carrier_optimizations(info.country_code, info.line_type)

    async def send_optimized_sms(self, to: str, message: str, **options: Any) -> DeliveryResult:
        """Send with a validity period and price cap tuned to the recipient.

        Landlines usually cannot receive SMS, so they get a voice call.
        """
        info = await self.get_phone_number_info(to)
        optimizations = self.get_carrier_optimizations(info)

        if optimizations.fallback_to_voice:
            logger.info("%s is a landline; calling instead of texting", to)
            return await self.make_call(to, message, options.get("priority", "normal"))

        options["validity_period"] = optimizations.validity_period
        if optimizations.max_price:
            options["max_price"] = optimizations.max_price
        return await self.send_sms(to, message, **options)

    @staticmethod
    def is_sms_supported(country_code: str | None) -> bool:
        return is_sms_supported(country_code)

    @staticmethod
    def get_cost_estimate(country_code: str | None, message_length: int = 160) -> CostEstimate:
        return cost_estimate(country_code, message_length)

    @staticmethod
    def get_delivery_stats(results: Sequence[DeliveryResult]) -> DeliveryStats:
        return summarize(results)

    async def get_account_info(self) -> AccountInfo:
        """Current balance and today's usage.

        Raises:
            DeliveryError: If either lookup fails.
        """
        balance, usage = await asyncio.gather(
            self._request("Balance", method="GET"),
            self._request("Usage/Records/Today", method="GET"),
        )
        return AccountInfo(
            balance=balance.get("balance"),
            currency=balance.get("currency"),
            usage_today=usage.get("usage_records") or [],
        )
