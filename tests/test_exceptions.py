"""Tests for Alert24 exception hierarchy."""

import pytest

from alert24.exceptions import (
    Alert24Error,
    ConfigurationError,
    DeliveryError,
    EscalationValidationError,
    PayloadTooLargeError,
    ValidationError,
)


class TestAlert24Error:
    """Tests for the base Alert24Error class."""

    def test_error_message(self):
        """Should store and return message."""
        error = Alert24Error("Something went wrong")
        assert error.message == "Something went wrong"
        assert str(error) == "Something went wrong"

    def test_to_dict(self):
        """Should convert to API-friendly dict."""
        assert Alert24Error("boom").to_dict() == {
            "error": {"code": "alert24_error", "message": "boom"}
        }

    def test_inheritance(self):
        """All custom exceptions should inherit from Alert24Error."""
        exceptions = [
            ValidationError("field", "invalid"),
            ConfigurationError("missing"),
            DeliveryError("failed"),
            PayloadTooLargeError(2, 1),
            EscalationValidationError({"step_1": ["bad"]}),
        ]
        for exc in exceptions:
            assert isinstance(exc, Alert24Error)


class TestValidationError:
    """Tests for ValidationError."""

    def test_field_and_message(self):
        """Should store field and prefix the message with it."""
        error = ValidationError("phone_number", "Invalid phone number format")
        assert error.field == "phone_number"
        assert error.message == "phone_number: Invalid phone number format"
        assert error.to_dict()["error"]["field"] == "phone_number"


class TestDeliveryError:
    """Tests for DeliveryError and PayloadTooLargeError."""

    def test_provider_codes(self):
        """Should carry status and provider error codes."""
        error = DeliveryError("Invalid 'To' number", status_code=400, error_code="21211")
        assert error.to_dict() == {
            "error": {
                "code": "delivery_error",
                "status_code": 400,
                "error_code": "21211",
                "message": "Invalid 'To' number",
            }
        }

    def test_payload_too_large(self):
        """Should describe size and limit."""
        error = PayloadTooLargeError(2_000_000, 1_048_576)
        assert isinstance(error, DeliveryError)
        assert error.error_code == "payload_too_large"
        assert error.message == "Payload too large: 2000000 bytes (max: 1048576)"

    def test_can_be_raised(self):
        with pytest.raises(DeliveryError, match="too large"):
            raise PayloadTooLargeError(10, 5)


class TestEscalationValidationError:
    """Tests for EscalationValidationError."""

    def test_counts_errors(self):
        """Message should count errors and steps; dict should keep the map."""
        errors = {"step_b": ["At least one target is required", "Escalation delay must be >0"]}
        error = EscalationValidationError(errors)
        assert "2 validation error(s) in 1 step(s)" in error.message
        assert error.to_dict()["error"]["steps"] == errors
