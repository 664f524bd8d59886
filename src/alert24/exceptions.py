"""Alert24 exception hierarchy.

The dispatch core reports delivery failures as result objects, so these
exceptions are reserved for configuration problems, explicit guards and
lookups whose callers expect an exception. All inherit from Alert24Error.
"""

from __future__ import annotations


class Alert24Error(Exception):
    """Base exception for all Alert24 errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "alert24_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(Alert24Error):
    """Invalid input provided.

    Attributes:
        field: The field that failed validation.
        message: Description of the validation failure.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class ConfigurationError(Alert24Error):
    """Configuration error.

    Raised when required provider credentials are missing or invalid.
    """

    code: str = "configuration_error"


class DeliveryError(Alert24Error):
    """A provider request failed.

    Attributes:
        status_code: HTTP status returned by the provider, if any.
        error_code: Provider-specific error code, if any.
    """

    code: str = "delivery_error"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "status_code": self.status_code,
                "error_code": self.error_code,
                "message": self.message,
            }
        }


class PayloadTooLargeError(DeliveryError):
    """Serialized payload exceeds the configured ceiling."""

    code: str = "payload_too_large"

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(
            f"Payload too large: {size} bytes (max: {limit})",
            error_code="payload_too_large",
        )


class EscalationValidationError(Alert24Error):
    """Escalation policy has invalid steps and must not be saved.

    Attributes:
        errors: Mapping of step id to the list of problems with that step.
    """

    code: str = "escalation_validation_error"

    def __init__(self, errors: dict[str, list[str]]) -> None:
        self.errors = errors
        count = sum(len(messages) for messages in errors.values())
        super().__init__(
            f"Escalation policy has {count} validation error(s) in {len(errors)} step(s)"
        )

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "steps": self.errors,
                "message": self.message,
            }
        }
