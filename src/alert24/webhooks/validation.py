"""Pre-flight validation of webhook destinations.

Runs before any network call. The result depends only on the
destination's fields, so validating twice gives the same answer.
"""

from __future__ import annotations

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from alert24.models import KNOWN_AUTH_TYPES, Destination, ValidationResult, load_json

_url_adapter: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)

# (attribute, label, must be a JSON object)
_JSON_FIELDS: tuple[tuple[str, str, bool], ...] = (
    ("auth_config", "auth configuration", True),
    ("headers", "headers", True),
    ("payload_template", "payload template", False),
    ("field_mapping", "field mapping", True),
)


def is_absolute_url(url: str) -> bool:
    try:
        _url_adapter.validate_python(url)
    except PydanticValidationError:
        return False
    return True


def validate_destination(destination: Destination) -> ValidationResult:
    """Check that a destination can be delivered to.

    Args:
        destination: Destination to check.

    Returns:
        ValidationResult with human-readable errors (delivery must not be
        attempted) and warnings (delivery proceeds).
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not destination.url:
        errors.append("URL is required")
    elif not is_absolute_url(destination.url):
        errors.append("Invalid URL format")

    for attribute, label, needs_object in _JSON_FIELDS:
        value = getattr(destination, attribute)
        if value is None or value == "":
            continue
        try:
            parsed = load_json(value)
        except ValueError:
            errors.append(f"Invalid {label} JSON")
            continue
        if needs_object and not isinstance(parsed, dict):
            errors.append(f"Invalid {label}: must be a JSON object")

    if destination.auth_type and destination.auth_type not in KNOWN_AUTH_TYPES:
        warnings.append(
            f"Unknown auth type '{destination.auth_type}'; no auth headers will be sent"
        )

    if destination.payload_template and destination.field_mapping:
        warnings.append("Payload template and field mapping both configured; mapping ignored")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
