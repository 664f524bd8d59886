"""HMAC signatures and authentication headers for webhook requests.

Signatures are computed over the exact bytes placed on the wire, never a
re-serialization, so receivers can verify them byte for byte.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import Any

from alert24.models import Destination, load_json, utc_timestamp

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Alert24-Signature"
SIGNATURE_256_HEADER = "X-Alert24-Signature-256"
WEBHOOK_ID_HEADER = "X-Alert24-Webhook-Id"
TIMESTAMP_HEADER = "X-Alert24-Timestamp"
DELIVERY_ID_HEADER = "X-Alert24-Delivery-Id"
DEFAULT_USER_AGENT = "Alert24-Webhook/1.0"


def _as_bytes(payload: str | bytes) -> bytes:
    return payload if isinstance(payload, bytes) else payload.encode("utf-8")


def compute_signature(payload: str | bytes, secret: str) -> str:
    """Compute the HMAC-SHA256 hex digest of a webhook payload.

    Args:
        payload: Serialized payload, exactly as sent.
        secret: Shared secret for HMAC.

    Returns:
        Lowercase hex digest (64 characters).
    """
    return hmac.new(
        key=secret.encode("utf-8"),
        msg=_as_bytes(payload),
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify_signature(payload: str | bytes, secret: str, signature: str) -> bool:
    """Verify a signature in either the raw hex or "sha256=<hex>" format."""
    expected = compute_signature(payload, secret)
    candidate = signature.removeprefix("sha256=")
    return hmac.compare_digest(expected, candidate)


def signature_headers(payload: str | bytes, secret: str) -> dict[str, str]:
    """Both signature headers: raw hex and the "sha256=" prefixed form."""
    digest = compute_signature(payload, secret)
    return {
        SIGNATURE_HEADER: digest,
        SIGNATURE_256_HEADER: f"sha256={digest}",
    }


def build_auth_headers(auth_type: str, auth_config: dict[str, Any]) -> dict[str, str]:
    """Headers for a destination's authentication scheme.

    Args:
        auth_type: bearer, basic, api_key or custom.
        auth_config: Scheme settings:
            bearer: {"token": ...}
            basic: {"username": ..., "password": ...}
            api_key: {"key": <header name>, "value": ...}
            custom: {"headers": {...}}

    Returns:
        Header map to merge into the request. Empty for unknown schemes or
        incomplete settings; the request still goes out and the receiver's
        auth failure is reported as an HTTP error.
    """
    headers: dict[str, str] = {}

    match auth_type:
        case "bearer":
            if auth_config.get("token"):
                headers["Authorization"] = f"Bearer {auth_config['token']}"
        case "basic":
            username = auth_config.get("username")
            password = auth_config.get("password")
            if username and password:
                credentials = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
                headers["Authorization"] = f"Basic {credentials}"
        case "api_key":
            if auth_config.get("key") and auth_config.get("value"):
                headers[str(auth_config["key"])] = str(auth_config["value"])
        case "custom":
            custom = auth_config.get("headers")
            if isinstance(custom, dict):
                headers.update({str(k): str(v) for k, v in custom.items()})
        case _:
            logger.warning("Unknown auth type: %s", auth_type)

    return headers


def build_headers(
    destination: Destination,
    body: bytes,
    delivery_id: str,
    user_agent: str = DEFAULT_USER_AGENT,
) -> dict[str, str]:
    """All request headers for one delivery attempt.

    Order of precedence, lowest first: base headers, custom headers, auth
    headers, signature headers.

    Args:
        destination: Destination being delivered to.
        body: Serialized payload bytes, exactly as sent.
        delivery_id: Unique id for this attempt.
        user_agent: User-Agent header value.
    """
    headers = {
        "Content-Type": "application/json",
        "User-Agent": user_agent,
        WEBHOOK_ID_HEADER: destination.id,
        TIMESTAMP_HEADER: utc_timestamp(),
        DELIVERY_ID_HEADER: delivery_id,
    }

    if destination.headers:
        try:
            custom = load_json(destination.headers)
        except ValueError as e:
            logger.warning("Invalid custom headers for webhook %s: %s", destination.id, e)
        else:
            if isinstance(custom, dict):
                headers.update({str(k): str(v) for k, v in custom.items()})
            else:
                logger.warning("Custom headers for webhook %s are not an object", destination.id)

    if destination.auth_type and destination.auth_config:
        try:
            auth_config = load_json(destination.auth_config)
        except ValueError as e:
            logger.warning("Invalid auth config for webhook %s: %s", destination.id, e)
        else:
            if isinstance(auth_config, dict):
                headers.update(build_auth_headers(destination.auth_type, auth_config))
            else:
                logger.warning("Auth config for webhook %s is not an object", destination.id)

    if destination.secret:
        headers.update(signature_headers(body, destination.secret))

    return headers
