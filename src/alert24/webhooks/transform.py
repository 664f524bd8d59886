"""Payload construction and per-destination transforms.

Payloads are plain JSON values (dicts, lists, scalars). Destinations may
reshape the envelope with a template containing {{dotted.path}}
placeholders, or with a target_path -> source_path field mapping.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any
from uuid import uuid4

from alert24.models import (
    DEFAULT_EVENT,
    INCIDENT_EVENTS,
    MONITORING_EVENTS,
    PAYLOAD_VERSION,
    SERVICE_EVENTS,
    Destination,
    EventEnvelope,
    load_json,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# Returned by get_path when nothing is found; None is a real JSON value
MISSING: Any = _Missing()


def get_path(document: Any, path: str, default: Any = MISSING) -> Any:
    """Walk a dotted path through nested dicts and lists.

    Numeric segments index into lists, e.g. "checks.0.name".
    """
    current = document
    for key in path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return default
    return current


def set_path(document: dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted path, creating intermediate dicts as needed."""
    *parents, last = path.split(".")
    target = document
    for key in parents:
        child = target.get(key)
        if not isinstance(child, dict):
            child = target[key] = {}
        target = child
    target[last] = value


def _render_text(text: str, namespace: dict[str, Any]) -> str:
    def _replace(match: re.Match[str]) -> str:
        value = get_path(namespace, match.group(1).strip())
        if value is MISSING:
            return match.group(0)
        return value if isinstance(value, str) else json.dumps(value)

    return PLACEHOLDER.sub(_replace, text)


def _render(node: Any, namespace: dict[str, Any]) -> Any:
    if isinstance(node, str):
        whole = PLACEHOLDER.fullmatch(node)
        if whole:
            value = get_path(namespace, whole.group(1).strip())
            return node if value is MISSING else copy.deepcopy(value)
        return _render_text(node, namespace)
    if isinstance(node, dict):
        return {
            _render_text(str(key), namespace): _render(value, namespace)
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [_render(item, namespace) for item in node]
    return node


def apply_template(template: Any, namespace: dict[str, Any]) -> Any:
    """Substitute {{dotted.path}} placeholders throughout a template document.

    A string that is exactly one placeholder takes the resolved value with
    its JSON type (numbers stay numbers, objects stay objects). Placeholders
    inside longer strings are replaced by the value's text. Unresolved
    placeholders are left as written.

    Args:
        template: Parsed template document; not modified.
        namespace: Values available to placeholders.

    Returns:
        A new document.
    """
    return _render(template, namespace)


def apply_field_mapping(document: dict[str, Any], mapping: dict[str, Any]) -> dict[str, Any]:
    """Build a new document from target_path -> source_path pairs.

    Targets whose source cannot be resolved are left out.
    """
    mapped: dict[str, Any] = {}
    for target, source in mapping.items():
        value = get_path(document, str(source))
        if value is not MISSING:
            set_path(mapped, str(target), copy.deepcopy(value))
    return mapped


def build_envelope(
    destination: Destination,
    data: Any,
    event: str = DEFAULT_EVENT,
) -> EventEnvelope:
    """Wrap event data for one delivery attempt, with a fresh id."""
    return EventEnvelope(
        id=str(uuid4()),
        event=event,
        organization_id=destination.organization_id,
        destination_id=destination.id,
        data=data,
    )


def template_namespace(document: dict[str, Any]) -> dict[str, Any]:
    """Envelope fields with the event data's top-level fields merged over them."""
    data = document.get("data")
    if isinstance(data, dict):
        return {**document, **data}
    return document


def transform_payload(destination: Destination, envelope: EventEnvelope) -> Any:
    """Shape the envelope the way a destination expects.

    A template wins over a field mapping. A malformed template falls
    through to the mapping, and a malformed mapping falls back to the plain
    envelope, so one misconfigured destination never aborts a batch.
    """
    document = envelope.to_document()

    if destination.payload_template:
        try:
            template = load_json(destination.payload_template)
        except ValueError as e:
            logger.warning(
                "Invalid payload template for webhook %s, using default: %s", destination.id, e
            )
        else:
            return apply_template(template, template_namespace(document))

    if destination.field_mapping:
        try:
            mapping = load_json(destination.field_mapping)
        except ValueError as e:
            logger.warning(
                "Invalid field mapping for webhook %s, using default: %s", destination.id, e
            )
        else:
            if isinstance(mapping, dict):
                return apply_field_mapping(document, mapping)
            logger.warning("Field mapping for webhook %s is not an object", destination.id)

    return document


def create_event_payload(event_type: str, data: dict[str, Any], base_url: str) -> dict[str, Any]:
    """Event data in the shape receivers expect for well-known event tags.

    incident.* events carry an `incident` object, service.* a `service`
    object, monitoring.alert an `alert` object; anything else passes the
    data through under `data`.

    Args:
        event_type: Event tag.
        data: Raw fields describing what happened.
        base_url: Public Alert24 URL for deep links.
    """
    base_url = base_url.rstrip("/")
    payload: dict[str, Any] = {
        "event": event_type,
        "timestamp": utc_timestamp(),
        "version": PAYLOAD_VERSION,
    }

    if event_type in INCIDENT_EVENTS:
        payload["incident"] = {
            "id": data.get("id"),
            "title": data.get("title"),
            "description": data.get("description"),
            "severity": data.get("severity"),
            "status": data.get("status"),
            "service_id": data.get("service_id"),
            "created_at": data.get("created_at"),
            "updated_at": data.get("updated_at"),
            "resolved_at": data.get("resolved_at"),
            "url": f"{base_url}/incidents/{data.get('id')}",
        }
    elif event_type in SERVICE_EVENTS:
        payload["service"] = {
            "id": data.get("id"),
            "name": data.get("name"),
            "status": data.get("status"),
            "previous_status": data.get("previous_status"),
            "updated_at": data.get("updated_at"),
            "url": f"{base_url}/services/{data.get('id')}",
        }
    elif event_type in MONITORING_EVENTS:
        payload["alert"] = {
            "check_id": data.get("check_id"),
            "check_name": data.get("check_name"),
            "status": data.get("status"),
            "response_time": data.get("response_time"),
            "error_message": data.get("error_message"),
            "timestamp": data.get("timestamp"),
            "url": f"{base_url}/monitoring/{data.get('check_id')}",
        }
    else:
        payload["data"] = data

    return payload
