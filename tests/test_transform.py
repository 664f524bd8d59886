"""Tests for payload templates, field mappings and event payload shapes."""

from __future__ import annotations

import copy

import pytest

from alert24.models import Destination, EventEnvelope
from alert24.webhooks.transform import (
    MISSING,
    apply_field_mapping,
    apply_template,
    build_envelope,
    create_event_payload,
    get_path,
    set_path,
    template_namespace,
    transform_payload,
)


@pytest.fixture
def envelope() -> EventEnvelope:
    return EventEnvelope(
        id="evt_1",
        event="incident.created",
        organization_id="org_1",
        destination_id="whk_1",
        data={
            "title": "API down",
            "severity": "critical",
            "affected": 3,
            "service": {"name": "api", "region": "eu"},
            "checks": [{"name": "ping"}, {"name": "http"}],
        },
    )


class TestPaths:
    """Tests for dotted-path helpers."""

    def test_get_path_dicts_and_lists(self):
        document = {"a": {"b": [{"c": 1}, {"c": 2}]}}
        assert get_path(document, "a.b.1.c") == 2
        assert get_path(document, "a.b") == [{"c": 1}, {"c": 2}]

    def test_get_path_missing(self):
        document = {"a": {"b": None}}
        assert get_path(document, "a.x") is MISSING
        assert get_path(document, "a.b.c", default="fallback") == "fallback"
        assert get_path(document, "a.b") is None

    def test_set_path_creates_parents(self):
        document: dict = {"keep": 1}
        set_path(document, "alert.meta.level", "high")
        assert document == {"keep": 1, "alert": {"meta": {"level": "high"}}}


class TestApplyTemplate:
    """Tests for placeholder substitution."""

    def test_whole_placeholder_keeps_type(self):
        """A string that is exactly one placeholder takes the value's JSON type."""
        template = {"count": "{{affected}}", "service": "{{service}}"}
        rendered = apply_template(template, {"affected": 3, "service": {"name": "api"}})
        assert rendered == {"count": 3, "service": {"name": "api"}}

    def test_whole_placeholder_number_not_stringified(self):
        """Scalars stay typed; only embedded placeholders are rendered as text."""
        rendered = apply_template({"n": "{{count}}", "label": "n={{count}}"}, {"count": 5})
        assert rendered == {"n": 5, "label": "n=5"}
        assert isinstance(rendered["n"], int)

    def test_embedded_placeholders_become_text(self):
        template = {"text": "[{{severity}}] {{title}} ({{affected}} checks)"}
        rendered = apply_template(
            template, {"severity": "critical", "title": "API down", "affected": 3}
        )
        assert rendered == {"text": "[critical] API down (3 checks)"}

    def test_unresolved_placeholders_left_verbatim(self):
        """Unknown paths leave the placeholder exactly as written."""
        template = {"text": "{{missing.field}}", "note": "Alert: {{nope}} for {{title}}"}
        rendered = apply_template(template, {"title": "API down"})
        assert rendered == {"text": "{{missing.field}}", "note": "Alert: {{nope}} for API down"}

    def test_nested_lists_and_keys(self):
        template = {"blocks": [{"type": "section", "text": "{{title}}"}], "{{key}}": True}
        rendered = apply_template(template, {"title": "API down", "key": "flag"})
        assert rendered == {"blocks": [{"type": "section", "text": "API down"}], "flag": True}

    def test_values_with_quotes_are_safe(self):
        """Substituted text containing quotes does not corrupt the document."""
        rendered = apply_template({"text": "{{title}}"}, {"title": 'He said "down"'})
        assert rendered == {"text": 'He said "down"'}

    def test_template_not_modified(self):
        template = {"text": "{{title}}", "items": ["{{title}}"]}
        original = copy.deepcopy(template)
        apply_template(template, {"title": "x"})
        assert template == original


class TestApplyFieldMapping:
    """Tests for target_path -> source_path mapping."""

    def test_maps_and_skips_unresolved(self, envelope: EventEnvelope):
        mapping = {
            "alert.title": "data.title",
            "alert.first_check": "data.checks.0.name",
            "alert.missing": "data.nope",
        }
        mapped = apply_field_mapping(envelope.to_document(), mapping)
        assert mapped == {"alert": {"title": "API down", "first_check": "ping"}}


class TestTransformPayload:
    """Tests for transform selection."""

    def test_no_transform_returns_envelope(self, envelope: EventEnvelope):
        destination = Destination(url="https://example.com")
        assert transform_payload(destination, envelope) == envelope.to_document()

    def test_template_uses_envelope_and_data_fields(self, envelope: EventEnvelope):
        destination = Destination(
            url="https://example.com",
            payload_template={"event": "{{event}}", "text": "{{title}} in {{service.region}}"},
        )
        assert transform_payload(destination, envelope) == {
            "event": "incident.created",
            "text": "API down in eu",
        }

    def test_template_wins_over_mapping(self, envelope: EventEnvelope):
        destination = Destination(
            url="https://example.com",
            payload_template='{"text": "{{title}}"}',
            field_mapping={"title": "data.title"},
        )
        assert transform_payload(destination, envelope) == {"text": "API down"}

    def test_invalid_template_falls_back_to_mapping(self, envelope: EventEnvelope):
        destination = Destination(
            url="https://example.com",
            payload_template="{broken",
            field_mapping='{"summary": "data.title"}',
        )
        assert transform_payload(destination, envelope) == {"summary": "API down"}

    def test_invalid_mapping_falls_back_to_envelope(self, envelope: EventEnvelope):
        destination = Destination(url="https://example.com", field_mapping="{broken")
        assert transform_payload(destination, envelope) == envelope.to_document()

    def test_template_namespace_prefers_data(self):
        document = {"id": "evt_1", "data": {"id": "inc_1"}}
        assert template_namespace(document)["id"] == "inc_1"


class TestBuildEnvelope:
    """Tests for envelope construction."""

    def test_fresh_id_each_time(self):
        destination = Destination(id="whk_1", organization_id="org_1", url="https://x.io")
        first = build_envelope(destination, {"a": 1}, "test")
        second = build_envelope(destination, {"a": 1}, "test")
        assert first.id != second.id
        assert first.destination_id == "whk_1"
        assert first.organization_id == "org_1"
        assert first.event == "test"


class TestCreateEventPayload:
    """Tests for event payload shapes."""

    def test_incident_payload(self):
        payload = create_event_payload(
            "incident.created",
            {"id": "inc_1", "title": "API down", "severity": "critical"},
            "https://alert24.app/",
        )
        assert payload["event"] == "incident.created"
        assert payload["version"] == "1.0"
        assert payload["incident"]["title"] == "API down"
        assert payload["incident"]["url"] == "https://alert24.app/incidents/inc_1"

    def test_service_payload(self):
        payload = create_event_payload(
            "service.down", {"id": "svc_1", "name": "API", "status": "down"}, "https://a.io"
        )
        assert payload["service"]["url"] == "https://a.io/services/svc_1"
        assert payload["service"]["status"] == "down"

    def test_monitoring_payload(self):
        payload = create_event_payload(
            "monitoring.alert", {"check_id": "chk_1", "status": "failing"}, "https://a.io"
        )
        assert payload["alert"]["url"] == "https://a.io/monitoring/chk_1"

    def test_other_events_pass_data_through(self):
        payload = create_event_payload("custom.thing", {"x": 1}, "https://a.io")
        assert payload["data"] == {"x": 1}
        assert "incident" not in payload
