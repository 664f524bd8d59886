"""Tests for pre-flight destination validation."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from alert24.models import Destination
from alert24.webhooks.validation import is_absolute_url, validate_destination


class TestIsAbsoluteUrl:
    """Tests for URL checks."""

    @pytest.mark.parametrize(
        "url", ["https://example.com/hook", "http://localhost:8080/x", "https://a.b/c?d=e"]
    )
    def test_accepts_absolute(self, url):
        assert is_absolute_url(url)

    @pytest.mark.parametrize("url", ["not-a-url", "/relative/path", "example.com/hook"])
    def test_rejects_others(self, url):
        assert not is_absolute_url(url)


class TestValidateDestination:
    """Tests for validate_destination."""

    def test_valid_destination(self, destination: Destination):
        result = validate_destination(destination)
        assert result.is_valid
        assert result.errors == []

    def test_missing_url(self):
        result = validate_destination(Destination())
        assert not result.is_valid
        assert result.errors == ["URL is required"]

    def test_invalid_url(self):
        result = validate_destination(Destination(url="not-a-url"))
        assert result.errors == ["Invalid URL format"]

    @pytest.mark.parametrize(
        ("field", "label"),
        [
            ("auth_config", "auth configuration"),
            ("headers", "headers"),
            ("payload_template", "payload template"),
            ("field_mapping", "field mapping"),
        ],
    )
    def test_invalid_json(self, field, label):
        """Every JSON-bearing field is checked."""
        destination = Destination(url="https://example.com", **{field: "{oops"})
        result = validate_destination(destination)
        assert f"Invalid {label} JSON" in result.errors

    def test_non_object_headers(self):
        destination = Destination(url="https://example.com", headers='["X-One"]')
        result = validate_destination(destination)
        assert result.errors == ["Invalid headers: must be a JSON object"]

    def test_template_may_be_any_json(self):
        """A template document can be an array."""
        destination = Destination(url="https://example.com", payload_template='["{{event}}"]')
        assert validate_destination(destination).is_valid

    def test_collects_all_errors(self):
        destination = Destination(headers="{", field_mapping="[")
        result = validate_destination(destination)
        assert len(result.errors) == 3

    def test_unknown_auth_type_is_warning(self):
        destination = Destination(url="https://example.com", auth_type="oauth2")
        result = validate_destination(destination)
        assert result.is_valid
        assert "oauth2" in result.warnings[0]

    def test_template_and_mapping_warning(self):
        destination = Destination(
            url="https://example.com",
            payload_template={"text": "{{title}}"},
            field_mapping={"title": "data.title"},
        )
        result = validate_destination(destination)
        assert result.is_valid
        assert any("mapping ignored" in warning for warning in result.warnings)

    def test_idempotent_and_offline(self):
        """Validating twice gives the same result and never touches the network."""
        destination = Destination(url="ftp:/broken", headers="{")
        with patch("httpx.AsyncClient") as mock_client_class:
            first = validate_destination(destination)
            second = validate_destination(destination)
        assert first == second
        mock_client_class.assert_not_called()
