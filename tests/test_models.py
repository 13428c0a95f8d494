"""Tests for data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from cf_ddns.models import APIError, APIResponse, DNSRecord, RecordType


class TestRecordType:
    """Tests for RecordType enum."""

    def test_record_type_values(self):
        assert RecordType.A == "A"
        assert RecordType("A") is RecordType.A


class TestDNSRecord:
    """Tests for DNSRecord model."""

    def test_from_api_payload(self):
        record = DNSRecord.model_validate(
            {
                "id": "372e67954025e0ba6aaa6d586b9e0b59",
                "zone_id": "023e105f4ecef8ad9ca31a8372d0c353",
                "name": "home.example.com",
                "type": "A",
                "content": "198.51.100.4",
                "proxiable": True,
                "proxied": True,
                "ttl": 3600,
            },
        )
        assert record.id == "372e67954025e0ba6aaa6d586b9e0b59"
        assert record.name == "home.example.com"
        assert record.content == "198.51.100.4"
        assert record.proxied is True

    def test_defaults(self):
        record = DNSRecord(id="r1", name="a.example.com")
        assert record.type == "A"
        assert record.content == ""
        assert record.proxied is None

    def test_missing_id(self):
        with pytest.raises(ValidationError):
            DNSRecord.model_validate({"name": "a.example.com"})

    @pytest.mark.parametrize("proxied", [True, False])
    def test_update_payload_keeps_proxied(self, proxied):
        record = DNSRecord(
            id="r1",
            name="a.example.com",
            content="1.1.1.1",
            proxied=proxied,
        )
        assert record.update_payload("2.2.2.2") == {
            "type": "A",
            "name": "a.example.com",
            "content": "2.2.2.2",
            "proxied": proxied,
        }

    def test_update_payload_omits_unknown_proxied(self):
        record = DNSRecord(id="r1", name="a.example.com", content="1.1.1.1")
        payload = record.update_payload("2.2.2.2")

        assert "proxied" not in payload
        assert payload == {"type": "A", "name": "a.example.com", "content": "2.2.2.2"}

    def test_record_is_immutable(self):
        record = DNSRecord(id="r1", name="a.example.com")
        with pytest.raises(ValidationError):
            record.content = "2.2.2.2"  # type: ignore[misc]


class TestAPIResponse:
    """Tests for APIResponse envelope."""

    def test_success_envelope(self):
        response = APIResponse.model_validate(
            {"success": True, "result": [], "errors": [], "messages": []},
        )
        assert response.success is True
        assert response.result == []

    def test_missing_success_is_failure(self):
        assert APIResponse.model_validate({}).success is False

    def test_error_message_joins_errors(self):
        response = APIResponse(
            success=False,
            errors=[
                APIError(code=10000, message="Authentication error"),
                APIError(message="Zone locked"),
            ],
        )
        assert response.error_message() == (
            "Authentication error (code 10000); Zone locked"
        )

    def test_error_message_without_errors(self):
        assert APIResponse(success=False).error_message() == "Unknown error"
