"""Tests for the CloudFlare provider."""

from __future__ import annotations

import asyncio
import json

import httpx

from cf_ddns.models import DNSRecord
from cf_ddns.providers.base import ProviderResult
from cf_ddns.providers.cloudflare import CF_API_BASE, CloudFlareProvider

ZONE_ID = "023e105f4ecef8ad9ca31a8372d0c353"


def cf_response(result=None, *, success=True, errors=None, status_code=200):
    """Build a CloudFlare v4 response envelope."""
    return httpx.Response(
        status_code,
        json={
            "success": success,
            "errors": errors or [],
            "messages": [],
            "result": result,
        },
    )


def make_provider(handler, requests):
    """Create a provider whose requests are answered by `handler`."""

    def _record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return CloudFlareProvider("cf-test-token", transport=httpx.MockTransport(_record))


class TestProviderResult:
    """Tests for ProviderResult class."""

    def test_success_result(self):
        result = ProviderResult(
            success=True,
            message="Record updated",
            previous_value="1.1.1.1",
            request_id="8a1b2c3d4e5f-AMS",
        )
        assert result.success is True
        assert result.previous_value == "1.1.1.1"
        assert result.request_id == "8a1b2c3d4e5f-AMS"

    def test_error_result(self):
        result = ProviderResult(success=False, message="Zone not found")
        assert result.success is False
        assert result.previous_value is None
        assert result.request_id is None
        assert "Zone not found" in repr(result)


class TestListRecords:
    """Tests for CloudFlareProvider.list_records()."""

    def test_lists_a_records(self):
        requests: list[httpx.Request] = []
        provider = make_provider(
            lambda _req: cf_response(
                [
                    {
                        "id": "r1",
                        "name": "a.example.com",
                        "type": "A",
                        "content": "1.2.3.4",
                        "proxied": True,
                    },
                    {
                        "id": "r2",
                        "name": "example.com",
                        "type": "A",
                        "content": "1.2.3.4",
                        "proxied": False,
                    },
                ],
            ),
            requests,
        )

        records = asyncio.run(provider.list_records(ZONE_ID))

        assert records == [
            DNSRecord(id="r1", name="a.example.com", content="1.2.3.4", proxied=True),
            DNSRecord(id="r2", name="example.com", content="1.2.3.4", proxied=False),
        ]
        assert len(requests) == 1
        request = requests[0]
        assert request.method == "GET"
        assert str(request.url).startswith(f"{CF_API_BASE}/zones/{ZONE_ID}/dns_records")
        assert request.url.params["type"] == "A"
        assert request.headers["Authorization"] == "Bearer cf-test-token"

    def test_empty_result(self):
        provider = make_provider(lambda _req: cf_response([]), [])
        assert asyncio.run(provider.list_records(ZONE_ID)) == []

    def test_api_failure_returns_none(self):
        provider = make_provider(
            lambda _req: cf_response(
                None,
                success=False,
                errors=[{"code": 7003, "message": "Could not route"}],
                status_code=400,
            ),
            [],
        )
        assert asyncio.run(provider.list_records(ZONE_ID)) is None

    def test_success_false_with_200_returns_none(self):
        provider = make_provider(lambda _req: cf_response([], success=False), [])
        assert asyncio.run(provider.list_records(ZONE_ID)) is None

    def test_non_json_body_returns_none(self):
        provider = make_provider(
            lambda _req: httpx.Response(502, text="<html>Bad gateway</html>"),
            [],
        )
        assert asyncio.run(provider.list_records(ZONE_ID)) is None

    def test_malformed_record_returns_none(self):
        provider = make_provider(
            lambda _req: cf_response([{"name": "a.example.com"}]),
            [],
        )
        assert asyncio.run(provider.list_records(ZONE_ID)) is None

    def test_transport_error_returns_none(self):
        def handler(request):
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)

        provider = make_provider(handler, [])
        assert asyncio.run(provider.list_records(ZONE_ID)) is None


class TestUpdateRecord:
    """Tests for CloudFlareProvider.update_record()."""

    record = DNSRecord(
        id="r1",
        name="home.example.com",
        content="9.9.9.9",
        proxied=True,
    )

    def test_put_body_preserves_proxied(self):
        requests: list[httpx.Request] = []
        provider = make_provider(
            lambda _req: cf_response({"id": "r1"}),
            requests,
        )

        result = asyncio.run(provider.update_record(ZONE_ID, self.record, "1.2.3.4"))

        assert result.success is True
        assert result.previous_value == "9.9.9.9"

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "PUT"
        assert str(request.url) == f"{CF_API_BASE}/zones/{ZONE_ID}/dns_records/r1"
        assert request.headers["Authorization"] == "Bearer cf-test-token"
        assert json.loads(request.content) == {
            "type": "A",
            "name": "home.example.com",
            "content": "1.2.3.4",
            "proxied": True,
        }

    def test_cf_ray_as_request_id(self):
        def handler(_req):
            response = cf_response({"id": "r1"})
            response.headers["cf-ray"] = "8a1b2c3d4e5f-AMS"
            return response

        provider = make_provider(handler, [])
        result = asyncio.run(provider.update_record(ZONE_ID, self.record, "1.2.3.4"))
        assert result.request_id == "8a1b2c3d4e5f-AMS"

    def test_api_failure(self):
        provider = make_provider(
            lambda _req: cf_response(
                None,
                success=False,
                errors=[{"code": 81044, "message": "Record does not exist."}],
                status_code=404,
            ),
            [],
        )

        result = asyncio.run(provider.update_record(ZONE_ID, self.record, "1.2.3.4"))

        assert result.success is False
        assert "Record does not exist." in result.message

    def test_non_json_body(self):
        provider = make_provider(lambda _req: httpx.Response(500, text="oops"), [])
        result = asyncio.run(provider.update_record(ZONE_ID, self.record, "1.2.3.4"))
        assert result.success is False
        assert "HTTP 500" in result.message

    def test_transport_error(self):
        def handler(request):
            msg = "timed out"
            raise httpx.ReadTimeout(msg, request=request)

        provider = make_provider(handler, [])
        result = asyncio.run(provider.update_record(ZONE_ID, self.record, "1.2.3.4"))
        assert result.success is False
        assert result.message.startswith("Request error")
