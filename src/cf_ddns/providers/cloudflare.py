"""
CloudFlare DNS provider implementation.

This module implements the parts of the CloudFlare DNS API v4 needed to list
and overwrite A records. Only API Token authentication is supported (not
Global API Key).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from cf_ddns.models import APIResponse, DNSRecord, RecordType
from cf_ddns.providers.base import BaseDNSProvider, ProviderResult

if TYPE_CHECKING:
    from typing import Final


# CloudFlare API base URL
CF_API_BASE: Final[str] = "https://api.cloudflare.com/client/v4"

# HTTP timeout in seconds
HTTP_TIMEOUT: Final[float] = 30.0


logger = logging.getLogger(__name__)


class CloudFlareProvider(BaseDNSProvider):
    """
    CloudFlare DNS provider.

    Every call opens its own short-lived HTTP client, so no connection is
    held between reconcile cycles.

    Parameters
    ----------
    api_token : str
        CloudFlare API token with DNS edit permission.
    transport : httpx.AsyncBaseTransport | None, optional
        Transport override, used by tests.
    """

    def __init__(
        self,
        api_token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=HTTP_TIMEOUT,
            headers=self._headers,
            transport=self._transport,
        )

    @staticmethod
    def _parse_response(response: httpx.Response) -> APIResponse | None:
        """
        Decode a CloudFlare response envelope.

        Parameters
        ----------
        response : httpx.Response
            The raw HTTP response.

        Returns
        -------
        APIResponse | None
            The decoded envelope, or None if the body is not a CloudFlare
            JSON envelope.
        """
        try:
            return APIResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            logger.error(  # noqa: TRY400
                "[cloudflare] Unexpected response (HTTP %d): '%s'",
                response.status_code,
                response.text,
            )
            return None

    async def list_records(self, zone_id: str) -> list[DNSRecord] | None:
        """
        List all A records of a zone.

        Only the first page is read; the API returns up to 100 records per page.

        Parameters
        ----------
        zone_id : str
            The zone ID.

        Returns
        -------
        list[DNSRecord] | None
            The records, or None on transport or API failure.
        """
        url = f"{CF_API_BASE}/zones/{zone_id}/dns_records"
        params = {"type": RecordType.A.value}

        try:
            async with self._client() as client:
                response = await client.get(url, params=params)
        except httpx.RequestError as e:
            logger.error(  # noqa: TRY400
                "[cloudflare] Error fetching DNS records for zone %s: '%s'",
                zone_id,
                e,
            )
            return None

        logger.debug(
            "[cloudflare] GET %s?type=%s -> %d",
            url,
            params["type"],
            response.status_code,
        )
        logger.debug("[cloudflare] Response: %s", response.text)

        data = self._parse_response(response)
        if data is None:
            return None

        if not response.is_success or not data.success:
            logger.error(
                "[cloudflare] Failed to fetch DNS records for zone %s: %s",
                zone_id,
                data.error_message(),
            )
            return None

        try:
            return [DNSRecord.model_validate(item) for item in data.result or []]
        except ValidationError as e:
            logger.error(  # noqa: TRY400
                "[cloudflare] Malformed DNS record list for zone %s: %s",
                zone_id,
                e,
            )
            return None

    async def update_record(
        self,
        zone_id: str,
        record: DNSRecord,
        content: str,
    ) -> ProviderResult:
        """
        Overwrite the content of an A record, keeping its proxied flag.

        Parameters
        ----------
        zone_id : str
            The zone ID.
        record : DNSRecord
            The record as currently stored by CloudFlare.
        content : str
            The new IPv4 address.

        Returns
        -------
        ProviderResult
            The result of the operation.
        """
        url = f"{CF_API_BASE}/zones/{zone_id}/dns_records/{record.id}"
        payload = record.update_payload(content)

        try:
            async with self._client() as client:
                response = await client.put(url, json=payload)
        except httpx.RequestError as e:
            logger.error(  # noqa: TRY400
                "[cloudflare] Network request failed: '%s'",
                e,
            )
            return ProviderResult(
                success=False,
                message=f"Request error: {e}",
            )

        logger.debug("[cloudflare] PUT %s -> %d", url, response.status_code)
        logger.debug("[cloudflare] Response: %s", response.text)

        data = self._parse_response(response)
        if data is None:
            return ProviderResult(
                success=False,
                message=f"Unexpected response (HTTP {response.status_code})",
            )

        if response.is_success and data.success:
            return ProviderResult(
                success=True,
                message=f"DNS record {record.name} updated to {content}",
                previous_value=record.content,
                request_id=response.headers.get("cf-ray"),
            )

        return ProviderResult(
            success=False,
            message=f"Failed to update record: {data.error_message()}",
            request_id=response.headers.get("cf-ray"),
        )
