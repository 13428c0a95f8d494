"""
Base class for DNS providers.

This module defines the abstract base class that all DNS provider
implementations must inherit from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cf_ddns.models import DNSRecord


class ProviderResult:
    """
    Result of a provider operation.

    Attributes
    ----------
    success : bool
        Whether the operation was successful.
    message : str
        Human-readable message.
    previous_value : str | None
        The record value before the update.
    request_id : str | None
        Provider request ID (CloudFlare's `cf-ray` header).
    """

    def __init__(
        self,
        *,
        success: bool,
        message: str,
        previous_value: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.success = success
        self.message = message
        self.previous_value = previous_value
        self.request_id = request_id

    def __repr__(self) -> str:
        return f"ProviderResult(success={self.success!r}, message={self.message!r})"


class BaseDNSProvider(ABC):
    """
    Abstract base class for DNS providers.

    Implementations never raise for transport or API failures: they log the
    failure and report it through their return value.
    """

    @abstractmethod
    async def list_records(self, zone_id: str) -> list[DNSRecord] | None:
        """
        List all A records of a zone.

        Parameters
        ----------
        zone_id : str
            The provider zone ID.

        Returns
        -------
        list[DNSRecord] | None
            The records, or None if the listing failed.
        """
        ...

    @abstractmethod
    async def update_record(
        self,
        zone_id: str,
        record: DNSRecord,
        content: str,
    ) -> ProviderResult:
        """
        Overwrite the content of an existing record.

        Parameters
        ----------
        zone_id : str
            The provider zone ID.
        record : DNSRecord
            The record as currently stored by the provider.
        content : str
            The new record value.

        Returns
        -------
        ProviderResult
            The result of the operation.
        """
        ...
