"""
Data models for CF DDNS.

This module defines the records read from and written to the CloudFlare API,
and the envelope every CloudFlare v4 response is wrapped in.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RecordType(StrEnum):
    """
    Supported DNS record types.

    Attributes
    ----------
    A : str
        IPv4 address record.
    """

    A = "A"


class DNSRecord(BaseModel):
    """
    A DNS record as returned by the provider.

    Only `content` is ever overwritten by this service; every other field is
    sent back unchanged.

    Attributes
    ----------
    id : str
        Provider record ID.
    name : str
        Fully qualified record name.
    type : str
        Record type.
    content : str
        Record value (the IPv4 address for A records).
    proxied : bool | None
        Whether traffic is proxied through the CloudFlare edge, or None if
        the listing did not say.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    type: str = RecordType.A.value
    content: str = ""
    proxied: bool | None = None

    def update_payload(self, content: str) -> dict[str, str | bool]:
        """
        Build the PUT body that sets `content` and keeps everything else.

        `proxied` is only sent when known, so CloudFlare keeps its current
        setting otherwise.

        Parameters
        ----------
        content : str
            The new record value.

        Returns
        -------
        dict[str, str | bool]
            JSON body for the update request.
        """
        payload: dict[str, str | bool] = {
            "type": RecordType.A.value,
            "name": self.name,
            "content": content,
        }
        if self.proxied is not None:
            payload["proxied"] = self.proxied
        return payload


class APIError(BaseModel):
    """An entry of the `errors` array in a CloudFlare response."""

    model_config = ConfigDict(extra="ignore")

    code: int | None = None
    message: str = "Unknown error"


class APIResponse(BaseModel):
    """
    CloudFlare API v4 response envelope.

    Attributes
    ----------
    success : bool
        Whether the API call succeeded.
    result : Any
        Call-specific payload.
    errors : list[APIError]
        Errors reported by the API.
    """

    model_config = ConfigDict(extra="ignore")

    success: bool = False
    result: Any = None
    errors: list[APIError] = Field(default_factory=list)

    def error_message(self) -> str:
        """Join all reported errors into a single message."""
        if not self.errors:
            return "Unknown error"
        return "; ".join(
            f"{err.message} (code {err.code})" if err.code is not None else err.message
            for err in self.errors
        )
