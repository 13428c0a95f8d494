"""
Public IP resolution.

The public address is read from an IP echo service that answers with free-form
text. The first dotted-quad found in the body is taken as the address; octets
are not range-checked.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from typing import Final


IP_ECHO_URL: Final[str] = "https://myip.dk/"
USER_AGENT: Final[str] = "curl/7.88.1"

# HTTP timeout in seconds
HTTP_TIMEOUT: Final[float] = 30.0

IPV4_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b",
)


logger = logging.getLogger(__name__)


class IPExtractionError(Exception):
    """
    Raised when the IP echo response contains no IPv4 address.

    No zone can be reconciled without an address, so this is fatal.
    """


def extract_ipv4(text: str) -> str | None:
    """
    Return the first IPv4-shaped substring of `text`.

    Parameters
    ----------
    text : str
        Free-form response body.

    Returns
    -------
    str | None
        The first match, or None if there is none.
    """
    match = IPV4_PATTERN.search(text)
    return match.group(0) if match else None


class IPResolver:
    """
    Resolve the host's public IPv4 address.

    Parameters
    ----------
    url : str, optional
        IP echo endpoint.
    transport : httpx.AsyncBaseTransport | None, optional
        Transport override, used by tests.
    """

    def __init__(
        self,
        url: str = IP_ECHO_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._transport = transport

    async def resolve(self) -> str | None:
        """
        Fetch the echo page and extract the address.

        Returns
        -------
        str | None
            The public IP, or None if the request itself failed.

        Raises
        ------
        IPExtractionError
            If the response contains no IPv4 address.
        """
        try:
            async with httpx.AsyncClient(
                timeout=HTTP_TIMEOUT,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            ) as client:
                response = await client.get(self.url)
        except httpx.RequestError as e:
            logger.error("[resolver] Error fetching public IP: '%s'", e)  # noqa: TRY400
            return None

        logger.debug("[resolver] GET %s -> %d", self.url, response.status_code)

        ip = extract_ipv4(response.text)
        if ip is None:
            msg = f"Could not extract IP from response of {self.url}"
            raise IPExtractionError(msg)

        logger.info('[resolver] IP: "%s".', ip)
        return ip
