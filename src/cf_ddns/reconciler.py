"""
Zone reconciliation.

One reconcile cycle resolves the public IP, then for each configured zone
lists its A records, keeps those whose name matches the zone's wildcard
pattern, and overwrites every matching record whose content differs.

Zone work and record updates run as independent asyncio tasks. A cycle never
waits for them, so one failing zone or record cannot hold up another.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Coroutine, Iterable, Sequence
    from typing import Any

    from cf_ddns.config import ZoneConfig
    from cf_ddns.models import DNSRecord
    from cf_ddns.providers.base import BaseDNSProvider
    from cf_ddns.resolver import IPResolver


logger = logging.getLogger(__name__)


def compile_record_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a record name pattern into a regular expression.

    Every character is literal except `*`, which matches any sequence
    (including an empty one). Use `fullmatch` on the result.

    Parameters
    ----------
    pattern : str
        Record name pattern, e.g. "*.example.com".

    Returns
    -------
    re.Pattern[str]
        The compiled expression.
    """
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")))


def match_records(records: Iterable[DNSRecord], pattern: str) -> list[DNSRecord]:
    """
    Keep the records whose full name matches `pattern`.

    Parameters
    ----------
    records : Iterable[DNSRecord]
        Records listed from the provider.
    pattern : str
        Record name pattern.

    Returns
    -------
    list[DNSRecord]
        Matching records, in listing order.
    """
    regex = compile_record_pattern(pattern)
    return [record for record in records if regex.fullmatch(record.name)]


class Reconciler:
    """
    Apply the public IP to the matching records of every configured zone.

    Parameters
    ----------
    provider : BaseDNSProvider
        DNS provider used to list and update records.
    resolver : IPResolver
        Public IP resolver.
    zones : Sequence[ZoneConfig]
        Zones to reconcile, processed in order.
    """

    def __init__(
        self,
        provider: BaseDNSProvider,
        resolver: IPResolver,
        zones: Sequence[ZoneConfig],
    ) -> None:
        self.provider = provider
        self.resolver = resolver
        self.zones = tuple(zones)
        # Strong references to spawned tasks until they finish
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of zone and update tasks still running."""
        return len(self._pending)

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=name)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Unhandled error in task %s.",
                task.get_name(),
                exc_info=exc,
            )

    async def run_cycle(self) -> str | None:
        """
        Resolve the public IP and start reconciling every zone.

        Returns once the zone tasks are spawned; use `drain()` to wait for them.

        Returns
        -------
        str | None
            The resolved IP, or None if the cycle was skipped.

        Raises
        ------
        IPExtractionError
            If the IP echo response contains no address.
        """
        ip = await self.resolver.resolve()
        if ip is None:
            logger.warning("Public IP unavailable, skipping this cycle.")
            return None

        total = len(self.zones)
        for index, zone in enumerate(self.zones, start=1):
            logger.info("Updating zone %d/%d: %s", index, total, zone.zone_id)
            self._spawn(self.reconcile_zone(ip, zone), name=f"zone:{zone.zone_id}")
        return ip

    async def reconcile_zone(self, ip: str, zone: ZoneConfig) -> None:
        """
        List, match and dispatch updates for a single zone.

        Parameters
        ----------
        ip : str
            The resolved public IP.
        zone : ZoneConfig
            The zone to reconcile.
        """
        records = await self.provider.list_records(zone.zone_id)
        if records is None:
            # Failure already logged by the provider
            return

        matching = match_records(records, zone.record_name)
        if not matching:
            logger.warning(
                'No matching DNS records found for pattern "%s" in zone %s.',
                zone.record_name,
                zone.zone_id,
            )
            return

        logger.info(
            "Found %d matching record(s) in zone %s.",
            len(matching),
            zone.zone_id,
        )

        for record in matching:
            if record.content == ip:
                logger.info("IP unchanged for %s, skipping.", record.name)
                continue
            self._spawn(
                self._update_record(zone.zone_id, record, ip),
                name=f"update:{zone.zone_id}:{record.id}",
            )

    async def _update_record(self, zone_id: str, record: DNSRecord, ip: str) -> None:
        result = await self.provider.update_record(zone_id, record, ip)
        if result.success:
            logger.info(
                "DNS record %s updated successfully: %s -> %s (request %s).",
                record.name,
                result.previous_value,
                ip,
                result.request_id or "-",
            )
        else:
            logger.error(
                "Failed to update DNS record %s: %s (request %s)",
                record.name,
                result.message,
                result.request_id or "-",
            )

    async def drain(self) -> None:
        """Wait for every pending task, including ones spawned meanwhile."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def run_forever(self, interval: float) -> None:
        """
        Run a cycle now and then every `interval` seconds.

        Only IP resolution is awaited, so a cycle's zone work may still be in
        flight when the next one starts.

        Parameters
        ----------
        interval : float
            Seconds between the starts of two cycles.

        Raises
        ------
        IPExtractionError
            If a cycle cannot extract an IP address.
        """
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            await self.run_cycle()
            delay = max(0.0, interval - (loop.time() - started))
            logger.debug("Next update cycle in %.1fs.", delay)
            await asyncio.sleep(delay)
