"""
Traffic aggregation for a page of stations.

The common path is one projected batch query per page. When that fails, a
capped number of per-station requests run concurrently instead, and any
station whose request fails is left out of the result.
"""

import asyncio
from typing import Any, Iterable, Mapping

from loguru import logger
from pydantic import ValidationError

from netresolve.datasource.base import BaseNetworkApi
from netresolve.models import Station, TrafficRecord
from netresolve.services.deadline import with_timeout

# Logical counter -> controller field names, highest priority first.
TRAFFIC_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "in_bytes": ("inBytes", "rxBytes"),
    "out_bytes": ("outBytes", "txBytes"),
    "rx_bytes": ("rxBytes", "inBytes"),
    "tx_bytes": ("txBytes", "outBytes"),
    "packets_in": ("packets", "inPackets", "rxPackets"),
    "packets_out": ("outPackets", "txPackets"),
    "signal_strength_dbm": ("rss", "signalStrength", "rssi"),
}

TRAFFIC_FIELDS: list[str] = ["macAddress"] + list(
    dict.fromkeys(name for aliases in TRAFFIC_FIELD_ALIASES.values() for name in aliases)
)

FALLBACK_CAP = 20


def first_present(raw: Mapping[str, Any], aliases: Iterable[str]) -> Any:
    """Value of the first alias that is neither missing, None nor ""."""
    for name in aliases:
        value = raw.get(name)
        if value is not None and value != "":
            return value
    return None


def build_traffic_record(raw: Mapping[str, Any], mac_address: str | None = None) -> TrafficRecord | None:
    """Project a raw station payload onto a TrafficRecord; None without a MAC."""
    mac = mac_address or raw.get("macAddress")
    if not mac:
        return None
    values = {
        field: first_present(raw, aliases)
        for field, aliases in TRAFFIC_FIELD_ALIASES.items()
    }
    return TrafficRecord(mac_address=mac, **values)


class TrafficAggregator:
    """Attaches traffic counters to station pages."""

    def __init__(
        self,
        api: BaseNetworkApi,
        timeout: float = 5.0,
        fallback_cap: int = FALLBACK_CAP,
        fallback_concurrency: int = 10,
    ):
        self.api = api
        self._timeout = timeout
        self._fallback_cap = fallback_cap
        self._semaphore = asyncio.Semaphore(max(1, fallback_concurrency))

    async def load_traffic_for_page(
        self,
        stations: list[Station],
        limit: int,
        offset: int = 0,
    ) -> dict[str, TrafficRecord]:
        """
        Traffic by MAC address for one page of stations.

        Never raises: the result may be empty or cover only part of the page.
        """
        try:
            return await self._load_batch(limit, offset)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"Batch traffic query failed (limit={limit}, offset={offset}), "
                f"falling back to per-station requests: {e}"
            )

        try:
            return await self._load_individually(stations, limit)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Per-station traffic fallback failed: {e}")
            return {}

    async def _load_batch(self, limit: int, offset: int) -> dict[str, TrafficRecord]:
        records = await with_timeout(
            self.api.fetch_stations(fields=TRAFFIC_FIELDS, limit=limit, offset=offset),
            self._timeout,
            self.api.service_id,
        )
        traffic: dict[str, TrafficRecord] = {}
        for raw in records:
            try:
                record = build_traffic_record(raw)
            except ValidationError as e:
                logger.warning(
                    f"Skipping unparseable traffic record for {raw.get('macAddress')}: "
                    f"{e.error_count()} errors"
                )
                continue
            if record is not None:
                traffic[record.mac_address] = record
        logger.debug(f"Batch traffic query returned {len(traffic)} records")
        return traffic

    async def _load_individually(
        self, stations: list[Station], limit: int
    ) -> dict[str, TrafficRecord]:
        candidates = [s for s in stations[: min(limit, self._fallback_cap)] if s.mac_address]
        results = await asyncio.gather(
            *(self._fetch_one(station.mac_address) for station in candidates),
            return_exceptions=True,
        )

        traffic: dict[str, TrafficRecord] = {}
        for station, result in zip(candidates, results):
            if isinstance(result, BaseException):
                logger.warning(f"Traffic stats unavailable for {station.mac_address}: {result}")
                continue
            if result is not None:
                traffic[station.mac_address] = result

        logger.info(
            f"Loaded traffic for {len(traffic)}/{len(candidates)} stations individually"
        )
        return traffic

    async def _fetch_one(self, mac_address: str) -> TrafficRecord | None:
        async with self._semaphore:
            raw = await with_timeout(
                self.api.fetch_station_traffic(mac_address),
                self._timeout,
                self.api.service_id,
            )
        if raw is None:
            return None
        return build_traffic_record(raw, mac_address)

    async def get_station_traffic(self, mac_address: str) -> TrafficRecord | None:
        """Traffic for a single station (client detail view). Never raises."""
        try:
            return await self._fetch_one(mac_address)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Traffic stats unavailable for {mac_address}: {e}")
            return None
