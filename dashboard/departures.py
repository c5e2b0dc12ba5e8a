"""Departure feed: fetches a site's departures and keeps one mode and direction."""

from __future__ import annotations

from typing import Iterable

from dashboard.models import Departure, DepartureFeedResult
from dashboard.sl_client import SLClient


def towards_destination(departure: Departure, destination: str) -> bool:
    return destination.casefold() in departure.destination.casefold()


def filter_departures(
    departures: Iterable[Departure],
    transport_modes: Iterable[str],
    destination: str,
) -> list[Departure]:
    """Keep departures of an allowed mode heading towards `destination`, in feed order."""
    modes = {mode.upper() for mode in transport_modes}
    return [
        d
        for d in departures
        if d.transport_mode.upper() in modes and towards_destination(d, destination)
    ]


class DepartureFeed:
    """Fetches the filtered departure list for one resolved site."""

    def __init__(
        self,
        client: SLClient,
        site_id: int,
        transport_modes: Iterable[str],
        destination: str,
    ) -> None:
        self._client = client
        self.site_id = site_id
        self._modes = frozenset(mode.upper() for mode in transport_modes)
        self._destination = destination

    async def fetch(self) -> DepartureFeedResult:
        result = await self._client.fetch_departures(self.site_id)
        return DepartureFeedResult(
            departures=filter_departures(result.departures, self._modes, self._destination),
            stop_deviations=result.stop_deviations,
        )
