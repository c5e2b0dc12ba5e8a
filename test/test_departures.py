"""Tests for the departure feed filter."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import make_departure
from dashboard.departures import DepartureFeed, filter_departures
from dashboard.models import DepartureFeedResult, StopDeviation
from dashboard.sl_client import SLClient


AS_OF = datetime(2026, 2, 13, 12, 0, tzinfo=timezone.utc)


class TestFilterDepartures:
    def test_keeps_mode_and_destination(self):
        metro = make_departure(AS_OF, 5, journey_id="metro")
        bus = make_departure(AS_OF, 6, transport_mode="BUS", journey_id="bus")
        other_way = make_departure(AS_OF, 7, destination="Hjulsta", journey_id="hjulsta")
        result = filter_departures([metro, bus, other_way], {"METRO"}, "Kungsträdgården")
        assert [d.journey_id for d in result] == ["metro"]

    def test_destination_match_is_case_insensitive_substring(self):
        d = make_departure(AS_OF, 5, destination="KUNGSTRÄDGÅRDEN (via T-Centralen)")
        assert filter_departures([d], ["METRO"], "kungsträdgården") == [d]

    def test_keeps_feed_order(self):
        later = make_departure(AS_OF, 20, journey_id="later")
        sooner = make_departure(AS_OF, 5, journey_id="sooner")
        result = filter_departures([later, sooner], ["METRO"], "Kungsträdgården")
        assert [d.journey_id for d in result] == ["later", "sooner"]

    def test_multiple_modes(self):
        metro = make_departure(AS_OF, 5, journey_id="metro")
        tram = make_departure(AS_OF, 6, transport_mode="TRAM", journey_id="tram")
        result = filter_departures([metro, tram], ["METRO", "TRAM"], "Kungsträdgården")
        assert len(result) == 2

    def test_mode_match_ignores_case(self):
        metro = make_departure(AS_OF, 5, journey_id="metro")
        result = filter_departures([metro], ["metro"], "Kungsträdgården")
        assert [d.journey_id for d in result] == ["metro"]


class TestDepartureFeed:
    @pytest.mark.asyncio
    async def test_fetch_filters_and_passes_deviations(self):
        client = AsyncMock(spec=SLClient)
        deviation = StopDeviation(message="Spårfel", importance_level=7)
        client.fetch_departures.return_value = DepartureFeedResult(
            departures=[
                make_departure(AS_OF, 5, journey_id="keep"),
                make_departure(AS_OF, 6, transport_mode="BUS", journey_id="drop"),
            ],
            stop_deviations=[deviation],
        )
        feed = DepartureFeed(client, 9204, ["METRO"], "Kungsträdgården")

        result = await feed.fetch()

        client.fetch_departures.assert_awaited_once_with(9204)
        assert [d.journey_id for d in result.departures] == ["keep"]
        assert result.stop_deviations == [deviation]
