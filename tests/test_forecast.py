"""Tests for nearest-forecast selection, forecast lookup and the travel check."""

from datetime import datetime, timedelta, timezone

import pytest

from flightweather.errors import NotFound, UpstreamError, ValidationError
from flightweather.services.forecast import (
    ForecastLookup,
    ForecastResult,
    TravelWeatherCheck,
    parse_timestamp,
    select_nearest,
)
from tests.conftest import SERIES_START, make_series


class TestSelectNearest:
    def test_picks_minimum_distance(self):
        series = make_series([50.0, 53.0, 58.0, 61.0])
        target = SERIES_START + timedelta(hours=5)  # 2h from 03:00, 1h from 06:00
        assert select_nearest(series, target).temperature == 58.0

    def test_exact_match(self):
        series = make_series([50.0, 53.0, 58.0])
        assert select_nearest(series, SERIES_START + timedelta(hours=3)).temperature == 53.0

    def test_tie_resolves_to_earliest_entry(self):
        series = make_series([50.0, 53.0, 58.0])
        target = SERIES_START + timedelta(hours=4, minutes=30)  # midway between 03:00 and 06:00
        assert select_nearest(series, target).temperature == 53.0

    def test_before_series_start(self):
        series = make_series([50.0, 53.0])
        assert select_nearest(series, SERIES_START - timedelta(days=2)).temperature == 50.0

    def test_after_series_end(self):
        series = make_series([50.0, 53.0])
        assert select_nearest(series, SERIES_START + timedelta(days=9)).temperature == 53.0

    def test_naive_target_treated_as_utc(self):
        series = make_series([50.0, 53.0])
        naive = (SERIES_START + timedelta(hours=3)).replace(tzinfo=None)
        assert select_nearest(series, naive).temperature == 53.0

    def test_empty_series(self):
        with pytest.raises(ValueError):
            select_nearest([], SERIES_START)


class TestParseTimestamp:
    def test_browser_iso_with_z(self):
        parsed = parse_timestamp('2026-10-20T09:30:00.000Z')
        assert parsed == datetime(2026, 10, 20, 9, 30, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        parsed = parse_timestamp('2026-10-20T09:30:00-07:00')
        assert parsed == datetime(2026, 10, 20, 16, 30, tzinfo=timezone.utc)

    def test_empty_is_none(self):
        assert parse_timestamp('') is None
        assert parse_timestamp(None) is None

    def test_garbage(self):
        with pytest.raises(ValidationError):
            parse_timestamp('tomorrow-ish')


class TestForecastLookup:
    def test_success(self, store, airports, weather):
        lookup = ForecastLookup(store, weather)
        result = lookup.lookup('apt-sfo', SERIES_START + timedelta(hours=7))

        assert result.airport['iata'] == 'SFO'
        assert result.date == SERIES_START + timedelta(hours=6)
        assert result.temperature == 58.0
        assert weather.calls == [(37.619, -122.375)]

    def test_one_call_per_lookup(self, store, airports, weather):
        lookup = ForecastLookup(store, weather)
        lookup.lookup('apt-sfo', SERIES_START)
        lookup.lookup('apt-sfo', SERIES_START)
        assert len(weather.calls) == 2

    def test_missing_airport_id(self, store, airports, weather):
        with pytest.raises(NotFound):
            ForecastLookup(store, weather).lookup(None, SERIES_START)
        assert weather.calls == []

    def test_missing_time(self, store, airports, weather):
        with pytest.raises(NotFound):
            ForecastLookup(store, weather).lookup('apt-sfo', None)

    def test_unknown_airport(self, store, airports, weather):
        with pytest.raises(NotFound):
            ForecastLookup(store, weather).lookup('apt-nowhere', SERIES_START)
        assert weather.calls == []

    def test_upstream_error_propagates(self, store, airports, weather):
        weather.failing.add((37.619, -122.375))
        with pytest.raises(UpstreamError):
            ForecastLookup(store, weather).lookup('apt-sfo', SERIES_START)


class TestTravelWeatherCheck:
    def test_both_legs(self, store, airports, weather):
        weather.series[(40.640, -73.779)] = make_series([40.0, 42.0, 44.0])
        check = TravelWeatherCheck(ForecastLookup(store, weather))

        result = check.check(
            'apt-sfo', SERIES_START + timedelta(hours=1),
            'apt-jfk', SERIES_START + timedelta(hours=6),
        )

        assert result.departure.airport['iata'] == 'SFO'
        assert result.departure.temperature == 50.0
        assert result.arrival.airport['iata'] == 'JFK'
        assert result.arrival.temperature == 44.0

        body = result.to_dict()
        assert set(body) == {'departingAirportWeather', 'arrivingAirportWeather'}
        assert set(body['arrivingAirportWeather']) == {'airport', 'date', 'temperature'}

    def test_arrival_failure_fails_whole_check(self, store, airports, weather):
        weather.failing.add((40.640, -73.779))
        check = TravelWeatherCheck(ForecastLookup(store, weather))

        with pytest.raises(UpstreamError):
            check.check('apt-sfo', SERIES_START, 'apt-jfk', SERIES_START + timedelta(hours=3))

    def test_departure_not_found_fails_whole_check(self, store, airports, weather):
        check = TravelWeatherCheck(ForecastLookup(store, weather))

        with pytest.raises(NotFound):
            check.check('apt-nowhere', SERIES_START, 'apt-jfk', SERIES_START + timedelta(hours=3))


class TestForecastResultFromDict:
    def test_round_trip_from_response(self):
        payload = {
            'airport': {'id': 'apt-sfo', 'iata': 'SFO'},
            'date': '2026-10-20T06:00:00+00:00',
            'temperature': 58.0,
        }
        result = ForecastResult.from_dict(payload)
        assert result.airport_id == 'apt-sfo'
        assert result.date == SERIES_START + timedelta(hours=6)

    def test_airport_id_only(self):
        result = ForecastResult.from_dict({'airport': 'apt-sfo', 'date': '2026-10-20T06:00:00Z', 'temperature': '58'})
        assert result.airport == {'id': 'apt-sfo'}
        assert result.temperature == 58.0

    @pytest.mark.parametrize('payload', [
        None,
        {'date': '2026-10-20T06:00:00Z', 'temperature': 58},
        {'airport': {'id': 'apt-sfo'}, 'temperature': 58},
        {'airport': {'id': 'apt-sfo'}, 'date': '2026-10-20T06:00:00Z'},
        {'airport': {'id': 'apt-sfo'}, 'date': '2026-10-20T06:00:00Z', 'temperature': 'warm'},
    ])
    def test_invalid(self, payload):
        with pytest.raises(ValidationError):
            ForecastResult.from_dict(payload)
