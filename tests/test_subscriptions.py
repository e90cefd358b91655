"""Tests for the subscription manager."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from flightweather.errors import NotFound, ValidationError
from flightweather.live.notifier import UpdateScheduler
from flightweather.models import ForecastSubscription, Subscriber
from flightweather.services.forecast import ForecastResult
from flightweather.services.subscriptions import SubscriptionManager
from tests.conftest import SERIES_START


def result(airport_id: str, hours: int, temperature: float) -> ForecastResult:
    return ForecastResult(
        airport={'id': airport_id},
        date=SERIES_START + timedelta(hours=hours),
        temperature=temperature,
    )


@pytest.fixture
def scheduler() -> MagicMock:
    return MagicMock(spec=UpdateScheduler)


@pytest.fixture
def manager(store, airports, scheduler) -> SubscriptionManager:
    return SubscriptionManager(store, scheduler)


class TestSubscribe:
    def test_creates_subscriber_and_both_legs(self, manager):
        subscriber = manager.subscribe('session-1', result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0))

        assert subscriber.id == 'session-1'
        body = subscriber.to_dict()
        assert [f['leg'] for f in body['forecasts']] == ['departure', 'arrival']
        assert [f['airport']['iata'] for f in body['forecasts']] == ['SFO', 'JFK']
        assert [f['temperature'] for f in body['forecasts']] == [53.0, 44.0]
        assert body['forecasts'][0]['date'] == (SERIES_START + timedelta(hours=3)).isoformat()

    def test_read_after_write_matches_input(self, manager, store):
        subscriber = manager.subscribe('session-1', result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0))

        for forecast in subscriber.forecasts:
            stored = store.get(ForecastSubscription, forecast.id)
            assert stored.temperature == forecast.temperature
            assert stored.subscriber_id == 'session-1'

    def test_schedules_one_update_per_new_forecast(self, manager, scheduler):
        subscriber = manager.subscribe('session-1', result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0))

        scheduled = [c.args[0] for c in scheduler.schedule.call_args_list]
        assert scheduled == [f.id for f in subscriber.forecasts]

    def test_subscribing_twice_appends_four_forecasts(self, manager, store, scheduler):
        dep, arr = result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0)
        first = manager.subscribe('session-1', dep, arr)
        second = manager.subscribe('session-1', dep, arr)

        assert store.count(Subscriber) == 1
        assert len(second.forecasts) == 4
        first_ids = [f.id for f in first.forecasts]
        assert [f.id for f in second.forecasts][:2] == first_ids
        assert scheduler.schedule.call_count == 4

    def test_separate_subscribers(self, manager, store):
        manager.subscribe('session-1', result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0))
        other = manager.subscribe('session-2', result('apt-atl', 3, 70.0), result('apt-sfo', 6, 58.0))

        assert store.count(Subscriber) == 2
        assert len(other.forecasts) == 2

    def test_unknown_airport_rolls_back_everything(self, manager, store, scheduler):
        with pytest.raises(NotFound):
            manager.subscribe('session-1', result('apt-sfo', 3, 53.0), result('apt-nowhere', 9, 44.0))

        assert store.get(Subscriber, 'session-1') is None
        assert store.count(ForecastSubscription) == 0
        scheduler.schedule.assert_not_called()

    def test_session_id_required(self, manager, scheduler):
        with pytest.raises(ValidationError):
            manager.subscribe('', result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0))
        scheduler.schedule.assert_not_called()

    def test_without_scheduler(self, store, airports):
        manager = SubscriptionManager(store)
        subscriber = manager.subscribe('session-1', result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0))
        assert len(subscriber.forecasts) == 2


class TestLookup:
    def test_get_subscriber_missing(self, manager):
        with pytest.raises(NotFound):
            manager.get_subscriber('nobody')

    def test_find_subscribers(self, manager):
        manager.subscribe('session-1', result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0))

        assert [s.id for s in manager.find_subscribers('session-1')] == ['session-1']
        assert manager.find_subscribers('nobody') == []
        assert manager.find_subscribers(None) == []

    def test_cancel_updates(self, manager, scheduler):
        scheduler.cancel.return_value = True
        subscriber = manager.subscribe('session-1', result('apt-sfo', 3, 53.0), result('apt-jfk', 9, 44.0))

        assert manager.cancel_updates(subscriber) == 2
        cancelled = [c.args[0] for c in scheduler.cancel.call_args_list]
        assert cancelled == [f.id for f in subscriber.forecasts]
