"""Tests for the table storage interface."""

import pytest

from flightweather.errors import NotFound, TransactionError
from flightweather.models import Airport, Subscriber
from flightweather.storage import Condition


class TestBasicOperations:
    def test_get(self, store, airports):
        airport = store.get(Airport, 'apt-sfo')
        assert airport.iata == 'SFO'
        assert store.get(Airport, 'missing') is None

    def test_count(self, store, airports):
        assert store.count(Airport) == len(airports)

    def test_create_generates_id(self, store):
        airport = store.create(Airport, {
            'iata': 'DEN', 'airport': 'Denver International Airport',
            'latitude': 39.86, 'longitude': -104.67, 'country_code': 'US',
        })
        assert airport.id
        assert store.get(Airport, airport.id).iata == 'DEN'

    def test_patch(self, store, airports):
        store.patch(Airport, 'apt-sfo', {'airport': 'SFO Intl'})
        assert store.get(Airport, 'apt-sfo').airport == 'SFO Intl'

    def test_patch_missing(self, store):
        with pytest.raises(NotFound):
            store.patch(Airport, 'missing', {'airport': 'x'})

    def test_upsert_is_idempotent(self, store):
        store.upsert(Subscriber, {'id': 'session-1'})
        store.upsert(Subscriber, {'id': 'session-1'})
        assert store.count(Subscriber) == 1


class TestSearch:
    def test_equality_and_sort(self, store, airports):
        results = store.search(Airport, [Condition('country_code', 'US')], sort='iata')
        codes = [a.iata for a in results]
        assert codes[-3:] == ['ATL', 'JFK', 'SFO']

    def test_not_equal_blank_excludes_null(self, store, airports):
        results = store.search(
            Airport,
            [Condition('iata', '', comparator='not_equal'), Condition('country_code', 'US')],
            sort='iata',
        )
        assert [a.iata for a in results] == ['ATL', 'JFK', 'SFO']

    def test_not_equal_value(self, store, airports):
        results = store.search(Airport, [Condition('country_code', 'US', comparator='not_equal')])
        assert [a.iata for a in results] == ['YYZ']

    def test_limit(self, store, airports):
        assert len(store.search(Airport, limit=2)) == 2

    def test_unknown_comparator(self, store, airports):
        with pytest.raises(ValueError):
            store.search(Airport, [Condition('iata', 'SFO', comparator='starts_with')])


class TestTransaction:
    def test_commits_all_writes(self, store):
        with store.transaction() as txn:
            txn.create(Subscriber, {'id': 'a'})
            txn.create(Subscriber, {'id': 'b'})
        assert store.count(Subscriber) == 2

    def test_rolls_back_on_service_error(self, store):
        with pytest.raises(NotFound):
            with store.transaction() as txn:
                txn.create(Subscriber, {'id': 'a'})
                raise NotFound('boom')
        assert store.count(Subscriber) == 0

    def test_database_error_becomes_transaction_error(self, store):
        with pytest.raises(TransactionError):
            with store.transaction() as txn:
                txn.create(Subscriber, {'id': 'a'})
                txn.create(Subscriber, {'id': 'a'})
        assert store.count(Subscriber) == 0

    def test_unique_iata(self, store, airports):
        with pytest.raises(TransactionError):
            store.create(Airport, {
                'iata': 'SFO', 'airport': 'Duplicate', 'latitude': 0.0,
                'longitude': 0.0, 'country_code': 'US',
            })
