"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from flightweather.app import create_app
from flightweather.errors import UpstreamError
from flightweather.models import Airport, init_db, make_engine, make_session_factory
from flightweather.services.weather_client import ForecastPoint
from flightweather.storage import TableStore

SERIES_START = datetime(2026, 10, 20, 0, 0, tzinfo=timezone.utc)

AIRPORT_ROWS = [
    {'id': 'apt-sfo', 'iata': 'SFO', 'icao': 'KSFO', 'airport': 'San Francisco International Airport',
     'region_name': 'California', 'latitude': 37.619, 'longitude': -122.375, 'country_code': 'US'},
    {'id': 'apt-jfk', 'iata': 'JFK', 'icao': 'KJFK', 'airport': 'John F. Kennedy International Airport',
     'region_name': 'New York', 'latitude': 40.640, 'longitude': -73.779, 'country_code': 'US'},
    {'id': 'apt-atl', 'iata': 'ATL', 'icao': 'KATL', 'airport': 'Hartsfield-Jackson Atlanta International Airport',
     'region_name': 'Georgia', 'latitude': 33.637, 'longitude': -84.428, 'country_code': 'US'},
    {'id': 'apt-none', 'iata': None, 'icao': 'K0B1', 'airport': 'Bethel Regional Airport',
     'region_name': 'Maine', 'latitude': 44.425, 'longitude': -70.810, 'country_code': 'US'},
    {'id': 'apt-yyz', 'iata': 'YYZ', 'icao': 'CYYZ', 'airport': 'Toronto Pearson International Airport',
     'region_name': 'Ontario', 'latitude': 43.677, 'longitude': -79.631, 'country_code': 'CA'},
]


def make_series(temps: List[float], start: datetime = SERIES_START, step_hours: int = 3) -> List[ForecastPoint]:
    return [
        ForecastPoint(timestamp=start + timedelta(hours=step_hours * i), temperature=t)
        for i, t in enumerate(temps)
    ]


class FakeWeatherClient:
    """Stands in for WeatherClient; series keyed by (lat, lon)."""

    def __init__(self, default: Optional[List[ForecastPoint]] = None):
        self.default = default if default is not None else make_series([50.0, 53.0, 58.0, 61.0, 57.0])
        self.series: Dict[Tuple[float, float], List[ForecastPoint]] = {}
        self.failing: set = set()
        self.calls: List[Tuple[float, float]] = []

    def get_forecast(self, latitude: float, longitude: float) -> List[ForecastPoint]:
        self.calls.append((latitude, longitude))
        if (latitude, longitude) in self.failing:
            raise UpstreamError('Weather provider returned 503')
        return self.series.get((latitude, longitude), self.default)


@pytest.fixture
def engine(tmp_path: Path):
    db_engine = make_engine(f'sqlite:///{tmp_path / "test.db"}')
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def store(engine) -> TableStore:
    return TableStore(make_session_factory(engine))


@pytest.fixture
def airports(store: TableStore) -> Dict[str, dict]:
    with store.transaction() as txn:
        txn.create_many(Airport, AIRPORT_ROWS)
    return {row['id']: row for row in AIRPORT_ROWS}


@pytest.fixture
def weather() -> FakeWeatherClient:
    return FakeWeatherClient()


@pytest.fixture
def app(store: TableStore, weather: FakeWeatherClient, airports):
    flask_app = create_app(store=store, weather_client=weather, update_delay=60, load_airports=False)
    flask_app.config['TESTING'] = True
    yield flask_app
    flask_app.config['SCHEDULER'].shutdown()


@pytest.fixture
def client(app):
    return app.test_client()
