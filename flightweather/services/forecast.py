"""
Forecast lookup and travel weather check.

ForecastLookup resolves an airport from the directory, pulls the
provider's forecast series for its coordinates and keeps the single
entry closest in time to the requested moment. TravelWeatherCheck runs
two lookups (departure and arrival) side by side and only returns when
both succeeded.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from flightweather.errors import NotFound, ValidationError
from flightweather.models import Airport
from flightweather.models.base import as_utc, isoformat
from flightweather.services.weather_client import ForecastPoint, WeatherClient
from flightweather.storage import TableStore

logger = logging.getLogger(__name__)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts the trailing 'Z' browsers emit from Date.toISOString().
    Naive values are taken to be UTC. Returns None for empty input.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        raise ValidationError(f'Invalid timestamp: {value!r}')
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise ValidationError(f'Invalid timestamp: {value!r}') from e


def select_nearest(points: Sequence[ForecastPoint], target: datetime) -> ForecastPoint:
    """
    Pick the entry with the smallest absolute time distance to target.

    Ties go to the earliest entry in the series.
    """
    if not points:
        raise ValueError('Cannot select from an empty forecast series')
    target_ts = as_utc(target).timestamp()
    stamps = np.array([p.timestamp.timestamp() for p in points], dtype=np.float64)
    # argmin returns the first index among equal minima
    index = int(np.argmin(np.abs(stamps - target_ts)))
    return points[index]


@dataclass
class ForecastResult:
    """Nearest forecast for one airport at one moment. Never persisted."""
    airport: Dict[str, Any]
    date: datetime
    temperature: float

    @property
    def airport_id(self) -> str:
        return self.airport['id']

    def to_dict(self) -> dict:
        return {
            'airport': self.airport,
            'date': isoformat(self.date),
            'temperature': self.temperature,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'ForecastResult':
        """
        Rebuild a result echoed back by the client on subscribe.

        The airport may be the full record or just its id.
        """
        if not isinstance(data, dict):
            raise ValidationError('Forecast result is missing')
        airport = data.get('airport')
        if isinstance(airport, str):
            airport = {'id': airport}
        if not isinstance(airport, dict) or not airport.get('id'):
            raise ValidationError('Forecast result has no airport')
        date = parse_timestamp(data.get('date'))
        temperature = data.get('temperature')
        if date is None or temperature is None:
            raise ValidationError('Forecast result needs a date and temperature')
        try:
            temperature = float(temperature)
        except (TypeError, ValueError) as e:
            raise ValidationError(f'Invalid temperature: {temperature!r}') from e
        return cls(airport=airport, date=date, temperature=temperature)


class ForecastLookup:
    """Resolves (airport id, time) to the nearest provider forecast."""

    def __init__(self, store: TableStore, client: Optional[WeatherClient] = None):
        self.store = store
        self.client = client or WeatherClient.from_config()

    def lookup(self, airport_id: Optional[str], target_time: Optional[datetime]) -> ForecastResult:
        if not airport_id or target_time is None:
            raise NotFound('Airport and time are required')

        airport = self.store.get(Airport, airport_id)
        if airport is None:
            raise NotFound(f'Airport {airport_id} not found')

        points = self.client.get_forecast(airport.latitude, airport.longitude)
        nearest = select_nearest(points, target_time)

        logger.debug(
            f'Nearest forecast for {airport.iata or airport.id} at {target_time.isoformat()}: '
            f'{nearest.timestamp.isoformat()} {nearest.temperature}'
        )

        return ForecastResult(
            airport=airport.to_dict(),
            date=nearest.timestamp,
            temperature=nearest.temperature,
        )


@dataclass
class TravelWeather:
    departure: ForecastResult
    arrival: ForecastResult

    def to_dict(self) -> dict:
        return {
            'departingAirportWeather': self.departure.to_dict(),
            'arrivingAirportWeather': self.arrival.to_dict(),
        }


class TravelWeatherCheck:
    """
    Composes departure and arrival lookups into one result.

    The two lookups share no state and run concurrently. If either one
    fails the error propagates and no partial result is produced.
    """

    def __init__(self, lookup: ForecastLookup):
        self.lookup = lookup

    def check(
        self,
        departure_airport_id: Optional[str],
        departure_time: Optional[datetime],
        arrival_airport_id: Optional[str],
        arrival_time: Optional[datetime],
    ) -> TravelWeather:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix='forecast-lookup') as executor:
            departure = executor.submit(self.lookup.lookup, departure_airport_id, departure_time)
            arrival = executor.submit(self.lookup.lookup, arrival_airport_id, arrival_time)

            return TravelWeather(
                departure=departure.result(),
                arrival=arrival.result(),
            )
