"""
HTTP client for the FlightWeather API.

Mirrors what the browser form does: it builds travel dates from HH:MM
times on tomorrow's date and refuses to send a check whose arrival is
not after its departure.

Usage:
    client = FlightWeatherClient('http://localhost:5000')
    departing, arriving = travel_dates('09:30', '13:45')
    weather = client.check_travel_weather(dep_id, departing, arr_id, arriving)
    subscriber = client.subscribe(weather)
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import requests

from flightweather.config import config
from flightweather.errors import UpstreamError, ValidationError
from flightweather.models.base import isoformat

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return str(uuid.uuid4())


def travel_dates(
    departing_time: str,
    arriving_time: str,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Turn HH:MM departure/arrival times into datetimes on tomorrow's date.

    Forecast data only covers the next few days in 3 hour steps, so trips
    are limited to tomorrow.
    """
    now = now or datetime.now(timezone.utc)
    tomorrow = (now + timedelta(days=1)).replace(second=0, microsecond=0)

    def at(value: str) -> datetime:
        try:
            hours, minutes = (int(part) for part in value.split(':'))
            return tomorrow.replace(hour=hours, minute=minutes)
        except (AttributeError, ValueError) as e:
            raise ValidationError(f'Invalid time: {value!r}') from e

    return at(departing_time), at(arriving_time)


def validate_travel_dates(departing: datetime, arriving: datetime) -> None:
    if departing >= arriving:
        raise ValidationError('Arrival time must be later than the departure time.')


class FlightWeatherClient:
    """
    Thin requests wrapper around the FlightWeather endpoints.

    Each client carries a session id, generated when none is given, that
    identifies its subscriber record across calls.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        session_id: Optional[str] = None,
    ):
        self.base_url = (base_url or config.live.url).rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session_id = session_id or new_session_id()

    def _request(self, method: str, path: str, **kwargs):
        try:
            response = self.session.request(
                method, f'{self.base_url}{path}', timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f'{method} {path} failed: {e}')
            raise UpstreamError(f'Request to {path} failed') from e

    def list_airports(self, country_code: Optional[str] = None) -> List[dict]:
        return self._request(
            'GET', '/AirportsByCountry',
            params={'country_code': country_code or config.airports.default_country},
        )

    def check_travel_weather(
        self,
        departing_airport: str,
        departing_date: datetime,
        arriving_airport: str,
        arriving_date: datetime,
    ) -> dict:
        """Validate locally, then ask the server for both forecasts."""
        validate_travel_dates(departing_date, arriving_date)
        return self._request('POST', '/CheckTravelWeather', json={
            'departingAirport': departing_airport,
            'arrivingAirport': arriving_airport,
            'departingDate': isoformat(departing_date),
            'arrivingDate': isoformat(arriving_date),
        })

    def subscribe(self, weather: dict, session_id: Optional[str] = None) -> dict:
        return self._request('POST', '/SubscribeToForecast', json={
            'sessionID': session_id or self.session_id,
            'departingAirportWeather': weather['departingAirportWeather'],
            'arrivingAirportWeather': weather['arrivingAirportWeather'],
        })

    def get_subscriber(self, session_id: Optional[str] = None) -> Optional[dict]:
        """The subscriber record, or None if the session has never subscribed."""
        found = self._request(
            'GET', '/Subscriber/',
            params={'id': session_id or self.session_id, 'select(id,forecasts{id,airport,date,temperature})': ''},
        )
        return found[0] if found else None
