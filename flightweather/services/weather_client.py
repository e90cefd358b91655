"""
Weather forecast provider client.

Talks to an OpenWeatherMap-compatible 5 day / 3 hour forecast endpoint:

    GET {base_url}/forecast?lat=..&lon=..&appid=..&units=imperial

Response format (abridged):

    {
      "list": [
        {"dt": 1700006400, "main": {"temp": 54.3, ...}, "dt_txt": "..."},
        ...
      ]
    }

One outbound request per call, no caching and no retries. Anything
other than a parsed 2xx response is raised as UpstreamError.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

import requests

from flightweather.config import config
from flightweather.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForecastPoint:
    """Single entry of a provider forecast series."""
    timestamp: datetime
    temperature: float

    @classmethod
    def from_entry(cls, entry: dict) -> Optional['ForecastPoint']:
        """
        Parse one element of the provider's "list" array.

        Returns None if the entry is missing its time or temperature.
        """
        dt = entry.get('dt')
        temp = (entry.get('main') or {}).get('temp')
        if dt is None or temp is None:
            return None
        return cls(
            timestamp=datetime.fromtimestamp(int(dt), tz=timezone.utc),
            temperature=float(temp),
        )


class WeatherClient:
    """
    Client for the weather forecast provider.

    Handles:
    - GET requests to the /forecast endpoint by coordinates
    - API key injection
    - Bounded request timeout
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        units: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key if api_key is not None else config.weather.api_key
        self.base_url = (base_url or config.weather.base_url).rstrip('/')
        self.timeout = timeout or config.weather.timeout_seconds
        self.units = units or config.weather.units
        self.session = session or requests.Session()

        if not self.api_key:
            logger.warning('Weather API key not configured - forecast lookups will fail')

    @classmethod
    def from_config(cls) -> 'WeatherClient':
        """Create client from application configuration."""
        return cls(
            api_key=config.weather.api_key,
            base_url=config.weather.base_url,
            timeout=config.weather.timeout_seconds,
            units=config.weather.units,
        )

    def get_forecast(self, latitude: float, longitude: float) -> List[ForecastPoint]:
        """
        Fetch the forecast series for a coordinate pair.

        Returns entries in provider order (ascending time).

        Raises:
            UpstreamError if unconfigured, unreachable, non-2xx, or unparseable
        """
        if not self.api_key or not self.base_url:
            raise UpstreamError('Weather provider credentials are not configured')

        url = f'{self.base_url}/forecast'
        params = {
            'lat': latitude,
            'lon': longitude,
            'appid': self.api_key,
            'units': self.units,
        }

        logger.debug(f'Fetching forecast for ({latitude:.4f}, {longitude:.4f})')

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            logger.error('Weather API timeout')
            raise UpstreamError('Weather provider timed out') from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else '?'
            logger.error(f'Weather API error: {status}')
            raise UpstreamError(f'Weather provider returned {status}') from e
        except requests.exceptions.RequestException as e:
            logger.error(f'Weather request failed: {e}')
            raise UpstreamError('Weather provider unreachable') from e
        except ValueError as e:
            logger.error(f'Weather API returned invalid JSON: {e}')
            raise UpstreamError('Weather provider returned an invalid response') from e

        entries = data.get('list') if isinstance(data, dict) else None

        points = []
        for entry in entries or []:
            point = ForecastPoint.from_entry(entry)
            if point:
                points.append(point)

        if not points:
            raise UpstreamError('Weather provider returned an empty forecast')

        logger.info(f'Received {len(points)} forecast entries')
        return points
