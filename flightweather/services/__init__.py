"""
Forecast services.

Weather provider access, nearest-forecast selection, the two-leg travel
check, and forecast subscriptions.
"""

from flightweather.services.forecast import (
    ForecastLookup,
    ForecastResult,
    TravelWeather,
    TravelWeatherCheck,
)
from flightweather.services.subscriptions import SubscriptionManager
from flightweather.services.weather_client import ForecastPoint, WeatherClient

__all__ = [
    'ForecastLookup',
    'ForecastResult',
    'TravelWeather',
    'TravelWeatherCheck',
    'SubscriptionManager',
    'ForecastPoint',
    'WeatherClient',
]
