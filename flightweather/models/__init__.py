"""
Database models for FlightWeather.

Three tables:
1. airports - read-only directory loaded from the iata-icao CSV
2. subscribers - one row per browser session
3. forecast_subscriptions - one row per subscribed travel leg
"""

from flightweather.models.base import (
    Base,
    engine,
    SessionLocal,
    init_db,
    make_engine,
    make_session_factory,
)
from flightweather.models.airport import Airport
from flightweather.models.subscription import Subscriber, ForecastSubscription, Leg

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'make_engine',
    'make_session_factory',
    'Airport',
    'Subscriber',
    'ForecastSubscription',
    'Leg',
]
