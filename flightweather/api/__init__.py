"""
API module for FlightWeather.

Provides endpoints for:
- Airport directory lookups
- Travel weather checks and forecast subscriptions
- Live update streaming
"""

from flightweather.api.airports import airports_bp
from flightweather.api.forecasts import forecasts_bp
from flightweather.api.live import live_bp

__all__ = ['airports_bp', 'forecasts_bp', 'live_bp']
