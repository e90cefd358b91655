"""
Configuration management for FlightWeather.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class WeatherConfig:
    """Weather forecast provider configuration."""
    base_url: str = os.getenv('WEATHER_API_URL', 'https://api.openweathermap.org/data/2.5')
    api_key: str = os.getenv('WEATHER_API_KEY') or ''
    timeout_seconds: float = float(os.getenv('WEATHER_API_TIMEOUT', '10'))
    # imperial -> Fahrenheit, which is what the UI displays
    units: str = os.getenv('WEATHER_UNITS', 'imperial')

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///flightweather.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class LiveUpdateConfig:
    """Live update channel settings."""
    host: str = os.getenv('LIVE_UPDATE_HOST', 'localhost')
    port: int = int(os.getenv('LIVE_UPDATE_PORT', '5000'))
    protocol: str = os.getenv('LIVE_UPDATE_PROTOCOL', 'http')
    topic_prefix: str = 'ForecastSubscription/'
    keepalive_seconds: float = 15.0
    reconnect_delay_seconds: float = float(os.getenv('LIVE_UPDATE_RECONNECT_SECONDS', '2'))

    @property
    def url(self) -> str:
        return f'{self.protocol}://{self.host}:{self.port}'


@dataclass(frozen=True)
class SubscriptionConfig:
    """Simulated forecast update settings."""
    update_delay_seconds: float = float(os.getenv('FORECAST_UPDATE_DELAY_SECONDS', '15'))
    max_perturbation: int = 1  # degrees either way


@dataclass(frozen=True)
class AirportDataConfig:
    """Airport directory source and startup coordination."""
    source_url: str = os.getenv(
        'AIRPORT_SOURCE_URL',
        'https://raw.githubusercontent.com/ip2location/ip2location-iata-icao/refs/heads/master/iata-icao.csv',
    )
    default_country: str = 'US'

    # Exactly one instance populates the directory: the one whose
    # index matches the loader index.
    instance_index: int = int(os.getenv('INSTANCE_INDEX', '0'))
    loader_index: int = int(os.getenv('AIRPORT_LOADER_INDEX', '0'))

    @property
    def is_loader(self) -> bool:
        return self.instance_index == self.loader_index


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    weather: WeatherConfig
    database: DatabaseConfig
    live: LiveUpdateConfig
    subscriptions: SubscriptionConfig
    airports: AirportDataConfig

    # Flask settings
    secret_key: str
    debug: bool
    port: int


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        weather=WeatherConfig(),
        database=DatabaseConfig(),
        live=LiveUpdateConfig(),
        subscriptions=SubscriptionConfig(),
        airports=AirportDataConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
        port=int(os.getenv('PORT', '5000')),
    )


# Singleton instance
config = load_config()
