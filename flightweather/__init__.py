"""
FlightWeather Backend Package.

Flight weather service built with Flask, SQLAlchemy, and NumPy.

Modules:
    api/         REST endpoints for airports, travel weather, subscriptions, live stream
    models/      SQLAlchemy ORM models (Airport, Subscriber, ForecastSubscription)
    ingestion/   Airport directory loader (ip2location iata-icao CSV)
    services/    Weather provider client, forecast lookup, subscription manager
    live/        Topic broker, simulated update scheduler, live update client
    storage.py   Table storage interface with transaction scopes
    client.py    HTTP client for the API with client-side validation
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
