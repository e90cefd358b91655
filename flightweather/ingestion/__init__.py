"""
Reference data ingestion for FlightWeather.

Downloads the airport CSV and loads it into the airport directory.
"""

from flightweather.ingestion.airports import (
    airports_by_country,
    lookup_by_iata,
    populate_airports,
)

__all__ = ['airports_by_country', 'lookup_by_iata', 'populate_airports']
