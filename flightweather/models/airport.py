"""
Airport model - static reference data for the airport directory.

Rows come from the ip2location iata-icao CSV and are loaded once at
startup when the table is empty. They are never modified afterwards.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from flightweather.models.base import Base, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class Airport(Base):
    """
    Airport reference record keyed by an opaque id.

    Fields:
        id: opaque identifier (uuid4 string), used by the UI as option value
        iata: 3-letter IATA code (e.g., 'SFO'); NULL when the source row has none
        icao: 4-letter ICAO code (e.g., 'KSFO')
        airport: display name
        latitude/longitude: WGS84 coordinates passed to the weather provider
        country_code: ISO 3166-1 alpha-2 country code
    """

    __tablename__ = 'airports'

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
        comment='Opaque airport identifier'
    )

    # Unique among non-NULL values; blank source codes are stored as NULL
    iata: Mapped[Optional[str]] = mapped_column(
        String(3),
        nullable=True,
        unique=True,
        comment='IATA airport code (e.g., SFO)'
    )

    icao: Mapped[Optional[str]] = mapped_column(
        String(4),
        nullable=True,
        comment='ICAO airport code (e.g., KSFO)'
    )

    airport: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment='Airport display name'
    )

    region_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment='State/province name'
    )

    latitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Latitude in decimal degrees'
    )

    longitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Longitude in decimal degrees'
    )

    country_code: Mapped[str] = mapped_column(
        String(2),
        nullable=False,
        comment='ISO country code'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        comment='Load timestamp'
    )

    __table_args__ = (
        # AirportsByCountry filters on country and sorts on IATA
        Index('ix_airports_country_iata', 'country_code', 'iata'),
    )

    def __repr__(self) -> str:
        return f'<Airport {self.iata or "?"} {self.airport}>'

    def to_dict(self) -> dict:
        """Public representation used by the API and update messages."""
        return {
            'id': self.id,
            'iata': self.iata,
            'airport': self.airport,
            'latitude': self.latitude,
            'longitude': self.longitude,
        }
