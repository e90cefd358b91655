"""
Subscriber and ForecastSubscription models.

A Subscriber is identified by the client-generated session token and
owns any number of ForecastSubscriptions, one per travel leg. Both are
written together inside a single transaction by the subscription
manager, so a forecast never exists without its subscriber.
"""

from datetime import datetime
from enum import Enum
from typing import List

from sqlalchemy import String, Float, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flightweather.models.airport import Airport, new_id
from flightweather.models.base import Base, utcnow, isoformat


class Leg(str, Enum):
    """Which half of a travel-weather check a forecast belongs to."""
    DEPARTURE = 'departure'
    ARRIVAL = 'arrival'


class Subscriber(Base):
    """Owner of forecast subscriptions, keyed by session token."""

    __tablename__ = 'subscribers'

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment='Client-generated session token'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
    )

    forecasts: Mapped[List['ForecastSubscription']] = relationship(
        back_populates='subscriber',
        lazy='selectin',
        order_by=lambda: (ForecastSubscription.created_at, ForecastSubscription.leg_index),
    )

    def __repr__(self) -> str:
        return f'<Subscriber {self.id} forecasts={len(self.forecasts)}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'forecasts': [f.to_dict() for f in self.forecasts],
        }


class ForecastSubscription(Base):
    """
    One subscribed leg: airport, target time, and current temperature.

    The temperature is overwritten exactly once by the simulated update
    job; nothing else mutates a subscription after creation.
    """

    __tablename__ = 'forecast_subscriptions'

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
        comment='System-generated subscription id (also names the live topic)'
    )

    subscriber_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey('subscribers.id'),
        nullable=False,
        index=True,
    )

    airport_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey('airports.id'),
        nullable=False,
    )

    leg: Mapped[str] = mapped_column(
        String(10),
        default=Leg.DEPARTURE.value,
        comment='departure or arrival'
    )

    # Keeps departure before arrival within one subscribe call
    leg_index: Mapped[int] = mapped_column(
        Integer,
        default=0,
    )

    date: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment='Forecast target time (UTC)'
    )

    temperature: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Current temperature estimate'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
    )

    subscriber: Mapped[Subscriber] = relationship(back_populates='forecasts')
    airport: Mapped[Airport] = relationship(lazy='joined')

    __table_args__ = (
        Index('ix_forecast_subscriptions_owner', 'subscriber_id', 'created_at'),
    )

    def __repr__(self) -> str:
        return f'<ForecastSubscription {self.id} {self.leg} {self.temperature}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'subscriberId': self.subscriber_id,
            'leg': self.leg,
            'airport': self.airport.to_dict() if self.airport else {'id': self.airport_id},
            'date': isoformat(self.date),
            'temperature': self.temperature,
        }
