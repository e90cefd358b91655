"""
Subscription manager - persists forecast subscriptions for a session.

subscribe() writes the subscriber and both legs in one transaction,
then hands each new subscription id to the update scheduler. Scheduling
happens only after commit so a failed or retried transaction can never
leave timers behind for records that do not exist.
"""

import logging
from typing import List, Optional

from flightweather.errors import NotFound, ValidationError
from flightweather.live.notifier import UpdateScheduler
from flightweather.models import Airport, ForecastSubscription, Leg, Subscriber
from flightweather.services.forecast import ForecastResult
from flightweather.storage import TableStore

logger = logging.getLogger(__name__)


class SubscriptionManager:

    def __init__(self, store: TableStore, scheduler: Optional[UpdateScheduler] = None):
        self.store = store
        self.scheduler = scheduler

    def subscribe(
        self,
        subscriber_id: str,
        departure: ForecastResult,
        arrival: ForecastResult,
    ) -> Subscriber:
        """
        Record a departure and arrival subscription for subscriber_id.

        The subscriber is created on first use. Every call appends two new
        forecasts; repeated calls with the same legs are not merged.

        Returns the subscriber as re-read after commit.
        """
        if not subscriber_id:
            raise ValidationError('A session id is required to subscribe')

        legs = ((Leg.DEPARTURE, departure), (Leg.ARRIVAL, arrival))

        with self.store.transaction() as txn:
            txn.upsert(Subscriber, {'id': subscriber_id})

            created: List[str] = []
            for index, (leg, result) in enumerate(legs):
                if txn.get(Airport, result.airport_id) is None:
                    raise NotFound(f'Airport {result.airport_id} not found')
                forecast = txn.create(ForecastSubscription, {
                    'subscriber_id': subscriber_id,
                    'airport_id': result.airport_id,
                    'leg': leg.value,
                    'leg_index': index,
                    'date': result.date,
                    'temperature': result.temperature,
                })
                created.append(forecast.id)

        logger.info(f'Subscriber {subscriber_id} subscribed to forecasts {", ".join(created)}')

        if self.scheduler is not None:
            for forecast_id in created:
                self.scheduler.schedule(forecast_id)

        return self.get_subscriber(subscriber_id)

    def get_subscriber(self, subscriber_id: str) -> Subscriber:
        subscriber = self.store.get(Subscriber, subscriber_id)
        if subscriber is None:
            raise NotFound(f'Subscriber {subscriber_id} not found')
        return subscriber

    def find_subscribers(self, subscriber_id: Optional[str]) -> List[Subscriber]:
        """Collection lookup: a list with the matching subscriber, or empty."""
        if not subscriber_id:
            return []
        subscriber = self.store.get(Subscriber, subscriber_id)
        return [subscriber] if subscriber is not None else []

    def cancel_updates(self, subscriber: Subscriber) -> int:
        """Cancel any still-pending updates for a subscriber's forecasts."""
        if self.scheduler is None:
            return 0
        return sum(1 for f in subscriber.forecasts if self.scheduler.cancel(f.id))
