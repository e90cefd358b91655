"""
Simulated forecast updates and their notification.

Each forecast subscription gets exactly one deferred update over its
lifetime:

    PENDING --(delay elapses)--> FIRED

When the job fires it nudges the stored temperature by a whole degree
drawn from {-1, 0, 1}, writes it back in a transaction and publishes the
updated record to the subscription's topic. This stands in for a real
upstream weather-change feed.

Jobs are held in a registry keyed by subscription id so that a pending
update can be cancelled. Failures inside a job are logged and dropped;
there is no retry.
"""

import logging
import random
import threading
from enum import Enum
from typing import Callable, Dict, Optional, Set

from flightweather.config import config
from flightweather.live.broker import Message, TopicBroker, topic_for
from flightweather.models import ForecastSubscription
from flightweather.errors import NotFound
from flightweather.storage import TableStore

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    PENDING = 'pending'
    FIRED = 'fired'


class NotificationPublisher:
    """Applies the simulated update to a subscription and publishes it."""

    def __init__(
        self,
        store: TableStore,
        broker: TopicBroker,
        max_perturbation: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.broker = broker
        self.max_perturbation = (
            max_perturbation if max_perturbation is not None
            else config.subscriptions.max_perturbation
        )
        self.rng = rng or random.Random()

    def perturbation(self) -> int:
        return self.rng.randint(-self.max_perturbation, self.max_perturbation)

    def fire(self, subscription_id: str) -> Message:
        """
        Perturb the stored temperature and publish the new record.

        Raises NotFound if the subscription no longer exists.
        """
        with self.store.transaction() as txn:
            forecast = txn.get(ForecastSubscription, subscription_id)
            if forecast is None:
                raise NotFound(f'Forecast subscription {subscription_id} not found')

            delta = self.perturbation()
            forecast = txn.patch(
                ForecastSubscription,
                subscription_id,
                {'temperature': forecast.temperature + delta},
            )
            payload = forecast.to_dict()

        logger.info(f'Forecast {subscription_id} updated by {delta:+d} to {payload["temperature"]}')

        # Publish only after commit so subscribers never see a rolled back value
        return self.broker.publish(topic_for(subscription_id), payload)


class UpdateScheduler:
    """
    Registry of one-shot timers keyed by subscription id.

    A subscription id can be scheduled once; scheduling it again while
    pending or after it fired is ignored. Fired ids are kept for the life
    of the scheduler so the once-only guarantee holds; the set grows by
    one id per subscription.
    """

    def __init__(
        self,
        job: Callable[[str], object],
        delay_seconds: Optional[float] = None,
    ):
        self.job = job
        self.delay_seconds = (
            delay_seconds if delay_seconds is not None
            else config.subscriptions.update_delay_seconds
        )
        self._timers: Dict[str, threading.Timer] = {}
        self._fired: Set[str] = set()
        self._lock = threading.RLock()

        self._completed = 0
        self._failed = 0

    def schedule(self, subscription_id: str, delay_seconds: Optional[float] = None) -> bool:
        """Schedule the update for one subscription. Returns False if already known."""
        delay = self.delay_seconds if delay_seconds is None else delay_seconds

        with self._lock:
            if subscription_id in self._timers or subscription_id in self._fired:
                logger.debug(f'Update for {subscription_id} already scheduled')
                return False

            timer = threading.Timer(delay, self._run, args=(subscription_id,))
            timer.daemon = True
            self._timers[subscription_id] = timer
            timer.start()

        logger.debug(f'Scheduled update for {subscription_id} in {delay}s')
        return True

    def cancel(self, subscription_id: str) -> bool:
        """Cancel a pending update. Returns False if nothing was pending."""
        with self._lock:
            timer = self._timers.pop(subscription_id, None)
        if timer is None:
            return False
        timer.cancel()
        logger.debug(f'Cancelled update for {subscription_id}')
        return True

    def state(self, subscription_id: str) -> Optional[JobState]:
        with self._lock:
            if subscription_id in self._timers:
                return JobState.PENDING
            if subscription_id in self._fired:
                return JobState.FIRED
        return None

    def pending(self) -> Set[str]:
        with self._lock:
            return set(self._timers)

    def shutdown(self) -> None:
        """Cancel every pending update."""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            logger.info(f'Cancelled {len(timers)} pending forecast updates')

    def _run(self, subscription_id: str) -> None:
        with self._lock:
            # Cancelled between the timer expiring and acquiring the lock
            if self._timers.pop(subscription_id, None) is None:
                return
            self._fired.add(subscription_id)

        try:
            self.job(subscription_id)
        except Exception as e:
            with self._lock:
                self._failed += 1
            logger.error(f'Forecast update for {subscription_id} failed: {e}')
            return

        with self._lock:
            self._completed += 1

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                'pending': len(self._timers),
                'fired': len(self._fired),
                'completed': self._completed,
                'failed': self._failed,
            }
