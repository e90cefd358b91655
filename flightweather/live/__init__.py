"""
Live forecast updates.

broker    in-process topic fan-out, one topic per forecast subscription
notifier  simulated update job and its cancellable scheduler
client    consumer that follows topics and collects update messages
"""

from flightweather.live.broker import TopicBroker, TopicSubscription, tag_message, topic_for
from flightweather.live.notifier import JobState, NotificationPublisher, UpdateScheduler

__all__ = [
    'TopicBroker',
    'TopicSubscription',
    'tag_message',
    'topic_for',
    'JobState',
    'NotificationPublisher',
    'UpdateScheduler',
]
