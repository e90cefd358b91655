"""
Live update client.

Follows the topics of a set of forecast subscriptions and collects the
update messages that arrive on them. Each received message is stamped
with a local receivedAt time and appended to `messages`.

The client talks to a transport, anything with an open(topics) method
returning a closable iterable of (topic, message) pairs:

    BrokerTransport  in-process, straight off a TopicBroker
    SSETransport     Server-Sent Events from the /live endpoint

Topic growth is monotonic: set_forecasts() only ever adds topics and
re-subscribes with the full set. If the connection drops the client
reconnects after a short delay; messages published while disconnected
are not replayed.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

import requests

from flightweather.config import config
from flightweather.live.broker import Message, TopicBroker, topic_for

logger = logging.getLogger(__name__)


class BrokerTransport:
    """Attach directly to an in-process broker."""

    def __init__(self, broker: TopicBroker):
        self.broker = broker

    def open(self, topics: Iterable[str]):
        return self.broker.subscribe(topics)


class SSEStream:
    """
    Iterates (topic, message) pairs out of a text/event-stream response.

    close() may be called from another thread while iteration is blocked
    on a read. The socket is shut down so the read returns, and the
    iterator then ends without raising.
    """

    def __init__(self, response: requests.Response):
        self.response = response
        self.closed = False

    def __iter__(self) -> Iterator[Tuple[str, Message]]:
        try:
            for item in self._events():
                if self.closed:
                    return
                yield item
        except (requests.exceptions.RequestException, AttributeError, ValueError, OSError) as e:
            if not self.closed:
                raise
            logger.debug(f'Live stream read ended after close: {e!r}')

    def _events(self) -> Iterator[Tuple[str, Message]]:
        event, data = None, []
        for line in self.response.iter_lines(decode_unicode=True):
            if line is None:
                continue
            if line == '':
                # Blank line terminates an event
                if data:
                    yield event or 'message', json.loads('\n'.join(data))
                event, data = None, []
            elif line.startswith(':'):
                continue  # keepalive comment
            elif line.startswith('event:'):
                event = line[len('event:'):].strip()
            elif line.startswith('data:'):
                data.append(line[len('data:'):].strip())

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.response.raw.shutdown()
        except (ValueError, RuntimeError) as e:
            # Connection already released back to the pool
            logger.debug(f'Live stream socket not shut down: {e}')
        self.response.close()


class SSETransport:
    """Subscribe to topics over HTTP via the /live endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        connect_timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or config.live.url).rstrip('/')
        self.connect_timeout = connect_timeout
        self.session = session or requests.Session()

    def open(self, topics: Iterable[str]) -> SSEStream:
        response = self.session.get(
            f'{self.base_url}/live',
            params=[('topic', t) for t in sorted(topics)],
            headers={'Accept': 'text/event-stream'},
            stream=True,
            # No read timeout: the stream idles between keepalives
            timeout=(self.connect_timeout, None),
        )
        response.raise_for_status()
        return SSEStream(response)


class LiveUpdateClient:
    """Collects live forecast updates for a set of subscriptions."""

    def __init__(
        self,
        transport,
        on_message: Optional[Callable[[Message], None]] = None,
        reconnect_delay: Optional[float] = None,
    ):
        self.transport = transport
        self.on_message = on_message
        self.reconnect_delay = (
            reconnect_delay if reconnect_delay is not None
            else config.live.reconnect_delay_seconds
        )

        self.messages: List[Message] = []
        self.topics: Set[str] = set()
        self.connected = False

        self._lock = threading.RLock()
        self._stream = None
        self._running = False
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def set_forecasts(self, forecasts: Iterable[Dict[str, Any]]) -> List[str]:
        """
        Follow the topics for the given forecast records.

        Only new topics are added; topics are never dropped. Returns the
        newly added topics.
        """
        wanted = {topic_for(f['id']) for f in forecasts}
        with self._lock:
            added = sorted(wanted - self.topics)
            if not added:
                return []
            self.topics.update(added)
            stream = self._stream

        logger.info(f'Following {len(added)} new topics: {", ".join(added)}')
        # Drop the current stream so the run loop re-subscribes with the full set
        if stream is not None:
            stream.close()
        self._wake.set()
        return added

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            logger.warning('Live update client already running')
            return
        self._running = True
        self._thread = threading.Thread(target=self.run, daemon=True, name='live-updates')
        self._thread.start()

    def stop(self) -> None:
        self._running = False
        with self._lock:
            stream = self._stream
        if stream is not None:
            stream.close()
        self._wake.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.info('Live update client stopped')

    def run(self) -> None:
        """Connect, consume, and reconnect until stopped."""
        self._running = True
        while self._running:
            with self._lock:
                topics = set(self.topics)
            if not topics:
                self._wake.wait(timeout=self.reconnect_delay)
                self._wake.clear()
                continue

            try:
                stream = self.transport.open(topics)
            except (requests.exceptions.RequestException, ConnectionError) as e:
                logger.warning(f'Live update connection failed: {e}; retrying in {self.reconnect_delay}s')
                self._wake.wait(timeout=self.reconnect_delay)
                self._wake.clear()
                continue

            with self._lock:
                self._stream = stream
                # Topics added while connecting
                stale = self.topics != topics
            if stale:
                stream.close()
            else:
                self.connected = True
                logger.info(f'Subscribed to {", ".join(sorted(topics))}')

            try:
                for topic, message in stream:
                    self.handle(topic, message)
                    if not self._running:
                        break
            except (requests.exceptions.RequestException, ConnectionError, AttributeError, ValueError) as e:
                # Dropped connection, or a read on a stream closed under it
                logger.warning(f'Live update connection lost: {e!r}')
            finally:
                self.connected = False
                with self._lock:
                    if self._stream is stream:
                        self._stream = None
                stream.close()

            # A stream closed by set_forecasts() reconnects right away
            if self._running and not self._wake.is_set():
                self._wake.wait(timeout=self.reconnect_delay)
            self._wake.clear()

    def handle(self, topic: str, message: Message) -> Message:
        """Stamp a receipt time and record the message."""
        update = dict(message)
        update['receivedAt'] = datetime.now(timezone.utc).isoformat()
        with self._lock:
            self.messages.append(update)

        logger.debug(f'Message received on {topic}: {update.get("messageId")}')
        if self.on_message:
            self.on_message(update)
        return update
