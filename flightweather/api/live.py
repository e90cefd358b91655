"""
Live update stream.

GET /live?topic=ForecastSubscription/<id>[&topic=...]

Server-Sent Events, one event per update message:

    id: <messageId>
    event: <topic>
    data: <message JSON>

A comment line is sent while idle to keep proxies from closing the
connection.
"""

import json
import logging

from flask import Blueprint, Response, current_app, request

from flightweather.errors import NotFound

logger = logging.getLogger(__name__)

live_bp = Blueprint('live', __name__)


def format_event(topic: str, message: dict) -> str:
    return f'id: {message.get("messageId", "")}\nevent: {topic}\ndata: {json.dumps(message)}\n\n'


@live_bp.route('/live', methods=['GET'])
def stream_updates():
    topics = [t for t in request.args.getlist('topic') if t]
    if not topics:
        raise NotFound('At least one topic is required')

    subscription = current_app.config['BROKER'].subscribe(topics)
    keepalive = current_app.config['LIVE_KEEPALIVE_SECONDS']
    logger.info(f'Live stream opened for {", ".join(topics)}')

    def generate():
        try:
            yield ': connected\n\n'
            while True:
                item = subscription.next_message(timeout=keepalive)
                if item is None:
                    if subscription.closed:
                        return
                    yield ': keepalive\n\n'
                    continue
                topic, message = item
                yield format_event(topic, message)
        finally:
            subscription.close()
            logger.info(f'Live stream closed for {", ".join(topics)}')

    return Response(
        generate(),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )
