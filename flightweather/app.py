"""
FlightWeather Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- Airport directory (designated loader instance only)
- Forecast services and the simulated update scheduler
- API routes

Usage:
    python -m flightweather.app

Or with gunicorn:
    gunicorn 'flightweather.app:create_app()'
"""

import logging
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from flightweather.config import config
from flightweather.errors import FlightWeatherError, UpstreamError
from flightweather.models import init_db
from flightweather.api import airports_bp, forecasts_bp, live_bp
from flightweather.ingestion import populate_airports
from flightweather.live import NotificationPublisher, TopicBroker, UpdateScheduler
from flightweather.services import (
    ForecastLookup,
    SubscriptionManager,
    TravelWeatherCheck,
    WeatherClient,
)
from flightweather.storage import TableStore

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    store: Optional[TableStore] = None,
    weather_client: Optional[WeatherClient] = None,
    update_delay: Optional[float] = None,
    load_airports: bool = True,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        store: Storage to use. Defaults to the configured database, whose
               schema is created on startup.
        weather_client: Forecast provider client (created from config if None)
        update_delay: Seconds before a subscription's simulated update fires
        load_airports: Whether to attempt airport directory population.
                       Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)
    app.config['SECRET_KEY'] = config.secret_key

    # Browser clients are served from a separate dev server
    CORS(app)

    if store is None:
        logger.info('Initializing database...')
        init_db()
        store = TableStore()

    broker = TopicBroker()
    publisher = NotificationPublisher(store, broker)
    scheduler = UpdateScheduler(publisher.fire, delay_seconds=update_delay)
    lookup = ForecastLookup(store, weather_client or WeatherClient.from_config())

    app.config.update(
        STORE=store,
        BROKER=broker,
        SCHEDULER=scheduler,
        TRAVEL_WEATHER=TravelWeatherCheck(lookup),
        SUBSCRIPTIONS=SubscriptionManager(store, scheduler),
        LIVE_KEEPALIVE_SECONDS=config.live.keepalive_seconds,
    )

    if load_airports:
        try:
            populate_airports(store)
        except UpstreamError as e:
            logger.error(f'Airport directory population failed: {e}')

    app.register_blueprint(airports_bp)
    app.register_blueprint(forecasts_bp)
    app.register_blueprint(live_bp)

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {
            'status': 'ok',
            'live': broker.stats,
            'updates': scheduler.stats,
        }

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(FlightWeatherError)
    def service_error(e: FlightWeatherError):
        if e.status_code >= 500:
            logger.error(f'{e.__class__.__name__}: {e.message}')
        else:
            logger.info(f'{e.__class__.__name__}: {e.message}')
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    logger.info(f'Starting FlightWeather on http://localhost:{config.port}')

    try:
        app.run(
            host='0.0.0.0',
            port=config.port,
            debug=config.debug,
            threaded=True,  # Live streams hold a worker each
            use_reloader=False,  # Reloader would start a second scheduler
        )
    finally:
        app.config['SCHEDULER'].shutdown()


if __name__ == '__main__':
    run_development_server()
