"""
Travel weather and subscription API endpoints.

Provides endpoints for:
- POST /CheckTravelWeather - nearest forecasts for departure and arrival
- POST /SubscribeToForecast - subscribe a session to both legs
- GET /Subscriber/?id=<session> - subscriber collection search
- GET /Subscriber/<session> - single subscriber record
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from flightweather.errors import ValidationError
from flightweather.services.forecast import ForecastResult, parse_timestamp

logger = logging.getLogger(__name__)

forecasts_bp = Blueprint('forecasts', __name__)


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')
    return body


@forecasts_bp.route('/CheckTravelWeather', methods=['POST'])
def check_travel_weather():
    """
    Check the weather at both ends of a trip.

    Body:
    - departingAirport / arrivingAirport: airport ids
    - departingDate / arrivingDate: ISO timestamps, departure before arrival

    Returns departingAirportWeather and arrivingAirportWeather, each
    {airport, date, temperature}.
    """
    body = _json_body()

    departing_date = parse_timestamp(body.get('departingDate'))
    arriving_date = parse_timestamp(body.get('arrivingDate'))

    # Clients check this before sending; reject here as well
    if departing_date and arriving_date and departing_date >= arriving_date:
        raise ValidationError('Arrival time must be later than the departure time.')

    result = current_app.config['TRAVEL_WEATHER'].check(
        body.get('departingAirport'),
        departing_date,
        body.get('arrivingAirport'),
        arriving_date,
    )
    return jsonify(result.to_dict())


@forecasts_bp.route('/SubscribeToForecast', methods=['POST'])
def subscribe_to_forecast():
    """
    Subscribe a session to the forecasts returned by CheckTravelWeather.

    Body:
    - sessionID: client session token
    - departingAirportWeather / arrivingAirportWeather: results to follow

    Returns the subscriber record with all of its forecasts.
    """
    body = _json_body()

    departure = ForecastResult.from_dict(body.get('departingAirportWeather'))
    arrival = ForecastResult.from_dict(body.get('arrivingAirportWeather'))

    subscriber = current_app.config['SUBSCRIPTIONS'].subscribe(
        body.get('sessionID'),
        departure,
        arrival,
    )
    return jsonify(subscriber.to_dict())


@forecasts_bp.route('/Subscriber/', methods=['GET'])
def search_subscribers():
    """
    Collection search by id.

    Extra query keys such as select(...) are accepted and ignored: the
    response always carries id and forecasts{id,airport,date,temperature}.
    """
    subscribers = current_app.config['SUBSCRIPTIONS'].find_subscribers(request.args.get('id'))
    return jsonify([s.to_dict() for s in subscribers])


@forecasts_bp.route('/Subscriber/<subscriber_id>', methods=['GET'])
def get_subscriber(subscriber_id: str):
    subscriber = current_app.config['SUBSCRIPTIONS'].get_subscriber(subscriber_id)
    return jsonify(subscriber.to_dict())
