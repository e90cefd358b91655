"""
Airport directory API endpoints.

Provides endpoints for:
- GET /AirportsByCountry?country_code=US - airports with an IATA code, sorted by IATA
- GET /AirportCode?iata=SFO - airports matching an IATA code
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from flightweather.errors import NotFound
from flightweather.ingestion.airports import airports_by_country, lookup_by_iata, to_records

logger = logging.getLogger(__name__)

airports_bp = Blueprint('airports', __name__)


@airports_bp.route('/AirportsByCountry', methods=['GET'])
def list_airports_by_country():
    """
    List airports for a country.

    Query parameters:
    - country_code: ISO country code (required)

    Airports without an IATA code are left out.
    """
    country_code = request.args.get('country_code', '').strip()
    if not country_code:
        raise NotFound('country_code is required')

    airports = airports_by_country(current_app.config['STORE'], country_code)
    logger.debug(f'{len(airports)} airports for {country_code}')

    return jsonify(to_records(airports))


@airports_bp.route('/AirportCode', methods=['GET'])
def get_airport_code():
    """Look up airports by IATA code. Empty list when no code is given."""
    code = request.args.get('iata', '')
    return jsonify(to_records(lookup_by_iata(current_app.config['STORE'], code)))
