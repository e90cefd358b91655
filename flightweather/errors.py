"""
Error taxonomy for FlightWeather.

Every error raised by the service layer derives from FlightWeatherError
and carries the HTTP status the API layer renders it with:

    ValidationError   400  bad or missing input (e.g. arrival not after departure)
    NotFound          404  unknown airport/subscriber id, missing query parameter
    UpstreamError     502  weather provider unreachable, misconfigured, or non-2xx
    TransactionError  409  storage-layer write conflict
"""


class FlightWeatherError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {'error': self.message}


class ValidationError(FlightWeatherError):
    status_code = 400


class NotFound(FlightWeatherError):
    status_code = 404


class UpstreamError(FlightWeatherError):
    status_code = 502


class TransactionError(FlightWeatherError):
    status_code = 409
