class CalendarServiceError(Exception):
    """Base class for errors raised by the calendar services."""
    status_code = 400


class ValidationError(CalendarServiceError, ValueError):
    status_code = 400


class NotFoundError(CalendarServiceError, LookupError):
    status_code = 404


class ConflictError(CalendarServiceError):
    status_code = 409


class ConfigurationError(CalendarServiceError):
    status_code = 500


class UpstreamServiceError(CalendarServiceError):
    """An external service (holiday API, LLM endpoint) failed or answered garbage."""
    status_code = 502
