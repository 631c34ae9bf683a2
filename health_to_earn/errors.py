"""
Failure taxonomy shared by the request handlers.

Every error carries the HTTP status it is answered with. Handlers raise
them, the app turns them into bodiless responses.
"""


class HealthToEarnError(Exception):
    status_code = 500


class InvalidRequest(HealthToEarnError):
    """Missing or malformed request field."""
    status_code = 400


class InvalidAddress(InvalidRequest, ValueError):
    status_code = 400


class AuthDenied(HealthToEarnError):
    """The athlete refused the OAuth authorization."""
    status_code = 403


class MethodNotAllowed(HealthToEarnError):
    status_code = 403


class Unauthorized(HealthToEarnError):
    status_code = 401


class NotFound(HealthToEarnError):
    status_code = 404


class UpstreamError(HealthToEarnError):
    """The provider API rejected or failed a call."""
    status_code = 400


class StoreError(HealthToEarnError):
    status_code = 500


class NotImplementedYet(HealthToEarnError):
    status_code = 501
