"""Throttling exceptions."""

from app.exceptions.base import AppException


class RateLimitedError(AppException):
    """Caller exceeded the request budget of a rate-limited route."""

    def __init__(self, route: str):
        """
        Parameters:
            route (str): Name of the throttled route, kept on the instance as `route`.
        """
        self.route = route
        super().__init__("Too Many Requests")
