"""Base exception for the application exception hierarchy."""


class AppException(Exception):
    """Root of every domain-level exception raised by the services."""

    def __init__(self, message: str = "An application error occurred"):
        """
        Initialize the exception with a human-readable message.

        Parameters:
            message (str): Short reason, safe to expose to API clients.
        """
        self.message = message
        super().__init__(message)
