"""Authentication and authorization exceptions."""

from app.exceptions.base import AppException


class AuthenticationError(AppException):
    """The caller could not be identified (401)."""

    pass


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, message: str = "Incorrect username or password"):
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    """Bearer or refresh token rejected: bad signature, wrong type, or unknown subject."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class TokenExpiredError(InvalidTokenError):
    """
    A well-formed token past its `exp` claim.

    Parameters:
        token_type (str): "access" or "refresh"; kept as `token_type` and used in the message.
    """

    def __init__(self, token_type: str = "access"):
        super().__init__(f"{token_type.capitalize()} token has expired")
        self.token_type = token_type


class InsufficientPermissionsError(AuthenticationError):
    """
    The caller is known but may not act here (403).

    Raised for a missing privilege (admin, advertiser), the wrong active role,
    or an action on a mission, thread or post the caller does not own.
    """

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)
