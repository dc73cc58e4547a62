"""Exceptions raised by service functions on lookups, writes and state transitions."""

from app.exceptions.base import AppException


class NotFoundError(AppException):
    """
    A mission, submission, thread, post or user id that does not resolve.

    Also raised for rows the caller may not see (pending or hidden missions,
    unpublished posts) so their existence is not disclosed.
    """

    def __init__(self, resource: str, identifier: int | str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class AlreadyExistsError(AppException):
    """A unique value is taken (username, email)."""

    def __init__(self, resource: str, field: str, value: int | str):
        """
        Parameters:
            resource (str): Resource type, e.g. "User".
            field (str): The unique column, e.g. "email".
            value (int | str): The value that collided.
        """
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}='{value}' already exists")


class ValidationError(AppException):
    """A request that is well-formed but breaks a business rule, optionally tied to one field."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ConflictError(AppException):
    """A transition not allowed from the current state (already decided, slots full, mission not open)."""

    def __init__(self, message: str, resource: str | None = None):
        """
        Parameters:
            message (str): Reason exposed to the client, e.g. "Submission already decided".
            resource (str | None): Optional resource type the conflict refers to.
        """
        self.resource = resource
        super().__init__(message)
