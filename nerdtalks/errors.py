"""Error taxonomy shared by every component.

Each error carries the HTTP status it maps to and a human-readable message
that is safe to return to clients.
"""

from fastapi import status


class ForumError(Exception):
    """Base class for errors surfaced to API clients"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error."

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class Unauthenticated(ForumError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized access."


class Forbidden(ForumError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Forbidden access."


class InvalidArgument(ForumError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request."


class NotFound(ForumError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found."


class Conflict(ForumError):
    status_code = status.HTTP_409_CONFLICT
    message = "Already exists."


class Internal(ForumError):
    pass
