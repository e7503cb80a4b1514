"""Error taxonomy shared by the lifecycle engine, query layer and routes.

Each error carries the HTTP status it is rendered with; the handler installed
in ``etuition.main`` turns them into ``{"message": ...}`` bodies.
"""

from fastapi import status


class EtuitionError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Internal server error.'

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(EtuitionError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'unauthorized access'


class Forbidden(EtuitionError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'forbidden access'


class NotFound(EtuitionError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found'


class InvalidArgument(EtuitionError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid request.'


class Conflict(EtuitionError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Conflicting state.'


class Internal(EtuitionError):
    default_message = 'Database error.'


class PaymentProcessorError(Internal):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = 'Payment processor unavailable.'
