# app/errors.py
"""
Failure kinds raised by the service layer.

Routes never translate these by hand; app.main registers one handler that maps
each kind onto its HTTP status code.
"""
from fastapi import status


class BookingServiceError(Exception):
    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        body = {"detail": self.message, "error": self.kind}
        if self.context:
            body["context"] = {key: str(value) for key, value in self.context.items()}
        return body


class ValidationError(BookingServiceError):
    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(BookingServiceError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} not found.", entity=entity, id=entity_id)


class ConflictError(BookingServiceError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class StateError(BookingServiceError):
    kind = "state_error"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthorizationError(BookingServiceError):
    kind = "authorization_error"
    status_code = status.HTTP_403_FORBIDDEN


class AuthenticationError(BookingServiceError):
    kind = "authentication_error"
    status_code = status.HTTP_401_UNAUTHORIZED
