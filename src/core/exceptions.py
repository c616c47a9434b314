"""
Error kinds shared by every service and the handlers that turn them into
response envelopes.

A service raises ``ServiceError(ResponseStatus.X, "specific cause")``; the
registered FastAPI handlers answer with the envelope
``{status: false, responseStatus: "X", message: "..."}`` and the HTTP status
bound to the kind.
"""

from enum import Enum
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


class ResponseStatus(str, Enum):
    """Failure kinds surfaced through the envelope"""
    # Trains
    NOT_ENOUGH_SEATS = "NOT_ENOUGH_SEATS"
    TRAIN_NOT_FOUND = "TRAIN_NOT_FOUND"
    TRAIN_ALREADY_EXISTS = "TRAIN_ALREADY_EXISTS"
    TRAIN_NOT_SAVED_IN_COLLECTION = "TRAIN_NOT_SAVED_IN_COLLECTION"
    TRAIN_UPDATING_FAILED = "TRAIN_UPDATING_FAILED"

    # Tickets
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    TICKET_NOT_SAVED_IN_COLLECTION = "TICKET_NOT_SAVED_IN_COLLECTION"
    TICKET_NOT_CREATED = "TICKET_NOT_CREATED"
    TICKET_NOT_BOOKED = "TICKET_NOT_BOOKED"

    # Users
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
    USER_NOT_SAVED_IN_COLLECTION = "USER_NOT_SAVED_IN_COLLECTION"
    EMAIL_NOT_VALID = "EMAIL_NOT_VALID"
    PASSWORD_INCORRECT = "PASSWORD_INCORRECT"

    # General
    INVALID_DATA = "INVALID_DATA"
    FREE_THE_SEAT_OPERATION_FAILED = "FREE_THE_SEAT_OPERATION_FAILED"
    MAIL_NOT_SENT = "MAIL_NOT_SENT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def http_status(self) -> int:
        return _STATUS_DETAILS[self][0]

    @property
    def default_message(self) -> str:
        return _STATUS_DETAILS[self][1]


_STATUS_DETAILS = {
    ResponseStatus.NOT_ENOUGH_SEATS: (status.HTTP_409_CONFLICT, "Not enough seats available"),
    ResponseStatus.TRAIN_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Train not found"),
    ResponseStatus.TRAIN_ALREADY_EXISTS: (status.HTTP_400_BAD_REQUEST, "Train already exists"),
    ResponseStatus.TRAIN_NOT_SAVED_IN_COLLECTION: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save train in collection"),
    ResponseStatus.TRAIN_UPDATING_FAILED: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Train update failed"),
    ResponseStatus.TICKET_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Ticket not found"),
    ResponseStatus.TICKET_NOT_SAVED_IN_COLLECTION: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save ticket in collection"),
    ResponseStatus.TICKET_NOT_CREATED: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create ticket"),
    ResponseStatus.TICKET_NOT_BOOKED: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Ticket could not be booked"),
    ResponseStatus.USER_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "User not found"),
    ResponseStatus.USER_ALREADY_EXISTS: (status.HTTP_400_BAD_REQUEST, "User already exists"),
    ResponseStatus.USER_NOT_SAVED_IN_COLLECTION: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save user in collection"),
    ResponseStatus.EMAIL_NOT_VALID: (status.HTTP_400_BAD_REQUEST, "Email is not valid"),
    ResponseStatus.PASSWORD_INCORRECT: (status.HTTP_400_BAD_REQUEST, "Password is incorrect"),
    ResponseStatus.INVALID_DATA: (status.HTTP_400_BAD_REQUEST, "Invalid input data"),
    ResponseStatus.FREE_THE_SEAT_OPERATION_FAILED: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Freeing the seats failed"),
    ResponseStatus.MAIL_NOT_SENT: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Mail could not be sent"),
    ResponseStatus.SERVICE_UNAVAILABLE: (status.HTTP_503_SERVICE_UNAVAILABLE, "Service is currently unavailable"),
    ResponseStatus.UNAUTHORIZED: (status.HTTP_401_UNAUTHORIZED, "Could not validate credentials"),
    ResponseStatus.INTERNAL_ERROR: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"),
}


class ServiceError(Exception):
    """Error carrying a caller-meaningful kind"""

    def __init__(self, response_status: ResponseStatus, message: Optional[str] = None) -> None:
        self.response_status = response_status
        self.message = message or response_status.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.response_status.http_status

    def __repr__(self) -> str:
        return f"ServiceError({self.response_status.value}, {self.message!r})"


class RemoteCallError(ServiceError):
    """Failure of a call to a peer service.

    ``retryable`` is set for transport errors, timeouts and 5xx answers; a 4xx
    answer is a business outcome of the peer and is never retried.
    """

    def __init__(
        self,
        response_status: ResponseStatus,
        message: Optional[str] = None,
        retryable: bool = False,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(response_status, message)
        self.retryable = retryable
        self.http_status = http_status


def error_body(response_status: ResponseStatus, message: str) -> dict:
    return {"status": False, "responseStatus": response_status.value, "message": message}


async def service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, ServiceError) else ServiceError(ResponseStatus.INTERNAL_ERROR, str(exc))
    if error.status_code >= 500:
        logger.error("{} {} failed: {} {}", request.method, request.url.path, error.response_status.value, error.message)
    else:
        logger.info("{} {} rejected: {} {}", request.method, request.url.path, error.response_status.value, error.message)
    return JSONResponse(status_code=error.status_code, content=error_body(error.response_status, error.message))


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}" for error in errors
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ResponseStatus.INVALID_DATA, details or ResponseStatus.INVALID_DATA.default_message),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(ResponseStatus.INTERNAL_ERROR, ResponseStatus.INTERNAL_ERROR.default_message),
    )


EXCEPTION_HANDLERS = {
    ServiceError: service_error_handler,
    RequestValidationError: validation_error_handler,
    Exception: general_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
