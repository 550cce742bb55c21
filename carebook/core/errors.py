"""Error taxonomy shared by the scheduling engine and the HTTP layer."""

from fastapi import HTTPException, status

INTERNAL_ERROR_DETAIL = 'Internal server error.'


class SchedulingError(Exception):
    """Base class for classified scheduling failures."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class InactiveError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT


class InvalidError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN


class InternalError(SchedulingError):
    """Store or programming failure. The message is never shown to callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, InternalError):
        return HTTPException(status_code=exc.status_code, detail=INTERNAL_ERROR_DETAIL)
    return HTTPException(status_code=exc.status_code, detail=exc.message)
