"""
Translation of workflow errors into HTTP responses.
"""

from fastapi import HTTPException, status

from app.services.errors import (
    GroupAlreadyConfirmed,
    NoSlotSelected,
    NotFound,
    PrimaryAccountMissing,
    ProviderError,
    SchedulingError,
    Unauthorized,
    UnsupportedProvider,
)

_STATUS_BY_ERROR: list[tuple[type[SchedulingError], int]] = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (PrimaryAccountMissing, status.HTTP_400_BAD_REQUEST),
    (UnsupportedProvider, status.HTTP_400_BAD_REQUEST),
    (NoSlotSelected, status.HTTP_400_BAD_REQUEST),
    (GroupAlreadyConfirmed, status.HTTP_409_CONFLICT),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
]


def scheduling_http_error(error: SchedulingError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(error, Unauthorized):
        # Ownership details stay in the logs
        detail = "Forbidden"
    elif isinstance(error, ProviderError):
        detail = f"Calendar provider request failed ({error.provider})"
    else:
        detail = error.message

    return HTTPException(status_code=status_code, detail=detail)
