"""Translation of itinerary errors into HTTP responses."""

from __future__ import annotations

import logging
from typing import TypeVar

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from ..models.outcome import ErrorKind, ItineraryError, Outcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SERVICE_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CORRUPT_STATE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_exception(error: ItineraryError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_KIND[error.kind], detail=error.to_dict())


def unwrap_or_raise(outcome: Outcome[T]) -> T:
    """Return the outcome's value or raise the HTTPException matching its error kind."""
    if outcome.error is not None:
        raise to_http_exception(outcome.error)
    return outcome.value  # type: ignore[return-value]


async def itinerary_error_handler(request: Request, exc: ItineraryError) -> JSONResponse:
    if exc.kind in (ErrorKind.SERVICE_ERROR, ErrorKind.CORRUPT_STATE):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=STATUS_BY_KIND[exc.kind], content={"detail": exc.to_dict()})
