from __future__ import annotations

import logging

from fastapi import HTTPException
from services.api.app.services.errors import (
    AlreadyRatedError,
    EmptyCartError,
    InvalidCouponError,
    InvalidIndexError,
    InvalidRefundAmountError,
    InvalidStatusTransitionError,
    ItemUnavailableError,
    MinimumOrderNotMetError,
    NotDeliveredError,
    NotFoundError,
    OrderNotCancellableError,
    OrderNumberUnavailableError,
    RestaurantInactiveError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

_BAD_REQUEST = (
    InvalidIndexError,
    EmptyCartError,
    InvalidCouponError,
    InvalidStatusTransitionError,
    InvalidRefundAmountError,
)

_CONFLICT = (
    ItemUnavailableError,
    RestaurantInactiveError,
    OrderNotCancellableError,
    NotDeliveredError,
    AlreadyRatedError,
)


def raise_http_error(e: Exception) -> None:
    if isinstance(e, HTTPException):
        raise e

    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, UnauthorizedError):
        raise HTTPException(status_code=403, detail=str(e)) from e

    if isinstance(e, _BAD_REQUEST):
        raise HTTPException(status_code=400, detail=str(e)) from e

    if isinstance(e, _CONFLICT):
        raise HTTPException(status_code=409, detail=str(e)) from e

    if isinstance(e, MinimumOrderNotMetError):
        raise HTTPException(status_code=422, detail=str(e)) from e

    if isinstance(e, OrderNumberUnavailableError):
        raise HTTPException(status_code=503, detail=str(e)) from e

    logger.exception("Unhandled error: %r", e, exc_info=e)
    raise HTTPException(status_code=500, detail="Internal Server Error") from e
