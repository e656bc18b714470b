"""DRF exception handler for reservation errors."""

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.bookings.domain.exceptions import ReservationError

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Render ReservationError subclasses as ``{"code", "detail"[, "meta"]}``.

    Everything else goes through DRF's default handling.
    """
    if isinstance(exc, ReservationError):
        view = context.get("view")
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}"
        )
        response = Response(exc.to_dict(), status=exc.http_status)
        if exc.retryable:
            response["Retry-After"] = "1"
        return response

    return exception_handler(exc, context)
