"""
Reservation Errors

Every failure the reservation core reports derives from ReservationError.
Each error carries a stable ``code`` for API clients and the HTTP status the
API layer answers with. Raising any of them inside a Unit of Work rolls the
whole transaction back.
"""

from typing import Any, Dict


class ReservationError(Exception):
    """Base class for reservation and payment errors"""

    code = 'reservation_error'
    http_status = 400
    retryable = False

    def __init__(self, message: str = '', **details: Any):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__
        self.details: Dict[str, Any] = details

    def to_dict(self) -> dict:
        payload = {'code': self.code, 'detail': self.message}
        if self.details:
            payload['meta'] = self.details
        return payload


class ValidationError(ReservationError):
    """Malformed or out-of-range input"""
    code = 'validation_error'


class SlotConflict(ReservationError):
    """Selected slot(s) are already booked for that time"""
    code = 'slot_conflict'
    http_status = 409


class PropertyInactive(ReservationError):
    """Property is not activated for bookings"""
    code = 'property_inactive'


class SlotInactive(ReservationError):
    """One or more selected slots are in maintenance mode"""
    code = 'slot_inactive'


class BookingNotFound(ReservationError):
    """Booking not found"""
    code = 'booking_not_found'
    http_status = 404


class BookingClosed(ReservationError):
    """Booking is cancelled and accepts no further changes"""
    code = 'booking_closed'
    http_status = 409


class AmountDecreaseRejected(ReservationError):
    """Reducing a recorded paid amount is not supported"""
    code = 'amount_decrease_rejected'


class InvalidTransition(ReservationError):
    """Requested status change is not allowed"""
    code = 'invalid_transition'
    http_status = 409


class StorageConflict(ReservationError):
    """Concurrent update detected, retry the request"""
    code = 'storage_conflict'
    http_status = 503
    retryable = True
