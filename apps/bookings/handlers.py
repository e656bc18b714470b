"""Default domain event handlers.

Notification delivery lives outside the reservation core, so the handlers
registered here only write a structured audit line per event.
"""

from dataclasses import asdict
from decimal import Decimal

import structlog

from shared.application.message_bus import message_bus

from .domain.events import BookingCancelled, BookingCreated, BookingPaid, PaymentRecorded

logger = structlog.get_logger(__name__)

BASE_FIELDS = ("event_id", "occurred_at", "aggregate_id")


def log_domain_event(event) -> None:
    payload = event.to_dict()
    for key, value in asdict(event).items():
        if key not in BASE_FIELDS:
            payload[key] = str(value) if isinstance(value, Decimal) else value
    logger.info("domain_event", **payload)


def register_handlers(bus=message_bus) -> None:
    for event_type in (BookingCreated, PaymentRecorded, BookingPaid, BookingCancelled):
        bus.register_event_handler(event_type, log_domain_event)
