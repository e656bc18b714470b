"""
Unit of Work Pattern

Manages database transactions and ensures that domain events
are published only after successful transaction commit.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, TypeVar
import logging

from django.conf import settings
from django.db import OperationalError, transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

T = TypeVar('T')


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    @abstractmethod
    def collect_events(self, aggregate):
        """Collect events from aggregate root"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Wraps ``transaction.atomic()`` so that every write of a reservation
    command (booking, slot assignments, payment events, summary, history)
    commits or rolls back together.

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = Booking.objects.select_for_update().get(pk=booking_id)
            booking.transition_to(BookingStatus.CANCELLED, actor, note)
            uow.collect_events(booking)
        # Events are published after commit
    """

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule event publishing for after the commit

        Events are published using Django's transaction.on_commit()
        to ensure they're only sent after database commit succeeds.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Rollback changes and discard events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def collect_events(self, aggregate):
        """
        Collect events from aggregate root

        Extracts all domain events from the aggregate and
        clears them from the aggregate.
        """
        if hasattr(aggregate, 'events'):
            new_events = aggregate.events
            if new_events:
                self._events.extend(new_events)
                aggregate.clear_events()
                logger.debug(
                    f"Collected {len(new_events)} events from "
                    f"{aggregate.__class__.__name__} (ID: {aggregate.pk})"
                )

    def _publish_events(self, events: List[DomainEvent]):
        """
        Publish collected events to message bus

        Called after successful transaction commit.
        """
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            logger.error(f"Error publishing events: {e}", exc_info=True)
            # Events are already committed to database


def run_with_retry(operation: Callable[[], T], attempts: int | None = None) -> T:
    """
    Run a transactional operation, retrying on serialization failures

    ``operation`` must open its own Unit of Work so that each attempt starts
    from a clean transaction. Deadlocks and serialization failures surface
    from the database driver as OperationalError; after ``attempts`` tries
    the failure is reported as StorageConflict.
    """
    from apps.bookings.domain.exceptions import StorageConflict

    if attempts is None:
        attempts = settings.RESERVATIONS['STORAGE_RETRY_ATTEMPTS']

    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except OperationalError as e:
            logger.warning(f"Storage conflict on attempt {attempt}/{attempts}: {e}")
            last_error = e

    raise StorageConflict(
        f"Could not complete the operation after {attempts} attempts",
        reason=str(last_error),
    )
