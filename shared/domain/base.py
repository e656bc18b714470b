"""
Base Domain Classes

Building blocks shared by the reservation and payment domains:
- ValueObject: Immutable objects compared by value
- Aggregate: Consistency boundary that collects domain events
- DomainEvent: Something that happened, published after commit
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


class Aggregate:
    """
    Mixin for aggregate roots

    Django models that act as consistency boundaries (a booking and
    everything hanging off it) inherit from this to collect domain events.
    The Unit of Work drains the events and publishes them after commit.
    """

    def add_event(self, event: 'DomainEvent'):
        """Add a domain event to be published"""
        self._pending_events().append(event)

    def clear_events(self):
        """Clear all collected events (called after publishing)"""
        self._pending_events().clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Get copy of collected events"""
        return list(self._pending_events())

    def _pending_events(self) -> List['DomainEvent']:
        # Model instances are built by the ORM without calling our __init__.
        if not hasattr(self, '_domain_events'):
            self._domain_events = []
        return self._domain_events


@dataclass(kw_only=True)
class DomainEvent:
    """
    Base class for domain events

    Domain events are collected on an aggregate during a transaction and
    handed to the message bus once the transaction has committed.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)
    aggregate_id: str | None = None

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        return {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
        }
