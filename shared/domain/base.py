"""
Base Domain Classes

Building blocks shared by the scheduling domains:
- ValueObject: Immutable objects compared by value
- DomainEvent: Something that happened to a booking, persisted as an audit row
"""

from abc import ABC
from dataclasses import dataclass, fields


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Subclasses set ``event_type`` and declare payload fields. ``to_dict``
    returns the payload that is stored as event metadata.
    """
    event_type = "domain_event"

    def to_dict(self) -> dict:
        """Convert event payload to a JSON friendly dictionary"""
        payload = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if hasattr(value, "isoformat"):
                value = value.isoformat()
            payload[item.name] = value
        return payload
