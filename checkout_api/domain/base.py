"""Domain building blocks.

``Order`` is the only aggregate in the checkout domain; carts are plain
persisted rows and are not modelled as an aggregate. Value objects
(``Money``, ``OrderId``, callback payloads) are frozen dataclasses and
lifecycle changes are announced as ``DomainEvent`` instances.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID, uuid4

IdT = TypeVar("IdT")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable value compared field by field."""


@dataclass
class Entity(ABC, Generic[IdT]):
    """Object with identity; equality and hashing use ``id`` only."""

    id: IdT

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.id == self.id  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))


@dataclass(kw_only=True)
class AggregateRoot(Entity[IdT], Generic[IdT]):
    """Entity that owns its state changes and the events they raise.

    Events stay buffered on the aggregate until the application service
    has committed and calls ``collect_events``.
    """

    created_at: datetime = field(default_factory=utc_now, compare=False)
    updated_at: datetime = field(default_factory=utc_now, compare=False)
    _events: list["DomainEvent"] = field(default_factory=list, init=False, repr=False, compare=False)

    def _record_event(self, event: "DomainEvent") -> None:
        self._events.append(event)

    def _touch(self) -> None:
        self.updated_at = utc_now()

    def collect_events(self) -> list["DomainEvent"]:
        """Return buffered events and empty the buffer."""
        events, self._events = self._events, []
        return events


@dataclass(frozen=True)
class DomainEvent(ABC):
    """Something that happened to an aggregate.

    Subclasses set ``event_type`` (``"order.paid"``, ...) and describe their
    own fields in ``_payload``; ``to_dict`` is the shape written to the log.
    """

    event_type: ClassVar[str]

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utc_now)
    aggregate_id: str = ""

    @abstractmethod
    def _payload(self) -> dict[str, Any]: ...

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "aggregate_id": self.aggregate_id,
            "payload": self._payload(),
        }
