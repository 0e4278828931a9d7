"""
Event log for the allocation engine.

Events are appended to a hash-chained audit trail: each event's hash covers
its content and the previous event's hash, so tampering with any recorded
event breaks verification of every later one.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..crypto.hashing import SHA256Hasher


class EventType(Enum):
    """Types of mechanism events."""

    USER_REGISTERED = "user_registered"
    PROPOSAL_CREATED = "proposal_created"
    PROPOSAL_CANCELED = "proposal_canceled"
    VOTE_CAST = "vote_cast"
    VOTE_TALLY_FINALIZED = "vote_tally_finalized"
    PROPOSAL_QUEUED = "proposal_queued"
    ALPHA_UPDATED = "alpha_updated"
    REDEEMED = "redeemed"
    SHARES_TRANSFERRED = "shares_transferred"
    SWEPT = "swept"
    PAUSED = "paused"
    UNPAUSED = "unpaused"
    OWNERSHIP_TRANSFER_STARTED = "ownership_transfer_started"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"
    OWNERSHIP_TRANSFER_CANCELED = "ownership_transfer_canceled"
    ROLE_UPDATED = "role_updated"
    ALLOW_LIST_UPDATED = "allow_list_updated"


@dataclass
class MechanismEvent:
    """A single recorded event."""

    sequence: int
    event_type: EventType
    timestamp: int
    data: Dict[str, Any] = field(default_factory=dict)
    previous_event_hash: Optional[str] = None
    event_hash: Optional[str] = None

    def __post_init__(self):
        """Calculate event hash after initialization."""
        self.event_hash = self.calculate_hash()

    def calculate_hash(self) -> str:
        """Calculate hash of this event."""
        return str(
            SHA256Hasher.hash_canonical(
                {
                    "sequence": self.sequence,
                    "event_type": self.event_type.value,
                    "timestamp": self.timestamp,
                    "data": self.data,
                    "previous_event_hash": self.previous_event_hash,
                }
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "sequence": self.sequence,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "data": self.data,
            "event_hash": self.event_hash,
            "previous_event_hash": self.previous_event_hash,
        }


class EventLog:
    """Append-only, hash-chained event trail with optional subscribers."""

    def __init__(self):
        self.events: List[MechanismEvent] = []
        self.subscribers: List[Callable[[MechanismEvent], None]] = []

    def subscribe(self, callback: Callable[[MechanismEvent], None]) -> None:
        self.subscribers.append(callback)

    def emit(self, event_type: EventType, timestamp: int, **data: Any) -> MechanismEvent:
        """Append an event and notify subscribers."""
        previous = self.events[-1].event_hash if self.events else None
        event = MechanismEvent(
            sequence=len(self.events),
            event_type=event_type,
            timestamp=timestamp,
            data=data,
            previous_event_hash=previous,
        )
        self.events.append(event)
        logger.debug(f"Event {event.event_type.value} #{event.sequence}: {data}")

        for callback in self.subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in event subscriber: {e}")

        return event

    def get_events(self, event_type: Optional[EventType] = None) -> List[MechanismEvent]:
        if event_type is None:
            return list(self.events)
        return [e for e in self.events if e.event_type == event_type]

    def verify_chain(self) -> bool:
        """Check every hash and back-link in the trail."""
        previous = None
        for event in self.events:
            if event.previous_event_hash != previous:
                return False
            if event.calculate_hash() != event.event_hash:
                return False
            previous = event.event_hash
        return True

    def __len__(self) -> int:
        return len(self.events)
