from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class LogKind(str, Enum):
    DAMAGE = "damage"
    HEAL = "heal"
    INFO = "info"


@dataclass(frozen=True)
class CombatEvent:
    """Represents a single narrated combat log entry.

    Attributes:
        seq: Position of the entry in the session log, starting at 1.
        round_index: Round the entry belongs to; 0 before initiative is rolled.
        kind: Tag describing the entry (damage, heal or info).
        message: Human-readable narration.
        actor: Name of the acting side, if any.
        value: Numeric outcome (damage dealt, health restored), if any.
    """

    seq: int
    round_index: int
    kind: LogKind
    message: str
    actor: Optional[str] = None
    value: Optional[int] = None


class CombatLog:
    """In-memory combat log that persists for the duration of a session.

    - Keeps a finite history (capacity) to avoid unbounded growth.
    - Entries are handed to the caller through drain(), which returns every
      entry added since the previous drain, in order.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._events: List[CombatEvent] = []
        self._seq = 0
        self._drained_seq = 0
        self.round_index = 0
        logger.debug("CombatLog initialized with capacity=%d", capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._events)

    def add(
        self,
        kind: LogKind,
        message: str,
        *,
        actor: Optional[str] = None,
        value: Optional[int] = None,
    ) -> CombatEvent:
        self._seq += 1
        ev = CombatEvent(
            seq=self._seq,
            round_index=self.round_index,
            kind=LogKind(kind),
            message=message,
            actor=actor,
            value=value,
        )
        self._events.append(ev)
        # Enforce capacity (drop oldest)
        if len(self._events) > self._capacity:
            dropped = len(self._events) - self._capacity
            del self._events[0:dropped]
            logger.debug("CombatLog capacity exceeded, dropped=%d old events", dropped)
        logger.debug("[%s] %s", ev.kind.value, message)
        return ev

    def info(self, message: str, **kwargs) -> CombatEvent:
        return self.add(LogKind.INFO, message, **kwargs)

    def damage(self, message: str, **kwargs) -> CombatEvent:
        return self.add(LogKind.DAMAGE, message, **kwargs)

    def heal(self, message: str, **kwargs) -> CombatEvent:
        return self.add(LogKind.HEAL, message, **kwargs)

    def events(self) -> List[CombatEvent]:
        return list(self._events)

    def since(self, seq: int) -> List[CombatEvent]:
        """Entries with a sequence number greater than ``seq``."""
        return [e for e in self._events if e.seq > seq]

    @property
    def last_seq(self) -> int:
        return self._seq

    def drain(self) -> List[CombatEvent]:
        """Return entries added since the last drain and advance the cursor."""
        pending = self.since(self._drained_seq)
        self._drained_seq = self._seq
        return pending

    def get_recent(self, n: int) -> List[CombatEvent]:
        if n <= 0:
            return []
        return self._events[-n:]

    def messages(self) -> List[str]:
        return [e.message for e in self._events]

    def to_dict(self) -> dict:
        return {
            "capacity": self._capacity,
            "events": [{**asdict(e), "kind": e.kind.value} for e in self._events],
        }
