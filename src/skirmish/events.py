import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


class EventBus:
    """Simple thread-safe in-process event bus.

    Subscribers are keyed by event class; events are emitted by instance.
    Delivery is synchronous, in subscription order.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscribers: Dict[Type[Any], List[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)  # type: ignore[arg-type]

    def unsubscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    self._subscribers.pop(event_type, None)

    def emit(self, event: Any) -> None:
        with self._lock:
            targets = [
                h
                for event_type, handlers in self._subscribers.items()
                if isinstance(event, event_type)
                for h in handlers
            ]
        for h in targets:
            h(event)


@dataclass(frozen=True)
class CharacterStateChanged:
    """A character record was written to the state store.

    ``fields`` names the keys that changed; ``external`` is set when the write
    came from outside the combat engine (another device, an admin tool).
    """

    character_id: str
    fields: Tuple[str, ...]
    current_health: Optional[int] = None
    max_health: Optional[int] = None
    external: bool = False
    source: str = field(default="store")


@dataclass(frozen=True)
class EncounterStepApplied:
    """Published by the encounter service after a session step has been persisted."""

    session_id: str
    character_id: str
    result: Any
