from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Protocol

from skirmish.economy.currency import Currency, normalize_currency
from skirmish.events import CharacterStateChanged, EventBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CharacterState:
    """Persisted per-character state read at encounter start and written after each step.

    equipped_items maps a slot name ("weapon", "armor", ...) to an item id.
    inventory holds one item id per occupied slot.
    """

    current_health: int
    max_health: int
    base_attack: int = 0
    base_defense: int = 0
    equipped_items: Dict[str, str] = field(default_factory=dict)
    inventory: List[str] = field(default_factory=list)
    max_inventory_size: int = 20
    currency: Currency = field(default_factory=Currency)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_max_inventory_size: int = 20) -> "CharacterState":
        return cls(
            current_health=int(data["current_health"]),
            max_health=int(data["max_health"]),
            base_attack=int(data.get("base_attack", 0)),
            base_defense=int(data.get("base_defense", 0)),
            equipped_items={str(k): str(v) for k, v in (data.get("equipped_items") or {}).items()},
            inventory=[str(i) for i in data.get("inventory") or []],
            max_inventory_size=int(data.get("max_inventory_size", default_max_inventory_size)),
            currency=normalize_currency(Currency.from_dict(data.get("currency"))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_health": self.current_health,
            "max_health": self.max_health,
            "base_attack": self.base_attack,
            "base_defense": self.base_defense,
            "equipped_items": dict(self.equipped_items),
            "inventory": list(self.inventory),
            "max_inventory_size": self.max_inventory_size,
            "currency": self.currency.to_dict(),
        }


class StateStore(Protocol):
    def read(self, character_id: str) -> CharacterState: ...

    def write(self, character_id: str, **changes: Any) -> CharacterState: ...


class InMemoryStateStore:
    """Thread-safe in-memory StateStore that publishes CharacterStateChanged on every write."""

    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self.bus = bus or EventBus()
        self._lock = threading.RLock()
        self._states: Dict[str, CharacterState] = {}

    def seed(self, character_id: str, state: CharacterState) -> None:
        with self._lock:
            self._states[character_id] = state
        logger.debug("Seeded state for %s", character_id)

    def read(self, character_id: str) -> CharacterState:
        with self._lock:
            try:
                state = self._states[character_id]
            except KeyError:
                raise KeyError(f"No stored state for character '{character_id}'") from None
        return replace(state, equipped_items=dict(state.equipped_items), inventory=list(state.inventory))

    def write(self, character_id: str, **changes: Any) -> CharacterState:
        return self._write(character_id, changes, external=False)

    def push_external_update(
        self,
        character_id: str,
        current_health: int,
        max_health: Optional[int] = None,
    ) -> CharacterState:
        """Apply a health change that originated outside the combat engine."""
        changes: Dict[str, Any] = {"current_health": current_health}
        if max_health is not None:
            changes["max_health"] = max_health
        return self._write(character_id, changes, external=True)

    def _write(self, character_id: str, changes: Dict[str, Any], *, external: bool) -> CharacterState:
        if "currency" in changes:
            changes["currency"] = normalize_currency(changes["currency"])
        if "inventory" in changes:
            changes["inventory"] = list(changes["inventory"])
        with self._lock:
            current = self._states.get(character_id)
            if current is None:
                raise KeyError(f"No stored state for character '{character_id}'")
            updated = replace(current, **changes)
            self._states[character_id] = updated
        logger.debug("Wrote %s for %s (external=%s)", sorted(changes), character_id, external)
        self.bus.emit(
            CharacterStateChanged(
                character_id=character_id,
                fields=tuple(sorted(changes)),
                current_health=updated.current_health,
                max_health=updated.max_health,
                external=external,
            )
        )
        return updated
