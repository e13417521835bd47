from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from skirmish.combat.dice import DiceSpec

logger = logging.getLogger(__name__)

STRENGTH = "Strength"
DEXTERITY = "Dexterity"

DENOMINATIONS = ("gold", "silver", "copper")


class AbilityType(str, Enum):
    DEFENSE = "Defense"
    BOOST = "Boost"
    OFFENSE = "Offense"
    RESTORE = "Restore"


@dataclass(frozen=True)
class Ability:
    """A class ability usable in combat.

    Only the properties relevant to the ability's type are consulted:
    defense_amount for Defense, attack_amount for Boost, damage for Offense
    and restore_amount for Restore. duration applies to Defense and Boost.
    """

    id: str
    name: str
    type: AbilityType
    main_attribute: str = STRENGTH
    cooldown: int = 0
    level: int = 1
    damage: Optional[DiceSpec] = None
    attack_amount: int = 0
    defense_amount: int = 0
    duration: int = 0
    restore_amount: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Ability":
        props = dict(data.get("properties") or {})
        damage = props.get("damage")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            type=AbilityType(data["type"]),
            main_attribute=str(data.get("main_attribute", STRENGTH)),
            cooldown=int(data.get("cooldown", 0)),
            level=int(data.get("level", 1)),
            damage=DiceSpec.from_value(damage) if damage is not None else None,
            attack_amount=int(props.get("attack_amount", 0)),
            defense_amount=int(props.get("defense_amount", 0)),
            duration=int(props.get("duration", 0)),
            restore_amount=int(props.get("restore_amount", 0)),
        )


@dataclass(frozen=True)
class Weapon:
    item_id: str
    name: str
    damage: DiceSpec
    attack_bonus: int = 0


@dataclass(frozen=True)
class EquipmentBonuses:
    """Equipped-item contributions, fixed for the whole session."""

    attack: int = 0
    defense: int = 0
    weapon: Optional[Weapon] = None


@dataclass
class CombatantState:
    """
    The player's side of an encounter.

    Health is clamped into [0, max_health]; attributes are read-only for the
    session (buffs modify effective attack/defense, never attributes).
    """

    name: str
    attributes: Dict[str, int]
    current_health: int
    max_health: int
    base_attack: int = 0
    base_defense: int = 0
    equipment: EquipmentBonuses = field(default_factory=EquipmentBonuses)

    def __post_init__(self) -> None:
        if self.max_health < 0:
            raise ValueError("max_health cannot be negative")
        self.current_health = max(0, min(self.current_health, self.max_health))

    @property
    def alive(self) -> bool:
        return self.current_health > 0

    @property
    def static_attack(self) -> int:
        return self.base_attack + self.equipment.attack

    @property
    def static_defense(self) -> int:
        return self.base_defense + self.equipment.defense

    def attribute(self, name: str) -> int:
        """Attribute score; a missing attribute counts as an average 10."""
        return int(self.attributes.get(name, 10))

    def take_damage(self, amount: int) -> int:
        if amount <= 0:
            return 0
        before = self.current_health
        self.current_health = max(0, min(before - amount, self.max_health))
        return before - self.current_health

    def heal(self, amount: int) -> int:
        if amount <= 0:
            return 0
        before = self.current_health
        self.current_health = max(0, min(before + amount, self.max_health))
        return self.current_health - before


@dataclass(frozen=True)
class LootTableEntry:
    item_id: str
    drop_chance_percent: float

    def __post_init__(self) -> None:
        if not 0 <= self.drop_chance_percent <= 100:
            raise ValueError(f"Drop chance for {self.item_id} must be within 0-100, got {self.drop_chance_percent}")


@dataclass(frozen=True)
class DenominationRange:
    minimum: Optional[int] = None
    maximum: Optional[int] = None

    @property
    def defined(self) -> bool:
        return self.minimum is not None and self.maximum is not None

    def __post_init__(self) -> None:
        if self.defined and self.minimum > self.maximum:  # type: ignore[operator]
            raise ValueError(f"Currency range min {self.minimum} exceeds max {self.maximum}")
        for bound in (self.minimum, self.maximum):
            if bound is not None and bound < 0:
                raise ValueError("Currency bounds cannot be negative")


@dataclass(frozen=True)
class CurrencyRange:
    gold: DenominationRange = field(default_factory=DenominationRange)
    silver: DenominationRange = field(default_factory=DenominationRange)
    copper: DenominationRange = field(default_factory=DenominationRange)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "CurrencyRange":
        """Accepts ``{"gold": {"min": 1, "max": 3}}`` as well as flat ``gold_min``/``gold_max`` keys."""
        data = data or {}
        ranges = {}
        for name in DENOMINATIONS:
            nested = data.get(name)
            if isinstance(nested, Mapping):
                lo, hi = nested.get("min"), nested.get("max")
            else:
                lo, hi = data.get(f"{name}_min"), data.get(f"{name}_max")
            ranges[name] = DenominationRange(
                minimum=None if lo is None else int(lo),
                maximum=None if hi is None else int(hi),
            )
        return cls(**ranges)

    def denominations(self) -> Tuple[Tuple[str, DenominationRange], ...]:
        return tuple((name, getattr(self, name)) for name in DENOMINATIONS)


@dataclass(frozen=True)
class MonsterDefinition:
    id: str
    name: str
    health: DiceSpec
    attack: int
    defense: int
    damage: DiceSpec
    difficulty: str = ""
    loot_table: Tuple[LootTableEntry, ...] = ()
    currency: CurrencyRange = field(default_factory=CurrencyRange)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MonsterDefinition":
        loot = tuple(
            LootTableEntry(item_id=str(e["item_id"]), drop_chance_percent=float(e.get("drop_chance", 0)))
            for e in data.get("loot", []) or []
        )
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            health=DiceSpec.from_value(data["health"]),
            attack=int(data.get("attack", 0)),
            defense=int(data.get("defense", 0)),
            damage=DiceSpec.from_value(data["damage"]),
            difficulty=str(data.get("difficulty", "")),
            loot_table=loot,
            currency=CurrencyRange.from_dict(data.get("currency", data)),
        )
