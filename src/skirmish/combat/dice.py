"""
Dice and combat formulas.

Pure functions for dice rolls, attribute bonuses, difficulty-scaled monster
attack bonuses and damage totals. All randomness comes from an injected
RandomProvider so results are reproducible under test.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from skirmish.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)

VALID_FACES = (4, 6, 8, 10, 12, 20)

_NOTATION = re.compile(r"^(\d+)d(\d+)([+-]\d+)?$")


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    DEADLY = "Deadly"
    LEGENDARY = "Legendary"


DIFFICULTY_ATTACK_OFFSETS: Dict[Difficulty, int] = {
    Difficulty.EASY: 1,
    Difficulty.MEDIUM: 3,
    Difficulty.HARD: 7,
    Difficulty.DEADLY: 17,
    Difficulty.LEGENDARY: 35,
}


@dataclass(frozen=True)
class DiceSpec:
    """A rollable quantity such as ``2d8+1``.

    Attributes:
        count: Number of dice, at least 1.
        faces: Faces per die, one of 4, 6, 8, 10, 12 or 20.
        modifier: Flat amount added after the dice are summed.
    """

    count: int = 1
    faces: int = 6
    modifier: int = 0

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"Dice count must be at least 1, got {self.count}")
        if self.faces not in VALID_FACES:
            raise ValueError(f"Unsupported die d{self.faces}; expected one of {VALID_FACES}")

    @classmethod
    def parse(cls, notation: str) -> "DiceSpec":
        """Parse standard notation (``"1d6"``, ``"3d8+2"``, ``"1d4-1"``)."""
        match = _NOTATION.match(notation.lower().replace(" ", ""))
        if not match:
            raise ValueError(f"Invalid dice notation: {notation}")
        return cls(
            count=int(match.group(1)),
            faces=int(match.group(2)),
            modifier=int(match.group(3)) if match.group(3) else 0,
        )

    @classmethod
    def from_value(cls, value: Union[str, Mapping[str, Any], "DiceSpec"]) -> "DiceSpec":
        """Build a spec from notation, a mapping, or an existing spec.

        Mappings may name the die either as ``faces: 8`` or ``type: "d8"``.
        """
        if isinstance(value, DiceSpec):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        faces = value.get("faces")
        if faces is None:
            die_type = str(value.get("type", "d6"))
            faces = int(die_type.lower().lstrip("d"))
        return cls(
            count=int(value.get("count", 1)),
            faces=int(faces),
            modifier=int(value.get("modifier", 0)),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"count": self.count, "faces": self.faces, "modifier": self.modifier}

    def __str__(self) -> str:
        return f"{self.count}d{self.faces}{self.modifier:+d}"


UNARMED_DAMAGE = DiceSpec(count=1, faces=6, modifier=0)


@dataclass(frozen=True)
class DamageRoll:
    """Breakdown of a damage total so callers can narrate each term."""

    dice: int
    modifier: int
    attribute_bonus: int
    weapon_bonus: int

    @property
    def total(self) -> int:
        return self.dice + self.modifier + self.attribute_bonus + self.weapon_bonus


def roll_dice(count: int, faces: int, rng: Optional[RandomProvider] = None) -> int:
    """Sum ``count`` independent uniform draws over ``[1, faces]``."""
    if rng is None:
        rng = RandomProvider()
    total = 0
    for _ in range(count):
        total += rng.randint(1, faces)
    logger.debug("Rolled %dd%d => %d", count, faces, total)
    return total


def attribute_bonus(value: int) -> int:
    """Convert an attribute score to its bonus: <=9 -1, 10-11 0, 12-13 +1, >=14 +2."""
    if value <= 9:
        return -1
    if value <= 11:
        return 0
    if value <= 13:
        return 1
    return 2


def resolve_difficulty(difficulty: Union[str, Difficulty, None]) -> Optional[Difficulty]:
    """Map a tier name (case-insensitive) to a Difficulty, or None when unknown."""
    if isinstance(difficulty, Difficulty):
        return difficulty
    if not difficulty:
        return None
    for tier in Difficulty:
        if tier.value.lower() == str(difficulty).strip().lower():
            return tier
    return None


def monster_attack_bonus(
    base_attack: int,
    difficulty: Union[str, Difficulty, None],
    offsets: Optional[Mapping[Difficulty, int]] = None,
) -> int:
    """Add the difficulty tier's fixed offset to a monster's base attack.

    Unknown tiers leave the base attack unchanged.
    """
    table = DIFFICULTY_ATTACK_OFFSETS if offsets is None else offsets
    tier = resolve_difficulty(difficulty)
    if tier is None:
        logger.debug("Unknown difficulty %r; no attack offset applied", difficulty)
        return base_attack
    return base_attack + table.get(tier, 0)


def roll_damage(
    spec: DiceSpec,
    attribute_value: int,
    weapon_bonus: int = 0,
    rng: Optional[RandomProvider] = None,
) -> DamageRoll:
    """Roll a damage spec and collect every term of the total."""
    return DamageRoll(
        dice=roll_dice(spec.count, spec.faces, rng),
        modifier=spec.modifier,
        attribute_bonus=attribute_bonus(attribute_value),
        weapon_bonus=weapon_bonus,
    )


def total_damage(
    spec: DiceSpec,
    attribute_value: int,
    weapon_bonus: int = 0,
    rng: Optional[RandomProvider] = None,
) -> int:
    """Dice + modifier + attribute bonus + weapon bonus.

    The result is not clamped; a negative total simply deals no damage when
    applied to a health pool.
    """
    return roll_damage(spec, attribute_value, weapon_bonus, rng).total


__all__ = [
    "DamageRoll",
    "DIFFICULTY_ATTACK_OFFSETS",
    "DiceSpec",
    "Difficulty",
    "UNARMED_DAMAGE",
    "VALID_FACES",
    "attribute_bonus",
    "monster_attack_bonus",
    "resolve_difficulty",
    "roll_damage",
    "roll_dice",
    "total_damage",
]
