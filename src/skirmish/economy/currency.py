from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

CARRY_RATIO = 100


@dataclass(frozen=True)
class Currency:
    """Gold/silver/copper amounts. 100 copper = 1 silver, 100 silver = 1 gold."""

    gold: int = 0
    silver: int = 0
    copper: int = 0

    def __post_init__(self) -> None:
        if self.gold < 0 or self.silver < 0 or self.copper < 0:
            raise ValueError(f"Currency cannot be negative: {self}")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Currency":
        data = data or {}
        return cls(
            gold=int(data.get("gold", 0)),
            silver=int(data.get("silver", 0)),
            copper=int(data.get("copper", 0)),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"gold": self.gold, "silver": self.silver, "copper": self.copper}

    @property
    def is_zero(self) -> bool:
        return self.gold == 0 and self.silver == 0 and self.copper == 0

    @property
    def is_normalized(self) -> bool:
        return self.copper < CARRY_RATIO and self.silver < CARRY_RATIO

    def total_copper(self) -> int:
        return (self.gold * CARRY_RATIO + self.silver) * CARRY_RATIO + self.copper

    def __add__(self, other: "Currency") -> "Currency":
        if not isinstance(other, Currency):
            return NotImplemented
        return Currency(
            gold=self.gold + other.gold,
            silver=self.silver + other.silver,
            copper=self.copper + other.copper,
        )

    def __str__(self) -> str:
        return f"{self.gold} gold, {self.silver} silver, {self.copper} copper"


def normalize_currency(amount: Currency) -> Currency:
    """Carry copper into silver, then silver into gold, until both are below 100.

    The copper step always runs before the silver step so a copper carry that
    pushes silver over the limit is resolved in the same pass.
    """
    gold, silver, copper = amount.gold, amount.silver, amount.copper
    while copper >= CARRY_RATIO or silver >= CARRY_RATIO:
        if copper >= CARRY_RATIO:
            silver += copper // CARRY_RATIO
            copper %= CARRY_RATIO
        if silver >= CARRY_RATIO:
            gold += silver // CARRY_RATIO
            silver %= CARRY_RATIO
    return Currency(gold=gold, silver=silver, copper=copper)


class Purse:
    """The player's tri-denomination purse.

    Every mutation leaves the held amount normalized.
    """

    def __init__(self, amount: Optional[Currency] = None) -> None:
        self._amount = normalize_currency(amount or Currency())

    @property
    def amount(self) -> Currency:
        return self._amount

    def add(self, amount: Currency, reason: str = "adjust") -> Currency:
        """Add ``amount``, normalize, and return the new balance."""
        old = self._amount
        self._amount = normalize_currency(old + amount)
        logger.debug("Currency added: +(%s) (reason=%s); old=(%s) new=(%s)", amount, reason, old, self._amount)
        return self._amount
