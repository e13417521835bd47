from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class BuffKind(str, Enum):
    ATTACK = "attack"
    DEFENSE = "defense"


@dataclass
class Buff:
    kind: BuffKind
    source_ability_id: str
    magnitude: int
    remaining_rounds: int
    seq: int = field(default=0, compare=False)


@dataclass(frozen=True)
class BuffExpiry:
    """Emitted once for every buff that runs out during a round tick."""

    kind: BuffKind
    source_ability_id: str
    magnitude: int


class BuffLedger:
    """Timed attack/defense modifiers and ability cooldowns for one session.

    - Buffs are kept in insertion order per kind; expiries are reported in the
      order the buffs were added, across both kinds.
    - tick_round() is called once per completed round, never mid-round.
    - Cooldown entries stay in the mapping at 0 (usable) instead of being removed.
    """

    def __init__(self) -> None:
        self._buffs: Dict[BuffKind, List[Buff]] = {BuffKind.ATTACK: [], BuffKind.DEFENSE: []}
        self._cooldowns: Dict[str, int] = {}
        self._seq = 0

    # --------------- Buffs ---------------

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def add_buff(
        self,
        kind: BuffKind,
        magnitude: int,
        duration_rounds: int,
        source_ability_id: str,
    ) -> Optional[Buff]:
        """Append a buff. A non-positive duration is a no-op and returns None."""
        if duration_rounds <= 0:
            logger.debug(
                "Ignoring %s buff from %s with non-positive duration %d",
                kind.value,
                source_ability_id,
                duration_rounds,
            )
            return None
        buff = Buff(
            kind=kind,
            source_ability_id=source_ability_id,
            magnitude=int(magnitude),
            remaining_rounds=int(duration_rounds),
            seq=self._next_seq(),
        )
        self._buffs[kind].append(buff)
        logger.debug("Added %s buff %+d for %d rounds (source=%s)", kind.value, buff.magnitude, duration_rounds, source_ability_id)
        return replace(buff)

    def total_bonus(self, kind: BuffKind) -> int:
        return sum(b.magnitude for b in self._buffs[kind])

    def active(self, kind: BuffKind) -> List[Buff]:
        return [replace(b) for b in self._buffs[kind]]

    @property
    def attack_buffs(self) -> List[Buff]:
        return self.active(BuffKind.ATTACK)

    @property
    def defense_buffs(self) -> List[Buff]:
        return self.active(BuffKind.DEFENSE)

    def tick_round(self) -> List[BuffExpiry]:
        """Advance every buff and cooldown by one round.

        Returns one BuffExpiry per buff removed in this tick.
        """
        expired: List[Buff] = []
        for kind, buffs in self._buffs.items():
            kept: List[Buff] = []
            for b in buffs:
                b.remaining_rounds -= 1
                if b.remaining_rounds > 0:
                    kept.append(b)
                else:
                    expired.append(b)
            self._buffs[kind] = kept

        for ability_id, rounds in self._cooldowns.items():
            if rounds > 0:
                self._cooldowns[ability_id] = rounds - 1

        expired.sort(key=lambda b: b.seq)
        if expired:
            logger.debug("Round tick expired %d buff(s)", len(expired))
        return [BuffExpiry(kind=b.kind, source_ability_id=b.source_ability_id, magnitude=b.magnitude) for b in expired]

    # --------------- Cooldowns ---------------

    def register_ability(self, ability_id: str) -> None:
        """Track an ability with cooldown 0 so it shows up in cooldown snapshots."""
        self._cooldowns.setdefault(ability_id, 0)

    def set_cooldown(self, ability_id: str, rounds: int) -> None:
        # Overwrites; cooldowns never stack
        self._cooldowns[ability_id] = max(0, int(rounds))
        logger.debug("Cooldown for %s set to %d", ability_id, self._cooldowns[ability_id])

    def cooldown(self, ability_id: str) -> int:
        return self._cooldowns.get(ability_id, 0)

    def is_ready(self, ability_id: str) -> bool:
        return self.cooldown(ability_id) == 0

    def cooldowns(self) -> Dict[str, int]:
        return dict(self._cooldowns)

    def clear(self) -> None:
        for buffs in self._buffs.values():
            buffs.clear()
        self._cooldowns.clear()
