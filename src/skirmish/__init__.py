"""
Skirmish: a turn-based combat engine.

The package provides headless combat logic for one player character against
one monster:
- Dice, attribute bonuses and difficulty-scaled monster attack
- Timed attack/defense buffs and ability cooldowns
- An initiative-driven turn state machine with a narrated combat log
- Loot and tri-denomination currency rewards with inventory capacity checks

Front ends compose CombatSession directly or go through EncounterService,
which adds catalog lookups, state persistence and per-session serialization.
"""
from .combat.session import CombatSession, StateDelta, StepResult
from .combat.state_machine import Outcome, Phase
from .exceptions import (
    CapacityExceeded,
    CatalogError,
    CollaboratorFailure,
    InvalidIntent,
    SessionBusy,
    SettingsError,
    SkirmishError,
)

__version__ = "0.1.0"

__all__ = [
    "CombatSession",
    "StateDelta",
    "StepResult",
    "Outcome",
    "Phase",
    "CapacityExceeded",
    "CatalogError",
    "CollaboratorFailure",
    "InvalidIntent",
    "SessionBusy",
    "SettingsError",
    "SkirmishError",
    "__version__",
]
