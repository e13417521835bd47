from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, Optional

from skirmish.combat.buffs import BuffKind, BuffLedger
from skirmish.combat.dice import (
    UNARMED_DAMAGE,
    DamageRoll,
    attribute_bonus,
    monster_attack_bonus,
    roll_damage,
    roll_dice,
)
from skirmish.combat.log import CombatLog
from skirmish.combat.models import Ability, AbilityType, CombatantState, MonsterDefinition
from skirmish.exceptions import InvalidIntent
from skirmish.loot.resolver import LootResolver, PendingRewards
from skirmish.settings import CombatSettings
from skirmish.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    AWAITING_INITIATIVE = "AwaitingInitiative"
    PLAYER_TURN = "PlayerTurn"
    MONSTER_TURN = "MonsterTurn"
    RESOLVED = "Resolved"


class Outcome(str, Enum):
    VICTORY = "Victory"
    DEFEAT = "Defeat"
    ESCAPED = "Escaped"


class TurnStateMachine:
    """Initiative, alternating player/monster turns, and combat resolution.

    Transitions:
        AwaitingInitiative --roll_initiative--> PlayerTurn | MonsterTurn
        PlayerTurn --basic_attack/use_ability--> MonsterTurn | Resolved(Victory)
        MonsterTurn --monster_turn--> PlayerTurn | Resolved(Defeat)
        any non-resolved --escape--> Resolved(Escaped)

    With ``auto_advance_monster_turn`` the monster turn runs as the tail of
    whichever step handed control to the monster; otherwise the machine rests
    in MonsterTurn until monster_turn() is called. Every intent issued in the
    wrong phase raises InvalidIntent before touching any state.

    All comparisons favour the attacker on equality and all arithmetic is
    integer-only.
    """

    def __init__(
        self,
        combatant: CombatantState,
        monster: MonsterDefinition,
        abilities: Iterable[Ability] = (),
        *,
        ledger: Optional[BuffLedger] = None,
        log: Optional[CombatLog] = None,
        rng: Optional[RandomProvider] = None,
        loot_resolver: Optional[LootResolver] = None,
        settings: Optional[CombatSettings] = None,
        monster_health: Optional[int] = None,
    ) -> None:
        self.combatant = combatant
        self.monster = monster
        self.settings = settings if settings is not None else CombatSettings()
        self.rng = rng if rng is not None else RandomProvider()
        self.ledger = ledger if ledger is not None else BuffLedger()
        self.log = log if log is not None else CombatLog(capacity=self.settings.log_capacity)
        self.loot_resolver = loot_resolver if loot_resolver is not None else LootResolver(self.rng)
        self.abilities: Dict[str, Ability] = {}
        for ability in abilities:
            self.abilities[ability.id] = ability
            self.ledger.register_ability(ability.id)

        self.phase = Phase.AWAITING_INITIATIVE
        self.outcome: Optional[Outcome] = None
        self.round_number = 0
        self.pending_rewards: Optional[PendingRewards] = None
        self._offsets = self.settings.offset_table()

        if monster_health is None:
            monster_health = self._roll_monster_health()
        self.monster_max_health = max(1, int(monster_health))
        self.monster_health = self.monster_max_health

    # --------------- Derived values ---------------

    @property
    def effective_attack(self) -> int:
        return self.combatant.static_attack + self.ledger.total_bonus(BuffKind.ATTACK)

    @property
    def effective_defense(self) -> int:
        return self.combatant.static_defense + self.ledger.total_bonus(BuffKind.DEFENSE)

    @property
    def monster_attack_bonus(self) -> int:
        return monster_attack_bonus(self.monster.attack, self.monster.difficulty, self._offsets)

    @property
    def is_resolved(self) -> bool:
        return self.phase is Phase.RESOLVED

    # --------------- Intents ---------------

    def roll_initiative(self) -> None:
        self._require(Phase.AWAITING_INITIATIVE, "Rolling initiative")
        name, foe = self.combatant.name, self.monster.name
        faces = self.settings.initiative_die_faces
        dex_bonus = attribute_bonus(self.combatant.attribute(self.settings.initiative_attribute))
        player_roll = roll_dice(1, faces, self.rng) + dex_bonus
        monster_roll = roll_dice(1, faces, self.rng)
        self.log.info(f"{name} initiative: {player_roll}", actor=name, value=player_roll)
        self.log.info(f"{foe} initiative: {monster_roll}", actor=foe, value=monster_roll)

        self._set_round(1)
        if player_roll >= monster_roll:
            self.log.info(f"{name} takes the first turn!")
            self.phase = Phase.PLAYER_TURN
        else:
            self.log.info(f"{foe} takes the first turn!")
            self._hand_to_monster()

    def basic_attack(self) -> None:
        self._require(Phase.PLAYER_TURN, "Attacking")
        name = self.combatant.name
        faces = self.settings.attack_die_faces
        bonus = self.effective_attack
        roll = roll_dice(1, faces, self.rng)
        total = roll + bonus
        self.log.info(f"{name} attacks!", actor=name)
        self.log.info(f"Attack roll: {roll} + {bonus} = {total} against defense {self.monster.defense}", actor=name, value=total)

        if total >= self.monster.defense:
            weapon = self.combatant.equipment.weapon
            spec = weapon.damage if weapon else UNARMED_DAMAGE
            source = weapon.name if weapon else "Unarmed"
            attr = self.settings.melee_attribute
            dmg = roll_damage(spec, self.combatant.attribute(attr), weapon.attack_bonus if weapon else 0, self.rng)
            self.log.damage(f"{source} damage: {self._describe(spec, dmg, attr)}", actor=name, value=dmg.total)
            self._damage_monster(dmg.total)
        else:
            self.log.info("The attack missed!", actor=name)

        if not self.is_resolved:
            self._hand_to_monster()

    def use_ability(self, ability_id: str) -> None:
        self._require(Phase.PLAYER_TURN, "Using an ability")
        ability = self.abilities.get(ability_id)
        if ability is None:
            raise InvalidIntent(f"Unknown ability '{ability_id}'")
        remaining = self.ledger.cooldown(ability.id)
        if remaining > 0:
            raise InvalidIntent(f"{ability.name} is cooling down ({remaining} round(s) left)")
        if ability.type is AbilityType.OFFENSE and ability.damage is None:
            raise InvalidIntent(f"{ability.name} has no damage to deal")

        name = self.combatant.name
        self.log.info(f"{name} uses {ability.name}!", actor=name)
        self.ledger.set_cooldown(ability.id, ability.cooldown)

        if ability.type is AbilityType.DEFENSE:
            if self.ledger.add_buff(BuffKind.DEFENSE, ability.defense_amount, ability.duration, ability.id):
                self.log.info(f"Defense {ability.defense_amount:+d} for {ability.duration} round(s)", actor=name)
        elif ability.type is AbilityType.BOOST:
            if self.ledger.add_buff(BuffKind.ATTACK, ability.attack_amount, ability.duration, ability.id):
                self.log.info(f"Attack {ability.attack_amount:+d} for {ability.duration} round(s)", actor=name)
        elif ability.type is AbilityType.RESTORE:
            healed = self.combatant.heal(ability.restore_amount)
            self.log.heal(
                f"{name} recovers {healed} health ({self.combatant.current_health}/{self.combatant.max_health})",
                actor=name,
                value=healed,
            )
        else:
            weapon = self.combatant.equipment.weapon
            attr = ability.main_attribute
            dmg = roll_damage(
                ability.damage,  # type: ignore[arg-type]
                self.combatant.attribute(attr),
                weapon.attack_bonus if weapon else 0,
                self.rng,
            )
            self.log.damage(f"{ability.name} damage: {self._describe(ability.damage, dmg, attr)}", actor=name, value=dmg.total)
            self._damage_monster(dmg.total)

        if not self.is_resolved:
            self._hand_to_monster()

    def monster_turn(self) -> None:
        self._require(Phase.MONSTER_TURN, "The monster's turn")
        foe, name = self.monster.name, self.combatant.name
        bonus = self.monster_attack_bonus
        defense = self.effective_defense
        roll = roll_dice(1, self.settings.attack_die_faces, self.rng)
        total = roll + bonus
        self.log.info(f"{foe} attacks!", actor=foe)
        self.log.info(f"Attack roll: {roll} + {bonus} = {total} against defense {defense}", actor=foe, value=total)

        if total >= defense:
            attr = self.settings.defending_attribute
            dmg = roll_damage(self.monster.damage, self.combatant.attribute(attr), 0, self.rng)
            applied = self.combatant.take_damage(dmg.total)
            self.log.damage(
                f"Hit! {name} takes {applied} damage ({self.combatant.current_health}/{self.combatant.max_health} HP left)",
                actor=foe,
                value=applied,
            )
            if not self.combatant.alive:
                self.log.info(f"{name} has been defeated!")
                self._resolve(Outcome.DEFEAT)
                return
        else:
            self.log.info("The attack missed!", actor=foe)

        self._complete_round()

    def escape(self) -> None:
        if self.is_resolved:
            raise InvalidIntent("Escaping is not allowed once combat is resolved")
        self.log.info(f"{self.combatant.name} escapes from {self.monster.name}.")
        self._resolve(Outcome.ESCAPED)

    def apply_health_update(self, current_health: int, max_health: Optional[int] = None) -> None:
        """Adopt a health value pushed by the persistence layer mid-session."""
        if self.is_resolved:
            raise InvalidIntent("Health updates are not accepted once combat is resolved")
        if max_health is not None:
            self.combatant.max_health = max(0, int(max_health))
        self.combatant.current_health = max(0, min(int(current_health), self.combatant.max_health))
        self.log.info(
            f"{self.combatant.name}'s health is now {self.combatant.current_health}/{self.combatant.max_health}"
        )
        if not self.combatant.alive:
            self.log.info(f"{self.combatant.name} has been defeated!")
            self._resolve(Outcome.DEFEAT)

    def take_pending_rewards(self) -> PendingRewards:
        if self.pending_rewards is None:
            raise InvalidIntent("There are no rewards waiting to be settled")
        pending, self.pending_rewards = self.pending_rewards, None
        return pending

    # --------------- Internal helpers ---------------

    def _require(self, phase: Phase, what: str) -> None:
        if self.phase is not phase:
            raise InvalidIntent(f"{what} is not allowed during {self._phase_label()}")

    def _phase_label(self) -> str:
        if self.outcome is not None:
            return f"{self.phase.value}({self.outcome.value})"
        return self.phase.value

    def _set_round(self, number: int) -> None:
        self.round_number = number
        self.log.round_index = number

    def _hand_to_monster(self) -> None:
        self.phase = Phase.MONSTER_TURN
        logger.debug("Round %d: control passes to %s", self.round_number, self.monster.name)
        if self.settings.auto_advance_monster_turn:
            self.monster_turn()

    def _complete_round(self) -> None:
        for expiry in self.ledger.tick_round():
            self.log.info(f"{expiry.kind.value.capitalize()} buff expired: {expiry.magnitude:+d} {expiry.kind.value}")
        self.log.info(f"Buffs updated: attack {self.effective_attack}, defense {self.effective_defense}")
        self._set_round(self.round_number + 1)
        self.phase = Phase.PLAYER_TURN

    def _damage_monster(self, amount: int) -> None:
        applied = min(self.monster_health, max(0, amount))
        self.monster_health -= applied
        self.log.damage(
            f"Hit! {self.monster.name} takes {applied} damage ({self.monster_health}/{self.monster_max_health} HP left)",
            actor=self.combatant.name,
            value=applied,
        )
        if self.monster_health == 0:
            self._defeat_monster()

    def _defeat_monster(self) -> None:
        self.log.info(f"{self.monster.name} is defeated!")
        self._resolve(Outcome.VICTORY)
        rewards = self.loot_resolver.roll_rewards(self.monster)
        if rewards.is_empty:
            self.log.info("No loot dropped.")
            return
        for drop in rewards.items:
            self.log.info(f"Loot dropped: {drop.item_id} x{drop.quantity}")
        if not rewards.currency.is_zero:
            self.log.info(f"{self.monster.name} dropped {rewards.currency}.")
        self.pending_rewards = rewards

    def _resolve(self, outcome: Outcome) -> None:
        self.phase = Phase.RESOLVED
        self.outcome = outcome
        logger.info(
            "Combat %s vs %s resolved: %s after %d round(s)",
            self.combatant.name,
            self.monster.name,
            outcome.value,
            self.round_number,
        )

    def _roll_monster_health(self) -> int:
        spec = self.monster.health
        total = 0
        for i in range(spec.count):
            die = roll_dice(1, spec.faces, self.rng)
            self.log.info(f"HP roll {i + 1}: {die}")
            total += die
        total += spec.modifier
        self.log.info(f"{self.monster.name} total HP: {max(1, total)}", value=max(1, total))
        return total

    @staticmethod
    def _describe(spec, dmg: DamageRoll, attribute: str) -> str:
        return (
            f"{spec} rolled {dmg.dice} {dmg.modifier:+d}, {attribute} bonus {dmg.attribute_bonus:+d}, "
            f"weapon bonus {dmg.weapon_bonus:+d} = {dmg.total}"
        )
