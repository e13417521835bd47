"""
Combat session facade.

A CombatSession owns everything scoped to one encounter: the turn state
machine, the buff ledger, the narrated log, the random source and the loot
resolver. Callers drive it with intents; every intent returns a StepResult
holding the log entries produced by that step plus a snapshot of the state
to persist. Nothing in here performs I/O.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

from skirmish.combat.buffs import Buff, BuffKind, BuffLedger
from skirmish.combat.log import CombatEvent, CombatLog
from skirmish.combat.models import Ability, CombatantState, LootTableEntry, MonsterDefinition
from skirmish.combat.state_machine import Outcome, Phase, TurnStateMachine
from skirmish.economy.currency import Currency, Purse
from skirmish.exceptions import InvalidIntent
from skirmish.loot.inventory import Inventory
from skirmish.loot.resolver import LootDrop, LootResolver, PendingRewards, SettlementResult
from skirmish.settings import Settings
from skirmish.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateDelta:
    """Snapshot of the persistable and presentable state after a step."""

    player_health: int
    player_max_health: int
    monster_health: int
    monster_max_health: int
    attack_bonus: int
    defense_bonus: int
    attack_buffs: Tuple[Buff, ...] = ()
    defense_buffs: Tuple[Buff, ...] = ()
    cooldowns: Dict[str, int] = field(default_factory=dict)
    inventory_added: Tuple[LootDrop, ...] = ()
    currency: Optional[Currency] = None


@dataclass(frozen=True)
class StepResult:
    intent: str
    accepted: bool
    events: Tuple[CombatEvent, ...]
    phase: Phase
    outcome: Optional[Outcome]
    delta: StateDelta
    pending_rewards: Optional[PendingRewards] = None
    settlement: Optional[SettlementResult] = None

    @property
    def messages(self) -> Tuple[str, ...]:
        return tuple(e.message for e in self.events)


class CombatSession:
    """Single-encounter combat session driven by player intents.

    Intents issued in the wrong phase are not errors: they come back as a
    StepResult with ``accepted=False`` and one info entry explaining why, and
    leave the session untouched otherwise.
    """

    def __init__(
        self,
        combatant: CombatantState,
        monster: MonsterDefinition,
        abilities: Iterable[Ability] = (),
        *,
        inventory: Optional[Inventory] = None,
        purse: Optional[Purse] = None,
        rng: Optional[RandomProvider] = None,
        seed: Optional[int] = None,
        settings: Optional[Settings] = None,
        monster_health: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.session_id = session_id
        self.rng = rng or RandomProvider(seed)
        self.log = CombatLog(capacity=self.settings.combat.log_capacity)
        self.ledger = BuffLedger()
        self.inventory = inventory or Inventory(max_size=self.settings.loot.default_max_inventory_size)
        self.purse = purse or Purse()
        self.loot_resolver = LootResolver(self.rng)
        self.machine = TurnStateMachine(
            combatant,
            monster,
            abilities,
            ledger=self.ledger,
            log=self.log,
            rng=self.rng,
            loot_resolver=self.loot_resolver,
            settings=self.settings.combat,
            monster_health=monster_health,
        )
        self.settlement: Optional[SettlementResult] = None
        logger.info(
            "Combat session %s created: %s vs %s (%d HP)",
            session_id or "<anonymous>",
            combatant.name,
            monster.name,
            self.machine.monster_health,
        )

    # --------------- Read-only views ---------------

    @property
    def combatant(self) -> CombatantState:
        return self.machine.combatant

    @property
    def monster(self) -> MonsterDefinition:
        return self.machine.monster

    @property
    def phase(self) -> Phase:
        return self.machine.phase

    @property
    def outcome(self) -> Optional[Outcome]:
        return self.machine.outcome

    @property
    def is_resolved(self) -> bool:
        return self.machine.is_resolved

    @property
    def rewards_pending(self) -> bool:
        return self.machine.pending_rewards is not None

    @property
    def ready_for_teardown(self) -> bool:
        return self.is_resolved and not self.rewards_pending

    @property
    def abilities(self) -> Dict[str, Ability]:
        return dict(self.machine.abilities)

    def loot_preview(self) -> Tuple[LootTableEntry, ...]:
        """The monster's loot table with drop chances, as shown before the fight."""
        return tuple(self.monster.loot_table)

    def events(self) -> Tuple[CombatEvent, ...]:
        return tuple(self.log.events())

    def snapshot(self) -> StateDelta:
        return self._delta()

    # --------------- Intents ---------------

    def roll_initiative(self) -> StepResult:
        return self._step("roll_initiative", self.machine.roll_initiative)

    def basic_attack(self) -> StepResult:
        return self._step("basic_attack", self.machine.basic_attack)

    def use_ability(self, ability_id: str) -> StepResult:
        return self._step("use_ability", lambda: self.machine.use_ability(ability_id))

    def advance(self) -> StepResult:
        """Run a monster turn the session is waiting on (manual pacing only)."""
        return self._step("advance", self.machine.monster_turn)

    def escape(self) -> StepResult:
        return self._step("escape", self.machine.escape)

    def settle_rewards(self, selected_item_ids: Sequence[str] = (), accept_currency: bool = True) -> StepResult:
        return self._step("settle_rewards", lambda: self._settle(selected_item_ids, accept_currency))

    def sync_health(self, current_health: int, max_health: Optional[int] = None) -> StepResult:
        return self._step("sync_health", lambda: self.machine.apply_health_update(current_health, max_health))

    def dispatch(self, intent: str, **kwargs: Any) -> StepResult:
        handler = self._intents().get(intent)
        if handler is None:
            return self._reject(intent, InvalidIntent(f"Unknown intent '{intent}'"))
        return handler(**kwargs)

    # --------------- Checkpoints ---------------

    def checkpoint(self) -> Dict[str, Any]:
        """Deep copy of the whole session, for rolling back a failed step."""
        return copy.deepcopy(self.__dict__)

    def restore(self, checkpoint: Dict[str, Any]) -> None:
        self.__dict__.update(copy.deepcopy(checkpoint))
        logger.info("Combat session %s restored to checkpoint", self.session_id or "<anonymous>")

    # --------------- Internals ---------------

    def _intents(self) -> Dict[str, Callable[..., StepResult]]:
        return {
            "roll_initiative": self.roll_initiative,
            "basic_attack": self.basic_attack,
            "use_ability": self.use_ability,
            "advance": self.advance,
            "escape": self.escape,
            "settle_rewards": self.settle_rewards,
            "sync_health": self.sync_health,
        }

    def _settle(self, selected_item_ids: Sequence[str], accept_currency: bool) -> None:
        if self.outcome is not Outcome.VICTORY:
            raise InvalidIntent("Rewards can only be settled after a victory")
        pending = self.machine.take_pending_rewards()
        result = self.loot_resolver.settle(pending, selected_item_ids, accept_currency, self.inventory, self.purse)
        for drop in result.granted_items:
            self.log.info(f"Received {drop.item_id} x{drop.quantity}")
        if result.capacity_exceeded:
            self.log.info(
                f"Not enough inventory space ({self.inventory.size}/{self.inventory.max_size}); selected items were left behind"
            )
        if not result.currency_added.is_zero:
            self.log.info(f"Received {result.currency_added}. Purse now holds {result.currency}.")
        self.settlement = result
        logger.info(
            "Rewards settled: %d stack(s) granted, currency=(%s), capacity_exceeded=%s",
            len(result.granted_items),
            result.currency_added,
            result.capacity_exceeded,
        )

    def _step(self, intent: str, action: Callable[[], None]) -> StepResult:
        settled_before = self.settlement
        try:
            action()
        except InvalidIntent as exc:
            return self._reject(intent, exc)
        settlement = self.settlement if self.settlement is not settled_before else None
        return self._result(intent, True, settlement)

    def _reject(self, intent: str, exc: InvalidIntent) -> StepResult:
        logger.warning("Rejected intent %s in phase %s: %s", intent, self.phase.value, exc)
        self.log.info(f"Ignored {intent}: {exc}")
        return self._result(intent, False, None)

    def _result(self, intent: str, accepted: bool, settlement: Optional[SettlementResult]) -> StepResult:
        return StepResult(
            intent=intent,
            accepted=accepted,
            events=tuple(self.log.drain()),
            phase=self.phase,
            outcome=self.outcome,
            delta=self._delta(settlement),
            pending_rewards=self.machine.pending_rewards,
            settlement=settlement,
        )

    def _delta(self, settlement: Optional[SettlementResult] = None) -> StateDelta:
        combatant = self.combatant
        return StateDelta(
            player_health=combatant.current_health,
            player_max_health=combatant.max_health,
            monster_health=self.machine.monster_health,
            monster_max_health=self.machine.monster_max_health,
            attack_bonus=self.ledger.total_bonus(BuffKind.ATTACK),
            defense_bonus=self.ledger.total_bonus(BuffKind.DEFENSE),
            attack_buffs=tuple(self.ledger.attack_buffs),
            defense_buffs=tuple(self.ledger.defense_buffs),
            cooldowns=self.ledger.cooldowns(),
            inventory_added=settlement.granted_items if settlement else (),
            currency=settlement.currency if settlement else None,
        )
