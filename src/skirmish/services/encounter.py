"""
Encounter service: the collaborator layer around combat sessions.

It pre-fetches catalog and state records to build a CombatSession, serializes
intents per session, persists the deltas each step produces and forwards
external state pushes from the store. Failures of the catalog or the store are
surfaced as CollaboratorFailure after the session has been rolled back to the
state it had before the failing step.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from skirmish.combat.models import CombatantState, EquipmentBonuses, Weapon
from skirmish.combat.session import CombatSession, StepResult
from skirmish.economy.currency import Purse
from skirmish.events import CharacterStateChanged, EncounterStepApplied, EventBus
from skirmish.exceptions import CollaboratorFailure, InvalidIntent, SessionBusy
from skirmish.loot.inventory import Inventory
from skirmish.services.catalog import CatalogProvider, ItemRecord, abilities_for
from skirmish.services.store import StateStore
from skirmish.settings import Settings
from skirmish.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)

WEAPON_SLOT = "weapon"


@dataclass
class _Encounter:
    session_id: str
    character_id: str
    session: CombatSession
    lock: threading.Lock = field(default_factory=threading.Lock)
    pending_health: Optional[Tuple[int, int]] = None


def equipment_bonuses(items: Dict[str, ItemRecord]) -> EquipmentBonuses:
    """Sum attack/defense over every equipped item; the weapon slot also supplies damage."""
    weapon = None
    rec = items.get(WEAPON_SLOT)
    if rec is not None and rec.damage is not None:
        weapon = Weapon(item_id=rec.id, name=rec.name, damage=rec.damage, attack_bonus=rec.attack)
    return EquipmentBonuses(
        attack=sum(i.attack for i in items.values()),
        defense=sum(i.defense for i in items.values()),
        weapon=weapon,
    )


class EncounterService:
    def __init__(
        self,
        catalog: CatalogProvider,
        store: StateStore,
        *,
        bus: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.settings = settings or Settings()
        self.bus = bus or getattr(store, "bus", None) or EventBus()
        self._lock = threading.RLock()
        self._encounters: Dict[str, _Encounter] = {}
        self.bus.subscribe(CharacterStateChanged, self._on_state_changed)

    # --------------- Lifecycle ---------------

    def start_encounter(
        self,
        character_id: str,
        monster_id: str,
        *,
        seed: Optional[int] = None,
        monster_health: Optional[int] = None,
    ) -> str:
        try:
            character = self.catalog.get_character(character_id)
            abilities = abilities_for(self.catalog, character)
            monster = self.catalog.get_monster(monster_id)
            state = self.store.read(character_id)
            equipped = {slot: self.catalog.get_item(item_id) for slot, item_id in state.equipped_items.items()}
        except Exception as exc:
            logger.error("Could not prepare encounter %s vs %s: %s", character_id, monster_id, exc)
            raise CollaboratorFailure(f"Could not prepare encounter for '{character_id}': {exc}") from exc

        combatant = CombatantState(
            name=character.name,
            attributes=dict(character.attributes),
            current_health=state.current_health,
            max_health=state.max_health,
            base_attack=state.base_attack,
            base_defense=state.base_defense,
            equipment=equipment_bonuses(equipped),
        )
        session_id = uuid.uuid4().hex
        session = CombatSession(
            combatant,
            monster,
            abilities,
            inventory=Inventory(state.inventory, max_size=state.max_inventory_size),
            purse=Purse(state.currency),
            rng=RandomProvider(seed),
            settings=self.settings,
            monster_health=monster_health,
            session_id=session_id,
        )
        with self._lock:
            self._encounters[session_id] = _Encounter(session_id, character_id, session)
        logger.info("Encounter %s started: %s vs %s", session_id, character_id, monster_id)
        return session_id

    def session(self, session_id: str) -> CombatSession:
        return self._get(session_id).session

    def active_sessions(self) -> List[str]:
        with self._lock:
            return list(self._encounters)

    def end_encounter(self, session_id: str) -> CombatSession:
        """Tear a session down. A session that is still live is escaped first."""
        enc = self._get(session_id)
        if not enc.session.is_resolved:
            self.dispatch(session_id, "escape")
        with self._lock:
            self._encounters.pop(session_id, None)
        logger.info(
            "Encounter %s torn down (outcome=%s)",
            session_id,
            enc.session.outcome.value if enc.session.outcome else None,
        )
        return enc.session

    # --------------- Intents ---------------

    def dispatch(self, session_id: str, intent: str, **kwargs: Any) -> StepResult:
        """Run one intent against a session and persist what it changed.

        Raises:
            SessionBusy: another intent for this session is still in flight.
            CollaboratorFailure: persisting the step failed; the session was rolled back.
        """
        enc = self._get(session_id)
        if not enc.lock.acquire(blocking=False):
            raise SessionBusy(f"Session {session_id} is still processing a previous intent")
        try:
            result = self._run(enc, intent, **kwargs)
        finally:
            enc.lock.release()
        self._drain_pending_health(enc)
        return result

    def _run(self, enc: _Encounter, intent: str, **kwargs: Any) -> StepResult:
        checkpoint = enc.session.checkpoint()
        result = enc.session.dispatch(intent, **kwargs)
        if result.accepted:
            try:
                self._persist(enc, result)
            except Exception as exc:
                enc.session.restore(checkpoint)
                logger.error("Persisting %s for session %s failed: %s", intent, enc.session_id, exc)
                raise CollaboratorFailure(f"Could not persist {intent} for session {enc.session_id}: {exc}") from exc
        self.bus.emit(EncounterStepApplied(session_id=enc.session_id, character_id=enc.character_id, result=result))
        return result

    def _persist(self, enc: _Encounter, result: StepResult) -> None:
        changes: Dict[str, Any] = {}
        # A push that landed mid-step is newer than the session's health.
        if enc.pending_health is None:
            changes["current_health"] = result.delta.player_health
        if result.settlement is not None:
            changes["inventory"] = list(result.settlement.inventory)
            changes["currency"] = result.settlement.currency
        if changes:
            self.store.write(enc.character_id, **changes)

    # --------------- External pushes ---------------

    def _on_state_changed(self, event: CharacterStateChanged) -> None:
        if not event.external or event.current_health is None:
            return
        for enc in self._encounters_for(event.character_id):
            enc.pending_health = (event.current_health, event.max_health or event.current_health)
            self._drain_pending_health(enc)

    def _drain_pending_health(self, enc: _Encounter) -> None:
        """Apply deferred pushes until none is left or another caller holds the session.

        Whoever holds the lock drains again after releasing it, so a push that
        lands between a step and its release is not stranded.
        """
        while enc.pending_health is not None:
            if not enc.lock.acquire(blocking=False):
                logger.debug("Session %s busy; deferring external health update", enc.session_id)
                return
            try:
                self._apply_pending_health(enc)
            finally:
                enc.lock.release()

    def _apply_pending_health(self, enc: _Encounter) -> None:
        if enc.pending_health is None:
            return
        current, maximum = enc.pending_health
        enc.pending_health = None
        if enc.session.is_resolved:
            logger.info("Ignoring external health update for resolved session %s", enc.session_id)
            return
        self._run(enc, "sync_health", current_health=current, max_health=maximum)

    # --------------- Internals ---------------

    def _get(self, session_id: str) -> _Encounter:
        with self._lock:
            enc = self._encounters.get(session_id)
        if enc is None:
            raise InvalidIntent(f"Unknown session '{session_id}'")
        return enc

    def _encounters_for(self, character_id: str) -> List[_Encounter]:
        with self._lock:
            return [e for e in self._encounters.values() if e.character_id == character_id]
