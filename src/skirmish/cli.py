from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .combat.models import AbilityType
from .combat.session import CombatSession, StepResult
from .combat.state_machine import Phase
from .exceptions import SkirmishError
from .services.catalog import InMemoryCatalog, load_catalog
from .services.encounter import EncounterService
from .services.store import CharacterState, InMemoryStateStore
from .settings import Settings
from .utils.logging import configure_logging

logger = logging.getLogger(__name__)

MAX_STEPS = 1000


def _level_for(verbosity: int, configured: str) -> int:
    if verbosity == 1:
        return logging.INFO
    if verbosity >= 2:
        return logging.DEBUG
    return getattr(logging, configured.upper(), logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skirmish", description="Skirmish turn-based combat engine")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Run one encounter to completion and print a JSON summary")
    sim.add_argument("--catalog", required=True, help="Catalog file (YAML or JSON)")
    sim.add_argument("--character", required=True, help="Character id from the catalog")
    sim.add_argument("--monster", required=True, help="Monster id from the catalog")
    sim.add_argument("--seed", type=int, default=None, help="Seed for a reproducible encounter")
    sim.add_argument("--use-abilities", action="store_true", help="Use ready abilities before basic attacks")
    sim.add_argument("--take-all", action="store_true", help="Select every dropped item when settling loot")
    sim.add_argument("--settings", default=None, help="YAML settings overriding the defaults")
    sim.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    return parser


def seed_store(catalog: InMemoryCatalog, store: InMemoryStateStore, settings: Settings) -> None:
    for character in catalog.characters():
        if character.initial_state is None:
            continue
        store.seed(
            character.id,
            CharacterState.from_dict(character.initial_state, settings.loot.default_max_inventory_size),
        )


def choose_intent(session: CombatSession, use_abilities: bool) -> Dict[str, Any]:
    """Pick the simulator's next move: a ready ability when allowed, otherwise a basic attack."""
    if session.phase is Phase.MONSTER_TURN:
        return {"intent": "advance"}
    if use_abilities:
        combatant = session.combatant
        cooldowns = session.snapshot().cooldowns
        for ability in session.abilities.values():
            if cooldowns.get(ability.id, 0) > 0:
                continue
            if ability.type is AbilityType.OFFENSE and ability.damage is None:
                continue
            if ability.type is AbilityType.RESTORE and combatant.current_health * 2 > combatant.max_health:
                continue
            return {"intent": "use_ability", "ability_id": ability.id}
    return {"intent": "basic_attack"}


def simulate(args: argparse.Namespace) -> Dict[str, Any]:
    settings = Settings.load(Path(args.settings) if args.settings else None)
    configure_logging(_level_for(args.verbose, settings.logging.level))

    catalog = load_catalog(args.catalog)
    store = InMemoryStateStore()
    seed_store(catalog, store, settings)
    service = EncounterService(catalog, store, bus=store.bus, settings=settings)

    session_id = service.start_encounter(args.character, args.monster, seed=args.seed)
    session = service.session(session_id)
    messages: List[str] = []

    def run(intent: str, **kwargs: Any) -> StepResult:
        result = service.dispatch(session_id, intent, **kwargs)
        messages.extend(result.messages)
        return result

    run("roll_initiative")
    steps = 0
    while not session.is_resolved and steps < MAX_STEPS:
        move = choose_intent(session, args.use_abilities)
        run(move.pop("intent"), **move)
        steps += 1
    if not session.is_resolved:
        logger.warning("Encounter did not resolve within %d steps; escaping", MAX_STEPS)

    if session.rewards_pending:
        pending = session.machine.pending_rewards
        selected = [d.item_id for d in pending.items] if args.take_all and pending else []
        run("settle_rewards", selected_item_ids=selected, accept_currency=True)

    session = service.end_encounter(session_id)
    messages.extend(e.message for e in session.log.drain())
    final = store.read(args.character)
    return {
        "outcome": session.outcome.value if session.outcome else None,
        "rounds": session.machine.round_number,
        "log": messages,
        "player_health": final.current_health,
        "max_health": final.max_health,
        "monster_health": session.machine.monster_health,
        "inventory": final.inventory,
        "currency": final.currency.to_dict(),
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        summary = simulate(args)
    except (SkirmishError, FileNotFoundError) as exc:
        detail = exc.to_human() if hasattr(exc, "to_human") else str(exc)
        print(f"error: {detail}", file=sys.stderr)
        return 1
    # Print JSON summary so it can be diffed across runs
    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
