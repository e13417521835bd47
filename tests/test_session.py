import pytest

from skirmish.combat.dice import DiceSpec
from skirmish.combat.log import LogKind
from skirmish.combat.models import Ability, AbilityType, CurrencyRange, DenominationRange, LootTableEntry
from skirmish.combat.session import CombatSession
from skirmish.combat.state_machine import Outcome, Phase
from skirmish.economy.currency import Currency, Purse
from skirmish.loot.inventory import Inventory
from skirmish.loot.resolver import LootDrop
from skirmish.settings import CombatSettings, Settings
from skirmish.utils.random_provider import RandomProvider

MANUAL = Settings(combat=CombatSettings(auto_advance_monster_turn=False))
SHIELD_WALL = Ability("shield_wall", "Shield Wall", AbilityType.DEFENSE, cooldown=3, defense_amount=3, duration=2)


def rich_goblin(goblin, *entries):
    return goblin(
        loot_table=tuple(LootTableEntry(item_id, 100) for item_id in entries),
        currency=CurrencyRange(silver=DenominationRange(99, 99), copper=DenominationRange(150, 150)),
    )


def test_rejected_intent_is_a_logged_no_op(hero, goblin, scripted):
    s = CombatSession(hero(), goblin(), rng=scripted(), settings=MANUAL, monster_health=20)
    result = s.basic_attack()
    assert not result.accepted
    assert len(result.events) == 1
    assert result.events[0].kind is LogKind.INFO
    assert result.messages[0].startswith("Ignored basic_attack:")
    assert result.phase is Phase.AWAITING_INITIATIVE
    assert result.delta.monster_health == 20


def test_machine_writes_to_the_session_log(hero, goblin, scripted):
    s = CombatSession(hero(), goblin(), rng=scripted(ints=[6, 1]), settings=MANUAL, monster_health=20)
    assert s.machine.log is s.log
    assert s.machine.ledger is s.ledger
    result = s.roll_initiative()
    assert result.events
    assert "Aria takes the first turn!" in result.messages


def test_each_step_returns_only_its_own_entries(hero, goblin, scripted):
    s = CombatSession(hero(), goblin(), rng=scripted(ints=[3, 4, 6, 1]), settings=MANUAL)
    first = s.roll_initiative()
    assert first.messages[:3] == ("HP roll 1: 3", "HP roll 2: 4", "Goblin total HP: 7")
    assert first.messages[-1] == "Aria takes the first turn!"

    second = s.escape()
    assert second.messages == ("Aria escapes from Goblin.",)
    assert second.outcome is Outcome.ESCAPED
    assert len(s.events()) == len(first.events) + len(second.events)


def test_settlement_grants_items_and_normalized_currency(hero, goblin, scripted):
    s = CombatSession(
        hero(),
        rich_goblin(goblin, "goblin_ear"),
        inventory=Inventory(["ration"], max_size=20),
        rng=scripted(ints=[6, 1, 6, 3, 99, 150], floats=[0.2]),
        settings=MANUAL,
        monster_health=4,
    )
    s.roll_initiative()
    won = s.basic_attack()
    assert won.outcome is Outcome.VICTORY
    assert won.pending_rewards.items == (LootDrop("goblin_ear", 1),)
    assert s.rewards_pending
    assert not s.ready_for_teardown

    settled = s.settle_rewards(["goblin_ear"], accept_currency=True)
    assert settled.accepted
    assert settled.delta.inventory_added == (LootDrop("goblin_ear", 1),)
    assert settled.delta.currency == Currency(1, 0, 50)
    assert s.inventory.items() == ["ration", "goblin_ear"]
    assert settled.phase is Phase.RESOLVED
    assert settled.outcome is Outcome.VICTORY
    assert s.ready_for_teardown

    again = s.settle_rewards(["goblin_ear"], accept_currency=True)
    assert not again.accepted
    assert s.inventory.items() == ["ration", "goblin_ear"]


def test_overflowing_selection_is_rejected_but_currency_applied(hero, goblin, scripted):
    s = CombatSession(
        hero(),
        rich_goblin(goblin, "goblin_ear", "goblin_ear"),
        inventory=Inventory(["ration"] * 19, max_size=20),
        purse=Purse(),
        rng=scripted(ints=[6, 1, 6, 3, 99, 150], floats=[0.0, 0.0]),
        settings=MANUAL,
        monster_health=4,
    )
    s.roll_initiative()
    s.basic_attack()
    result = s.settle_rewards(["goblin_ear"], accept_currency=True)

    assert result.accepted
    assert result.settlement.capacity_exceeded
    assert result.delta.inventory_added == ()
    assert s.inventory.size == 19
    assert s.purse.amount == Currency(1, 0, 50)
    assert "Not enough inventory space (19/20); selected items were left behind" in result.messages


def test_settlement_before_victory_is_rejected(hero, goblin, scripted):
    s = CombatSession(hero(), goblin(), rng=scripted(ints=[6, 1]), settings=MANUAL, monster_health=20)
    s.roll_initiative()
    result = s.settle_rewards([], accept_currency=True)
    assert not result.accepted
    assert result.phase is Phase.PLAYER_TURN


def test_victory_without_rewards_is_ready_for_teardown(hero, goblin, scripted):
    s = CombatSession(hero(), goblin(), rng=scripted(ints=[6, 1, 6, 3]), settings=MANUAL, monster_health=2)
    s.roll_initiative()
    result = s.basic_attack()
    assert result.pending_rewards is None
    assert s.ready_for_teardown
    assert not s.settle_rewards([], accept_currency=True).accepted


def test_advance_only_when_waiting_on_the_monster(hero, goblin, scripted):
    auto = CombatSession(hero(), goblin(), rng=scripted(ints=[6, 1]), monster_health=20)
    auto.roll_initiative()
    assert not auto.advance().accepted

    manual = CombatSession(hero(base_defense=5), goblin(), rng=scripted(ints=[6, 1, 1, 1]), settings=MANUAL, monster_health=20)
    manual.roll_initiative()
    assert manual.basic_attack().phase is Phase.MONSTER_TURN
    assert manual.advance().phase is Phase.PLAYER_TURN


def test_dispatch_by_name(hero, goblin, scripted):
    s = CombatSession(hero(), goblin(), [SHIELD_WALL], rng=scripted(ints=[6, 1]), settings=MANUAL, monster_health=20)
    assert not s.dispatch("cast_fireball").accepted
    s.dispatch("roll_initiative")
    result = s.dispatch("use_ability", ability_id="shield_wall")
    assert result.accepted
    assert result.delta.defense_bonus == 3
    assert result.delta.cooldowns == {"shield_wall": 3}
    assert [b.source_ability_id for b in result.delta.defense_buffs] == ["shield_wall"]


def test_restore_rewinds_everything(hero, goblin):
    s = CombatSession(hero(), goblin(), rng=RandomProvider(3), settings=MANUAL, monster_health=20)
    checkpoint = s.checkpoint()
    first = s.roll_initiative()

    s.restore(checkpoint)
    assert s.phase is Phase.AWAITING_INITIATIVE
    assert s.events() == ()
    second = s.roll_initiative()
    assert second.messages == first.messages


def test_loot_preview_lists_drop_chances(hero, goblin):
    monster = goblin(loot_table=(LootTableEntry("goblin_ear", 75), LootTableEntry("rusty_dagger", 20)))
    s = CombatSession(hero(), monster, monster_health=20)
    assert [(e.item_id, e.drop_chance_percent) for e in s.loot_preview()] == [("goblin_ear", 75), ("rusty_dagger", 20)]


def test_sync_health_is_narrated(hero, goblin, scripted):
    s = CombatSession(hero(), goblin(), rng=scripted(ints=[6, 1]), settings=MANUAL, monster_health=20)
    s.roll_initiative()
    result = s.sync_health(18, 32)
    assert result.accepted
    assert result.delta.player_health == 18
    assert result.delta.player_max_health == 32
    assert result.messages == ("Aria's health is now 18/32",)


@pytest.mark.parametrize("seed", range(25))
def test_seeded_fights_always_resolve_within_bounds(hero, goblin, seed):
    s = CombatSession(hero(), goblin(health=DiceSpec(3, 8, 2)), seed=seed)
    result = s.roll_initiative()
    for _ in range(500):
        if s.is_resolved:
            break
        result = s.basic_attack()
        assert result.accepted
        assert 0 <= result.delta.player_health <= result.delta.player_max_health
        assert 0 <= result.delta.monster_health <= result.delta.monster_max_health
    assert s.outcome in (Outcome.VICTORY, Outcome.DEFEAT)
    assert s.ready_for_teardown
