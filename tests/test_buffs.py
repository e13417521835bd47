import copy

from skirmish.combat.buffs import BuffExpiry, BuffKind, BuffLedger


def test_bonus_sums_active_buffs_per_kind():
    ledger = BuffLedger()
    ledger.add_buff(BuffKind.ATTACK, 2, 3, "battle_cry")
    ledger.add_buff(BuffKind.ATTACK, 1, 1, "war_song")
    ledger.add_buff(BuffKind.DEFENSE, 4, 2, "shield_wall")
    assert ledger.total_bonus(BuffKind.ATTACK) == 3
    assert ledger.total_bonus(BuffKind.DEFENSE) == 4


def test_non_positive_duration_is_ignored():
    ledger = BuffLedger()
    assert ledger.add_buff(BuffKind.DEFENSE, 5, 0, "shield_wall") is None
    assert ledger.add_buff(BuffKind.DEFENSE, 5, -2, "shield_wall") is None
    assert ledger.defense_buffs == []


def test_buff_expires_on_its_last_tick_exactly_once():
    ledger = BuffLedger()
    ledger.add_buff(BuffKind.DEFENSE, 3, 2, "shield_wall")

    assert ledger.tick_round() == []
    assert ledger.defense_buffs[0].remaining_rounds == 1

    expired = ledger.tick_round()
    assert expired == [BuffExpiry(BuffKind.DEFENSE, "shield_wall", 3)]
    assert ledger.total_bonus(BuffKind.DEFENSE) == 0

    assert ledger.tick_round() == []


def test_expiries_reported_in_insertion_order_across_kinds():
    ledger = BuffLedger()
    ledger.add_buff(BuffKind.DEFENSE, 1, 1, "first")
    ledger.add_buff(BuffKind.ATTACK, 2, 1, "second")
    ledger.add_buff(BuffKind.DEFENSE, 3, 1, "third")
    assert [e.source_ability_id for e in ledger.tick_round()] == ["first", "second", "third"]


def test_snapshots_do_not_leak_internal_state():
    ledger = BuffLedger()
    ledger.add_buff(BuffKind.ATTACK, 2, 3, "battle_cry")
    ledger.attack_buffs[0].remaining_rounds = 99
    assert ledger.attack_buffs[0].remaining_rounds == 3


def test_cooldowns_tick_down_and_floor_at_zero():
    ledger = BuffLedger()
    ledger.register_ability("cleave")
    ledger.set_cooldown("cleave", 2)
    assert not ledger.is_ready("cleave")
    ledger.tick_round()
    assert ledger.cooldown("cleave") == 1
    ledger.tick_round()
    ledger.tick_round()
    assert ledger.cooldown("cleave") == 0
    assert ledger.is_ready("cleave")
    assert ledger.cooldowns() == {"cleave": 0}


def test_set_cooldown_overwrites_instead_of_stacking():
    ledger = BuffLedger()
    ledger.set_cooldown("cleave", 5)
    ledger.set_cooldown("cleave", 2)
    assert ledger.cooldown("cleave") == 2
    ledger.set_cooldown("cleave", -4)
    assert ledger.cooldown("cleave") == 0


def test_ledger_survives_deepcopy():
    ledger = BuffLedger()
    ledger.add_buff(BuffKind.ATTACK, 2, 3, "battle_cry")
    clone = copy.deepcopy(ledger)
    clone.tick_round()
    clone.add_buff(BuffKind.ATTACK, 1, 1, "war_song")
    assert ledger.attack_buffs[0].remaining_rounds == 3
    assert len(ledger.attack_buffs) == 1
    assert [b.seq for b in clone.attack_buffs] == [1, 2]
