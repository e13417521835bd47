from skirmish.combat.log import CombatLog, LogKind


def test_entries_are_tagged_and_numbered():
    log = CombatLog()
    log.round_index = 2
    log.info("Goblin attacks!", actor="Goblin")
    log.damage("Hit! Aria takes 3 damage", actor="Goblin", value=3)
    log.heal("Aria recovers 4 health", value=4)

    events = log.events()
    assert [e.kind for e in events] == [LogKind.INFO, LogKind.DAMAGE, LogKind.HEAL]
    assert [e.seq for e in events] == [1, 2, 3]
    assert all(e.round_index == 2 for e in events)
    assert events[1].value == 3


def test_drain_returns_only_new_entries():
    log = CombatLog()
    log.info("one")
    log.info("two")
    assert [e.message for e in log.drain()] == ["one", "two"]
    assert log.drain() == []
    log.info("three")
    assert [e.message for e in log.drain()] == ["three"]
    assert log.messages() == ["one", "two", "three"]


def test_capacity_drops_oldest():
    log = CombatLog(capacity=3)
    for i in range(5):
        log.info(f"entry {i}")
    assert log.messages() == ["entry 2", "entry 3", "entry 4"]
    assert log.last_seq == 5
    assert [e.message for e in log.get_recent(2)] == ["entry 3", "entry 4"]
    assert log.get_recent(0) == []


def test_to_dict_uses_plain_kind_values():
    log = CombatLog(capacity=10)
    log.damage("Hit!", value=5)
    data = log.to_dict()
    assert data["capacity"] == 10
    assert data["events"][0]["kind"] == "damage"
    assert data["events"][0]["value"] == 5
