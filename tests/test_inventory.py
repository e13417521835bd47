import pytest

from skirmish.exceptions import CapacityExceeded
from skirmish.loot.inventory import Inventory


def test_add_all_within_capacity():
    inv = Inventory(["ration"], max_size=3)
    inv.add_all(["goblin_ear", "goblin_ear"])
    assert inv.items() == ["ration", "goblin_ear", "goblin_ear"]
    assert inv.count("goblin_ear") == 2
    assert inv.free_slots == 0


def test_add_all_is_all_or_nothing():
    inv = Inventory(["ration"] * 19, max_size=20)
    with pytest.raises(CapacityExceeded) as exc:
        inv.add_all(["goblin_ear", "goblin_ear"])
    assert exc.value.current == 19
    assert exc.value.incoming == 2
    assert exc.value.capacity == 20
    assert inv.size == 19
    assert inv.count("goblin_ear") == 0


def test_filling_exactly_to_capacity_is_allowed():
    inv = Inventory(["ration"] * 18, max_size=20)
    inv.add_all(["goblin_ear", "rusty_dagger"])
    assert inv.size == 20
    assert not inv.can_fit(1)
