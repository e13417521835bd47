import logging
import sys
from dataclasses import replace
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from skirmish.combat.dice import DiceSpec  # noqa: E402
from skirmish.combat.models import CombatantState, MonsterDefinition  # noqa: E402
from skirmish.utils.random_provider import RandomProvider  # noqa: E402

EXAMPLE_CATALOG = ROOT / "examples" / "catalog.yaml"


class ScriptedRandom(RandomProvider):
    """RandomProvider whose results are dictated by the test.

    ``ints`` feeds randint() (every die and currency roll), ``floats`` feeds
    random() (loot draws). Running out of scripted values fails the test.
    """

    def __init__(self, ints=(), floats=()):
        super().__init__(seed=0)
        self.ints = list(ints)
        self.floats = list(floats)

    def randint(self, a, b):
        if not self.ints:
            raise AssertionError(f"unscripted randint({a}, {b})")
        value = self.ints.pop(0)
        assert a <= value <= b, f"scripted {value} outside [{a}, {b}]"
        return value

    def random(self):
        if not self.floats:
            raise AssertionError("unscripted random()")
        return self.floats.pop(0)


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def hero():
    base = CombatantState(
        name="Aria",
        attributes={"Strength": 14, "Dexterity": 12},
        current_health=30,
        max_health=30,
        base_attack=5,
        base_defense=3,
    )

    def _make(**overrides):
        return replace(base, **overrides)

    return _make


@pytest.fixture
def goblin():
    base = MonsterDefinition(
        id="goblin",
        name="Goblin",
        health=DiceSpec(count=2, faces=6),
        attack=1,
        defense=10,
        damage=DiceSpec(count=1, faces=4),
        difficulty="Easy",
    )

    def _make(**overrides):
        return replace(base, **overrides)

    return _make


@pytest.fixture
def example_catalog_path():
    return EXAMPLE_CATALOG


@pytest.fixture(autouse=True)
def restore_root_logger():
    # cli.main() reconfigures the root logger against the captured stderr
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
