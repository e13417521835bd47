import pytest

from skirmish.combat.dice import (
    DIFFICULTY_ATTACK_OFFSETS,
    DiceSpec,
    Difficulty,
    attribute_bonus,
    monster_attack_bonus,
    resolve_difficulty,
    roll_damage,
    roll_dice,
    total_damage,
)
from skirmish.utils.random_provider import RandomProvider


@pytest.mark.parametrize(
    "notation, expected",
    [
        ("1d6", DiceSpec(1, 6, 0)),
        ("3d8+2", DiceSpec(3, 8, 2)),
        ("1d4-1", DiceSpec(1, 4, -1)),
        (" 2D20 + 5 ", DiceSpec(2, 20, 5)),
    ],
)
def test_parse_notation(notation, expected):
    assert DiceSpec.parse(notation) == expected


@pytest.mark.parametrize("bad", ["d6", "1d", "1d7", "0d6", "two dice"])
def test_invalid_specs_raise(bad):
    with pytest.raises(ValueError):
        DiceSpec.parse(bad)


def test_from_value_accepts_mapping_forms():
    assert DiceSpec.from_value({"count": 2, "type": "d10"}) == DiceSpec(2, 10, 0)
    assert DiceSpec.from_value({"faces": 12, "modifier": 3}) == DiceSpec(1, 12, 3)
    spec = DiceSpec(1, 6, 0)
    assert DiceSpec.from_value(spec) is spec
    assert str(DiceSpec(2, 8, -1)) == "2d8-1"


@pytest.mark.parametrize(
    "value, bonus",
    [(3, -1), (8, -1), (9, -1), (10, 0), (11, 0), (12, 1), (13, 1), (14, 2), (18, 2), (25, 2)],
)
def test_attribute_bonus_bands(value, bonus):
    assert attribute_bonus(value) == bonus


def test_attribute_bonus_is_monotonic():
    bonuses = [attribute_bonus(v) for v in range(0, 30)]
    assert bonuses == sorted(bonuses)
    assert set(bonuses) <= {-1, 0, 1, 2}


@pytest.mark.parametrize(
    "difficulty, expected",
    [("Easy", 6), ("medium", 8), ("HARD", 12), ("Deadly", 22), ("Legendary", 40), ("Mythic", 5), ("", 5), (None, 5)],
)
def test_monster_attack_bonus(difficulty, expected):
    assert monster_attack_bonus(5, difficulty) == expected


def test_monster_attack_bonus_with_custom_offsets():
    offsets = dict(DIFFICULTY_ATTACK_OFFSETS)
    offsets[Difficulty.EASY] = 10
    assert monster_attack_bonus(2, "Easy", offsets) == 12
    assert resolve_difficulty(Difficulty.HARD) is Difficulty.HARD


@pytest.mark.parametrize("seed", range(20))
@pytest.mark.parametrize("count, faces", [(1, 4), (2, 6), (3, 20)])
def test_roll_dice_stays_in_range(seed, count, faces):
    total = roll_dice(count, faces, RandomProvider(seed))
    assert count <= total <= count * faces


def test_same_seed_same_rolls():
    a = [roll_dice(2, 6, RandomProvider(42)) for _ in range(5)]
    b = [roll_dice(2, 6, RandomProvider(42)) for _ in range(5)]
    assert a == b


def test_damage_breakdown(scripted):
    roll = roll_damage(DiceSpec(2, 6, 1), attribute_value=14, weapon_bonus=3, rng=scripted(ints=[4, 5]))
    assert (roll.dice, roll.modifier, roll.attribute_bonus, roll.weapon_bonus) == (9, 1, 2, 3)
    assert roll.total == 15


def test_total_damage_is_not_clamped(scripted):
    assert total_damage(DiceSpec(1, 4, -3), attribute_value=8, rng=scripted(ints=[1])) == -3
