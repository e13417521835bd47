from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from skirmish.combat.models import CurrencyRange, LootTableEntry, MonsterDefinition
from skirmish.economy.currency import Currency, Purse
from skirmish.exceptions import CapacityExceeded
from skirmish.loot.inventory import Inventory
from skirmish.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LootDrop:
    item_id: str
    quantity: int


@dataclass(frozen=True)
class PendingRewards:
    """Rewards rolled for a defeated monster, awaiting the player's selection."""

    items: Tuple[LootDrop, ...] = ()
    currency: Currency = field(default_factory=Currency)

    @property
    def is_empty(self) -> bool:
        return not self.items and self.currency.is_zero

    def quantity_of(self, item_id: str) -> int:
        for drop in self.items:
            if drop.item_id == item_id:
                return drop.quantity
        return 0


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of confirming a reward selection.

    granted_items is empty whenever capacity_exceeded is set; currency_added is
    zero when the currency was declined.
    """

    granted_items: Tuple[LootDrop, ...]
    currency_added: Currency
    inventory: Tuple[str, ...]
    currency: Currency
    capacity_exceeded: bool = False
    ignored_item_ids: Tuple[str, ...] = ()


class LootResolver:
    """Rolls item drops and currency for a defeated monster and settles the player's pick.

    Drop rule: one uniform draw in [0, 100) per loot-table entry; the entry
    drops iff draw < drop_chance_percent. Entries are independent; duplicate
    item ids across entries aggregate into one stack.
    """

    def __init__(self, rng: Optional[RandomProvider] = None) -> None:
        self.rng = rng or RandomProvider()

    def roll_items(self, loot_table: Iterable[LootTableEntry]) -> Tuple[LootDrop, ...]:
        quantities: Dict[str, int] = {}
        for entry in loot_table:
            draw = self.rng.random() * 100
            dropped = draw < entry.drop_chance_percent
            logger.debug(
                "Loot roll for %s: draw=%.4f chance=%.2f => %s",
                entry.item_id,
                draw,
                entry.drop_chance_percent,
                "drop" if dropped else "no drop",
            )
            if dropped:
                quantities[entry.item_id] = quantities.get(entry.item_id, 0) + 1
        # dicts keep first-drop order
        return tuple(LootDrop(item_id=k, quantity=v) for k, v in quantities.items())

    def roll_currency(self, ranges: CurrencyRange) -> Currency:
        amounts: Dict[str, int] = {}
        for name, bounds in ranges.denominations():
            if bounds.defined:
                amounts[name] = self.rng.randint(bounds.minimum, bounds.maximum)  # type: ignore[arg-type]
            else:
                amounts[name] = 0
        currency = Currency(**amounts)
        logger.debug("Currency roll => %s", currency)
        return currency

    def roll_rewards(self, monster: MonsterDefinition) -> PendingRewards:
        rewards = PendingRewards(
            items=self.roll_items(monster.loot_table),
            currency=self.roll_currency(monster.currency),
        )
        logger.info(
            "Rolled rewards for %s: %d item stack(s), currency=(%s)",
            monster.name,
            len(rewards.items),
            rewards.currency,
        )
        return rewards

    def settle(
        self,
        pending: PendingRewards,
        selected_item_ids: Sequence[str],
        accept_currency: bool,
        inventory: Inventory,
        purse: Purse,
    ) -> SettlementResult:
        """Merge the selected stacks into the inventory and the currency into the purse.

        Items are all-or-nothing: if the selected quantities do not fit, no item
        is granted. Currency is independent of the item check.
        """
        selected: List[LootDrop] = []
        ignored: List[str] = []
        seen = set()
        for item_id in selected_item_ids:
            if item_id in seen:
                continue
            seen.add(item_id)
            qty = pending.quantity_of(item_id)
            if qty == 0:
                ignored.append(item_id)
                continue
            selected.append(LootDrop(item_id=item_id, quantity=qty))
        if ignored:
            logger.warning("Ignoring selected item(s) that did not drop: %s", ", ".join(ignored))

        units = [d.item_id for d in selected for _ in range(d.quantity)]
        granted: Tuple[LootDrop, ...] = ()
        capacity_exceeded = False
        try:
            inventory.add_all(units)
            granted = tuple(selected)
        except CapacityExceeded as exc:
            capacity_exceeded = True
            logger.warning("Reward items discarded: %s", exc)

        currency_added = Currency()
        if accept_currency and not pending.currency.is_zero:
            purse.add(pending.currency, reason="loot")
            currency_added = pending.currency

        return SettlementResult(
            granted_items=granted,
            currency_added=currency_added,
            inventory=tuple(inventory.items()),
            currency=purse.amount,
            capacity_exceeded=capacity_exceeded,
            ignored_item_ids=tuple(ignored),
        )
