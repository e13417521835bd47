from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from skirmish.exceptions import CapacityExceeded

logger = logging.getLogger(__name__)


class Inventory:
    """
    Capacity-bounded inventory where every unit occupies one slot.

    Item ids are stored in the order they were granted, one entry per unit,
    which is also how the state store persists them.
    """

    def __init__(self, items: Optional[Iterable[str]] = None, max_size: int = 20) -> None:
        if max_size < 0:
            raise ValueError("max_size cannot be negative")
        self._items: List[str] = list(items or [])
        self.max_size = max_size

    @property
    def size(self) -> int:
        return len(self._items)

    @property
    def free_slots(self) -> int:
        return max(0, self.max_size - self.size)

    def items(self) -> List[str]:
        return list(self._items)

    def count(self, item_id: str) -> int:
        return self._items.count(item_id)

    def can_fit(self, quantity: int) -> bool:
        return self.size + quantity <= self.max_size

    def add_all(self, item_ids: Sequence[str]) -> None:
        """Add every unit or none of them.

        Raises:
            CapacityExceeded: if the units would push the inventory past max_size.
        """
        if not self.can_fit(len(item_ids)):
            raise CapacityExceeded(current=self.size, incoming=len(item_ids), capacity=self.max_size)
        self._items.extend(item_ids)
        logger.debug("Added %d item(s); inventory now %d/%d", len(item_ids), self.size, self.max_size)
