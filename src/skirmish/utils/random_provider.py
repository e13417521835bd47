from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class RandomProvider:
    """
    Thin wrapper around random.Random to make RNG deterministic and injectable
    for tests while avoiding global state.

    Every die, loot draw and currency roll in a combat session goes through one
    provider, so a seed fully reproduces an encounter.
    """

    seed: Optional[int] = None

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)
        if self.seed is not None:
            logger.debug("Initialized RandomProvider with deterministic seed=%s", self.seed)

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[Any]) -> Any:
        if not seq:
            raise ValueError("RandomProvider.choice() received an empty sequence")
        return self._rng.choice(seq)
