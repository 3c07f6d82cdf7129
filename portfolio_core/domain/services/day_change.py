"""
DAY CHANGE SIMULATOR

Placeholder signal. There is no previous-close reference behind it: one
percentage is drawn per reconciliation and applied to the total value.
"""

import random
from typing import Optional, Tuple


class DayChangeSimulator:
    def __init__(
        self,
        min_pct: float = -1.0,
        max_pct: float = 2.0,
        rng: Optional[random.Random] = None,
    ):
        if min_pct > max_pct:
            raise ValueError("min_pct must not exceed max_pct")
        self.min_pct = min_pct
        self.max_pct = max_pct
        self._rng = rng or random.Random()

    def simulate(self, total_value: float) -> Tuple[float, float]:
        """Return (day_change, day_change_percent) for the whole portfolio."""
        if total_value <= 0:
            return 0.0, 0.0
        pct = self._rng.uniform(self.min_pct, self.max_pct)
        return total_value * pct / 100.0, pct
