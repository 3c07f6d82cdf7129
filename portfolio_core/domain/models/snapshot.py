"""
DOMAIN MODELS — PORTFOLIO SNAPSHOT

Snapshot of the entire portfolio at one reconciliation.
Recomputed wholesale each cycle, never patched.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from portfolio_core.domain.models.position import Position


@dataclass(frozen=True)
class SectorWeight:
    sector: str
    percent: int


@dataclass(frozen=True)
class PortfolioSnapshot:
    """
    Fully recomputed, consistent view of the portfolio.
    """
    positions: Tuple[Position, ...] = ()
    total_value: float = 0.0
    total_cost: float = 0.0
    day_change: float = 0.0
    day_change_percent: float = 0.0
    sector_allocation: Tuple[SectorWeight, ...] = ()
    as_of: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @property
    def total_gain(self) -> float:
        return self.total_value - self.total_cost

    @property
    def total_gain_percent(self) -> float:
        if self.total_cost <= 0:
            return 0.0
        return (self.total_gain / self.total_cost) * 100.0

    @property
    def is_empty(self) -> bool:
        return not self.positions

    def get_position(self, symbol: str) -> Optional[Position]:
        symbol = (symbol or "").upper()
        for position in self.positions:
            if position.symbol == symbol:
                return position
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "positions": [asdict(p) for p in self.positions],
            "total_value": self.total_value,
            "total_cost": self.total_cost,
            "total_gain": self.total_gain,
            "total_gain_percent": self.total_gain_percent,
            "day_change": self.day_change,
            "day_change_percent": self.day_change_percent,
            "sector_allocation": [asdict(s) for s in self.sector_allocation],
            "as_of": self.as_of.isoformat(),
        }


@dataclass(frozen=True)
class MutationResult:
    """
    Outcome of a portfolio mutation as seen by the caller.
    """
    ok: bool
    error: Optional[str] = None
    field: Optional[str] = None

    @classmethod
    def success(cls) -> "MutationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str, field: Optional[str] = None) -> "MutationResult":
        return cls(ok=False, error=error, field=field)
