"""
DOMAIN MODELS — POSITIONS & QUOTES

Immutable structures representing holdings and price quotes.
No persistence. No market data fetching.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence


@dataclass(frozen=True)
class Quote:
    """
    Current price for a symbol plus absolute and percentage change.
    """
    symbol: str
    price: float
    change: float
    change_percent: float
    name: Optional[str] = None
    source: str = "unknown"

    @property
    def is_synthetic(self) -> bool:
        return self.source == "synthetic"


@dataclass(frozen=True)
class Position:
    """
    A held quantity of a symbol with its weighted-average cost basis.

    shares and avg_cost are the source of truth; the remaining fields are
    derived on every reconciliation and persisted only as the last known view.
    """
    symbol: str
    shares: float
    avg_cost: float
    name: Optional[str] = None
    current_price: Optional[float] = None
    value: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    price_source: Optional[str] = None

    @property
    def cost_basis(self) -> float:
        return self.shares * self.avg_cost

    def revalue(self, quote: Quote) -> "Position":
        """
        Recompute the derived fields from a quote and the persisted avg_cost.
        """
        current_price = quote.price
        change = current_price - self.avg_cost
        change_percent = (change / self.avg_cost) * 100 if self.avg_cost > 0 else 0.0
        return replace(
            self,
            name=self.name or quote.name,
            current_price=current_price,
            value=self.shares * current_price,
            change=change,
            change_percent=change_percent,
            price_source=quote.source,
        )

    def merge(self, shares: float, price: float) -> "Position":
        """
        Fold an additional purchase into this position using weighted-average cost.

        Derived fields follow the last known price until the next reconciliation.
        """
        total_shares = self.shares + shares
        avg_cost = (self.shares * self.avg_cost + shares * price) / total_shares
        merged = replace(self, shares=total_shares, avg_cost=avg_cost)
        if self.current_price is None:
            return merged
        change = self.current_price - avg_cost
        return replace(
            merged,
            value=total_shares * self.current_price,
            change=change,
            change_percent=(change / avg_cost) * 100,
        )

    def same_holding(self, other: "Position") -> bool:
        return (
            self.symbol == other.symbol
            and self.shares == other.shares
            and self.avg_cost == other.avg_cost
        )


def merge_duplicates(positions: Sequence[Position]) -> List[Position]:
    """
    Collapse rows sharing a symbol into one, first occurrence keeps its slot.
    """
    merged: Dict[str, Position] = {}
    for position in positions:
        existing = merged.get(position.symbol)
        if existing is None:
            merged[position.symbol] = position
        else:
            merged[position.symbol] = existing.merge(position.shares, position.avg_cost)
    return list(merged.values())
