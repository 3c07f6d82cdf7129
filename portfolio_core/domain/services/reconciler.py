"""
PORTFOLIO RECONCILER

RESPONSIBILITIES:
- Fetch one quote per distinct symbol, concurrently
- Recompute per-position derived fields from quote + persisted avg_cost
- Aggregate totals, gain/loss and the placeholder day change
- Bucket value by sector into whole percentages summing to 100

RULES:
- One symbol's failure never fails the reconciliation
- The snapshot is rebuilt from scratch every time
- No persistence here; the caller decides whether to commit the result
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from portfolio_core.domain.models import PortfolioSnapshot, Position, Quote, SectorWeight
from portfolio_core.domain.models.position import merge_duplicates
from portfolio_core.domain.services.day_change import DayChangeSimulator
from portfolio_core.domain.services.sector_classifier import SectorClassifier
from portfolio_core.infrastructure.market_data.quote_source import QuoteSource

logger = logging.getLogger(__name__)


def _has_usable_price(quote: Quote) -> bool:
    price = quote.price
    return isinstance(price, (int, float)) and math.isfinite(price) and price > 0


def dedupe_positions(positions: Sequence[Position]) -> List[Position]:
    """
    Collapse rows sharing a symbol into one, first occurrence keeps its slot.
    """
    merged = merge_duplicates(positions)
    if len(merged) != len(positions):
        logger.warning(f"Merged {len(positions) - len(merged)} duplicate position row(s)")
    return merged


def compute_sector_allocation(
    positions: Sequence[Position],
    total_value: float,
    classifier: SectorClassifier,
) -> Tuple[SectorWeight, ...]:
    """
    Whole-percent allocation by sector, largest first. Empty buckets are
    dropped. Percentages are floored and the points left over go to the
    buckets with the largest fractional parts (largest-remainder method),
    so they sum to exactly 100 and none is negative.
    """
    if not total_value > 0:
        return ()

    buckets: Dict[str, float] = {}
    for position in positions:
        value = position.value
        if value is None or not math.isfinite(value) or value <= 0:
            continue
        sector = classifier.classify(position.symbol)
        buckets[sector] = buckets.get(sector, 0.0) + value

    bucket_total = sum(buckets.values())
    if not buckets or not math.isfinite(bucket_total) or bucket_total <= 0:
        return ()

    ordered = sorted(buckets.items(), key=lambda item: item[1], reverse=True)
    shares = [value / bucket_total * 100.0 for _, value in ordered]
    percents = [int(math.floor(share)) for share in shares]

    leftover = 100 - sum(percents)
    by_remainder = sorted(range(len(shares)), key=lambda i: (shares[i] - percents[i], -i), reverse=True)
    for i in by_remainder[:leftover]:
        percents[i] += 1

    return tuple(
        SectorWeight(sector=sector, percent=percent)
        for (sector, _), percent in zip(ordered, percents)
    )


class PortfolioReconciler:
    def __init__(
        self,
        quote_source: QuoteSource,
        sector_classifier: Optional[SectorClassifier] = None,
        day_change: Optional[DayChangeSimulator] = None,
    ):
        self._quote_source = quote_source
        self._classifier = sector_classifier or SectorClassifier()
        self._day_change = day_change or DayChangeSimulator()

    async def _fetch_quotes(self, symbols: List[str]) -> Dict[str, Quote]:
        results = await asyncio.gather(
            *(self._quote_source.get_quote(symbol) for symbol in symbols),
            return_exceptions=True,
        )
        quotes: Dict[str, Quote] = {}
        for symbol, result in zip(symbols, results):
            if isinstance(result, BaseException):
                logger.warning(f"Quote lookup for {symbol} raised {result!r}; using synthetic quote")
                result = self._quote_source.fallback(symbol)
            elif not _has_usable_price(result):
                logger.warning(f"Quote for {symbol} has unusable price {result.price!r}; using synthetic quote")
                result = self._quote_source.fallback(symbol)
            quotes[symbol] = result
        return quotes

    async def reconcile(self, positions: Sequence[Position]) -> PortfolioSnapshot:
        holdings = dedupe_positions(positions)
        if not holdings:
            return PortfolioSnapshot()

        quotes = await self._fetch_quotes([p.symbol for p in holdings])
        valued = [p.revalue(quotes[p.symbol]) for p in holdings]

        total_value = sum(p.value for p in valued)
        total_cost = sum(p.cost_basis for p in valued)
        day_change, day_change_percent = self._day_change.simulate(total_value)

        snapshot = PortfolioSnapshot(
            positions=tuple(valued),
            total_value=total_value,
            total_cost=total_cost,
            day_change=day_change,
            day_change_percent=day_change_percent,
            sector_allocation=compute_sector_allocation(valued, total_value, self._classifier),
        )

        logger.info(
            "✅ Portfolio reconciled | positions=%d value=%.2f cost=%.2f gain=%.2f",
            len(valued),
            snapshot.total_value,
            snapshot.total_cost,
            snapshot.total_gain,
        )
        return snapshot
