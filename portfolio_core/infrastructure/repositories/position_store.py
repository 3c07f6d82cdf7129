"""
Position store (single local document).

The whole position list lives under one key as a JSON array and is rewritten
on every mutation. Single writer, single process: no locking.
"""

from __future__ import annotations

import json
import logging
import math
from typing import List, Optional, Sequence

from pydantic import ValidationError

from portfolio_core.domain.errors import PositionValidationError
from portfolio_core.domain.models import Position
from portfolio_core.domain.models.position import merge_duplicates
from portfolio_core.domain.schemas.portfolio import PositionRecord
from portfolio_core.infrastructure.storage.kv_store import KeyValueStore, KeyValueStoreCorruptError

logger = logging.getLogger(__name__)

DEFAULT_KEY = "portfolio"

DEMO_POSITIONS: Sequence[Position] = (
    Position(symbol="RELIANCE", shares=10, avg_cost=2800.50, name="Reliance Industries Ltd."),
    Position(symbol="TCS", shares=5, avg_cost=3500.75, name="Tata Consultancy Services Ltd."),
    Position(symbol="HDFCBANK", shares=15, avg_cost=1650.25, name="HDFC Bank Ltd."),
    Position(symbol="INFY", shares=20, avg_cost=1490.80, name="Infosys Ltd."),
)


def _normalize_symbol(symbol: str) -> str:
    normalized = (symbol or "").strip().upper()
    if not normalized:
        raise PositionValidationError("Symbol is required", field="symbol")
    return normalized


def _require_positive(value: float, field: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise PositionValidationError(f"{field} must be a number", field=field) from None
    if not math.isfinite(number) or number <= 0:
        raise PositionValidationError(f"{field} must be greater than zero", field=field)
    return number


class PositionStore:
    def __init__(
        self,
        kv_store: KeyValueStore,
        key: str = DEFAULT_KEY,
        seed: Optional[Sequence[Position]] = DEMO_POSITIONS,
    ):
        self._kv = kv_store
        self._key = key
        self._seed = tuple(seed or ())

    # ------------------------------------------------------------------
    # READ / WRITE
    # ------------------------------------------------------------------

    def _read(self) -> Optional[List[Position]]:
        """Stored positions, or None when the key is absent."""
        try:
            raw = self._kv.get_str(self._key)
        except KeyValueStoreCorruptError as exc:
            logger.warning(f"Position store is corrupt; treating as empty: {exc}")
            return []
        if raw is None:
            return None

        try:
            rows = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning(f"Position document under '{self._key}' is corrupt; treating as empty: {exc}")
            return []
        if not isinstance(rows, list):
            logger.warning(f"Position document under '{self._key}' is not a list; treating as empty")
            return []

        positions: List[Position] = []
        for row in rows:
            try:
                positions.append(PositionRecord.model_validate(row).to_position())
            except ValidationError as exc:
                logger.warning(f"Skipping invalid position row {row!r}: {exc.error_count()} error(s)")
        return positions

    def load(self) -> List[Position]:
        """
        Return stored positions in insertion order. An absent key is seeded
        with the demo set on first read.
        """
        positions = self._read()
        if positions is None:
            positions = list(self._seed)
            logger.info(f"Seeding position store with {len(positions)} demo position(s)")
            self.save(positions)
        return positions

    def save(self, positions: Sequence[Position]) -> None:
        """Overwrite the whole document. Rows without shares are dropped."""
        records = []
        for position in positions:
            if position.shares <= 0:
                continue
            records.append(PositionRecord.from_position(position).model_dump())
        self._kv.set_str(self._key, json.dumps(records))

    # ------------------------------------------------------------------
    # MUTATIONS
    # ------------------------------------------------------------------

    def add_position(self, symbol: str, shares: float, price: float) -> Position:
        """
        Add shares bought at price. An existing holding is merged using
        weighted-average cost; otherwise a new row is appended.

        Raises PositionValidationError for an empty symbol or non-positive
        shares/price.
        """
        symbol = _normalize_symbol(symbol)
        shares = _require_positive(shares, "shares")
        price = _require_positive(price, "price")

        positions = self.load()
        for index, existing in enumerate(positions):
            if existing.symbol == symbol:
                merged = existing.merge(shares, price)
                positions[index] = merged
                self.save(positions)
                logger.info(f"Merged {shares} {symbol} @ {price} -> {merged.shares} @ {merged.avg_cost:.4f}")
                return merged

        created = Position(symbol=symbol, shares=shares, avg_cost=price)
        positions.append(created)
        self.save(positions)
        logger.info(f"Added position {symbol}: {shares} @ {price}")
        return created

    def remove_position(self, symbol: str) -> bool:
        """Delete the holding for symbol. Returns False (no-op) when not held."""
        symbol = _normalize_symbol(symbol)
        positions = self.load()
        remaining = [p for p in positions if p.symbol != symbol]
        if len(remaining) == len(positions):
            return False
        self.save(remaining)
        logger.info(f"Removed position {symbol}")
        return True

    def apply_valuations(self, valued: Sequence[Position]) -> int:
        """
        Write derived fields back for rows whose holding is unchanged since
        the valuation was computed. No holding is added or dropped here;
        duplicate rows for one symbol are written back as their merged row.
        Returns the number of rows updated.
        """
        stored = self._read()
        if not stored:
            return 0
        current = merge_duplicates(stored)

        by_symbol = {p.symbol: p for p in valued}
        updated = 0
        for index, existing in enumerate(current):
            fresh = by_symbol.get(existing.symbol)
            if fresh is None or not existing.same_holding(fresh):
                continue
            current[index] = fresh
            updated += 1

        if updated or len(current) != len(stored):
            self.save(current)
        return updated
