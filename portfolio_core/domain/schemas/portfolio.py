from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from portfolio_core.domain.models import PortfolioSnapshot, Position


class PositionRecord(BaseModel):
    """Persisted row of the position document."""

    symbol: str = Field(..., min_length=1)
    shares: float = Field(..., gt=0)
    avg_cost: float = Field(..., gt=0)
    name: Optional[str] = None
    current_price: Optional[float] = None
    value: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    price_source: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        return value.strip().upper()

    def to_position(self) -> Position:
        return Position(**self.model_dump())

    @classmethod
    def from_position(cls, position: Position) -> "PositionRecord":
        return cls(
            symbol=position.symbol,
            shares=position.shares,
            avg_cost=position.avg_cost,
            name=position.name,
            current_price=position.current_price,
            value=position.value,
            change=position.change,
            change_percent=position.change_percent,
            price_source=position.price_source,
        )


class PositionSchema(BaseModel):
    symbol: str
    name: Optional[str] = None
    shares: float
    avg_cost: float
    current_price: Optional[float] = None
    value: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    price_source: Optional[str] = None


class SectorWeightSchema(BaseModel):
    sector: str
    percent: int


class PortfolioSnapshotSchema(BaseModel):
    positions: List[PositionSchema]
    total_value: float
    total_cost: float
    total_gain: float
    total_gain_percent: float
    day_change: float
    day_change_percent: float
    sector_allocation: List[SectorWeightSchema]
    as_of: datetime

    @classmethod
    def from_snapshot(cls, snapshot: PortfolioSnapshot) -> "PortfolioSnapshotSchema":
        return cls.model_validate(snapshot.to_dict())


class AddPositionRequest(BaseModel):
    symbol: str
    shares: float
    price: float
