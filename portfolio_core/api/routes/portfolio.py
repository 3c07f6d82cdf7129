"""
Portfolio API Routes
Snapshot, position mutations and manual refresh for the dashboard UI
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from portfolio_core.domain.schemas.portfolio import AddPositionRequest, PortfolioSnapshotSchema
from portfolio_core.services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_portfolio_service(request: Request) -> PortfolioService:
    service = getattr(request.app.state, "portfolio_service", None)
    if service is None or service.is_closed:
        raise HTTPException(status_code=503, detail="Portfolio service not available")
    return service


@router.get("", response_model=PortfolioSnapshotSchema)
async def get_portfolio(service: PortfolioService = Depends(get_portfolio_service)):
    return PortfolioSnapshotSchema.from_snapshot(service.get_snapshot())


@router.post("/positions", status_code=202)
async def add_position(
    payload: AddPositionRequest,
    service: PortfolioService = Depends(get_portfolio_service),
):
    result = await service.add_position(payload.symbol, payload.shares, payload.price)
    if not result.ok:
        raise HTTPException(status_code=400, detail={"error": result.error, "field": result.field})
    return {"status": "accepted", "symbol": payload.symbol.strip().upper()}


@router.delete("/positions/{symbol}", status_code=202)
async def remove_position(symbol: str, service: PortfolioService = Depends(get_portfolio_service)):
    await service.remove_position(symbol)
    return {"status": "accepted", "symbol": symbol.strip().upper()}


@router.post("/refresh", response_model=PortfolioSnapshotSchema)
async def refresh_portfolio(service: PortfolioService = Depends(get_portfolio_service)):
    snapshot = await service.refresh()
    return PortfolioSnapshotSchema.from_snapshot(snapshot)
