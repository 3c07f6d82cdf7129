"""
FastAPI Main Application
Wires the position store, quote source, reconciler and refresh scheduler
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portfolio_core.config import Settings, settings
from portfolio_core.core.logging import setup_logging
from portfolio_core.domain.services.day_change import DayChangeSimulator
from portfolio_core.domain.services.reconciler import PortfolioReconciler
from portfolio_core.domain.services.sector_classifier import SectorClassifier
from portfolio_core.infrastructure.market_data.provider_factory import get_quote_source
from portfolio_core.infrastructure.repositories.position_store import PositionStore
from portfolio_core.infrastructure.storage.kv_store import JsonFileKeyValueStore
from portfolio_core.services.portfolio_service import PortfolioService

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_portfolio_service(cfg: Optional[Settings] = None) -> PortfolioService:
    cfg = cfg or settings

    store = PositionStore(
        JsonFileKeyValueStore(Path(cfg.PORTFOLIO_STORE_PATH)),
        key=cfg.PORTFOLIO_STORE_KEY,
    )
    if cfg.SECTOR_OVERRIDES_FILE:
        classifier = SectorClassifier.from_yaml(Path(cfg.SECTOR_OVERRIDES_FILE))
    else:
        classifier = SectorClassifier()

    reconciler = PortfolioReconciler(
        quote_source=get_quote_source(cfg),
        sector_classifier=classifier,
        day_change=DayChangeSimulator(cfg.DAY_CHANGE_MIN_PCT, cfg.DAY_CHANGE_MAX_PCT),
    )
    return PortfolioService(
        store=store,
        reconciler=reconciler,
        refresh_interval_seconds=cfg.REFRESH_INTERVAL_SECONDS,
        timezone=cfg.TIMEZONE,
        timer_enabled=cfg.REFRESH_ENABLED,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Creates the portfolio service at startup and tears it down at shutdown
    """
    logger.info("🚀 Starting portfolio service")
    service = build_portfolio_service()
    app.state.portfolio_service = service
    await service.start()
    snapshot = service.get_snapshot()
    logger.info(
        f"✅ Portfolio ready: {len(snapshot.positions)} position(s), "
        f"value={snapshot.total_value:.2f}, store={settings.PORTFOLIO_STORE_PATH}"
    )

    yield

    logger.info("🛑 Shutting down portfolio service")
    await service.close()
    app.state.portfolio_service = None


app = FastAPI(
    title="Stock Dashboard Portfolio API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Stock Dashboard Portfolio API",
        "version": "1.0.0",
        "docs": "/docs",
    }


from portfolio_core.api.routes import health, portfolio

app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(portfolio.router, prefix="/api/v1/portfolio", tags=["Portfolio"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("portfolio_core.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
