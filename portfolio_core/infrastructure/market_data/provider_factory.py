"""
Quote source factory (settings-driven).
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from portfolio_core.config import Settings, settings as default_settings
from portfolio_core.infrastructure.market_data.alpha_vantage_provider import AlphaVantageProvider
from portfolio_core.infrastructure.market_data.quote_source import NamedProvider, QuoteSource
from portfolio_core.infrastructure.market_data.synthetic import SyntheticQuoteGenerator
from portfolio_core.infrastructure.market_data.types import QuoteProvider
from portfolio_core.infrastructure.market_data.yfinance_provider import YFinanceProvider

logger = logging.getLogger(__name__)


def _build_provider(name: str, cfg: Settings) -> QuoteProvider:
    name = (name or "").lower()
    if name == "alphavantage":
        return AlphaVantageProvider(
            api_key=cfg.ALPHA_VANTAGE_API_KEY,
            base_url=cfg.ALPHA_VANTAGE_BASE_URL,
            timeout_seconds=cfg.QUOTE_REQUEST_TIMEOUT_SECONDS,
            retries=cfg.QUOTE_RETRIES,
            fetch_company_name=cfg.QUOTE_FETCH_COMPANY_NAME,
        )
    if name == "yfinance":
        return YFinanceProvider()
    raise ValueError(f"Unknown quote provider: {name}")


def build_synthetic_generator(
    cfg: Optional[Settings] = None,
    rng: Optional[random.Random] = None,
) -> SyntheticQuoteGenerator:
    cfg = cfg or default_settings
    return SyntheticQuoteGenerator(
        modulus=cfg.SYNTHETIC_PRICE_MODULUS,
        offset=cfg.SYNTHETIC_PRICE_OFFSET,
        change_band_pct=cfg.SYNTHETIC_CHANGE_BAND_PCT,
        rng=rng,
    )


def get_quote_source(cfg: Optional[Settings] = None) -> QuoteSource:
    cfg = cfg or default_settings
    names = [cfg.MARKET_DATA_PROVIDER.lower()]
    names += [n for n in cfg.fallback_providers if n not in names]

    providers: List[NamedProvider] = []
    for name in names:
        try:
            providers.append(NamedProvider(name, _build_provider(name, cfg)))
        except ValueError as exc:
            logger.warning(f"Skipping quote provider: {exc}")

    if not providers:
        logger.warning("No quote providers configured; every quote will be synthetic")
    elif cfg.QUOTE_REQUEST_TIMEOUT_SECONDS * (cfg.QUOTE_RETRIES + 1) >= cfg.QUOTE_TIMEOUT_SECONDS:
        logger.warning(
            f"QUOTE_REQUEST_TIMEOUT_SECONDS x {cfg.QUOTE_RETRIES + 1} attempt(s) reaches QUOTE_TIMEOUT_SECONDS="
            f"{cfg.QUOTE_TIMEOUT_SECONDS}; retries and fallback providers may never run"
        )

    return QuoteSource(
        providers=providers,
        synthetic=build_synthetic_generator(cfg),
        timeout_seconds=cfg.QUOTE_TIMEOUT_SECONDS,
    )
