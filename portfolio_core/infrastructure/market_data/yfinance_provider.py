"""
YFinance Quote Provider
Secondary quote source, async-safe via thread offloading
"""

import asyncio
import logging
import os
from typing import Dict, Optional

import yfinance as yf

from portfolio_core.domain.models import Quote

logger = logging.getLogger(__name__)


class YFinanceProvider:
    """
    Yahoo Finance quote provider. Symbols are mapped to Yahoo tickers through
    YF_SYMBOL_OVERRIDES ("RELIANCE=RELIANCE.NS,TCS=TCS.NS") or a constructor map.
    """

    SOURCE = "yfinance"

    def __init__(self, symbol_mapping: Optional[Dict[str, str]] = None):
        self.symbol_mapping: Dict[str, str] = {
            k.upper(): v for k, v in (symbol_mapping or {}).items()
        }
        self._apply_symbol_overrides()

    def _apply_symbol_overrides(self) -> None:
        raw = os.getenv("YF_SYMBOL_OVERRIDES", "").strip()
        if not raw:
            return
        for pair in raw.split(","):
            pair = pair.strip()
            if not pair or "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            key = key.strip().upper()
            value = value.strip()
            if key and value:
                self.symbol_mapping[key] = value

    def _resolve(self, symbol: str) -> str:
        return self.symbol_mapping.get(symbol.upper(), symbol.upper())

    async def _history(self, ticker: yf.Ticker, **kwargs):
        """
        Async-safe wrapper around yfinance history()
        """
        return await asyncio.to_thread(ticker.history, **kwargs)

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        ticker = yf.Ticker(self._resolve(symbol))
        hist = await self._history(ticker, period="5d")
        if hist is None or hist.empty or "Close" not in hist:
            return None

        closes = hist["Close"].dropna()
        if closes.empty:
            return None

        price = float(closes.iloc[-1])
        if price <= 0:
            return None
        previous = float(closes.iloc[-2]) if len(closes) > 1 else price
        change = price - previous
        change_percent = (change / previous) * 100 if previous > 0 else 0.0

        return Quote(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=change_percent,
            source=self.SOURCE,
        )
