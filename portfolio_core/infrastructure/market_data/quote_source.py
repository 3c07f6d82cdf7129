"""
Quote source - try providers in order, then fall back to a synthetic quote.

get_quote() always resolves: provider errors, empty payloads and timeouts all
end in the synthetic fallback.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from portfolio_core.domain.models import Quote
from portfolio_core.infrastructure.market_data.synthetic import SyntheticQuoteGenerator
from portfolio_core.infrastructure.market_data.types import QuoteProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedProvider:
    name: str
    provider: QuoteProvider


class QuoteSource:
    def __init__(
        self,
        providers: List[NamedProvider],
        synthetic: Optional[SyntheticQuoteGenerator] = None,
        timeout_seconds: float = 5.0,
    ):
        self.providers = providers
        self.synthetic = synthetic or SyntheticQuoteGenerator()
        self.timeout_seconds = timeout_seconds
        self.last_sources: Dict[str, str] = {}

    def get_last_sources(self) -> Dict[str, str]:
        return dict(self.last_sources)

    async def _from_providers(self, symbol: str) -> Optional[Quote]:
        for named in self.providers:
            try:
                quote = await named.provider.get_quote(symbol)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.debug(f"Provider {named.name} failed for {symbol}: {exc}")
                continue
            if quote is not None:
                return quote
        return None

    async def get_quote(self, symbol: str) -> Quote:
        symbol = (symbol or "").strip().upper()
        quote: Optional[Quote] = None
        if self.providers:
            try:
                quote = await asyncio.wait_for(self._from_providers(symbol), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                logger.warning(f"Quote fetch for {symbol} timed out after {self.timeout_seconds}s")

        if quote is None:
            logger.info(f"Using synthetic quote for {symbol}")
            quote = self.fallback(symbol)

        self.last_sources[symbol] = quote.source
        return quote

    def fallback(self, symbol: str) -> Quote:
        return self.synthetic.generate(symbol)
