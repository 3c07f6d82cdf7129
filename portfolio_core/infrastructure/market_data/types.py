"""
Quote provider protocol for type hints.
"""

from __future__ import annotations

from typing import Optional, Protocol

from portfolio_core.domain.models import Quote


class QuoteProvider(Protocol):
    async def get_quote(self, symbol: str) -> Optional[Quote]:
        """Return a quote, or None when the provider has no usable data."""
        ...
