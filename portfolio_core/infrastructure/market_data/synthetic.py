"""
Synthetic quote generator.

Stand-in prices used when no provider can serve a symbol. The base price is a
pure function of the symbol so repeated fallbacks stay on the same level; only
the change component is random.
"""

from __future__ import annotations

import random
from typing import Optional

from portfolio_core.domain.models import Quote

COMPANY_NAMES = {
    "RELIANCE": "Reliance Industries Ltd.",
    "TCS": "Tata Consultancy Services Ltd.",
    "HDFCBANK": "HDFC Bank Ltd.",
    "INFY": "Infosys Ltd.",
    "HINDUNILVR": "Hindustan Unilever Ltd.",
    "ICICIBANK": "ICICI Bank Ltd.",
    "BHARTIARTL": "Bharti Airtel Ltd.",
    "ITC": "ITC Ltd.",
    "SBIN": "State Bank of India",
    "BAJFINANCE": "Bajaj Finance Ltd.",
    "ASIANPAINT": "Asian Paints Ltd.",
    "MARUTI": "Maruti Suzuki India Ltd.",
    "SUNPHARMA": "Sun Pharmaceutical Industries Ltd.",
    "TATAMOTORS": "Tata Motors Ltd.",
    "WIPRO": "Wipro Ltd.",
    "KOTAKBANK": "Kotak Mahindra Bank Ltd.",
    "AXISBANK": "Axis Bank Ltd.",
    "LT": "Larsen & Toubro Ltd.",
    "ONGC": "Oil and Natural Gas Corporation Ltd.",
    "NTPC": "NTPC Ltd.",
    "ADANIPORTS": "Adani Ports and Special Economic Zone Ltd.",
    "ULTRACEMCO": "UltraTech Cement Ltd.",
    "HCLTECH": "HCL Technologies Ltd.",
    "TITAN": "Titan Company Ltd.",
    "JSWSTEEL": "JSW Steel Ltd.",
}


def company_name(symbol: str) -> str:
    symbol = (symbol or "").upper()
    return COMPANY_NAMES.get(symbol, f"{symbol} Stock")


class SyntheticQuoteGenerator:
    SOURCE = "synthetic"

    def __init__(
        self,
        modulus: int = 1000,
        offset: float = 50.0,
        change_band_pct: float = 5.0,
        rng: Optional[random.Random] = None,
    ):
        if modulus <= 0:
            raise ValueError("modulus must be positive")
        if offset <= 0:
            raise ValueError("offset must be positive")
        if not 0 <= change_band_pct < 100:
            raise ValueError("change_band_pct must be in [0, 100)")
        self.modulus = modulus
        self.offset = offset
        self.change_band_pct = change_band_pct
        self._rng = rng or random.Random()

    def base_price(self, symbol: str) -> float:
        """
        Deterministic previous-close stand-in: sum of character codes folded
        into [offset, offset + modulus).
        """
        code_sum = sum(ord(ch) for ch in (symbol or "").upper())
        return float(code_sum % self.modulus) + self.offset

    def generate(self, symbol: str) -> Quote:
        symbol = (symbol or "").upper()
        base = self.base_price(symbol)
        change_percent = self._rng.uniform(-self.change_band_pct, self.change_band_pct)
        price = round(base * (1 + change_percent / 100.0), 2)
        return Quote(
            symbol=symbol,
            price=price,
            change=price - base,
            change_percent=change_percent,
            name=company_name(symbol),
            source=self.SOURCE,
        )
