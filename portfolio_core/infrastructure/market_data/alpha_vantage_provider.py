"""
Alpha Vantage Quote Provider
Primary quote source (GLOBAL_QUOTE, optional OVERVIEW for the company name).
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from dataclasses import replace
from typing import Any, Dict, Optional

import httpx

from portfolio_core.domain.models import Quote

logger = logging.getLogger(__name__)

# Provider-level envelopes that carry no data
_ERROR_KEYS = ("Error Message", "Information", "Note")


def _to_float(value: Any) -> float:
    """Coerce a provider field to float; missing, non-numeric or non-finite becomes 0."""
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_global_quote(symbol: str, payload: Any) -> Optional[Quote]:
    """
    Parse a GLOBAL_QUOTE payload. Returns None for error envelopes, an empty
    or missing quote block, or a price that is not positive.
    """
    if not isinstance(payload, dict):
        return None

    for key in _ERROR_KEYS:
        if payload.get(key):
            logger.debug(f"Alpha Vantage {key} for {symbol}: {payload[key]}")
            return None

    quote = payload.get("Global Quote")
    if not isinstance(quote, dict) or not quote:
        return None

    price = _to_float(quote.get("05. price"))
    if price <= 0:
        return None

    return Quote(
        symbol=symbol,
        price=price,
        change=_to_float(quote.get("09. change")),
        change_percent=_to_float(quote.get("10. change percent")),
        source=AlphaVantageProvider.SOURCE,
    )


class AlphaVantageProvider:
    SOURCE = "alphavantage"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.alphavantage.co/query",
        timeout_seconds: float = 5.0,
        retries: int = 1,
        backoff_base_seconds: float = 0.4,
        fetch_company_name: bool = False,
    ):
        self.api_key = (api_key or "").strip() or "demo"
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.retries = max(0, int(retries))
        self.backoff_base_seconds = backoff_base_seconds
        self.fetch_company_name = fetch_company_name

    async def _request_json(self, params: Dict[str, str]) -> Optional[Any]:
        """
        GET the endpoint with bounded retries on transport errors.
        Non-200 responses and undecodable bodies are returned as None.
        """
        query = dict(params, apikey=self.api_key)
        for attempt in range(self.retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(self.base_url, params=query)
            except httpx.TransportError as exc:
                logger.debug(f"Alpha Vantage request failed (attempt {attempt + 1}): {exc}")
                if attempt < self.retries:
                    await asyncio.sleep(self.backoff_base_seconds * (2 ** attempt) + random.random() * 0.1)
                continue

            if response.status_code != 200:
                logger.debug(f"Alpha Vantage API {response.status_code}: {response.text}")
                return None
            try:
                return response.json()
            except ValueError as exc:
                logger.debug(f"Alpha Vantage returned invalid JSON: {exc}")
                return None
        return None

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        payload = await self._request_json({"function": "GLOBAL_QUOTE", "symbol": symbol})
        quote = parse_global_quote(symbol, payload)
        if quote is None:
            return None

        if self.fetch_company_name:
            name = await self.get_company_name(symbol)
            if name:
                quote = replace(quote, name=name)
        return quote

    async def get_company_name(self, symbol: str) -> Optional[str]:
        """Best-effort OVERVIEW lookup; None when the provider has no name."""
        payload = await self._request_json({"function": "OVERVIEW", "symbol": symbol})
        if not isinstance(payload, dict) or payload.get("Error Message"):
            return None
        name = payload.get("Name")
        return str(name) if name else None
