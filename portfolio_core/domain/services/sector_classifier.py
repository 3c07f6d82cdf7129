"""
SYMBOL → SECTOR REGISTRY
Single source of truth for sector bucketing used by allocation percentages.

Defaults are static; an optional YAML file can add or replace entries:

    sectors:
      Technology: [NVDA, ORCL]
      Energy: [XOM]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

OTHER_SECTOR = "Other"

DEFAULT_SECTORS: Mapping[str, Iterable[str]] = {
    "Technology": ("AAPL", "MSFT", "GOOGL", "TCS", "INFY", "WIPRO", "HCLTECH"),
    "Consumer": ("AMZN", "SBUX", "NKE", "HINDUNILVR", "ITC", "TITAN", "ASIANPAINT", "MARUTI"),
    "Healthcare": ("JNJ", "PFE", "UNH", "SUNPHARMA"),
    "Finance": (
        "JPM", "BAC", "GS", "HDFCBANK", "ICICIBANK", "SBIN",
        "KOTAKBANK", "AXISBANK", "BAJFINANCE",
    ),
    "Energy": ("RELIANCE", "ONGC", "NTPC"),
}


def _invert(sectors: Mapping[str, Iterable[str]]) -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    for sector, symbols in sectors.items():
        for symbol in symbols or ():
            mapping[str(symbol).strip().upper()] = str(sector)
    return mapping


class SectorClassifier:
    """
    Static lookup from symbol to sector label. Unknown symbols land in "Other".
    """

    def __init__(self, sectors: Optional[Mapping[str, Iterable[str]]] = None):
        self._by_symbol = _invert(DEFAULT_SECTORS if sectors is None else sectors)

    @classmethod
    def from_yaml(cls, path: Path) -> "SectorClassifier":
        """
        Defaults plus overrides from a YAML file. A missing or unreadable
        file leaves the defaults in place.
        """
        classifier = cls()
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Sector overrides not loaded from %s: %s", path, exc)
            return classifier

        overrides = data.get("sectors") if isinstance(data, dict) else None
        if not isinstance(overrides, dict):
            logger.warning("Sector overrides file %s has no 'sectors' mapping", path)
            return classifier

        classifier._by_symbol.update(_invert(overrides))
        logger.info("Loaded %d sector overrides from %s", len(_invert(overrides)), path)
        return classifier

    def classify(self, symbol: str) -> str:
        return self._by_symbol.get((symbol or "").upper(), OTHER_SECTOR)
