"""
Domain Models Package
Export all domain entities
"""

from .position import Position, Quote
from .snapshot import MutationResult, PortfolioSnapshot, SectorWeight

__all__ = [
    "MutationResult",
    "PortfolioSnapshot",
    "Position",
    "Quote",
    "SectorWeight",
]
