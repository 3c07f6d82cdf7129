"""
DOMAIN ERRORS
"""

from typing import Optional


class PositionValidationError(ValueError):
    """
    Rejected position input (empty symbol, non-positive shares or price).
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
