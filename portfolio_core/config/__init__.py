"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # ======================
    # Market Data
    # ======================
    MARKET_DATA_PROVIDER: str = "alphavantage"
    MARKET_DATA_FALLBACK_PROVIDERS: str = ""
    ALPHA_VANTAGE_API_KEY: str = "demo"
    ALPHA_VANTAGE_BASE_URL: str = "https://www.alphavantage.co/query"
    # Bound on the whole provider chain for one symbol
    QUOTE_TIMEOUT_SECONDS: float = 5.0
    # Bound on a single HTTP attempt; keep (retries + 1) attempts inside the chain bound
    QUOTE_REQUEST_TIMEOUT_SECONDS: float = 2.0
    QUOTE_RETRIES: int = 1
    QUOTE_FETCH_COMPANY_NAME: bool = False

    # Synthetic quotes (used when every provider fails)
    SYNTHETIC_PRICE_MODULUS: int = 1000
    SYNTHETIC_PRICE_OFFSET: float = 50.0
    SYNTHETIC_CHANGE_BAND_PCT: float = 5.0

    # Placeholder day-change band, percent of total value
    DAY_CHANGE_MIN_PCT: float = -1.0
    DAY_CHANGE_MAX_PCT: float = 2.0

    # ======================
    # Local persistence
    # ======================
    PORTFOLIO_STORE_PATH: str = "data/portfolio_store.json"
    PORTFOLIO_STORE_KEY: str = "portfolio"
    SECTOR_OVERRIDES_FILE: str = ""

    # ======================
    # Scheduler
    # ======================
    REFRESH_ENABLED: bool = True
    REFRESH_INTERVAL_SECONDS: int = 60
    TIMEZONE: str = "Asia/Kolkata"

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )

    @property
    def fallback_providers(self) -> List[str]:
        return [
            name.strip().lower()
            for name in self.MARKET_DATA_FALLBACK_PROVIDERS.split(",")
            if name.strip()
        ]


settings = Settings()
