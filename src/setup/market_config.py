from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class MarketDataSettings(BaseSettings):
    """Configuration for the StakeKit yield API."""
    STAKEKIT_API_KEY: str = ""
    STAKEKIT_API_URL: str = "https://api.stakek.it"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    MIN_LIQUIDITY: float = 10_000_000
    MIN_APY: float = 3.0
    MAX_APY: float = 60.0

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_market_settings() -> MarketDataSettings:
    """Return a fresh market data settings instance."""
    return MarketDataSettings()
