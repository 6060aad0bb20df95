from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class ChainSettings(BaseSettings):
    """Configuration for the executing account and its RPC endpoint."""
    CHAIN_ID: int = 42161
    JSON_RPC_URL: str = "http://localhost:8545"
    EXECUTOR_EOA_PRIVATE_KEY: str | None = None
    RECEIPT_TIMEOUT_SECONDS: float = 120.0
    RECEIPT_POLL_LATENCY_SECONDS: float = 2.0
    SIMULATE_ALL_STEPS: bool = False
    INDEX_EXECUTED_TRANSACTIONS: bool = False

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_chain_settings() -> ChainSettings:
    """Return a fresh chain settings instance."""
    return ChainSettings()
