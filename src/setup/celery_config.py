from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class CelerySettings(BaseSettings):
    """Broker, result backend and routing for the execution worker."""
    REDIS_URL: str = "redis://redis:6379/0"
    RESULT_TTL_SECONDS: int = 3600
    EXECUTION_QUEUE: str = "executions"
    # One task per worker process at a time; a bundle holds the account nonce while it runs.
    WORKER_PREFETCH_MULTIPLIER: int = 1
    EXECUTION_TIME_LIMIT_SECONDS: int = 1800

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_celery_settings() -> CelerySettings:
    """Return a fresh Celery settings instance."""
    return CelerySettings()
