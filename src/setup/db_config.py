from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class DatabaseSettings(BaseSettings):
    """Connection settings for the task store."""
    DATABASE_URL: str
    DATABASE_ECHO: bool = False
    DATABASE_POOL_PRE_PING: bool = True

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_database_settings() -> DatabaseSettings:
    return DatabaseSettings()  # type: ignore[call-arg]
