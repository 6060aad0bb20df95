from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class ConsoleKitSettings(BaseSettings):
    """Configuration for the ConsoleKit transaction builder."""
    CONSOLE_API_KEY: str
    CONSOLE_BASE_URL: str = "https://dev.console.fi/v1/vendor"
    EXECUTOR_CLIENT_ID: str = "intentflow-executor"
    EXECUTOR_REGISTRY_ID: str | None = None
    HTTP_TIMEOUT_SECONDS: float = 20.0

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_console_settings() -> ConsoleKitSettings:
    """Return a fresh ConsoleKit settings instance."""
    return ConsoleKitSettings()  # type: ignore[call-arg]
