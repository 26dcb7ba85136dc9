"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings

from dashpipe.core.constants import DEFAULT_CONFIG_PATH


class Settings(BaseSettings):
    # ── Application ───────────────────────────
    APP_ENV: str = "development"

    # ── Logging ───────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ── Pipeline ──────────────────────────────
    DASH_CONFIG_PATH: str = DEFAULT_CONFIG_PATH
    # None means a step may run for as long as it needs
    DASH_STEP_TIMEOUT_SECONDS: float | None = None
    DASH_HTTP_TIMEOUT_SECONDS: float = 30.0

    model_config = {"env_file": [".env"], "extra": "ignore"}


settings = Settings()
