"""Runtime settings — env-driven via pydantic-settings.

Reads from a .env file and RUNNEL_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class RunnelSettings(BaseSettings):
    """Runnel settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export RUNNEL_LOG_LEVEL=DEBUG
        export RUNNEL_MAX_WORKERS=16
        export RUNNEL_ROUTES_PATH=/etc/runnel/routes.toml
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RUNNEL_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Routing
    routes_path: Path = Path("runnel.toml")
    default_intake: str = "default"

    # Thread pool size for ThreadPoolDeferrer
    max_workers: int = 8

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton; import as `from runnel.config import settings`
settings = RunnelSettings()
