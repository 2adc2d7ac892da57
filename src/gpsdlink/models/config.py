from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 2947


class GpsdSettings(BaseSettings):
    """CLI settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GPSD_",
        extra="ignore",
    )

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    connect_timeout: float = 5.0
    output_format: str | None = None

    @property
    def address(self) -> str:
        """Return ``host:port`` as accepted by :func:`gpsdlink.connect`."""
        return f"{self.host}:{self.port}"
