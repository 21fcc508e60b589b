"""
Configuration management using pydantic-settings.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendConfig(BaseModel):
    """Per-backend settings, fixed for the lifetime of a backend instance."""

    model_config = ConfigDict(frozen=True)

    # None selects the backend's default URL for the network
    base_url: str | None = None
    testnet: bool = False
    rate_limit_interval_ms: int = Field(default=250, gt=0)
    timeout: float = Field(default=30.0, gt=0)
    # Skip decoding non-prefixed transactions when scanning for created records
    fast_path: bool = True


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BTCEXPLORER_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    backend: Literal["sochain", "toshi"] = "sochain"
    testnet: bool = False
    base_url: str | None = None

    rate_limit_interval_ms: int = 250
    request_timeout: float = 30.0
    fast_path: bool = True

    log_level: str = "INFO"

    def backend_config(self) -> BackendConfig:
        return BackendConfig(
            base_url=self.base_url,
            testnet=self.testnet,
            rate_limit_interval_ms=self.rate_limit_interval_ms,
            timeout=self.request_timeout,
            fast_path=self.fast_path,
        )


def get_settings() -> Settings:
    return Settings()
