"""Storefront Cart Configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    # Application
    app_name: str = "Storefront Cart"
    debug: bool = False

    # Cart API
    api_base_url: str = "http://localhost:9190"
    request_timeout: float = 30.0

    # Client-side storage
    cart_storage_key: str = "cart_id"
    storage_path: Optional[str] = None  # None keeps the guest cart id in memory

    # Public storefront, used to build share links
    storefront_url: str = "http://localhost:3000"

    # Mock store (development backend)
    mock_store_host: str = "0.0.0.0"
    mock_store_port: int = 9190
    free_shipping_threshold: float = 50.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def api_root(self) -> str:
        """API base URL, always ending in /api"""
        url = self.api_base_url.strip().rstrip("/")
        if url.lower().endswith("/api"):
            return url
        return f"{url}/api"

    @property
    def persistent_storage(self) -> bool:
        """Check if the guest cart id survives restarts"""
        return bool(self.storage_path)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
