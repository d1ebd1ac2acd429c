# classhub/config/settings.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Class Measures Hub API"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    database_name: str = "class_measures_hub"
    mongodb_max_pool_size: int = 50
    mongodb_min_pool_size: int = 5
    mongodb_max_idle_time_ms: int = 30000
    mongodb_server_selection_timeout_ms: int = 5000

    # JWT
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 7

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Default admin created on startup
    default_admin_email: Optional[str] = None
    default_admin_password: Optional[str] = None
    default_admin_name: str = "Administrator"

    # Business defaults
    default_currency: str = "KSh"
    default_program_capacity: int = 20
    low_stock_threshold: int = 5

    def get_allowed_origins(self) -> List[str]:
        """Split the comma separated CORS origins"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def is_default_admin_configured(self) -> bool:
        return bool(self.default_admin_email and self.default_admin_password)


settings = Settings()
