"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )
    
    # Database
    database_url: str = "sqlite+aiosqlite:///./admin_core.db"
    
    # Security
    secret_key: str = "change-this-in-production-minimum-32-characters-long"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480  # 8 hours

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    
    # API Settings
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Admin Console Core"
    version: str = "2.0.0"

    # Module registry / navigation
    module_manifest_path: Optional[str] = None  # JSON manifest; built-in manifest when unset
    default_module_id: str = "dashboard"
    locator_param: str = "module"

    # Reconciliation (auto-sync)
    reconcile_interval_seconds: float = 30.0
    reconcile_check_timeout_seconds: float = 5.0
    reconcile_history_size: int = 20

    # Audit logger
    audit_buffer_capacity: int = 1000
    audit_retry_interval_seconds: float = 5.0

    # Dashboard stats
    stats_source_timeout_seconds: float = 3.0
    dashboard_count_tables: Dict[str, str] = Field(
        default_factory=lambda: {
            "total_users": "profiles",
            "total_politicians": "politicians",
            "total_polls": "polls",
            "total_companies": "companies",
            "total_billionaires": "billionaires",
            "active_debt_records": "debt_records",
        }
    )
    pending_approvals_table: str = "company_creation_requests"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
