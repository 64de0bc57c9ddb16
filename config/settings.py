"""
Configuration settings for the VendorConnect task engine.
All sensitive values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "VendorConnect Task Engine"
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="production", env="ENVIRONMENT")

    # Server
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    # Database (PostgreSQL in production, SQLite accepted for development)
    database_url: str = Field(default="", env="DATABASE_URL")
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")
    db_pool_size: int = Field(default=10, env="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, env="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=30, env="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(default=1800, env="DB_POOL_RECYCLE")

    # DeepSeek AI (language-model oracle for the assistant)
    deepseek_api_key: str = Field(default="", env="DEEPSEEK_API_KEY")
    deepseek_base_url: str = Field(default="https://api.deepseek.com/v1", env="DEEPSEEK_BASE_URL")
    deepseek_model: str = Field(default="deepseek-chat", env="DEEPSEEK_MODEL")
    oracle_timeout_seconds: float = Field(default=30.0, env="ORACLE_TIMEOUT_SECONDS")

    # Assistant
    assistant_timeout_seconds: float = Field(default=60.0, env="ASSISTANT_TIMEOUT_SECONDS")
    assistant_default_status_title: str = Field(default="Active", env="ASSISTANT_DEFAULT_STATUS")
    assistant_default_priority_title: str = Field(default="Medium", env="ASSISTANT_DEFAULT_PRIORITY")
    assistant_default_due_days: int = Field(default=7, env="ASSISTANT_DEFAULT_DUE_DAYS")

    # Fuzzy task matching
    task_match_threshold: float = Field(default=0.6, env="TASK_MATCH_THRESHOLD")
    task_match_band: float = Field(default=0.1, env="TASK_MATCH_BAND")
    reassign_match_threshold: float = Field(default=0.8, env="REASSIGN_MATCH_THRESHOLD")

    # Task lifecycle
    rejected_status_title: str = Field(default="Rejected", env="REJECTED_STATUS_TITLE")
    completed_status_title: str = Field(default="Completed", env="COMPLETED_STATUS_TITLE")
    persist_deadlines_on_read: bool = Field(default=True, env="PERSIST_DEADLINES_ON_READ")
    repeat_generation_limit: int = Field(default=50, env="REPEAT_GENERATION_LIMIT")

    # Pagination
    per_page_default: int = Field(default=15, env="PER_PAGE_DEFAULT")
    per_page_max: int = Field(default=100, env="PER_PAGE_MAX")

    # Uploads
    upload_dir: str = Field(default="storage/uploads", env="UPLOAD_DIR")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, env="MAX_UPLOAD_BYTES")

    # Scheduler Settings
    scheduler_enabled: bool = Field(default=False, env="SCHEDULER_ENABLED")
    scheduler_interval_minutes: int = Field(default=15, env="SCHEDULER_INTERVAL_MINUTES")
    timezone: str = Field(default="UTC", env="TIMEZONE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
