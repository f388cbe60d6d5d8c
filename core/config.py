"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database settings
    db_host: str = "localhost"
    db_port: str = "5432"
    db_user: str = "edukeeper"
    db_password: str = "password"
    db_name: str = "edukeeper"
    database_url_override: Optional[str] = None
    auto_create_tables: bool = False

    # JWT settings
    jwt_secret_key: str = "change-this-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24

    # AI provider settings (server side only)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_control_model: str = "gpt-3.5-turbo"
    groq_api_key: Optional[str] = None
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.1-70b-versatile"
    gemini_api_key: Optional[str] = None
    ai_max_retries: int = 0
    ai_timeout_seconds: float = 60.0
    summary_max_input_chars: int = 20000

    # Billing settings
    stripe_secret_key: Optional[str] = None
    stripe_product_id: str = "prod_SHixHhzuHHYk2d"
    stripe_price_cents: int = 490
    stripe_currency: str = "eur"
    trial_days: int = 14

    # Storage settings
    storage_directory: str = "cache/storage"
    storage_bucket: str = "documents"
    public_base_url: str = "http://localhost:8000"

    # File upload settings
    max_file_size_mb: int = 50
    allowed_file_types: list[str] = [".pdf", ".txt", ".md", ".html", ".docx", ".doc", ".png", ".jpg", ".jpeg"]
    export_max_chars: int = 500000

    # Email settings
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    email_from: str = "no-reply@edukeeper.app"
    interest_notification_email: str = "edukeeper.appli@gmail.com"

    # Default user settings
    default_admin_email: Optional[str] = None
    default_admin_password: Optional[str] = None
    force_reset_password_admin: bool = False

    # Application settings
    app_name: str = "EduKeeper API"
    app_version: str = "0.1.0"
    debug: bool = False
    cors_origins: list[str] = ["*"]

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    enable_request_logging: bool = True
    enable_sql_logging: bool = False
    enable_file_logging: bool = False
    log_directory: str = "logs"
    log_rotation_when: str = "size"  # "size" or a TimedRotatingFileHandler "when"
    log_rotation_interval: int = 1
    log_file_max_size_mb: int = 10
    log_file_backup_count: int = 5
    log_compression: bool = True
    app_log_file: str = "app.log"
    error_log_file: str = "error.log"
    security_log_file: str = "security.log"
    ai_log_file: str = "ai.log"
    database_log_file: str = "database.log"
    access_log_file: str = "access.log"

    # Security settings
    enable_security_headers: bool = True
    enable_request_size_limit: bool = True
    max_request_size_bytes: int = 60 * 1024 * 1024

    @property
    def database_url(self) -> str:
        """Async database URL, either overridden or built from the components."""
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()


# Gemini settings
GEMINI_MODEL = "gemini-2.0-flash"
GEMINI_MAX_TOKENS = 4096
GEMINI_TEMPERATURE = 0.7
