"""
Configuration management for the admin console.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AdminConsoleConfig(BaseSettings):
    """Configuration settings for the admin console."""

    # Backend project
    supabase_url: str = Field(alias="SUPABASE_URL")
    supabase_anon_key: str = Field(alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: Optional[str] = Field(
        default=None, alias="SUPABASE_SERVICE_ROLE_KEY"
    )

    # Session persistence
    session_file: str = Field(
        default=str(Path.home() / ".ar_admin" / "session.json"), alias="SESSION_FILE"
    )

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Network Configuration
    request_timeout: float = Field(default=10.0, alias="REQUEST_TIMEOUT")
    function_timeout: float = Field(default=150.0, alias="FUNCTION_TIMEOUT")
    max_retries: int = Field(default=3, alias="MAX_RETRIES")
    retry_delay: float = Field(default=1.0, alias="RETRY_DELAY")

    # Batch Processing Configuration
    batch_size: int = Field(default=100, alias="BATCH_SIZE")
    batch_pause_seconds: float = Field(default=0.5, alias="BATCH_PAUSE_SECONDS")
    poll_interval_seconds: float = Field(default=3.0, alias="POLL_INTERVAL_SECONDS")
    page_size: int = Field(default=1000, alias="PAGE_SIZE")
    in_query_chunk_size: int = Field(default=100, alias="IN_QUERY_CHUNK_SIZE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        populate_by_name=True,
    )

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v):
        """Ensure the project URL is an http(s) URL without trailing slash."""
        if not v.startswith(("https://", "http://")):
            raise ValueError("SUPABASE_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("supabase_anon_key")
    @classmethod
    def validate_anon_key(cls, v):
        """Ensure the anon key is present."""
        if not v.strip():
            raise ValueError("SUPABASE_ANON_KEY cannot be empty")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is valid."""
        valid_envs = ["development", "testing", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v):
        """Edge functions accept between 1 and 1000 records per call."""
        if not 1 <= v <= 1000:
            raise ValueError("BATCH_SIZE must be between 1 and 1000")
        return v

    @field_validator("page_size", "in_query_chunk_size")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("Value must be a positive integer")
        return v

    def functions_url(self, name: str) -> str:
        """Get the URL of an edge function."""
        return f"{self.supabase_url}/functions/v1/{name}"

    def rest_url(self, path: str) -> str:
        """Get a URL under the REST query interface."""
        return f"{self.supabase_url}/rest/v1/{path.lstrip('/')}"

    def auth_url(self, path: str) -> str:
        """Get a URL under the auth interface."""
        return f"{self.supabase_url}/auth/v1/{path.lstrip('/')}"


def load_config(env_file: Optional[str] = None) -> AdminConsoleConfig:
    """Load configuration from environment variables and .env file."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return AdminConsoleConfig()


# Global configuration instance
_config: Optional[AdminConsoleConfig] = None


def get_config() -> AdminConsoleConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(env_file: Optional[str] = None) -> AdminConsoleConfig:
    """Reload configuration (useful for testing)."""
    global _config
    _config = load_config(env_file)
    return _config
