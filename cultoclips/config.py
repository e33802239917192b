"""Application settings from environment variables."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()

DEFAULT_PROCESSING_ERROR = (
    "The video could not be processed. It might be too long (>10m) or restricted."
)


class Settings(BaseSettings):
    """Application settings from environment."""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Processing service
    process_api_url: str = "http://localhost:3000/api/process"
    process_timeout_seconds: float = 30.0

    # Configuration
    log_level: str = "INFO"
    max_retry_attempts: int = 3
    base_delay_seconds: float = 1.0

    # Session behaviour
    resync_delay_seconds: float = 15.0
    processing_error_message: str = DEFAULT_PROCESSING_ERROR
    surface_background_errors: bool = False

    model_config = {"env_file": ".env"}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
