"""Configuration settings for the review relay."""
import os
from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    # GitHub CLI
    gh_binary: str = os.getenv("GH_BINARY", "gh")
    gh_host: str = os.getenv("GH_HOST", "github.com")

    # Service
    service_host: str = os.getenv("SERVICE_HOST", "0.0.0.0")
    service_port: int = int(os.getenv("PORT") or "4000")
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
    environment: str = os.getenv("ENVIRONMENT", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Reviews
    default_merge_strategy: str = os.getenv("DEFAULT_MERGE_STRATEGY", "squash")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
