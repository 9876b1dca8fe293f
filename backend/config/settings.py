from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can come from:
    - docker-compose.yml environment section
    - .env file (for secrets like API keys)
    - System environment

    Each storage tier is optional. Leaving its connection unset makes that
    tier structurally unavailable; history still loads from the others.
    """

    # Environment
    environment: str = "development"

    # PostgreSQL - remote tier (from docker-compose)
    postgres_host: Optional[str] = None
    postgres_port: int = 5432
    postgres_user: str = "radar_user"
    postgres_password: str = ""
    postgres_db: str = "radar"
    database_url: Optional[str] = Field(default=None, validate_default=True)

    # Redis - local cache tier
    redis_url: Optional[str] = None
    local_cache_key: str = "boe_audit_history_v1"

    # Bundled snapshot tier (audit report files shipped with the app)
    snapshot_dir: str = "audited_reports"

    # OpenAI (from .env)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    analysis_max_chars: int = 30000

    # Gazette source
    gazette_base_url: str = "https://www.boe.es"
    gazette_timeout: float = 20.0
    default_language: str = "es"

    # Views
    history_page_size: int = 10
    layout_steps: int = 300
    tier_timeout: Optional[float] = None

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra env vars

    @field_validator('database_url', mode='before')
    @classmethod
    def construct_database_url(cls, v, info):
        """Construct database URL from components if not explicitly set"""
        if v:
            return v

        data = info.data
        host = data.get('postgres_host')
        if not host:
            return None
        port = data.get('postgres_port', 5432)
        user = data.get('postgres_user', 'radar_user')
        password = data.get('postgres_password', '')
        db = data.get('postgres_db', 'radar')

        return f"postgresql://{user}:{password}@{host}:{port}/{db}"

    @field_validator('default_language')
    @classmethod
    def check_language(cls, v):
        if v not in ('es', 'en'):
            raise ValueError("default_language must be 'es' or 'en'")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
