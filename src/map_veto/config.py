"""Application configuration via pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Settings
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # CORS - comma-separated origins (env var: CORS_ORIGINS)
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Shared state store: "memory" for a single process, "duckdb" to persist
    store_backend: Literal["memory", "duckdb"] = "memory"
    database_path: str = "data/match_sessions.duckdb"

    # Re-derivations after a conflicting write when the client did not pin a version
    sync_max_retries: int = 0

    # Match defaults
    default_team_format: str = "5v5"
    default_match_format: str = "md1"
    team_a_name: str = "Team A"
    team_b_name: str = "Team B"
    room_id_length: int = 6


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
