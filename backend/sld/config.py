from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SLD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "SLD Check"
    debug: bool = True
    env: str = "development"
    log_level: str = "INFO"

    # Server
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
        ]
    )

    # Editing sessions
    session_idle_timeout_seconds: float = 3600
    max_sessions: int = 256

    # Persisted project format
    schema_version: str = "1.0.0"

    # Net every diagram starts with
    default_net_id: str = "net-ac200"
    default_net_kind: str = "AC"
    default_net_voltage: float = 200
    default_net_phase: int = 1
    default_net_label: str = "AC200V"
    default_net_tolerance: float | None = 10


@lru_cache()
def get_settings() -> Settings:
    return Settings()
