"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py is at: backend/carebrain/core/config.py
# Project root is: backend/carebrain/core/../../../
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent.parent
_project_root = _backend_dir.parent
ENV_FILE = _project_root / ".env"
# Fallback: try in backend/ directory if not found in project root
if not ENV_FILE.exists():
    ENV_FILE = _backend_dir / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=False)


BRAIN_BACKENDS = ("supabase", "showcase")


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "CareBrain"
    app_env: str = Field(default="development", description="Application environment")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(
        default="http://localhost:5173",
        description="Allowed CORS origins (comma-separated)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_module_levels: Optional[str] = Field(
        default=None,
        description='Module-specific log levels (JSON string, e.g., {"carebrain.services": "DEBUG"})'
    )
    log_format: str = Field(
        default="json",
        description="Log format: 'json' for structured logging, 'text' for plain text"
    )
    log_file_enabled: bool = Field(default=False, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/carebrain.log",
        description="Path to log file (relative to project root)"
    )
    log_file_retention: int = Field(
        default=14,
        ge=1,
        description="Number of days to keep log files"
    )
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (keys, tokens) - NOT RECOMMENDED"
    )

    # Supabase (PostgREST)
    supabase_url: str = Field(default="http://localhost:54321", description="Supabase project URL")
    supabase_anon_key: str = Field(default="", description="Supabase anon (public) API key")
    supabase_access_token: Optional[str] = Field(
        default=None,
        description="User JWT sent as bearer token; falls back to the anon key"
    )
    supabase_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="HTTP timeout for a single Supabase call (seconds)"
    )

    # Brain state
    brain_backend: str = Field(
        default="supabase",
        description="Where care actions are dispatched: 'supabase' (live) or 'showcase' (in-memory)"
    )
    default_mode: str = Field(default="live", description="Execution mode sent when a session does not set one")
    care_action_rpc: str = Field(default="execute_care_action", description="RPC applying care actions")
    emergency_action_rpc: str = Field(
        default="execute_emergency_action",
        description="RPC applying emergency actions"
    )
    brain_state_table: str = Field(default="brain_state", description="Table holding the current brain state")
    brain_history_table: str = Field(
        default="brain_state_history",
        description="Table holding brain state transitions"
    )
    state_poll_interval_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Brain state refresh interval for open sessions (0 disables polling)"
    )

    @field_validator("brain_backend")
    @classmethod
    def validate_brain_backend(cls, v):
        """Only known backends are accepted"""
        v = (v or "").strip().lower()
        if v not in BRAIN_BACKENDS:
            raise ValueError(f"brain_backend must be one of {', '.join(BRAIN_BACKENDS)}")
        return v

    @field_validator("default_mode")
    @classmethod
    def validate_default_mode(cls, v):
        """Execution mode is 'live' or 'showcase'"""
        v = (v or "").strip().lower()
        if v not in ("live", "showcase"):
            raise ValueError("default_mode must be 'live' or 'showcase'")
        return v

    @property
    def rest_url(self) -> str:
        """PostgREST base URL"""
        return self.supabase_url.rstrip("/") + "/rest/v1"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
