"""
Configuration for FinanceTracker

Three groups, each read from its own environment prefix:

    SUPABASE_*   hosted backend endpoint and call behaviour
    AUTH_*       session mode and privilege fallback policy
    (no prefix)  page behaviour and bill upload limits, also from .env

DESIGN DECISION: Missing Supabase values do not stop start-up. They are
replaced by placeholders so the local demo runs with no configuration.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finance_tracker.models.auth import DEFAULT_PRIVILEGE_POLICY


PLACEHOLDER_SUPABASE_URL = "https://placeholder.supabase.co"
PLACEHOLDER_SUPABASE_ANON_KEY = "placeholder-anon-key"


class SupabaseSettings(BaseSettings):
    """
    Remote data/auth service configuration.

    The URL and anon key fall back to placeholder literals so the app can
    start offline. With placeholders every remote call fails at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default=PLACEHOLDER_SUPABASE_URL,
        description="Supabase project URL"
    )
    anon_key: str = Field(
        default=PLACEHOLDER_SUPABASE_ANON_KEY,
        description="Supabase anonymous/public key"
    )
    timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout for remote calls"
    )
    read_attempts: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Attempts for idempotent reads (1 = never retry)"
    )

    @field_validator("url", "anon_key", mode="before")
    @classmethod
    def blank_means_placeholder(cls, v, info):
        """Treat empty environment values as unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            if info.field_name == "url":
                return PLACEHOLDER_SUPABASE_URL
            return PLACEHOLDER_SUPABASE_ANON_KEY
        return v

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_placeholder(self) -> bool:
        """True when either endpoint value was not configured."""
        return (
            self.url == PLACEHOLDER_SUPABASE_URL
            or self.anon_key == PLACEHOLDER_SUPABASE_ANON_KEY
        )


class AuthSettings(BaseSettings):
    """Authentication mode and privilege policy."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    mode: str = Field(
        default="local",
        pattern="^(remote|local)$",
        description="'remote' delegates to Supabase, 'local' is the offline demo"
    )
    local_session_file: str = Field(
        default=".finance_tracker/local_storage.json",
        description="File holding the persisted local session"
    )
    local_session_key: str = Field(
        default="test_auth",
        description="Key of the persisted session inside the local storage file"
    )
    privilege_fallback: str = Field(
        default=DEFAULT_PRIVILEGE_POLICY.value,
        pattern="^(fail_open|fail_closed)$",
        description="What a missing privilege record resolves to"
    )

    @property
    def local_session_path(self) -> Path:
        return Path(self.local_session_file).expanduser()


class AppSettings(BaseSettings):
    """Page behaviour and bill upload limits."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Page behaviour
    redirect_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="How long a success message shows before navigating away"
    )
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Rows shown in the dashboard's recent list"
    )

    # Bill uploads
    max_bill_size_mb: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum bill file size in MB"
    )
    supported_bill_formats: str = Field(
        default="png,jpg,jpeg,gif,pdf",
        description="Comma-separated list of accepted bill extensions"
    )
    bills_bucket: str = Field(
        default="bills",
        description="Storage bucket for uploaded bills"
    )

    @property
    def supported_bill_formats_list(self) -> list[str]:
        """Lower-cased extensions without dots."""
        return [fmt.strip().lower() for fmt in self.supported_bill_formats.split(",")]

    @property
    def max_bill_size_bytes(self) -> int:
        """Get max bill size in bytes."""
        return self.max_bill_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """Entry point; each group is read when first asked for."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Cached; tests call get_settings.cache_clear() after changing the environment."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Start-up check: {group: loaded}, plus {group}_error messages and a
    supabase_placeholder flag when the endpoint was never configured.
    """
    results = {}

    settings = get_settings()

    for name in ("supabase", "auth", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    # Placeholders load fine but cannot reach anything
    if results.get("supabase") and settings.supabase.is_placeholder:
        results["supabase_placeholder"] = True

    return results
