"""Configuration package."""

from finance_tracker.config.settings import (
    PLACEHOLDER_SUPABASE_ANON_KEY,
    PLACEHOLDER_SUPABASE_URL,
    AppSettings,
    AuthSettings,
    Settings,
    SupabaseSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "PLACEHOLDER_SUPABASE_ANON_KEY",
    "PLACEHOLDER_SUPABASE_URL",
    "AppSettings",
    "AuthSettings",
    "Settings",
    "SupabaseSettings",
    "get_settings",
    "validate_all_settings",
]
