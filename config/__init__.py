"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    get_supabase_client: Cached Supabase client
    check_connection: Health check function
    DEFAULT_MATCHING_CONFIG: Synonyms, stopwords and thresholds for matching
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    get_supabase_client,
    check_connection,
    reset_connection,
    DatabaseError,
    ConnectionError
)
from config.matching import (
    MatchingConfig,
    MatchThresholds,
    ScoreWeights,
    SynonymRule,
    DEFAULT_MATCHING_CONFIG,
)

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Database
    "get_supabase_client",
    "check_connection",
    "reset_connection",
    "DatabaseError",
    "ConnectionError",

    # Matching
    "MatchingConfig",
    "MatchThresholds",
    "ScoreWeights",
    "SynonymRule",
    "DEFAULT_MATCHING_CONFIG",
]
