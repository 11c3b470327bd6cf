"""
Feature Flags Configuration

Centralized feature flag management for the live engine.
All feature flags should be loaded from environment variables.
"""
import os


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on garbage."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class FeatureFlags:
    """
    Feature flags and tunables for the live engine.
    
    To add a new feature flag:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Use it in your code
    """
    
    # Scoring engine runs on completion of tournament-linked events
    FEATURE_TOURNAMENT_SCORING: bool = get_bool_env('FEATURE_TOURNAMENT_SCORING', True)
    
    # Persist audit records (otherwise they are only logged)
    FEATURE_AUDIT_LOG: bool = get_bool_env('FEATURE_AUDIT_LOG', True)
    
    # Maximum age of a cached live-state snapshot
    LIVE_CACHE_TTL_SECONDS: int = get_int_env('LIVE_CACHE_TTL_SECONDS', 30)
    
    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.startswith(('FEATURE_', 'LIVE_'))
        }


feature_flags = FeatureFlags()
