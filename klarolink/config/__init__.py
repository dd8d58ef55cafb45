"""
Configuration Management.

Configuration sources (in order of precedence):
1. Environment variables
2. .env file
3. Default values

Example:
    from klarolink.config import get_settings

    settings = get_settings()
    if settings.use_supabase:
        ...
"""

from klarolink.config.settings import DEFAULT_JWT_SECRET, Settings, get_settings

__all__ = [
    "DEFAULT_JWT_SECRET",
    "Settings",
    "get_settings",
]
