"""
Environment profile selection
"""

import os
from functools import lru_cache
from typing import Optional

from edulearn.config.base import Settings
from edulearn.config.development import DevelopmentSettings
from edulearn.config.production import ProductionSettings


PROFILES = {
    "development": DevelopmentSettings,
    "production": ProductionSettings,
}


def get_settings(app_env: Optional[str] = None) -> Settings:
    """Build settings for APP_ENV (unknown or unset falls back to the base profile)"""
    env_name = (app_env or os.getenv("APP_ENV", "")).strip().lower()
    settings_class = PROFILES.get(env_name, Settings)
    return settings_class()


@lru_cache(maxsize=1)
def active_settings() -> Settings:
    """Settings for the process's APP_ENV, built once"""
    return get_settings()
