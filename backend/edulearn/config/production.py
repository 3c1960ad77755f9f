"""
Production environment configuration
"""

from edulearn.config.base import Settings


class ProductionSettings(Settings):
    """Production-specific settings"""

    DEBUG: bool = False
    LOG_LEVEL: str = "WARNING"

    # Production security
    ALLOWED_HOSTS_STR: str = "https://edulearn.app,https://www.edulearn.app"

    # Production services
    S3_BUCKET: str = "edulearn-prod-videos"
    DATABASE_POOL_MAX: int = 20

    # Strict timeouts for production
    METADATA_TIMEOUT: float = 15.0

    # Never publish placeholder assets in place of a failed upload
    ENABLE_STORAGE_FALLBACK: bool = False

    model_config = {
        "env_file": ".env.production",
        "case_sensitive": True,
        "extra": "ignore"
    }
