"""
Configuration management for the handover engine.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class Config:
    """Configuration settings loaded from environment."""

    # Postgres (Supabase / Neon)
    DATABASE_URL: str = os.getenv('DATABASE_URL', '')

    # Catalog expansion: number of bundle hops followed below the proposal
    CATALOG_MAX_BUNDLE_DEPTH: int = int(os.getenv('CATALOG_MAX_BUNDLE_DEPTH', '1'))

    # Handover defaults (UTC wall-clock on the deal's proposed date)
    HANDOVER_DEFAULT_START: str = os.getenv('HANDOVER_DEFAULT_START', '08:00')
    HANDOVER_DEFAULT_END: str = os.getenv('HANDOVER_DEFAULT_END', '18:00')
    DEFAULT_PROJECT_NAME: str = os.getenv('DEFAULT_PROJECT_NAME', 'Production')
    DEFAULT_PROJECT_STATUS: str = os.getenv('DEFAULT_PROJECT_STATUS', 'lead')

    # Run-of-show section writes
    SECTION_WRITE_MAX_ATTEMPTS: int = int(os.getenv('SECTION_WRITE_MAX_ATTEMPTS', '3'))

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_JSON: bool = os.getenv('LOG_JSON', 'false').lower() == 'true'

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate that required configuration is present.

        Returns:
            List of missing required configuration keys
        """
        missing = []
        if not cls.DATABASE_URL:
            missing.append('DATABASE_URL')
        return missing


# Singleton config instance
config = Config()
