"""
Configuration settings for the dependency scheduler.
Values come from environment variables, optionally loaded from a .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_file = Path.cwd() / '.env'
if env_file.exists():
    load_dotenv(env_file)


class Settings:
    """Scheduler settings loaded from environment variables."""

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # "strict" raises on cycles, "best_effort" reports them and carries on
    SCHEDULE_MODE = os.getenv('SCHEDULE_MODE', 'strict')

    # Optimization advisor thresholds (days)
    REALLOCATION_SLACK_THRESHOLD = float(os.getenv('REALLOCATION_SLACK_THRESHOLD', '5'))
    NEAR_CRITICAL_THRESHOLD = float(os.getenv('NEAR_CRITICAL_THRESHOLD', '1'))

    # Memoized schedule snapshots; 0 disables the cache
    SCHEDULE_CACHE_SIZE = int(os.getenv('SCHEDULE_CACHE_SIZE', '128'))

    VALID_MODES = ('strict', 'best_effort')

    @classmethod
    def validate_settings(cls) -> list[str]:
        """
        Validate the configured values.
        Returns a list of problems (empty when everything is fine).
        """
        problems = []
        if cls.SCHEDULE_MODE not in cls.VALID_MODES:
            problems.append(f"SCHEDULE_MODE must be one of {cls.VALID_MODES}, got {cls.SCHEDULE_MODE!r}")
        if cls.REALLOCATION_SLACK_THRESHOLD < 0:
            problems.append("REALLOCATION_SLACK_THRESHOLD must not be negative")
        if cls.NEAR_CRITICAL_THRESHOLD < 0:
            problems.append("NEAR_CRITICAL_THRESHOLD must not be negative")
        if cls.SCHEDULE_CACHE_SIZE < 0:
            problems.append("SCHEDULE_CACHE_SIZE must not be negative")
        return problems


settings = Settings()
