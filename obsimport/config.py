"""
Configuration management for obsimport.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()


def _parse_names(value: str) -> Tuple[str, ...]:
    """Parse 'a, b,c' into ('a', 'b', 'c'), dropping blanks and lowercasing."""
    if not value:
        return ()
    return tuple(name.strip().lower() for name in value.split(',') if name.strip())


@dataclass(frozen=True)
class MountainHubConfig:
    """MountainHub timeline API configuration."""
    base_url: str = os.getenv('MOUNTAINHUB_BASE_URL', 'https://api.mountainhub.com')
    publisher: str = os.getenv('MOUNTAINHUB_PUBLISHER', 'all')
    obs_type: str = os.getenv('MOUNTAINHUB_OBS_TYPE', 'snow_conditions')
    limit: int = int(os.getenv('MOUNTAINHUB_LIMIT', '100'))
    lookback_hours: int = int(os.getenv('MOUNTAINHUB_LOOKBACK_HOURS', '24'))
    timeout_seconds: float = float(os.getenv('MOUNTAINHUB_TIMEOUT_SECONDS', '30'))


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///observations.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')

    @property
    def is_memory(self) -> bool:
        # 'sqlite://' and 'sqlite:///:memory:' both open a private in-memory db
        return self.url in ('sqlite://', 'sqlite:///:memory:')


@dataclass(frozen=True)
class ImportConfig:
    """Observation import settings."""
    providers: Tuple[str, ...] = _parse_names(os.getenv('IMPORT_PROVIDERS', 'mountainhub'))

    # 0 disables the background scheduler; imports then only run on request
    interval_minutes: float = float(os.getenv('IMPORT_INTERVAL_MINUTES', '0'))

    @property
    def is_scheduled(self) -> bool:
        return self.interval_minutes > 0


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    mountainhub: MountainHubConfig
    database: DatabaseConfig
    imports: ImportConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        mountainhub=MountainHubConfig(),
        database=DatabaseConfig(),
        imports=ImportConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
