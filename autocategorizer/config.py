"""
Configuration

Settings come from environment variables; a `.env` file in the working
directory is loaded first if present.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .core.errors import ConfigError


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class DatabaseConfig:
    """PostgreSQL connection settings"""
    host: str = 'localhost'
    port: int = 5432
    database: str = 'budget_db'
    user: str = 'budget_user'
    password: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'DatabaseConfig':
        return cls(
            host=os.getenv('DB_HOST', 'localhost'),
            port=_env_int('DB_PORT', 5432),
            database=os.getenv('DB_NAME', 'budget_db'),
            user=os.getenv('DB_USER', 'budget_user'),
            password=os.getenv('DB_PASSWORD'),
        )


@dataclass
class Settings:
    """Application settings"""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    # Shortest description worth classifying
    min_description_length: int = 4
    log_level: str = 'WARNING'

    def should_classify(self, description: str) -> bool:
        return len((description or '').strip()) >= self.min_description_length


def load_settings(dotenv: bool = True) -> Settings:
    """
    Build settings from the environment

    Args:
        dotenv: Read a `.env` file before looking at the environment

    Raises:
        ConfigError: a numeric setting is malformed
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    return Settings(
        database=DatabaseConfig.from_env(),
        min_description_length=_env_int('AUTOCAT_MIN_DESCRIPTION_LENGTH', 4),
        log_level=os.getenv('AUTOCAT_LOG_LEVEL', 'WARNING').upper(),
    )


def setup_logging(settings: Settings):
    """Send library log records to stderr at the configured level"""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format='%(levelname)s %(name)s: %(message)s',
    )
