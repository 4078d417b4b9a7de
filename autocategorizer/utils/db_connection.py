"""
Database connection utilities
"""
from typing import Optional

import psycopg2

from ..config import DatabaseConfig, load_settings


def get_db_connection(config: Optional[DatabaseConfig] = None):
    """
    Get a PostgreSQL connection

    Args:
        config: Connection settings (default: from environment / .env)

    Returns:
        psycopg2 connection object
    """
    config = config or load_settings().database
    return psycopg2.connect(
        host=config.host,
        port=config.port,
        database=config.database,
        user=config.user,
        password=config.password,
    )
