"""
Store Factory
Centralizes the logic for building the storage adapter from config.
"""

from flashdeck.application.config import AppConfig
from flashdeck.infrastructure.sqlite_store import SqliteStore


def get_store(config: AppConfig) -> SqliteStore:
    """
    Returns the SQLite store for the configured database path.

    The store implements DeckRepository, DueCardQuery and ReviewRepository.
    """
    return SqliteStore(config.db_path)
