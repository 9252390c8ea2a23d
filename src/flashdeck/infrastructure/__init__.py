# Infrastructure Adapters Package
from .sqlite_store import SqliteStore

__all__ = ["SqliteStore"]
