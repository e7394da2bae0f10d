# aaas_core/storage/__init__.py

from .models import AssetRecord, AuthorizationRecord, AuditRecord
from .provider import StorageProvider
from .providers.memory_provider import InMemoryStorage
from .providers.sqlite_provider import SQLiteStorage
import os


def load_storage_provider(config: dict | None = None) -> StorageProvider:
    """
    Factory resolver for selecting the ledger storage backend.

        - memory (default)
        - sqlite
    """
    config = config or {}
    provider = (config.get("provider") or os.getenv("AAAS_STORAGE_PROVIDER", "memory")).lower()

    if provider == "memory":
        return InMemoryStorage()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("AAAS_DB_PATH", "db/aaas_ledger.db")
        return SQLiteStorage(db_path)

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "AssetRecord",
    "AuthorizationRecord",
    "AuditRecord",
    "StorageProvider",
    "InMemoryStorage",
    "SQLiteStorage",
    "load_storage_provider",
]
