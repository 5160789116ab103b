"""
Storage Services Package

Provides the abstract ledger storage interface and its implementations.
The local JSON file is the production backend; in-memory storage backs tests.
"""

from voice_ledger.services.storage.interface import (
    LedgerStorageInterface,
    PersistenceError,
    StorageError,
)
from voice_ledger.services.storage.local_file import JsonFileLedgerStorage
from voice_ledger.services.storage.memory import InMemoryLedgerStorage

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    # Exceptions
    "PersistenceError",
    "StorageError",
    # Implementations
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
]
