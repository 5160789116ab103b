"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger persistence.
This allows us to:
1. Keep the ledger in a local JSON file today
2. Use in-memory storage for testing
3. Swap in another local key-value mechanism without touching the controller

The interface is intentionally tiny: exactly one document is stored per
installation, so there is nothing to query. Saves follow "last write wins".
"""

from abc import ABC, abstractmethod
from typing import Optional

from voice_ledger.models.ledger import LedgerDocument


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger document persistence.

    All methods are async. Implementations raise PersistenceError on
    failure; callers decide whether to log or propagate.
    """

    @abstractmethod
    async def load(self) -> Optional[LedgerDocument]:
        """
        Load the stored ledger.

        Returns:
            The stored document, or None if nothing has been saved yet

        Raises:
            PersistenceError: If the backing store cannot be read
        """
        pass

    @abstractmethod
    async def save(self, document: LedgerDocument) -> None:
        """
        Replace the stored ledger with this document.

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def clear(self) -> None:
        """
        Remove all stored state.

        Clearing an empty store is not an error.

        Raises:
            PersistenceError: If the stored state could not be removed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """Reading, writing or clearing the stored ledger failed."""
    pass
