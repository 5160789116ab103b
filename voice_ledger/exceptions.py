"""Exception types raised across the package, collected in one place."""

from voice_ledger.controller import LedgerNotLoadedError
from voice_ledger.services.export.share import (
    ShareCancelledError,
    ShareError,
    ShareUnavailableError,
)
from voice_ledger.services.storage.interface import PersistenceError, StorageError
from voice_ledger.services.transcription.interface import (
    MissingCredentialError,
    ServiceUnavailableError,
    TranscriptionError,
)

__all__ = [
    "LedgerNotLoadedError",
    "MissingCredentialError",
    "PersistenceError",
    "ServiceUnavailableError",
    "ShareCancelledError",
    "ShareError",
    "ShareUnavailableError",
    "StorageError",
    "TranscriptionError",
]
