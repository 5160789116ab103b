"""Services package."""

from voice_ledger.services.export import (
    Artifact,
    DownloadAndEmailSink,
    LocalFolderDownloader,
    NativeShareSink,
    ShareCancelledError,
    ShareError,
    ShareSink,
    ShareUnavailableError,
    render_spreadsheet,
)
from voice_ledger.services.storage import (
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
    PersistenceError,
    StorageError,
)
from voice_ledger.services.transcription import (
    GeminiTranscriptionClient,
    MissingCredentialError,
    ServiceUnavailableError,
    TranscriptionClient,
    TranscriptionError,
)

__all__ = [
    # Export services
    "Artifact",
    "DownloadAndEmailSink",
    "LocalFolderDownloader",
    "NativeShareSink",
    "ShareCancelledError",
    "ShareError",
    "ShareSink",
    "ShareUnavailableError",
    "render_spreadsheet",
    # Storage services
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
    "LedgerStorageInterface",
    "PersistenceError",
    "StorageError",
    # Transcription services
    "GeminiTranscriptionClient",
    "MissingCredentialError",
    "ServiceUnavailableError",
    "TranscriptionClient",
    "TranscriptionError",
]
