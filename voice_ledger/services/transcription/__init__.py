"""Transcription services package."""

from voice_ledger.services.transcription.interface import (
    MissingCredentialError,
    ServiceUnavailableError,
    TranscriptionClient,
    TranscriptionError,
)
from voice_ledger.services.transcription.gemini_service import (
    GeminiTranscriptionClient,
    parse_transaction_json,
)

__all__ = [
    "GeminiTranscriptionClient",
    "MissingCredentialError",
    "ServiceUnavailableError",
    "TranscriptionClient",
    "TranscriptionError",
    "parse_transaction_json",
]
