"""
Transcription Client Interface

The AI service is an opaque collaborator with a narrow contract: audio in,
text or a partial transaction out. Everything the rest of the system needs
to know about failures is captured by two exception types.
"""

from abc import ABC, abstractmethod

from voice_ledger.models.ledger import TransactionGuess


class TranscriptionError(Exception):
    """Base exception for transcription errors."""
    pass


class MissingCredentialError(TranscriptionError):
    """No API credential is configured; every AI call fails fast."""
    pass


class ServiceUnavailableError(TranscriptionError):
    """The AI service was unreachable, errored, or answered with garbage."""
    pass


class TranscriptionClient(ABC):
    """
    Converts recorded audio into ledger values.

    BOUNDARIES:
    - NEVER retries on its own; retry is a user action
    - NEVER touches the ledger; callers apply the result
    """

    @abstractmethod
    async def transcribe_freeform(self, audio: bytes, mime_type: str) -> str:
        """Plain transcription, used for transaction descriptions."""
        pass

    @abstractmethod
    async def transcribe_standardized(
        self,
        audio: bytes,
        mime_type: str,
        field_label: str,
    ) -> str:
        """Transcribe and normalize to one clean value for the named field."""
        pass

    @abstractmethod
    async def parse_transaction(self, audio: bytes, mime_type: str) -> TransactionGuess:
        """Transcribe one spoken sentence and extract date/description/amount."""
        pass
