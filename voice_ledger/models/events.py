"""
Ledger Event Models

Every mutation of the ledger, and every notable step of the capture and
export pipelines, produces a LedgerEvent. Events serve two consumers:
1. The autosave scheduler, which only cares that the document changed
2. The audit logger, which writes them to the structured log

DESIGN DECISION: Events describe what happened; they never carry a mutable
reference to the document. Listeners that need the data take a snapshot
from the controller.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Types of events emitted by the ledger core."""
    # Document mutations
    LEDGER_LOADED = "ledger_loaded"
    INFO_UPDATED = "info_updated"
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_REMOVED = "transaction_removed"
    LEDGER_RESET = "ledger_reset"

    # Voice capture
    CAPTURE_STARTED = "capture_started"
    CAPTURE_APPLIED = "capture_applied"
    CAPTURE_REJECTED = "capture_rejected"
    CAPTURE_DISCARDED = "capture_discarded"
    CAPTURE_FAILED = "capture_failed"

    # Persistence
    LEDGER_SAVED = "ledger_saved"
    SAVE_FAILED = "save_failed"
    STORAGE_CLEARED = "storage_cleared"
    CLEAR_FAILED = "clear_failed"

    # Export
    ARTIFACT_SHARED = "artifact_shared"
    ARTIFACT_DOWNLOADED = "artifact_downloaded"


# Events that change the document and therefore need persisting
MUTATION_EVENTS = frozenset({
    LedgerEventType.INFO_UPDATED,
    LedgerEventType.TRANSACTION_ADDED,
    LedgerEventType.TRANSACTION_UPDATED,
    LedgerEventType.TRANSACTION_REMOVED,
    LedgerEventType.LEDGER_RESET,
})


class EventSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single event in the ledger's history."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: LedgerEventType
    severity: EventSeverity = EventSeverity.INFO

    # Which field / transaction / capture target this is about
    target: Optional[str] = None

    description: str = Field(default="", max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    @property
    def is_mutation(self) -> bool:
        return self.event_type in MUTATION_EVENTS

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "target": self.target,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.transaction_added(transaction_id, amount)
    """

    @staticmethod
    def ledger_loaded(from_storage: bool, transaction_count: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_LOADED,
            description=(
                "Ledger restored from storage" if from_storage
                else "No stored ledger, using sample document"
            ),
            details={
                "from_storage": from_storage,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def info_updated(field: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.INFO_UPDATED,
            target=field,
            description=f"Taxpayer info field updated: {field}",
        )

    @staticmethod
    def transaction_added(transaction_id: str, amount: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_ADDED,
            target=transaction_id,
            description="Transaction added",
            details={"amount": amount},
        )

    @staticmethod
    def transaction_updated(transaction_id: str, field: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_UPDATED,
            target=transaction_id,
            description=f"Transaction field updated: {field}",
            details={"field": field},
        )

    @staticmethod
    def transaction_removed(transaction_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_REMOVED,
            target=transaction_id,
            description="Transaction removed",
        )

    @staticmethod
    def ledger_reset() -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_RESET,
            severity=EventSeverity.WARNING,
            description="Ledger reset to the sample document",
        )

    @staticmethod
    def capture_started(target: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CAPTURE_STARTED,
            severity=EventSeverity.DEBUG,
            target=target,
            description="Voice capture processing started",
        )

    @staticmethod
    def capture_applied(target: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CAPTURE_APPLIED,
            target=target,
            description="Voice capture applied to ledger",
        )

    @staticmethod
    def capture_rejected(target: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CAPTURE_REJECTED,
            severity=EventSeverity.WARNING,
            target=target,
            description="Capture rejected: target already busy",
        )

    @staticmethod
    def capture_discarded(target: str, reason: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CAPTURE_DISCARDED,
            severity=EventSeverity.WARNING,
            target=target,
            description=f"Stale capture result discarded: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def capture_failed(target: str, error_type: str, error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CAPTURE_FAILED,
            severity=EventSeverity.ERROR,
            target=target,
            description=f"Voice capture failed: {error_type}",
            details={"error_type": error_type},
            error_message=error_message,
        )

    @staticmethod
    def ledger_saved(transaction_count: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_SAVED,
            severity=EventSeverity.DEBUG,
            description="Ledger persisted",
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def save_failed(error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SAVE_FAILED,
            severity=EventSeverity.ERROR,
            description="Persisting the ledger failed; in-memory copy kept",
            error_message=error_message,
        )

    @staticmethod
    def storage_cleared() -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.STORAGE_CLEARED,
            description="Stored ledger removed",
        )

    @staticmethod
    def clear_failed(error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CLEAR_FAILED,
            severity=EventSeverity.ERROR,
            description="Clearing stored ledger failed",
            error_message=error_message,
        )

    @staticmethod
    def artifact_shared(file_name: str, channel: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ARTIFACT_SHARED,
            target=file_name,
            description=f"Ledger spreadsheet shared via {channel}",
            details={"channel": channel},
        )

    @staticmethod
    def artifact_downloaded(file_name: str, location: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ARTIFACT_DOWNLOADED,
            target=file_name,
            description="Ledger spreadsheet downloaded",
            details={"location": location},
        )
