"""
Data Models Package

This package contains all Pydantic models used in the Voice Ledger system.
All data flowing through the system must conform to these schemas.
"""

from voice_ledger.models.ledger import (
    INFO_FIELD_LABELS,
    INFO_FIELDS,
    NEW_TRANSACTION_PLACEHOLDER,
    TRANSACTION_FIELDS,
    CaptureTarget,
    InfoField,
    LedgerDocument,
    TargetKind,
    TaxPayerInfo,
    Transaction,
    TransactionField,
    TransactionGuess,
    default_document,
    new_transaction_id,
)
from voice_ledger.models.events import (
    MUTATION_EVENTS,
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "INFO_FIELD_LABELS",
    "INFO_FIELDS",
    "NEW_TRANSACTION_PLACEHOLDER",
    "TRANSACTION_FIELDS",
    "CaptureTarget",
    "InfoField",
    "LedgerDocument",
    "TargetKind",
    "TaxPayerInfo",
    "Transaction",
    "TransactionField",
    "TransactionGuess",
    "default_document",
    "new_transaction_id",
    # Event models
    "MUTATION_EVENTS",
    "EventSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
