"""
Ledger State Controller

The single source of truth for the in-memory ledger.

DESIGN DECISION: The controller exclusively owns the LedgerDocument.
Every other component either reads a snapshot (a deep copy) or submits a
change through one of the operations below. Operations are synchronous and
complete before returning; persistence happens afterwards, driven by the
events the controller emits.

The controller also owns two pieces of UI-facing state that used to be
loose globals:
1. The busy set - which capture targets have a transcription in flight
2. The AI availability flag - whether an API credential is usable
"""

from datetime import date
from typing import Any, Callable, Optional

import structlog

from voice_ledger.models.events import LedgerEvent, LedgerEventBuilder
from voice_ledger.models.ledger import (
    INFO_FIELDS,
    TRANSACTION_FIELDS,
    CaptureTarget,
    LedgerDocument,
    Transaction,
    default_document,
    new_transaction_id,
)
from voice_ledger.validation.normalizers import coerce_amount, sanitize_amount


logger = structlog.get_logger(__name__)

DATE_FORMAT = "%d/%m/%Y"

LedgerListener = Callable[[LedgerEvent], None]


class LedgerNotLoadedError(RuntimeError):
    """A mutation was attempted before the stored ledger finished loading."""
    pass


class LedgerStateController:
    """
    Holds the current ledger and applies mutations to it.

    Startup sequence:
        controller = LedgerStateController(ai_available=True)
        controller.finish_loading(await storage.load())

    Until finish_loading() is called the sample document is shown but every
    mutation raises LedgerNotLoadedError, so nothing can overwrite stored data
    with the transient default.
    """

    def __init__(
        self,
        ai_available: bool = True,
        today: Callable[[], date] = date.today,
    ):
        self._document = default_document()
        self._loaded = False
        self._generation = 0
        self._busy: set[CaptureTarget] = set()
        self._ai_available = ai_available
        self._today = today
        self._listeners: list[LedgerListener] = []

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: LedgerEvent) -> None:
        """Deliver an event to every listener; a failing listener is logged and skipped."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "ledger_listener_failed",
                    event_type=event.event_type.value,
                )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def generation(self) -> int:
        """Bumped whenever the whole document is replaced (load or reset)."""
        return self._generation

    def finish_loading(self, stored: Optional[LedgerDocument]) -> None:
        """
        Install the document read from storage and start accepting mutations.

        None means nothing was stored; the sample document stays in place.
        """
        if stored is not None:
            self._document = stored.model_copy(deep=True)
            self._generation += 1
        self._loaded = True
        self.emit(LedgerEventBuilder.ledger_loaded(
            from_storage=stored is not None,
            transaction_count=len(self._document.transactions),
        ))

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise LedgerNotLoadedError(
                "Ledger is still loading from storage; mutations are not accepted yet"
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerDocument:
        """Deep copy of the current document, safe to hand to other components."""
        return self._document.model_copy(deep=True)

    def has_transaction(self, transaction_id: str) -> bool:
        return self._document.find(transaction_id) is not None

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        transaction = self._document.find(transaction_id)
        return transaction.model_copy() if transaction else None

    def transaction_ids(self) -> list[str]:
        return [t.id for t in self._document.transactions]

    def today_string(self) -> str:
        return self._today().strftime(DATE_FORMAT)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_info_field(self, field: str, value: str) -> None:
        """Overwrite one taxpayer info field."""
        if field not in INFO_FIELDS:
            raise ValueError(f"Unknown info field: {field}")
        self._require_loaded()
        setattr(self._document.info, field, value)
        self.emit(LedgerEventBuilder.info_updated(field))

    def add_transaction(
        self,
        date: Optional[str] = None,
        description: Optional[str] = None,
        amount: Any = None,
    ) -> str:
        """
        Append a transaction and return its freshly generated id.

        Date defaults to today, description to "", amount to 0.
        """
        self._require_loaded()
        existing = {t.id for t in self._document.transactions}
        transaction_id = new_transaction_id()
        while transaction_id in existing:
            transaction_id = new_transaction_id()

        transaction = Transaction(
            id=transaction_id,
            date=date if date else self.today_string(),
            description=description or "",
            amount=coerce_amount(amount),
        )
        self._document.transactions.append(transaction)
        self.emit(LedgerEventBuilder.transaction_added(transaction_id, transaction.amount))
        return transaction_id

    def update_transaction(self, transaction_id: str, field: str, value: Any) -> bool:
        """
        Change one field of one transaction.

        Amount values are sanitized: "1.234.567" -> 1234567, "abc" -> 0.
        Returns False (and changes nothing) when the id is unknown.
        """
        if field not in TRANSACTION_FIELDS:
            raise ValueError(f"Unknown transaction field: {field}")
        self._require_loaded()

        transaction = self._document.find(transaction_id)
        if transaction is None:
            return False

        if field == "amount":
            value = sanitize_amount(value) if isinstance(value, str) else coerce_amount(value)
        else:
            value = "" if value is None else str(value)

        setattr(transaction, field, value)
        self.emit(LedgerEventBuilder.transaction_updated(transaction_id, field))
        return True

    def remove_transaction(self, transaction_id: str) -> bool:
        """Delete a transaction; returns False when it did not exist."""
        self._require_loaded()
        transactions = self._document.transactions
        for index, transaction in enumerate(transactions):
            if transaction.id == transaction_id:
                del transactions[index]
                self.emit(LedgerEventBuilder.transaction_removed(transaction_id))
                return True
        return False

    def reset(self) -> None:
        """
        Replace the ledger with the sample document.

        The emitted reset event makes the autosave scheduler clear storage.
        In-flight captures are invalidated through the generation counter.
        """
        self._require_loaded()
        self._document = default_document()
        self._generation += 1
        self.emit(LedgerEventBuilder.ledger_reset())

    # ------------------------------------------------------------------
    # Busy set
    # ------------------------------------------------------------------

    def try_acquire(self, target: CaptureTarget) -> bool:
        """Mark a target busy; False if a capture is already in flight for it."""
        if target in self._busy:
            return False
        self._busy.add(target)
        return True

    def release(self, target: CaptureTarget) -> None:
        self._busy.discard(target)

    def is_busy(self, target: CaptureTarget) -> bool:
        return target in self._busy

    def busy_targets(self) -> frozenset[CaptureTarget]:
        return frozenset(self._busy)

    # ------------------------------------------------------------------
    # AI availability
    # ------------------------------------------------------------------

    @property
    def ai_available(self) -> bool:
        """Status display only; calls are never blocked because of it."""
        return self._ai_available

    def mark_ai_unavailable(self) -> None:
        if self._ai_available:
            logger.warning("ai_marked_unavailable")
        self._ai_available = False
