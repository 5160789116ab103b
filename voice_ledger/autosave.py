"""
Debounced Autosave

Turns the controller's mutation events into storage writes.

FLOW:
1. A mutation event marks the ledger dirty and (re)arms a trailing timer
2. When the timer fires, a snapshot taken AT THAT MOMENT is saved
3. Saves and clears run one at a time under a lock, in request order

Because the snapshot is taken when the save runs (not when the event
arrived), the last mutation before a save always wins. Intermediate states
may be skipped; that is allowed.

A reset event does not debounce: it requests storage.clear() right away,
ahead of any save that follows.

If no event loop is running when an event arrives (synchronous host code),
nothing is scheduled; the dirty flag waits for the next flush().

Failures are logged and emitted as events. They never reach the user and
never roll back the in-memory ledger.
"""

import asyncio
from typing import Optional

import structlog

from voice_ledger.config import get_settings
from voice_ledger.controller import LedgerStateController
from voice_ledger.models.events import LedgerEvent, LedgerEventBuilder, LedgerEventType
from voice_ledger.services.storage import LedgerStorageInterface


logger = structlog.get_logger(__name__)


class AutosaveScheduler:
    """Coalesces ledger mutations into debounced saves."""

    def __init__(
        self,
        controller: LedgerStateController,
        storage: LedgerStorageInterface,
        debounce_seconds: Optional[float] = None,
    ):
        self._controller = controller
        self._storage = storage
        if debounce_seconds is None:
            debounce_seconds = get_settings().app.autosave_debounce_seconds
        self._debounce_seconds = debounce_seconds

        self._dirty = False
        self._pending_clear = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

        self._unsubscribe = controller.subscribe(self._on_event)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def has_pending_work(self) -> bool:
        return self._dirty or self._pending_clear or bool(self._tasks)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def _on_event(self, event: LedgerEvent) -> None:
        if not event.is_mutation or not self._controller.is_loaded:
            return

        if event.event_type == LedgerEventType.LEDGER_RESET:
            # The document is the default again; clear instead of saving it
            self._dirty = False
            self._pending_clear = True
            self._cancel_timer()
            self._spawn_flush()
            return

        self._dirty = True
        self._arm_timer()

    def _arm_timer(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._cancel_timer()
        self._timer = loop.call_later(self._debounce_seconds, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self._spawn_flush()

    def _spawn_flush(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.flush())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _get_lock(self) -> asyncio.Lock:
        # A host may drive us from several short-lived event loops
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """
        Perform any pending clear and save now.

        Safe to call at any time; does nothing when there is no pending work.
        """
        self._cancel_timer()
        async with self._get_lock():
            if self._pending_clear:
                await self._clear()
                # Lowered only once the clear ran; an abandoned clear is redone
                self._pending_clear = False

            if self._dirty:
                self._dirty = False
                await self._save()

    async def _clear(self) -> None:
        try:
            await self._storage.clear()
        except Exception as e:
            logger.error("ledger_clear_failed", error=str(e), error_type=type(e).__name__)
            self._controller.emit(LedgerEventBuilder.clear_failed(str(e)))
            return
        self._controller.emit(LedgerEventBuilder.storage_cleared())

    async def _save(self) -> None:
        snapshot = self._controller.snapshot()
        try:
            await self._storage.save(snapshot)
        except Exception as e:
            # Keep the flag so a later flush tries again
            self._dirty = True
            logger.error("ledger_save_failed", error=str(e), error_type=type(e).__name__)
            self._controller.emit(LedgerEventBuilder.save_failed(str(e)))
            return
        self._controller.emit(LedgerEventBuilder.ledger_saved(len(snapshot.transactions)))

    async def drain(self) -> None:
        """
        Wait for spawned flushes on this loop, then flush what is left.

        Hosts that run each action on a short-lived event loop must call this
        (not flush()) before the loop closes, or a spawned flush is left
        pending forever. Tasks left behind by loops that are already closed can
        never finish and are dropped.
        """
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        for task in list(self._tasks):
            if task.get_loop() is not loop:
                self._tasks.discard(task)
        pending = [t for t in self._tasks if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self.flush()

    async def close(self) -> None:
        """Stop listening and persist whatever is still pending."""
        self._unsubscribe()
        await self.drain()
