"""In-memory ledger storage, used by tests and when persistence is disabled."""

from typing import Optional

from voice_ledger.models.ledger import LedgerDocument
from voice_ledger.services.storage.interface import (
    LedgerStorageInterface,
    PersistenceError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """
    Keeps a serialized copy of the last saved document.

    Storing JSON rather than the object itself means a later mutation of the
    caller's document can never leak into "storage".
    """

    def __init__(
        self,
        initial: Optional[LedgerDocument] = None,
        fail_saves: bool = False,
        fail_clears: bool = False,
    ):
        self._payload: Optional[str] = initial.model_dump_json(by_alias=True) if initial else None
        self.fail_saves = fail_saves
        self.fail_clears = fail_clears
        self.save_count = 0
        self.clear_count = 0

    async def load(self) -> Optional[LedgerDocument]:
        if self._payload is None:
            return None
        return LedgerDocument.model_validate_json(self._payload)

    async def save(self, document: LedgerDocument) -> None:
        if self.fail_saves:
            raise PersistenceError("In-memory storage configured to fail saves")
        self._payload = document.model_dump_json(by_alias=True)
        self.save_count += 1

    async def clear(self) -> None:
        if self.fail_clears:
            raise PersistenceError("In-memory storage configured to fail clears")
        self._payload = None
        self.clear_count += 1
