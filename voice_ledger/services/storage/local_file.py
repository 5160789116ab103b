"""
Local JSON File Storage Implementation

DESIGN DECISION: The ledger is a single small document, so it is stored as
one JSON file on local disk:
1. Works offline, no database setup required
2. Users can back the file up or inspect it by hand
3. One document means no partial-update problems

TRADEOFFS:
- The whole document is rewritten on every save (fine for a paper-sized ledger)
- No history (not needed: the ledger has no versioning)

Writes go to a temporary file in the same directory and are then moved over
the target with os.replace, so a crash mid-write never leaves a truncated
ledger behind.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from voice_ledger.config import get_settings
from voice_ledger.models.ledger import LedgerDocument
from voice_ledger.services.storage.interface import (
    LedgerStorageInterface,
    PersistenceError,
)


logger = structlog.get_logger(__name__)

CORRUPT_SUFFIX = ".corrupt"


class JsonFileLedgerStorage(LedgerStorageInterface):
    """
    Stores the ledger document as UTF-8 JSON at a fixed path.

    Blocking file I/O runs in a worker thread so the event loop keeps
    serving other captures while a save is in progress.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path else get_settings().storage.path

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Blocking helpers (run in a thread)
    # ------------------------------------------------------------------

    def _read(self) -> Optional[LedgerDocument]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Could not read ledger file {self._path}: {e}") from e

        try:
            return LedgerDocument.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            self._quarantine(str(e))
            return None

    def _quarantine(self, reason: str) -> None:
        """Move an unreadable ledger aside so the next save does not destroy it."""
        target = self._path.with_name(self._path.name + CORRUPT_SUFFIX)
        try:
            os.replace(self._path, target)
        except OSError as e:
            raise PersistenceError(
                f"Ledger file {self._path} is unreadable and could not be moved aside: {e}"
            ) from e
        logger.warning(
            "ledger_file_quarantined",
            path=str(self._path),
            moved_to=str(target),
            reason=reason,
        )

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=self._path.name + ".",
            suffix=".tmp",
            dir=self._path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def _delete(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass

    # ------------------------------------------------------------------
    # LedgerStorageInterface
    # ------------------------------------------------------------------

    async def load(self) -> Optional[LedgerDocument]:
        return await asyncio.to_thread(self._read)

    async def save(self, document: LedgerDocument) -> None:
        payload = document.model_dump_json(indent=2, by_alias=True)
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as e:
            raise PersistenceError(f"Could not write ledger file {self._path}: {e}") from e

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._delete)
        except OSError as e:
            raise PersistenceError(f"Could not remove ledger file {self._path}: {e}") from e
