"""
Shared fixtures and fakes for the Voice Ledger tests.

No test talks to Gemini, the real home directory or a browser: the
transcription client, downloader and URL opener are replaced by the
recording fakes below.
"""

import asyncio
from datetime import date
from typing import Optional

import pytest

from voice_ledger.controller import LedgerStateController
from voice_ledger.models.events import LedgerEvent
from voice_ledger.models.ledger import TransactionGuess
from voice_ledger.notifications import NotificationCenter
from voice_ledger.services.export import Artifact, Downloader
from voice_ledger.services.storage import InMemoryLedgerStorage
from voice_ledger.services.transcription import TranscriptionClient


TODAY = date(2024, 3, 5)
TODAY_STRING = "05/03/2024"


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTranscriptionClient(TranscriptionClient):
    """
    Scripted transcription client.

    Set `gate` to an asyncio.Event to hold calls in flight until the test
    releases them; `started` is set as soon as a call begins.
    """

    def __init__(
        self,
        text: str = "",
        guess: Optional[TransactionGuess] = None,
        error: Optional[Exception] = None,
    ):
        self.text = text
        self.guess = guess or TransactionGuess()
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.started = asyncio.Event()
        self.calls: list[tuple] = []

    async def _respond(self, call: tuple, value):
        self.calls.append(call)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return value

    async def transcribe_freeform(self, audio: bytes, mime_type: str) -> str:
        return await self._respond(("freeform", mime_type), self.text)

    async def transcribe_standardized(self, audio: bytes, mime_type: str, field_label: str) -> str:
        return await self._respond(("standardized", mime_type, field_label), self.text)

    async def parse_transaction(self, audio: bytes, mime_type: str) -> TransactionGuess:
        return await self._respond(("parse", mime_type), self.guess)


class RecordingDownloader(Downloader):
    """Remembers every artifact instead of writing it to disk."""

    def __init__(self):
        self.artifacts: list[Artifact] = []

    async def download(self, artifact: Artifact) -> str:
        self.artifacts.append(artifact)
        return f"/downloads/{artifact.file_name}"


class RecordingOpener:
    """Stands in for webbrowser.open."""

    def __init__(self):
        self.urls: list[str] = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        return True


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def today_string() -> str:
    return TODAY_STRING


@pytest.fixture
def controller() -> LedgerStateController:
    """A controller that has finished loading (nothing was stored)."""
    controller = LedgerStateController(ai_available=True, today=lambda: TODAY)
    controller.finish_loading(None)
    return controller


@pytest.fixture
def events(controller) -> list[LedgerEvent]:
    """Every event the controller emits after the fixture is created."""
    recorded: list[LedgerEvent] = []
    controller.subscribe(recorded.append)
    return recorded


@pytest.fixture
def storage() -> InMemoryLedgerStorage:
    return InMemoryLedgerStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifications(clock) -> NotificationCenter:
    return NotificationCenter(display_seconds=3.0, clock=clock)


@pytest.fixture
def transcription() -> FakeTranscriptionClient:
    return FakeTranscriptionClient()


@pytest.fixture
def downloader() -> RecordingDownloader:
    return RecordingDownloader()


@pytest.fixture
def opener() -> RecordingOpener:
    return RecordingOpener()
