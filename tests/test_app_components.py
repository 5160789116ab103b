"""Integration tests: the wired application, end to end with fakes."""

import asyncio

import pytest

from voice_ledger.config import get_settings, validate_all_settings
from voice_ledger.models.ledger import LedgerDocument, TaxPayerInfo, TransactionGuess, default_document
from voice_ledger.orchestrator import create_app_components
from voice_ledger.services.storage import InMemoryLedgerStorage, LedgerStorageInterface


class BrokenStorage(LedgerStorageInterface):
    async def load(self):
        raise OSError("disk unreadable")

    async def save(self, document):
        pass

    async def clear(self):
        pass


@pytest.fixture
def make_components(transcription, downloader):
    def make(storage=None):
        return create_app_components(
            storage=storage or InMemoryLedgerStorage(),
            transcription=transcription,
            downloader=downloader,
        )
    return make


class TestStartup:
    @pytest.mark.asyncio
    async def test_restores_stored_ledger(self, make_components):
        stored = LedgerDocument(info=TaxPayerInfo(name="Lê Văn C"))
        components = make_components(InMemoryLedgerStorage(initial=stored))

        document = await components.start()

        assert document.info.name == "Lê Văn C"
        assert components.controller.is_loaded

    @pytest.mark.asyncio
    async def test_first_run_shows_sample(self, make_components):
        components = make_components()
        assert await components.start() == default_document()

    @pytest.mark.asyncio
    async def test_load_failure_falls_back_to_sample(self, make_components):
        components = make_components(BrokenStorage())

        document = await components.start()

        assert document == default_document()
        assert components.controller.is_loaded

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, make_components):
        storage = InMemoryLedgerStorage()
        components = make_components(storage)
        await components.start()
        components.controller.update_info_field("name", "Edited")

        document = await components.start()

        assert document.info.name == "Edited"


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_spoken_sale_is_persisted(self, make_components, transcription):
        storage = InMemoryLedgerStorage()
        components = make_components(storage)
        await components.start()
        transcription.guess = TransactionGuess(amount=5000000)

        outcome = await components.capture_flow.capture_new_transaction(b"audio", "audio/webm")
        await components.shutdown()

        stored = await storage.load()
        assert len(stored.transactions) == 3
        assert stored.find(outcome.transaction_id).amount == 5000000

    @pytest.mark.asyncio
    async def test_reset_clears_storage(self, make_components):
        storage = InMemoryLedgerStorage(initial=LedgerDocument())
        components = make_components(storage)
        await components.start()

        await components.reset()

        assert await storage.load() is None
        assert components.controller.snapshot() == default_document()

        # A restart after reset shows the sample again
        restarted = make_components(storage)
        assert await restarted.start() == default_document()

    def test_reset_on_throwaway_loops(self, make_components):
        """Test the Streamlit host pattern: each action gets its own event loop."""
        storage = InMemoryLedgerStorage(initial=LedgerDocument())
        components = make_components(storage)

        for action in (components.start, components.reset, components.reset):
            loop = asyncio.new_event_loop()
            try:
                loop.run_until_complete(action())
            finally:
                loop.close()

        assert not components.autosave.has_pending_work
        assert asyncio.run(storage.load()) is None

    @pytest.mark.asyncio
    async def test_ai_flag_follows_credential(self, make_components, transcription):
        transcription.has_credential = False
        components = make_components()
        assert not components.controller.ai_available


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.export.file_suffix == "_S1a.xlsx"
        assert settings.app.notification_seconds == 3.0
        assert settings.app.max_audio_size_bytes == settings.app.max_audio_size_mb * 1024 * 1024

    def test_validate_all_settings(self):
        results = validate_all_settings()
        assert "gemini" in results


class TestExceptionHierarchy:
    def test_service_errors_share_base_classes(self):
        from voice_ledger import exceptions

        assert issubclass(exceptions.MissingCredentialError, exceptions.TranscriptionError)
        assert issubclass(exceptions.ServiceUnavailableError, exceptions.TranscriptionError)
        assert issubclass(exceptions.PersistenceError, exceptions.StorageError)
        assert issubclass(exceptions.ShareCancelledError, exceptions.ShareError)
        assert issubclass(exceptions.LedgerNotLoadedError, RuntimeError)
