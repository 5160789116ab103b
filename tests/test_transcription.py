"""Tests for the Gemini transcription client (no network)."""

import pytest

from voice_ledger.config import GeminiSettings
from voice_ledger.services.transcription import (
    GeminiTranscriptionClient,
    MissingCredentialError,
    ServiceUnavailableError,
    parse_transaction_json,
)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Records generate_content_async calls and replays a canned answer."""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate_content_async(self, parts, generation_config=None):
        self.calls.append((parts, generation_config))
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


def _client(model, today):
    client = GeminiTranscriptionClient(
        settings=GeminiSettings(api_key="test-key"),
        today=lambda: today,
    )
    client._model = model
    return client


class TestCredentials:
    @pytest.mark.parametrize("key", ["", "undefined", "null", "  "])
    def test_placeholder_keys_are_missing(self, key):
        assert not GeminiSettings(api_key=key).has_credential

    def test_real_key(self):
        assert GeminiSettings(api_key="AIza-something").has_credential

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_request(self):
        client = GeminiTranscriptionClient(settings=GeminiSettings(api_key=""))
        assert not client.has_credential
        with pytest.raises(MissingCredentialError):
            await client.transcribe_freeform(b"audio", "audio/webm")


class TestGeminiTranscriptionClient:
    @pytest.mark.asyncio
    async def test_freeform_sends_audio_inline(self, today):
        model = FakeModel(text='  "Bán hàng tạp hóa"\n')
        client = _client(model, today)

        text = await client.transcribe_freeform(b"audio", "audio/webm;codecs=opus")

        assert text == "Bán hàng tạp hóa"
        parts, config = model.calls[0]
        assert parts[1] == {"mime_type": "audio/webm", "data": b"audio"}
        assert config is None

    @pytest.mark.asyncio
    async def test_standardized_prompt_names_field(self, today):
        model = FakeModel(text="8000123456")
        client = _client(model, today)

        text = await client.transcribe_standardized(b"audio", "audio/mp4", "Mã số thuế")

        assert text == "8000123456"
        assert "Mã số thuế" in model.calls[0][0][0]

    @pytest.mark.asyncio
    async def test_parse_transaction_requests_json(self, today, today_string):
        model = FakeModel(text='{"amount": 5000000}')
        client = _client(model, today)

        guess = await client.parse_transaction(b"audio", "audio/webm")

        assert guess.amount == 5000000
        assert guess.date is None
        prompt, config = model.calls[0][0][0], model.calls[0][1]
        assert today_string in prompt
        assert config == {"response_mime_type": "application/json"}

    @pytest.mark.asyncio
    async def test_request_failure_is_service_unavailable(self, today):
        client = _client(FakeModel(error=RuntimeError("quota exceeded")), today)
        with pytest.raises(ServiceUnavailableError):
            await client.transcribe_freeform(b"audio", "audio/webm")

    @pytest.mark.asyncio
    async def test_oversized_audio_rejected(self, today):
        model = FakeModel(text="x")
        client = _client(model, today)
        client._max_audio_bytes = 4

        with pytest.raises(ServiceUnavailableError):
            await client.transcribe_freeform(b"too long", "audio/webm")
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_empty_answer(self, today):
        client = _client(FakeModel(text=""), today)
        assert await client.transcribe_freeform(b"audio", "audio/webm") == ""


class TestParseTransactionJson:
    def test_plain_object(self):
        guess = parse_transaction_json(
            '{"date": "05/03/2024", "description": "Bán rau", "amount": 150000}'
        )
        assert (guess.date, guess.description, guess.amount) == ("05/03/2024", "Bán rau", 150000)

    def test_code_fence_and_prose(self):
        guess = parse_transaction_json('Here you go:\n```json\n{"amount": "200.000"}\n```')
        assert guess.amount == 200000

    def test_missing_keys_allowed(self):
        guess = parse_transaction_json("{}")
        assert guess.amount is None

    @pytest.mark.parametrize("text", ["", "no json here", "{broken", '{"amount": }'])
    def test_invalid_answers(self, text):
        with pytest.raises(ServiceUnavailableError):
            parse_transaction_json(text)
