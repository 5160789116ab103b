"""
Transcription Service using Gemini

DESIGN DECISION: We use Gemini because:
1. It accepts audio inline, so one request both transcribes and understands
2. It handles Vietnamese speech, numbers ("5 triệu") and place names well
3. It can return JSON directly for the structured transaction parse

This service handles:
1. Sending recorded audio (bytes + MIME type) to Gemini
2. Turning the answer into a clean string or a TransactionGuess
3. Mapping every failure onto MissingCredentialError / ServiceUnavailableError

CRITICAL: We never retry here. A failed capture is reported to the user,
who decides whether to speak again.
"""

import json
from datetime import date
from typing import Callable, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from voice_ledger.config import GeminiSettings, get_settings
from voice_ledger.models.ledger import TransactionGuess
from voice_ledger.services.transcription.interface import (
    MissingCredentialError,
    ServiceUnavailableError,
    TranscriptionClient,
)
from voice_ledger.validation.normalizers import clean_transcript


logger = structlog.get_logger(__name__)


FREEFORM_PROMPT = """Transcribe this Vietnamese audio recorded by a small shop owner.
It describes a sale or a service that was provided.

Return ONLY the transcribed sentence, with correct Vietnamese diacritics,
no quotes and no explanation."""

STANDARDIZED_PROMPT = """Transcribe this Vietnamese audio. The speaker is dictating
the value of the form field "{label}" of a household business revenue book (S1a-HKD).

Rules:
- Return ONLY the value, nothing else
- Remove filler words ("à", "ừm", "thì là", "ghi là"...)
- Use proper capitalization for names and addresses
- For a tax code (Mã số thuế) return digits only, e.g. "8000123456"
- For a period (Kỳ kê khai) use the form "Tháng 10/2023" or "Quý 4/2023"
"""

PARSE_TRANSACTION_PROMPT = """You listen to a Vietnamese shop owner describing one sale.
Today is {today}.

Extract a JSON object with these keys:
- "date": the sale date as dd/mm/yyyy ("hôm nay" means today, "hôm qua" yesterday).
  Omit the key if no date is mentioned.
- "description": a short description of what was sold, in Vietnamese.
  Omit the key if nothing is described.
- "amount": the amount in VND as an integer without separators
  ("5 triệu" -> 5000000, "hai trăm nghìn" -> 200000). Omit the key if no amount.

Example: "Hôm nay bán được 5 triệu tiền hàng tạp hóa" ->
{{"date": "{today}", "description": "Bán hàng tạp hóa", "amount": 5000000}}

Respond with ONLY the JSON object."""


def _base_mime_type(mime_type: str) -> str:
    # MediaRecorder reports e.g. "audio/webm;codecs=opus"
    return (mime_type or "").split(";")[0].strip() or "audio/webm"


class GeminiTranscriptionClient(TranscriptionClient):
    """
    Gemini-backed transcription client.

    IMPORTANT BOUNDARIES:
    1. A missing API key fails fast, before any network call
    2. Any other failure (network, quota, blocked answer, bad JSON)
       becomes ServiceUnavailableError
    3. Empty answers are returned as "" - the caller treats them as "nothing said"
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        today: Callable[[], date] = date.today,
    ):
        self._settings = settings or get_settings().gemini
        self._max_audio_bytes = get_settings().app.max_audio_size_bytes
        self._today = today
        self._model: Optional[genai.GenerativeModel] = None

    @property
    def has_credential(self) -> bool:
        return self._settings.has_credential

    def _get_model(self) -> genai.GenerativeModel:
        """Configure Google Generative AI on first use."""
        if not self._settings.has_credential:
            raise MissingCredentialError("GEMINI_API_KEY is not configured")
        if self._model is None:
            genai.configure(api_key=self._settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=self._settings.model_name,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": self._settings.max_tokens,
                }
            )
        return self._model

    async def _generate(
        self,
        prompt: str,
        audio: bytes,
        mime_type: str,
        json_output: bool = False,
    ) -> str:
        model = self._get_model()

        if len(audio) > self._max_audio_bytes:
            raise ServiceUnavailableError(
                f"Audio clip too large ({len(audio)} bytes)"
            )

        parts = [
            prompt,
            {"mime_type": _base_mime_type(mime_type), "data": audio},
        ]
        overrides = {"response_mime_type": "application/json"} if json_output else None

        try:
            if overrides:
                response = await model.generate_content_async(
                    parts, generation_config=overrides
                )
            else:
                response = await model.generate_content_async(parts)
            text = response.text
        except Exception as e:
            logger.warning(
                "gemini_request_failed",
                error_type=type(e).__name__,
                error=str(e),
                audio_bytes=len(audio),
            )
            raise ServiceUnavailableError(f"Gemini request failed: {e}") from e

        return text or ""

    async def transcribe_freeform(self, audio: bytes, mime_type: str) -> str:
        text = await self._generate(FREEFORM_PROMPT, audio, mime_type)
        return clean_transcript(text)

    async def transcribe_standardized(
        self,
        audio: bytes,
        mime_type: str,
        field_label: str,
    ) -> str:
        prompt = STANDARDIZED_PROMPT.format(label=field_label)
        text = await self._generate(prompt, audio, mime_type)
        return clean_transcript(text)

    async def parse_transaction(self, audio: bytes, mime_type: str) -> TransactionGuess:
        today = self._today().strftime("%d/%m/%Y")
        prompt = PARSE_TRANSACTION_PROMPT.format(today=today)
        text = await self._generate(prompt, audio, mime_type, json_output=True)
        return parse_transaction_json(text)


def parse_transaction_json(text: str) -> TransactionGuess:
    """
    Parse the model's JSON answer into a TransactionGuess.

    Tolerates surrounding prose or code fences by taking the outermost
    {...} span. Anything that is not a JSON object is a service failure.
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ServiceUnavailableError(f"No JSON object in AI response: {text[:100]!r}")

    try:
        data = json.loads(text[start:end])
        return TransactionGuess.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ServiceUnavailableError(f"Malformed AI response: {e}") from e
