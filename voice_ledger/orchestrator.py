"""
Main Orchestrator for Voice Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Voice capture (audio -> AI -> validated value -> ledger)
2. Export (ledger snapshot -> spreadsheet -> share / download)

DESIGN DECISION: The orchestrator enforces the boundaries:
- At most one capture in flight per target; a second one is rejected
- A stale AI answer is never applied to a reset or deleted target
- AI failures become short-lived notifications, never exceptions in the UI
- Nothing retries automatically; the user speaks again

This is the "glue" that keeps the ledger consistent even when the AI
service is slow, offline or unconfigured.
"""

import webbrowser
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import structlog
from pydantic import BaseModel

from voice_ledger.audit import LedgerAuditLogger, configure_logging
from voice_ledger.autosave import AutosaveScheduler
from voice_ledger.config import get_settings
from voice_ledger.controller import LedgerStateController
from voice_ledger.models.events import LedgerEventBuilder
from voice_ledger.models.ledger import (
    INFO_FIELD_LABELS,
    NEW_TRANSACTION_PLACEHOLDER,
    CaptureTarget,
    LedgerDocument,
    TargetKind,
)
from voice_ledger.notifications import (
    AI_UNAVAILABLE_MESSAGE,
    ANALYZING_MESSAGE,
    CONNECTION_FAILED_MESSAGE,
    TRANSACTION_ADDED_MESSAGE,
    NotificationCenter,
    NotificationKind,
)
from voice_ledger.services.export import (
    XLSX_MIME_TYPE,
    Artifact,
    DownloadAndEmailSink,
    Downloader,
    LocalFolderDownloader,
    NativeShareSink,
    ShareResult,
    ShareSink,
    build_file_name,
    deliver_with_fallback,
    render_spreadsheet,
)
from voice_ledger.services.storage import (
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
)
from voice_ledger.services.transcription import (
    GeminiTranscriptionClient,
    MissingCredentialError,
    TranscriptionClient,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# VOICE CAPTURE
# =============================================================================

class CaptureState(str, Enum):
    """Per-target capture state machine: IDLE -> CAPTURING -> PROCESSING -> IDLE | ERROR."""
    IDLE = "idle"
    CAPTURING = "capturing"
    PROCESSING = "processing"
    ERROR = "error"


class CaptureStatus(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"      # target already busy
    DISCARDED = "discarded"    # target reset or removed while the AI was working
    FAILED = "failed"          # AI call failed, notification shown
    EMPTY = "empty"            # nothing usable was said


class CaptureOutcome(BaseModel):
    status: CaptureStatus
    target: CaptureTarget
    value: Optional[str] = None
    transaction_id: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.status == CaptureStatus.APPLIED


class VoiceCaptureFlow:
    """
    Orchestrates voice capture for info fields, transaction descriptions
    and whole new transactions.

    Flow for every target:
    1. Acquire the target in the controller's busy set (reject if taken)
    2. PROCESSING: call the matching transcription operation
    3. Check the target still exists and the document was not replaced
    4. Apply the result through the controller
    5. Release the target; IDLE on success, ERROR + notification on failure

    Audio acquisition (the CAPTURING state) is owned by the host; it calls
    begin_recording() when the microphone opens and one of the capture_*
    methods with the finished clip.
    """

    def __init__(
        self,
        controller: LedgerStateController,
        transcription: TranscriptionClient,
        notifications: Optional[NotificationCenter] = None,
    ):
        self._controller = controller
        self._transcription = transcription
        self._notifications = notifications or NotificationCenter()
        self._states: dict[CaptureTarget, CaptureState] = {}

    @property
    def notifications(self) -> NotificationCenter:
        return self._notifications

    def state_of(self, target: CaptureTarget) -> CaptureState:
        state = self._states.get(target, CaptureState.IDLE)
        if state == CaptureState.ERROR and self._notifications.current() is None:
            # The error stays visible only as long as its notification
            self._states.pop(target, None)
            return CaptureState.IDLE
        return state

    def begin_recording(self, target: CaptureTarget) -> bool:
        """Mark a target as recording; False if it is busy processing."""
        if self._controller.is_busy(target):
            return False
        self._states[target] = CaptureState.CAPTURING
        return True

    def cancel_recording(self, target: CaptureTarget) -> None:
        if self._states.get(target) == CaptureState.CAPTURING:
            self._states.pop(target, None)

    # ------------------------------------------------------------------
    # Public capture operations
    # ------------------------------------------------------------------

    async def capture_info_field(
        self,
        field: str,
        audio: bytes,
        mime_type: str,
    ) -> CaptureOutcome:
        """Dictate one taxpayer info field; the AI returns a standardized value."""
        target = CaptureTarget.info_field(field)
        label = INFO_FIELD_LABELS[field]

        async def call() -> str:
            return await self._transcription.transcribe_standardized(audio, mime_type, label)

        def apply(text: str) -> CaptureOutcome:
            if not text:
                return CaptureOutcome(status=CaptureStatus.EMPTY, target=target)
            self._controller.update_info_field(field, text)
            return CaptureOutcome(status=CaptureStatus.APPLIED, target=target, value=text)

        return await self._run(target, call, apply)

    async def capture_transaction_description(
        self,
        transaction_id: str,
        audio: bytes,
        mime_type: str,
    ) -> CaptureOutcome:
        """Dictate the description of an existing transaction."""
        target = CaptureTarget.transaction(transaction_id)

        if not self._controller.has_transaction(transaction_id):
            return CaptureOutcome(
                status=CaptureStatus.DISCARDED,
                target=target,
                transaction_id=transaction_id,
            )

        async def call() -> str:
            return await self._transcription.transcribe_freeform(audio, mime_type)

        def apply(text: str) -> CaptureOutcome:
            if not text:
                return CaptureOutcome(
                    status=CaptureStatus.EMPTY,
                    target=target,
                    transaction_id=transaction_id,
                )
            self._controller.update_transaction(transaction_id, "description", text)
            return CaptureOutcome(
                status=CaptureStatus.APPLIED,
                target=target,
                value=text,
                transaction_id=transaction_id,
            )

        return await self._run(target, call, apply)

    async def capture_new_transaction(self, audio: bytes, mime_type: str) -> CaptureOutcome:
        """
        Speak a whole sale ("hôm nay bán được 5 triệu") and add it as a new row.

        Missing fields get defaults: today's date, a placeholder description
        and amount 0.
        """
        target = CaptureTarget.new_transaction()

        if not audio:
            return CaptureOutcome(status=CaptureStatus.EMPTY, target=target)

        async def call():
            return await self._transcription.parse_transaction(audio, mime_type)

        def apply(guess) -> CaptureOutcome:
            transaction_id = self._controller.add_transaction(
                date=guess.date or self._controller.today_string(),
                description=guess.description or NEW_TRANSACTION_PLACEHOLDER,
                amount=guess.amount or 0,
            )
            self._notifications.post(NotificationKind.SUCCESS, TRANSACTION_ADDED_MESSAGE)
            return CaptureOutcome(
                status=CaptureStatus.APPLIED,
                target=target,
                transaction_id=transaction_id,
            )

        return await self._run(target, call, apply, progress_message=ANALYZING_MESSAGE)

    # ------------------------------------------------------------------
    # Shared machinery
    # ------------------------------------------------------------------

    async def _run(
        self,
        target: CaptureTarget,
        call,
        apply: Callable[..., CaptureOutcome],
        progress_message: Optional[str] = None,
    ) -> CaptureOutcome:
        if not self._controller.try_acquire(target):
            self._controller.emit(LedgerEventBuilder.capture_rejected(str(target)))
            return CaptureOutcome(status=CaptureStatus.REJECTED, target=target)

        generation = self._controller.generation
        self._states[target] = CaptureState.PROCESSING
        self._controller.emit(LedgerEventBuilder.capture_started(str(target)))
        if progress_message:
            self._notifications.post(NotificationKind.INFO, progress_message, auto_clear=False)

        try:
            try:
                result = await call()
            except Exception as e:
                self._handle_error(target, e)
                return CaptureOutcome(
                    status=CaptureStatus.FAILED,
                    target=target,
                    error_type=type(e).__name__,
                )

            stale_reason = self._stale_reason(target, generation)
            if stale_reason:
                self._states.pop(target, None)
                if progress_message:
                    self._notifications.dismiss()
                self._controller.emit(
                    LedgerEventBuilder.capture_discarded(str(target), stale_reason)
                )
                return CaptureOutcome(status=CaptureStatus.DISCARDED, target=target)

            outcome = apply(result)
            self._states.pop(target, None)
            if outcome.applied:
                self._controller.emit(LedgerEventBuilder.capture_applied(str(target)))
            return outcome
        finally:
            if self._states.get(target) == CaptureState.PROCESSING:
                self._states.pop(target, None)
            self._controller.release(target)

    def _stale_reason(self, target: CaptureTarget, generation: int) -> Optional[str]:
        if self._controller.generation != generation:
            return "ledger replaced"
        if target.kind == TargetKind.TRANSACTION and not self._controller.has_transaction(target.key):
            return "transaction removed"
        return None

    def _handle_error(self, target: CaptureTarget, error: Exception) -> None:
        """Classify the failure and surface it as a transient notification."""
        self._states[target] = CaptureState.ERROR

        if isinstance(error, MissingCredentialError):
            self._controller.mark_ai_unavailable()
            self._notifications.post(NotificationKind.AI_UNAVAILABLE, AI_UNAVAILABLE_MESSAGE)
        else:
            self._notifications.post(NotificationKind.CONNECTION_FAILED, CONNECTION_FAILED_MESSAGE)

        self._controller.emit(LedgerEventBuilder.capture_failed(
            str(target),
            error_type=type(error).__name__,
            error_message=str(error),
        ))


# =============================================================================
# EXPORT / SHARE
# =============================================================================

SHARE_TITLE = "Sổ doanh thu AI"
DRIVE_CONFIRM_MESSAGE = (
    "File Excel đã được tải xuống máy.\n\n"
    "Nhấn OK để mở Google Drive và tải file này lên để lưu trữ."
)


class ExportFlow:
    """
    Orchestrates exporting the ledger.

    Flow:
    1. Snapshot the ledger from the controller
    2. Render the S1a-HKD spreadsheet (deterministic bytes)
    3. Native share if the platform offers it, else download + email compose
    """

    def __init__(
        self,
        controller: LedgerStateController,
        downloader: Optional[Downloader] = None,
        native_share: Optional[ShareSink] = None,
        fallback_share: Optional[ShareSink] = None,
        open_url: Optional[Callable[[str], object]] = None,
    ):
        self._controller = controller
        self._downloader = downloader or LocalFolderDownloader()
        self._native_share = native_share
        if open_url is None:
            open_url = webbrowser.open
        self._open_url = open_url
        self._fallback_share = fallback_share or DownloadAndEmailSink(
            self._downloader, open_url=open_url
        )

    def build_artifact(self, document: Optional[LedgerDocument] = None) -> Artifact:
        if document is None:
            document = self._controller.snapshot()
        name = document.info.name
        return Artifact(
            file_name=build_file_name(name),
            data=render_spreadsheet(document),
            mime_type=XLSX_MIME_TYPE,
            title=SHARE_TITLE,
            text=f"Gửi sổ doanh thu của {name}",
            email_subject=f"Sổ chi tiết doanh thu S1a-HKD - {name}",
        )

    async def share_artifact(self, document: Optional[LedgerDocument] = None) -> ShareResult:
        """Share the ledger (current one by default), degrading to download + email."""
        artifact = self.build_artifact(document)
        result = await deliver_with_fallback(
            artifact,
            native=self._native_share,
            fallback=self._fallback_share,
        )
        self._controller.emit(
            LedgerEventBuilder.artifact_shared(artifact.file_name, result.channel.value)
        )
        return result

    async def download(self, document: Optional[LedgerDocument] = None) -> str:
        artifact = self.build_artifact(document)
        location = await self._downloader.download(artifact)
        self._controller.emit(
            LedgerEventBuilder.artifact_downloaded(artifact.file_name, location)
        )
        return location

    async def save_to_drive_assist(
        self,
        confirm: Callable[[str], bool],
        document: Optional[LedgerDocument] = None,
    ) -> bool:
        """
        Download the spreadsheet, then offer to open Google Drive for a
        manual upload. Returns True when the Drive page was opened.
        """
        await self.download(document)
        if not confirm(DRIVE_CONFIRM_MESSAGE):
            return False
        self.open_drive()
        return True

    def open_drive(self) -> None:
        """Open the cloud storage page; used by hosts that ask the question themselves."""
        self._open_url(get_settings().export.drive_url)


# =============================================================================
# WIRING
# =============================================================================

@dataclass
class AppComponents:
    """Everything a host needs, created once per process."""

    controller: LedgerStateController
    storage: LedgerStorageInterface
    autosave: AutosaveScheduler
    capture_flow: VoiceCaptureFlow
    export_flow: ExportFlow
    audit_logger: LedgerAuditLogger

    async def start(self) -> LedgerDocument:
        """
        Load the stored ledger and unlock mutations.

        A failed load is logged and the sample document is used, so the
        app still opens. Calling it again is a no-op.
        """
        if self.controller.is_loaded:
            return self.controller.snapshot()
        try:
            stored = await self.storage.load()
        except Exception as e:
            logger.error("ledger_load_failed", error=str(e), error_type=type(e).__name__)
            stored = None
        self.controller.finish_loading(stored)
        return self.controller.snapshot()

    async def reset(self) -> None:
        """Confirmed reset: sample document in memory, stored copy removed."""
        self.controller.reset()
        await self.autosave.drain()

    async def shutdown(self) -> None:
        await self.autosave.close()
        self.audit_logger.detach()


def create_app_components(
    use_storage: Optional[bool] = None,
    storage: Optional[LedgerStorageInterface] = None,
    transcription: Optional[TranscriptionClient] = None,
    native_share: Optional[ShareSink] = None,
    downloader: Optional[Downloader] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to persist to the local JSON file.
                     Defaults to the LEDGER_STORAGE_ENABLED setting.
        storage: Explicit storage backend (overrides use_storage)
        transcription: Explicit transcription client (tests, other AIs)
        native_share: Host-provided native share sink, if any
        downloader: Host-provided downloader

    Call `await components.start()` before accepting edits.
    """
    settings = get_settings()
    configure_logging(settings.app.debug_mode)

    if storage is None:
        if use_storage is None:
            use_storage = settings.storage.enabled
        storage = JsonFileLedgerStorage() if use_storage else InMemoryLedgerStorage()

    if transcription is None:
        transcription = GeminiTranscriptionClient()

    ai_available = getattr(transcription, "has_credential", True)
    controller = LedgerStateController(ai_available=ai_available)

    audit_logger = LedgerAuditLogger()
    audit_logger.attach(controller)

    autosave = AutosaveScheduler(controller, storage)
    capture_flow = VoiceCaptureFlow(controller, transcription)
    export_flow = ExportFlow(
        controller,
        downloader=downloader,
        native_share=native_share or NativeShareSink(),
    )

    return AppComponents(
        controller=controller,
        storage=storage,
        autosave=autosave,
        capture_flow=capture_flow,
        export_flow=export_flow,
        audit_logger=audit_logger,
    )
