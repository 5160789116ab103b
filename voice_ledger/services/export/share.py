"""
Share Sinks for the exported ledger

DESIGN DECISION: Handing the spreadsheet to the outside world is modelled as
a small capability interface with two variants:

1. NativeShareSink - the host platform's "share a file" sheet
2. DownloadAndEmailSink - save the file locally, then open a pre-filled
   email so the user can attach it by hand

The export flow probes NativeShareSink.is_available() at runtime and falls
back to download + email when native sharing is missing, rejected or
cancelled. Each variant is testable on its own.

LIMITATION: Email attachments are never added programmatically. A mailto:
link cannot carry files, so the user attaches the downloaded file.
"""

import asyncio
import webbrowser
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional
from urllib.parse import quote

import structlog
from pydantic import BaseModel, ConfigDict

from voice_ledger.config import get_settings
from voice_ledger.validation.normalizers import slugify_name


logger = structlog.get_logger(__name__)


class ShareError(Exception):
    """Base exception for share operations."""
    pass


class ShareCancelledError(ShareError):
    """The user dismissed the share sheet or the platform rejected the file."""
    pass


class ShareUnavailableError(ShareError):
    """This sink cannot be used on the current platform."""
    pass


class Artifact(BaseModel):
    """A named byte blob ready to hand to a share or download primitive."""
    model_config = ConfigDict(frozen=True)

    file_name: str
    data: bytes
    mime_type: str
    title: str = ""
    text: str = ""
    email_subject: str = ""


class ShareChannel(str, Enum):
    NATIVE = "native_share"
    DOWNLOAD_AND_EMAIL = "download_and_email"


class ShareResult(BaseModel):
    """What happened when the ledger was shared."""

    channel: ShareChannel
    file_name: str
    location: Optional[str] = None
    native_error: Optional[str] = None


def build_file_name(taxpayer_name: str, suffix: Optional[str] = None) -> str:
    """
    File name for the exported ledger.

    >>> build_file_name("Nguyễn Văn A", "_S1a.xlsx")
    'Nguyen_Van_A_S1a.xlsx'
    """
    if suffix is None:
        suffix = get_settings().export.file_suffix
    return f"{slugify_name(taxpayer_name)}{suffix}"


def build_mailto_url(subject: str) -> str:
    return f"mailto:?subject={quote(subject)}"


# =============================================================================
# DOWNLOADERS
# =============================================================================

class Downloader(ABC):
    """Platform primitive that saves a named byte blob for the user."""

    @abstractmethod
    async def download(self, artifact: Artifact) -> str:
        """
        Save the artifact.

        Returns:
            A human-readable location (path or URL) of the saved file
        """
        pass


class LocalFolderDownloader(Downloader):
    """Writes artifacts into a local downloads directory."""

    def __init__(self, directory: Optional[Path] = None):
        self._directory = Path(directory) if directory else get_settings().export.downloads_dir

    def _write(self, artifact: Artifact) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        target = self._directory / artifact.file_name
        target.write_bytes(artifact.data)
        return target

    async def download(self, artifact: Artifact) -> str:
        target = await asyncio.to_thread(self._write, artifact)
        logger.info("artifact_written", path=str(target), size=len(artifact.data))
        return str(target)


# =============================================================================
# SHARE SINKS
# =============================================================================

class ShareSink(ABC):
    """One way of getting the exported spreadsheet to its recipient."""

    channel: ShareChannel

    @abstractmethod
    def is_available(self, artifact: Artifact) -> bool:
        """Capability probe: can this sink deliver this artifact here?"""
        pass

    @abstractmethod
    async def deliver(self, artifact: Artifact) -> ShareResult:
        """
        Deliver the artifact.

        Raises:
            ShareCancelledError: The user or platform declined
            ShareUnavailableError: The sink cannot be used
        """
        pass


# Host callable: returns True when shared, False when the user cancelled
NativeShareFunction = Callable[[Artifact], Awaitable[bool]]
CanShareFunction = Callable[[Artifact], bool]


class NativeShareSink(ShareSink):
    """
    Wraps the host's native file-sharing primitive.

    The host supplies `share` (and optionally `can_share`). Without a share
    function the sink reports itself unavailable.
    """

    channel = ShareChannel.NATIVE

    def __init__(
        self,
        share: Optional[NativeShareFunction] = None,
        can_share: Optional[CanShareFunction] = None,
    ):
        self._share = share
        self._can_share = can_share

    def is_available(self, artifact: Artifact) -> bool:
        if self._share is None:
            return False
        if self._can_share is None:
            return True
        try:
            return bool(self._can_share(artifact))
        except Exception as e:
            logger.warning("native_share_probe_failed", error=str(e))
            return False

    async def deliver(self, artifact: Artifact) -> ShareResult:
        if self._share is None:
            raise ShareUnavailableError("Native sharing is not supported here")
        try:
            shared = await self._share(artifact)
        except ShareError:
            raise
        except Exception as e:
            raise ShareCancelledError(f"Native share failed: {e}") from e
        if not shared:
            raise ShareCancelledError("Share was cancelled")
        return ShareResult(channel=self.channel, file_name=artifact.file_name)


class DownloadAndEmailSink(ShareSink):
    """
    Fallback: download the file, then open a pre-filled email compose.

    The email is opened after a short delay so the download has started
    before the mail client takes focus.
    """

    channel = ShareChannel.DOWNLOAD_AND_EMAIL

    def __init__(
        self,
        downloader: Downloader,
        open_url: Callable[[str], object] = webbrowser.open,
        delay_seconds: Optional[float] = None,
    ):
        self._downloader = downloader
        self._open_url = open_url
        if delay_seconds is None:
            delay_seconds = get_settings().export.email_delay_seconds
        self._delay_seconds = delay_seconds

    def is_available(self, artifact: Artifact) -> bool:
        return True

    async def deliver(self, artifact: Artifact) -> ShareResult:
        location = await self._downloader.download(artifact)
        await asyncio.sleep(self._delay_seconds)
        self._open_url(build_mailto_url(artifact.email_subject))
        return ShareResult(
            channel=self.channel,
            file_name=artifact.file_name,
            location=location,
        )


async def deliver_with_fallback(
    artifact: Artifact,
    native: Optional[ShareSink],
    fallback: ShareSink,
) -> ShareResult:
    """
    Try the native sink when it is available, otherwise (or on refusal)
    use the fallback sink.
    """
    native_error = None
    if native is not None and native.is_available(artifact):
        try:
            return await native.deliver(artifact)
        except ShareError as e:
            native_error = str(e)
            logger.info(
                "native_share_declined",
                file_name=artifact.file_name,
                reason=native_error,
            )

    result = await fallback.deliver(artifact)
    if native_error:
        result = result.model_copy(update={"native_error": native_error})
    return result
