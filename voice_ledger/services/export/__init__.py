"""Export services package."""

from voice_ledger.services.export.spreadsheet import (
    XLSX_MIME_TYPE,
    build_workbook,
    render_spreadsheet,
)
from voice_ledger.services.export.share import (
    Artifact,
    DownloadAndEmailSink,
    Downloader,
    LocalFolderDownloader,
    NativeShareSink,
    ShareCancelledError,
    ShareChannel,
    ShareError,
    ShareResult,
    ShareSink,
    ShareUnavailableError,
    build_file_name,
    build_mailto_url,
    deliver_with_fallback,
)

__all__ = [
    "Artifact",
    "DownloadAndEmailSink",
    "Downloader",
    "LocalFolderDownloader",
    "NativeShareSink",
    "ShareCancelledError",
    "ShareChannel",
    "ShareError",
    "ShareResult",
    "ShareSink",
    "ShareUnavailableError",
    "XLSX_MIME_TYPE",
    "build_file_name",
    "build_mailto_url",
    "build_workbook",
    "deliver_with_fallback",
    "render_spreadsheet",
]
