"""
Transient user notifications

Short status messages shown in the capture bar. Error and success messages
clear themselves after a fixed display time; the "analyzing" message stays
until something replaces it.

Expiry is enforced two ways: a loop timer clears the message when an event
loop is running, and current() also checks the clock, so hosts without a
long-lived loop (Streamlit reruns) still see messages disappear.
"""

import asyncio
import time
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from voice_ledger.config import get_settings


AI_UNAVAILABLE_MESSAGE = "Lỗi: Chưa có API Key"
CONNECTION_FAILED_MESSAGE = "Lỗi kết nối AI. Thử lại sau."
ANALYZING_MESSAGE = "AI đang phân tích..."
TRANSACTION_ADDED_MESSAGE = "Đã thêm thành công!"


class NotificationKind(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    AI_UNAVAILABLE = "ai_unavailable"
    CONNECTION_FAILED = "connection_failed"


class Notification(BaseModel):
    kind: NotificationKind
    message: str
    posted_at: float
    expires_at: Optional[float] = None

    @property
    def is_error(self) -> bool:
        return self.kind in (NotificationKind.AI_UNAVAILABLE, NotificationKind.CONNECTION_FAILED)


class NotificationCenter:
    """Holds at most one visible notification at a time."""

    def __init__(
        self,
        display_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if display_seconds is None:
            display_seconds = get_settings().app.notification_seconds
        self._display_seconds = display_seconds
        self._clock = clock
        self._current: Optional[Notification] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def display_seconds(self) -> float:
        return self._display_seconds

    def post(
        self,
        kind: NotificationKind,
        message: str,
        auto_clear: bool = True,
    ) -> Notification:
        """Show a message, replacing the previous one."""
        now = self._clock()
        notification = Notification(
            kind=kind,
            message=message,
            posted_at=now,
            expires_at=now + self._display_seconds if auto_clear else None,
        )
        self._current = notification
        self._cancel_timer()

        if auto_clear:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                self._timer = loop.call_later(
                    self._display_seconds, self._expire, notification
                )
        return notification

    def current(self) -> Optional[Notification]:
        notification = self._current
        if notification is None:
            return None
        if notification.expires_at is not None and self._clock() >= notification.expires_at:
            self._current = None
            return None
        return notification

    def dismiss(self) -> None:
        self._cancel_timer()
        self._current = None

    def _expire(self, notification: Notification) -> None:
        self._timer = None
        # A newer message may have replaced this one already
        if self._current is notification:
            self._current = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
