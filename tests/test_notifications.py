"""Tests for transient notifications."""

import asyncio

import pytest

from voice_ledger.notifications import NotificationCenter, NotificationKind


class TestNotificationCenter:
    def test_message_expires_after_display_time(self, notifications, clock):
        notifications.post(NotificationKind.CONNECTION_FAILED, "Lỗi")

        clock.advance(2.9)
        assert notifications.current().message == "Lỗi"

        clock.advance(0.2)
        assert notifications.current() is None

    def test_sticky_message_stays(self, notifications, clock):
        notifications.post(NotificationKind.INFO, "AI đang phân tích...", auto_clear=False)
        clock.advance(60)
        assert notifications.current() is not None

    def test_new_message_replaces_old(self, notifications):
        notifications.post(NotificationKind.INFO, "first", auto_clear=False)
        notifications.post(NotificationKind.SUCCESS, "second")
        assert notifications.current().message == "second"

    def test_dismiss(self, notifications):
        notifications.post(NotificationKind.SUCCESS, "done")
        notifications.dismiss()
        assert notifications.current() is None

    def test_error_kinds(self, notifications):
        assert notifications.post(NotificationKind.AI_UNAVAILABLE, "x").is_error
        assert not notifications.post(NotificationKind.SUCCESS, "x").is_error

    @pytest.mark.asyncio
    async def test_loop_timer_clears_message(self):
        """Test that a running loop clears the message even if the clock stands still."""
        center = NotificationCenter(display_seconds=0.01, clock=lambda: 0.0)
        center.post(NotificationKind.SUCCESS, "done")

        await asyncio.sleep(0.05)

        assert center.current() is None

    @pytest.mark.asyncio
    async def test_old_timer_does_not_clear_newer_message(self):
        center = NotificationCenter(display_seconds=0.01, clock=lambda: 0.0)
        center.post(NotificationKind.SUCCESS, "old")
        center.post(NotificationKind.INFO, "new", auto_clear=False)

        await asyncio.sleep(0.05)

        assert center.current().message == "new"
