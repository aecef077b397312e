"""
Tests for bounded-lifetime clipboard exposure.
"""
import asyncio
import logging

import pytest

from secret_vault.vault.clipboard import ClipboardGuard, MemoryClipboard


class FlakyClipboard(MemoryClipboard):
    """Clipboard whose writes fail while ``broken`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.broken = False

    def write_text(self, text: str) -> None:
        if self.broken:
            raise OSError("clipboard unavailable")
        super().write_text(text)


@pytest.fixture
def sink():
    return MemoryClipboard()


@pytest.fixture
def flaky_sink():
    return FlakyClipboard()


class TestClipboardGuard:

    def test_rejects_non_positive_timeout(self, sink):
        with pytest.raises(ValueError):
            ClipboardGuard(sink, clear_after=0)

    @pytest.mark.asyncio
    async def test_copy_then_clear(self, sink):
        guard = ClipboardGuard(sink, clear_after=0.05)
        await guard.copy("hunter2")
        assert sink.text == "hunter2"
        assert guard.pending

        await asyncio.sleep(0.2)
        assert sink.text == ""
        assert not guard.pending

    @pytest.mark.asyncio
    async def test_later_copy_supersedes_pending_clear(self, sink):
        guard = ClipboardGuard(sink, clear_after=0.2)
        await guard.copy("first")
        await asyncio.sleep(0.1)
        await guard.copy("second")

        # the first clear would have fired by now
        await asyncio.sleep(0.15)
        assert sink.text == "second"

        await asyncio.sleep(0.2)
        assert sink.text == ""

    @pytest.mark.asyncio
    async def test_superseded_clear_does_not_write(self, sink):
        guard = ClipboardGuard(sink, clear_after=0.05)
        await guard.copy("first")
        await guard.copy("second")
        await asyncio.sleep(0.2)
        # two copies and exactly one clear
        assert sink.writes == 3
        assert sink.text == ""

    @pytest.mark.asyncio
    async def test_clear_now(self, sink):
        guard = ClipboardGuard(sink, clear_after=10)
        await guard.copy("hunter2")
        await guard.clear_now()
        assert sink.text == ""
        assert not guard.pending

    @pytest.mark.asyncio
    async def test_failed_copy_keeps_previous_clear(self, flaky_sink):
        guard = ClipboardGuard(flaky_sink, clear_after=0.05)
        await guard.copy("first-secret")

        flaky_sink.broken = True
        with pytest.raises(OSError):
            await guard.copy("second-secret")
        assert flaky_sink.text == "first-secret"
        assert guard.pending

        flaky_sink.broken = False
        await asyncio.sleep(0.2)
        assert flaky_sink.text == ""
        assert not guard.pending

    @pytest.mark.asyncio
    async def test_failed_clear_is_logged(self, flaky_sink, caplog):
        guard = ClipboardGuard(flaky_sink, clear_after=0.05)
        await guard.copy("hunter2")
        task = guard._pending
        flaky_sink.broken = True

        with caplog.at_level(logging.ERROR, logger="secret_vault.vault"):
            await asyncio.sleep(0.2)

        assert task.done()
        assert task.exception() is None
        assert not guard.pending
        assert "Clipboard clear failed: OSError" in caplog.text
        assert "hunter2" not in caplog.text
