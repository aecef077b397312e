"""
Clipboard exposure with a bounded lifetime.

Every copy schedules a clear of the clipboard. A later copy cancels the
pending clear and schedules its own, so the most recent copy always gets
the full timeout and the clipboard always ends up empty.
"""
import asyncio
import logging
from typing import Optional, Protocol

logger = logging.getLogger("secret_vault.vault")


class ClipboardSink(Protocol):
    """Anything that can receive clipboard text."""

    def write_text(self, text: str) -> None: ...


class MemoryClipboard:
    """In-process clipboard, for headless use and tests."""

    def __init__(self) -> None:
        self.text = ""
        self.writes = 0

    def write_text(self, text: str) -> None:
        self.text = text
        self.writes += 1


class ClipboardGuard:
    """Places secrets on a clipboard and clears them after a timeout."""

    def __init__(self, sink: ClipboardSink, clear_after: float = 20.0):
        if clear_after <= 0:
            raise ValueError("clear_after must be positive")
        self._sink = sink
        self._clear_after = clear_after
        self._pending: Optional[asyncio.Task] = None

    @property
    def clear_after(self) -> float:
        return self._clear_after

    @property
    def pending(self) -> bool:
        """True while a scheduled clear has not fired yet."""
        return self._pending is not None and not self._pending.done()

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _clear_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            self._sink.write_text("")
        except Exception as err:
            logger.error("Clipboard clear failed: %s", type(err).__name__)
            return
        logger.debug("Clipboard cleared after %.1fs", delay)

    async def copy(self, text: str) -> None:
        """Write ``text`` to the clipboard and schedule its removal.

        If the write fails, the clear pending for the previous copy stays
        scheduled and the error propagates.

        Must be awaited from a running event loop.
        """
        self._sink.write_text(text)
        self._cancel_pending()
        self._pending = asyncio.get_running_loop().create_task(
            self._clear_later(self._clear_after)
        )

    async def clear_now(self) -> None:
        """Cancel any scheduled clear and empty the clipboard immediately."""
        self._cancel_pending()
        self._sink.write_text("")
