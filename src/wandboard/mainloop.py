"""Single UI-thread scheduling.

All controller state is owned by one logical UI thread.  Worker threads hand
results back with :meth:`UiLoop.post`; periodic work (preference polling) is
scheduled with :meth:`UiLoop.call_later` so it also runs on the UI thread.
"""

from __future__ import annotations

import logging
import queue
import tkinter as tk
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

_POLL_INTERVAL_MS = 16  # ~60 fps queue polling


class UiLoop(Protocol):
    def post(self, callback: Callable[[], None]) -> None:
        """Run *callback* on the UI thread.  Safe to call from any thread."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        """Schedule *callback* on the UI thread; returns a cancellable handle."""

    def cancel(self, handle: Any) -> None:
        """Cancel a handle returned by :meth:`call_later`."""


class TkUiLoop:
    """:class:`UiLoop` backed by a tkinter root.

    Posted callbacks are queued and drained from ``after()`` polling, since
    tkinter itself must only be touched from the thread running mainloop.
    """

    def __init__(self, root: tk.Misc) -> None:
        self._root = root
        self._queue: queue.Queue[Callable[[], None]] = queue.Queue()
        self._polling = False

    def start(self) -> None:
        """Begin draining posted callbacks (call on the UI thread)."""
        if self._polling:
            return
        self._polling = True
        self._root.after(_POLL_INTERVAL_MS, self._poll_queue)

    def stop(self) -> None:
        self._polling = False

    def post(self, callback: Callable[[], None]) -> None:
        self._queue.put(callback)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        return self._root.after(delay_ms, callback)

    def cancel(self, handle: Any) -> None:
        try:
            self._root.after_cancel(handle)
        except tk.TclError:
            logger.debug("after_cancel on a finished handle: %r", handle)

    def _poll_queue(self) -> None:
        """Drain the callback queue and run each callback."""
        if not self._polling:
            return

        try:
            while True:
                callback = self._queue.get_nowait()
                try:
                    callback()
                except Exception:
                    logger.exception("UI callback failed")
        except queue.Empty:
            pass

        self._root.after(_POLL_INTERVAL_MS, self._poll_queue)
