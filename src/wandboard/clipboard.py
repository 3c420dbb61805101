"""Text-field access for the desktop keyboard, via clipboard and key simulation.

There is no direct handle on the focused field, so context is read by
copying and edits are written by pasting.  The user's clipboard is restored
after every round trip.
"""

from __future__ import annotations

import logging
import time

import pyperclip

from wandboard.models import TextContext
from wandboard.platform import get_modifier_key

logger = logging.getLogger(__name__)


def save_clipboard() -> str | None:
    """Save and return current clipboard text content."""
    try:
        return pyperclip.paste()
    except pyperclip.PyperclipException:
        return None


def restore_clipboard(content: str | None) -> None:
    """Restore clipboard to previous content after a short delay."""
    time.sleep(0.05)
    try:
        pyperclip.copy(content or "")
    except pyperclip.PyperclipException:
        logger.warning("Could not restore clipboard")


class DesktopTextProxy:
    """Reads and edits the focused text field of another application."""

    def __init__(self) -> None:
        self._keyboard = None

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_context(self) -> TextContext:
        """Return the selection if any, else the text before the caret."""
        original = save_clipboard()
        try:
            selected = self._copy_with(lambda: self._hotkey("c"))
            if selected:
                return TextContext(full_text=selected, selected_text=selected)

            before_caret = self._copy_with(self._select_to_start_and_copy)
            if before_caret:
                # Collapse the selection back to the caret.
                self._tap("right")
            return TextContext(full_text=before_caret or "")
        finally:
            restore_clipboard(original)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def replace_current_text(self, text: str) -> None:
        """Replace the selection, or everything before the caret, with *text*."""
        original = save_clipboard()
        selected = self._copy_with(lambda: self._hotkey("c"))
        if not selected:
            self._select_to_start()
        self._paste(text)
        restore_clipboard(original)

    def insert_text(self, text: str) -> None:
        """Insert *text* at the caret."""
        original = save_clipboard()
        self._paste(text)
        restore_clipboard(original)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _copy_with(self, action) -> str | None:
        """Clear the clipboard, run *action*, and return what it copied."""
        try:
            pyperclip.copy("")
        except pyperclip.PyperclipException:
            return None
        action()
        time.sleep(0.15)
        try:
            return pyperclip.paste() or None
        except pyperclip.PyperclipException:
            return None

    def _paste(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException:
            logger.error("Cannot write to clipboard, text not inserted")
            return
        time.sleep(0.05)
        self._hotkey("v")
        time.sleep(0.1)

    def _select_to_start(self) -> None:
        from pynput.keyboard import Key

        kbd = self._controller()
        with kbd.pressed(Key.shift):
            self._hotkey(Key.home)

    def _select_to_start_and_copy(self) -> None:
        self._select_to_start()
        time.sleep(0.05)
        self._hotkey("c")

    def _tap(self, name: str) -> None:
        from pynput.keyboard import Key

        key = getattr(Key, name)
        kbd = self._controller()
        kbd.press(key)
        kbd.release(key)

    def _hotkey(self, char) -> None:
        """Simulate modifier+key (e.g. Ctrl+C, Ctrl+V)."""
        kbd = self._controller()
        modifier = get_modifier_key()
        kbd.press(modifier)
        time.sleep(0.05)
        kbd.press(char)
        time.sleep(0.02)
        kbd.release(char)
        time.sleep(0.02)
        kbd.release(modifier)

    def _controller(self):
        if self._keyboard is None:
            from pynput.keyboard import Controller

            self._keyboard = Controller()
        return self._keyboard
