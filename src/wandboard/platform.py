"""Platform-specific helpers: shortcut modifier and deep-link opening."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import TYPE_CHECKING
from urllib.parse import urlencode

if TYPE_CHECKING:
    from pynput.keyboard import Key

logger = logging.getLogger(__name__)


def get_modifier_key() -> Key:
    """Return the primary modifier for shortcuts (Cmd on macOS, Ctrl elsewhere)."""
    from pynput.keyboard import Key

    if sys.platform == "darwin":
        return Key.cmd_l
    return Key.ctrl_l


def build_deep_link(scheme: str, action: str, **params: str) -> str:
    """Build ``<scheme>://<action>?k=v`` for the companion app."""
    url = f"{scheme}://{action}"
    if params:
        url += "?" + urlencode(params)
    return url


def open_url(url: str) -> bool:
    """Hand *url* to the OS.  Returns ``False`` if it could not be opened."""
    try:
        if os.name == "nt":  # Windows
            os.startfile(url)  # type: ignore[attr-defined]
        elif sys.platform == "darwin":
            subprocess.call(["open", url])
        else:
            subprocess.call(["xdg-open", url])
    except OSError as exc:
        logger.error("Failed to open %s: %s", url, exc)
        return False
    logger.info("Opened %s", url)
    return True
