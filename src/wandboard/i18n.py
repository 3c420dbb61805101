"""User-visible strings, looked up by key from JSON locale packs.

A pack is ``locales/<lang>.json`` shaped as
``{"meta": {"name": ...}, "translations": {key: text}}``.  Packs may be
partial: any key a pack lacks resolves to the built-in English text.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

# Built-in English, also the base every pack is layered on.
_FALLBACK: dict[str, str] = {
    "app.name": "Wand Keyboard",
    "error.network": "Connection failed. Check your internet.",
    "error.invalid_response": "Received invalid response from AI",
    "error.timeout": "Request timed out",
    "error.http": "Request failed (HTTP {status})",
    "error.generic": "Something went wrong",
    "notice.full_access": "Full Access required for this feature",
    "notice.upload_instructions": "Open Social Wand app to upload photos",
    "notice.clip_saved": "Saved to Wand clipboard",
    "notice.clip_not_saved": "Nothing new to save",
    "toolbar.wand": "Wand",
    "toolbar.tone": "Tone",
    "toolbar.length": "Length",
    "toolbar.upload": "Photo",
    "toolbar.menu": "Menu",
    "toolbar.close": "Close",
    "suggestions.loading": "Generating...",
    "suggestions.loading_more": "Generating more...",
    "suggestions.more": "Generate More",
    "suggestions.retry": "Try Again",
    "suggestions.keyboard": "Keyboard",
    "suggestions.safe": "Safe",
    "suggestions.bold": "Bold",
    "picker.apply": "Apply",
    "picker.clear": "Clear",
    "picker.no_text": "Type something first",
    "menu.paste": "Paste to Wand Clipboard",
    "menu.clipboard": "Clipboard",
    "menu.reply": "Reply",
    "menu.rewrite": "Rewrite",
    "menu.settings": "Settings",
    "clipboard.empty": "No saved clips yet",
    "clipboard.image": "[Image]",
    "clipboard.paste": "Paste",
    "banner.new_suggestion": "New suggestion ready. Tap to insert",
}

_active: dict[str, str] = dict(_FALLBACK)
_language: str = DEFAULT_LANGUAGE


def get_locales_dir() -> Path:
    """Return the locales directory shipped inside the package."""
    return Path(__file__).resolve().parent / "locales"


def load_locale(lang: str) -> dict[str, Any] | None:
    """Read the raw pack for *lang*; ``None`` if missing or unreadable."""
    path = get_locales_dir() / f"{lang}.json"
    try:
        with open(path, encoding="utf-8") as f:
            pack = json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Locale pack %s is unreadable: %s", path, exc)
        return None
    if not isinstance(pack, dict):
        logger.warning("Locale pack %s is not a JSON object", path)
        return None
    return pack


def set_language(lang: str) -> bool:
    """Activate *lang*.  Returns ``False`` (and changes nothing) if no pack exists."""
    global _active, _language

    pack = load_locale(lang)
    if pack is None:
        logger.warning("No locale pack for '%s'", lang)
        return False

    translations = pack.get("translations", {})
    _active = {**_FALLBACK, **{k: str(v) for k, v in translations.items()}}
    _language = lang
    logger.info("Language set to '%s'", lang)
    return True


def init_language(lang: str) -> None:
    """Activate *lang* at startup, else the default pack, else built-in English."""
    global _active, _language

    if set_language(lang) or (lang != DEFAULT_LANGUAGE and set_language(DEFAULT_LANGUAGE)):
        return
    _active = dict(_FALLBACK)
    _language = DEFAULT_LANGUAGE


def get_language() -> str:
    return _language


def t(key: str, default: str | None = None, **kwargs: Any) -> str:
    """Translate *key*; ``{name}`` placeholders are filled from *kwargs*.

    Unknown keys return *default* when given, otherwise the key itself.
    """
    text = _active.get(key, default if default is not None else key)
    if not kwargs:
        return text
    try:
        return text.format(**kwargs)
    except (KeyError, IndexError):
        logger.debug("Unfilled placeholder in %r", key)
        return text
