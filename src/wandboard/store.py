"""Process-crossing preference store shared with the companion app.

The store is a single JSON object on disk.  Both the keyboard and the
companion app read and write it without locking, so every read reloads the
file and must be treated as a possibly-stale snapshot.  An unreadable store
degrades to "nothing saved" and is never surfaced to the user.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from wandboard.models import LENGTHS, MAX_TONES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

TONES_KEY = "SavedTonePreferences"
LENGTH_KEY = "SavedLengthPreference"
FULL_ACCESS_KEY = "KeyboardFullAccess"

# Candidate keys the companion app may use for personality traits.
_TRAIT_KEYS = ("selectedTraits", "selected_tones", "selectedTones", "tones", "traits")

# Photo handoff (companion app -> keyboard)
PHOTOS_READY_KEY = "PhotosReadyForKeyboard"
PHOTOS_COUNT_KEY = "PhotosReadyCount"
PHOTOS_CONTEXT_KEY = "PhotosReadyContext"
PHOTO_KEY_PREFIX = "PhotoReady_"
MAX_HANDOFF_PHOTOS = 10

# Upload request (keyboard -> companion app)
PENDING_UPLOAD_KEY = "PendingPhotoUpload"
UPLOAD_SOURCE_KEY = "PhotoUploadSourceApp"
UPLOAD_TIME_KEY = "PhotoUploadRequestTime"

# Shared suggestion (companion app -> keyboard)
SUGGESTION_KEY = "GeneratedSuggestion"
HAS_NEW_SUGGESTION_KEY = "HasNewSuggestion"
SUGGESTION_TIME_KEY = "SuggestionTimestamp"
SUGGESTION_SOURCE_KEY = "SuggestionSourceApp"


@dataclass(frozen=True)
class PhotoHandoff:
    photos: tuple[str, ...]
    context: str = ""


@dataclass(frozen=True)
class SharedSuggestion:
    suggestion: str
    timestamp: datetime
    source_app: str | None = None


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class PreferenceStore:
    """JSON-file key-value store living in the shared directory."""

    FILENAME = "preferences.json"

    def __init__(self, shared_dir: Path) -> None:
        self._path = Path(shared_dir) / self.FILENAME

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Preference store unreadable (%s): %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Preference store %s is not a JSON object, ignoring", self._path)
            return {}
        return data

    def _update(self, mutate: Callable[[dict[str, Any]], None]) -> bool:
        """Read-modify-write the store atomically.  Returns ``False`` on I/O failure."""
        data = self._read()
        mutate(data)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=".preferences-", suffix=".json", dir=self._path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except OSError as exc:
            logger.warning("Cannot write preference store %s: %s", self._path, exc)
            return False
        return True

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> bool:
        def mutate(data: dict[str, Any]) -> None:
            data[key] = value

        return self._update(mutate)

    def remove(self, *keys: str) -> bool:
        def mutate(data: dict[str, Any]) -> None:
            for key in keys:
                data.pop(key, None)

        return self._update(mutate)

    # ------------------------------------------------------------------
    # Tone / length preferences
    # ------------------------------------------------------------------

    def load_tones(self) -> list[str]:
        """Return saved tone ids (at most three, in saved order)."""
        value = self.get(TONES_KEY)
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, str)][:MAX_TONES]

    def save_tones(self, tone_ids: list[str] | tuple[str, ...]) -> bool:
        tones = list(tone_ids)[:MAX_TONES]
        logger.info("Saving tone preferences: %s", tones)
        return self.set(TONES_KEY, tones)

    def clear_tones(self) -> bool:
        logger.info("Clearing tone preferences")
        return self.remove(TONES_KEY)

    def load_length(self) -> str | None:
        value = self.get(LENGTH_KEY)
        if isinstance(value, str) and value in LENGTHS:
            return value
        return None

    def save_length(self, length_id: str) -> bool:
        logger.info("Saving length preference: %s", length_id)
        return self.set(LENGTH_KEY, length_id)

    def clear_length(self) -> bool:
        logger.info("Clearing length preference")
        return self.remove(LENGTH_KEY)

    def load_traits(self) -> list[str]:
        """Return personality traits saved by the companion app, if any."""
        data = self._read()
        for key in _TRAIT_KEYS:
            value = data.get(key)
            if isinstance(value, list) and value:
                return [v for v in value if isinstance(v, str)]
        return []

    # ------------------------------------------------------------------
    # Full access flag
    # ------------------------------------------------------------------

    def has_full_access(self) -> bool:
        return bool(self.get(FULL_ACCESS_KEY, False))

    def set_full_access(self, granted: bool) -> bool:
        return self.set(FULL_ACCESS_KEY, bool(granted))

    # ------------------------------------------------------------------
    # Photo handoff
    # ------------------------------------------------------------------

    def take_ready_photos(self) -> PhotoHandoff | None:
        """Consume photos the companion app left for the keyboard.

        Returns ``None`` when nothing is pending or the handoff is
        inconsistent; in both of the latter cases the handoff keys are
        cleared so a broken handoff is not retried forever.
        """
        data = self._read()
        if not data.get(PHOTOS_READY_KEY):
            return None

        count = data.get(PHOTOS_COUNT_KEY)
        if not isinstance(count, int) or count <= 0:
            logger.warning("Photos-ready flag set but no photos, clearing")
            self._clear_photo_handoff()
            return None

        photos = [
            data[f"{PHOTO_KEY_PREFIX}{i}"]
            for i in range(count)
            if isinstance(data.get(f"{PHOTO_KEY_PREFIX}{i}"), str)
        ]
        context = data.get(PHOTOS_CONTEXT_KEY) or ""
        self._clear_photo_handoff()

        if len(photos) != count:
            logger.warning("Photo count mismatch: expected %d, got %d", count, len(photos))
            return None

        logger.info("Loaded %d photo(s) from companion app", len(photos))
        return PhotoHandoff(photos=tuple(photos), context=str(context))

    def _clear_photo_handoff(self) -> None:
        keys = [PHOTOS_COUNT_KEY, PHOTOS_CONTEXT_KEY]
        keys += [f"{PHOTO_KEY_PREFIX}{i}" for i in range(MAX_HANDOFF_PHOTOS)]

        def mutate(data: dict[str, Any]) -> None:
            data[PHOTOS_READY_KEY] = False
            for key in keys:
                data.pop(key, None)

        self._update(mutate)

    def request_photo_upload(self, source_app: str) -> bool:
        """Record an upload request for the companion app to pick up."""

        def mutate(data: dict[str, Any]) -> None:
            data[PENDING_UPLOAD_KEY] = True
            data[UPLOAD_SOURCE_KEY] = source_app
            data[UPLOAD_TIME_KEY] = datetime.now().isoformat()

        return self._update(mutate)

    # ------------------------------------------------------------------
    # Shared suggestion
    # ------------------------------------------------------------------

    def has_new_suggestion(self) -> bool:
        return bool(self.get(HAS_NEW_SUGGESTION_KEY, False))

    def retrieve_suggestion(self) -> SharedSuggestion | None:
        data = self._read()
        text = data.get(SUGGESTION_KEY)
        if not isinstance(text, str) or not text:
            return None

        timestamp = datetime.now()
        raw_time = data.get(SUGGESTION_TIME_KEY)
        if isinstance(raw_time, str):
            try:
                timestamp = datetime.fromisoformat(raw_time)
            except ValueError:
                pass

        source = data.get(SUGGESTION_SOURCE_KEY)
        return SharedSuggestion(
            suggestion=text,
            timestamp=timestamp,
            source_app=source if isinstance(source, str) else None,
        )

    def mark_suggestion_consumed(self) -> bool:
        return self.set(HAS_NEW_SUGGESTION_KEY, False)
