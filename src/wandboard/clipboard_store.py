"""Bounded, bookmark-aware clipboard history ("Wand clipboard").

Clips live in a JSON file next to a folder of PNG images.  Bookmarked clips
are kept forever; regular clips are capped and the oldest are dropped first.
"""

from __future__ import annotations

import enum
import hashlib
import io
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pyperclip
from PIL import Image, ImageGrab

logger = logging.getLogger(__name__)

DEFAULT_MAX_REGULAR_ITEMS = 15


class ClipKind(enum.Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass
class ClipboardItem:
    """A saved clip.  ``content`` is the text, or the image filename."""

    content: str
    kind: ClipKind = ClipKind.TEXT
    is_bookmarked: bool = False
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "type": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "isBookmarked": self.is_bookmarked,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ClipboardItem:
        return cls(
            id=str(data["id"]),
            content=str(data["content"]),
            kind=ClipKind(data.get("type", "text")),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            is_bookmarked=bool(data.get("isBookmarked", False)),
        )


class ClipboardStore:
    """File-backed clip history."""

    FILENAME = "clipboard.json"
    IMAGES_DIRNAME = "clip_images"

    def __init__(self, directory: Path, max_regular_items: int = DEFAULT_MAX_REGULAR_ITEMS) -> None:
        self._dir = Path(directory)
        self._path = self._dir / self.FILENAME
        self._images_dir = self._dir / self.IMAGES_DIRNAME
        self._max_regular = max_regular_items

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> list[ClipboardItem]:
        """Return clips: bookmarked first, then regular; newest first in each."""
        clips = self._load()
        bookmarked = sorted(
            (c for c in clips if c.is_bookmarked), key=lambda c: c.timestamp, reverse=True,
        )
        regular = sorted(
            (c for c in clips if not c.is_bookmarked), key=lambda c: c.timestamp, reverse=True,
        )
        return bookmarked + regular

    def get(self, clip_id: str) -> ClipboardItem | None:
        return next((c for c in self._load() if c.id == clip_id), None)

    def image_path(self, item: ClipboardItem) -> Path | None:
        if item.kind is not ClipKind.IMAGE:
            return None
        path = self._images_dir / item.content
        return path if path.exists() else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save_text(self, text: str) -> bool:
        """Save a text clip.  Empty text and duplicates are rejected."""
        if not text:
            logger.info("Clipboard is empty, nothing to save")
            return False

        clips = self.list()
        if any(c.kind is ClipKind.TEXT and c.content == text for c in clips):
            logger.info("Clip already saved")
            return False

        return self._insert(clips, ClipboardItem(content=text))

    def save_image(self, image: Image.Image) -> bool:
        """Save an image clip as PNG.  Identical images are rejected."""
        buf = io.BytesIO()
        image.save(buf, format="PNG")
        png = buf.getvalue()
        filename = f"{hashlib.sha1(png).hexdigest()}.png"

        clips = self.list()
        if any(c.kind is ClipKind.IMAGE and c.content == filename for c in clips):
            logger.info("Image clip already saved")
            return False

        try:
            self._images_dir.mkdir(parents=True, exist_ok=True)
            (self._images_dir / filename).write_bytes(png)
        except OSError as exc:
            logger.error("Failed to write clip image %s: %s", filename, exc)
            return False

        return self._insert(clips, ClipboardItem(content=filename, kind=ClipKind.IMAGE))

    def save_current_clipboard(self) -> bool:
        """Save whatever is on the system clipboard (text, else image)."""
        try:
            text = pyperclip.paste()
        except pyperclip.PyperclipException:
            logger.warning("System clipboard not accessible for text")
            text = ""

        if text:
            return self.save_text(text)

        try:
            grabbed = ImageGrab.grabclipboard()
        except (OSError, NotImplementedError) as exc:
            logger.info("No clipboard image available: %s", exc)
            return False

        if isinstance(grabbed, Image.Image):
            return self.save_image(grabbed)

        logger.info("Clipboard is empty, nothing to save")
        return False

    def toggle_bookmark(self, clip_id: str) -> bool:
        clips = self._load()
        clip = next((c for c in clips if c.id == clip_id), None)
        if clip is None:
            return False
        clip.is_bookmarked = not clip.is_bookmarked
        return self._save(clips)

    def delete(self, clip_id: str) -> bool:
        clips = self._load()
        remaining = [c for c in clips if c.id != clip_id]
        if len(remaining) == len(clips):
            return False
        for clip in clips:
            if clip.id == clip_id:
                self._remove_image(clip)
        return self._save(remaining)

    def clear_all(self) -> bool:
        for clip in self._load():
            self._remove_image(clip)
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to clear clipboard history: %s", exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _insert(self, clips: list[ClipboardItem], new_clip: ClipboardItem) -> bool:
        clips.insert(0, new_clip)

        bookmarked = [c for c in clips if c.is_bookmarked]
        regular = [c for c in clips if not c.is_bookmarked]
        for dropped in regular[self._max_regular:]:
            self._remove_image(dropped)
        regular = regular[: self._max_regular]

        return self._save(bookmarked + regular)

    def _remove_image(self, clip: ClipboardItem) -> None:
        path = self.image_path(clip)
        if path is None:
            return
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Failed to remove clip image %s: %s", path, exc)

    def _load(self) -> list[ClipboardItem]:
        if not self._path.exists():
            return []
        try:
            with open(self._path, encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.error("Failed to decode clipboard items: %s", exc)
            return []

        clips: list[ClipboardItem] = []
        for entry in raw if isinstance(raw, list) else []:
            try:
                clips.append(ClipboardItem.from_dict(entry))
            except (KeyError, ValueError, TypeError):
                logger.warning("Skipping malformed clip entry: %r", entry)
        return clips

    def _save(self, clips: list[ClipboardItem]) -> bool:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump([c.to_dict() for c in clips], f, ensure_ascii=False, indent=2)
        except OSError as exc:
            logger.error("Failed to save clipboard items: %s", exc)
            return False
        logger.info("Saved %d clipboard items", len(clips))
        return True
