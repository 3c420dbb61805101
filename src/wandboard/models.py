"""Core value types shared by the panel and generation controllers."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Tone / length catalog
# ---------------------------------------------------------------------------

# Tone id -> display title sent to the backend.
TONES: dict[str, str] = {
    "assertive": "Assertive",
    "confident": "Confident",
    "playful": "Playful",
    "empathetic": "Empathetic",
    "flirtatious": "Flirtatious",
    "professional": "Professional",
    "casual": "Casual",
}

LENGTHS: tuple[str, ...] = ("short", "medium", "long")

MAX_TONES = 3


def tone_titles(tone_ids: tuple[str, ...] | list[str] | None) -> list[str]:
    """Map tone ids to display titles, dropping unknown ids."""
    return [TONES[t] for t in tone_ids or () if t in TONES]


def length_title(length_id: str | None) -> str | None:
    """Return the capitalised length title (``"short"`` -> ``"Short"``)."""
    if not length_id:
        return None
    return length_id[:1].upper() + length_id[1:]


# ---------------------------------------------------------------------------
# Panels
# ---------------------------------------------------------------------------


class Panel(enum.Enum):
    """Mutually exclusive overlay surfaces shown above the keyboard."""

    NONE = "none"
    SUGGESTIONS = "suggestions"
    TONE_PICKER = "tone_picker"
    LENGTH_PICKER = "length_picker"
    MENU_PICKER = "menu_picker"
    CLIPBOARD_HISTORY = "clipboard_history"


# ---------------------------------------------------------------------------
# Suggestions and generation state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Suggestion:
    text: str
    index: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class Status(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADING_MORE = "loading_more"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class GenerationState:
    """Observable state of the generation lifecycle.

    ``suggestions`` is only meaningful for SUCCESS, ``message`` only for ERROR.
    """

    status: Status = Status.IDLE
    suggestions: tuple[Suggestion, ...] = ()
    message: str = ""

    @classmethod
    def idle(cls) -> GenerationState:
        return cls(Status.IDLE)

    @classmethod
    def loading(cls) -> GenerationState:
        return cls(Status.LOADING)

    @classmethod
    def loading_more(cls) -> GenerationState:
        return cls(Status.LOADING_MORE)

    @classmethod
    def success(cls, suggestions: list[Suggestion] | tuple[Suggestion, ...]) -> GenerationState:
        return cls(Status.SUCCESS, suggestions=tuple(suggestions))

    @classmethod
    def error(cls, message: str) -> GenerationState:
        return cls(Status.ERROR, message=message)

    @property
    def is_loading(self) -> bool:
        return self.status in (Status.LOADING, Status.LOADING_MORE)


# ---------------------------------------------------------------------------
# Text context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextContext:
    """Snapshot of the text around the caret in the focused field."""

    full_text: str = ""
    selected_text: str | None = None

    @property
    def has_selection(self) -> bool:
        return bool(self.selected_text)

    @property
    def text_to_improve(self) -> str:
        if self.has_selection:
            return self.selected_text or self.full_text
        return self.full_text
