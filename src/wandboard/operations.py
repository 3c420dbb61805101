"""Replayable generation operations and the requests derived from them.

An operation captures everything needed to (re)issue a generation call.
Exactly one is retained by the orchestrator at a time; "Try Again",
"Generate More" and preference changes all replay it through
:func:`derive_request`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Union

from wandboard.models import length_title, tone_titles

# ---------------------------------------------------------------------------
# Operation variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalGeneration:
    text: str


@dataclass(frozen=True)
class ToneChange:
    text: str
    tones: tuple[str, ...]


@dataclass(frozen=True)
class LengthChange:
    text: str
    length: str
    tones: tuple[str, ...] | None = None


@dataclass(frozen=True)
class PhotoGeneration:
    photos: tuple[str, ...]
    context: str = ""
    tones: tuple[str, ...] | None = None
    length: str | None = None


@dataclass(frozen=True)
class ReplyGeneration:
    incoming_text: str
    tones: tuple[str, ...] | None = None
    length: str | None = None


@dataclass(frozen=True)
class RewriteGeneration:
    original_text: str
    tones: tuple[str, ...] | None = None
    length: str | None = None


Operation = Union[
    NormalGeneration,
    ToneChange,
    LengthChange,
    PhotoGeneration,
    ReplyGeneration,
    RewriteGeneration,
]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RequestKind(enum.Enum):
    NORMAL = "rate"
    TONE = "tone"
    LENGTH = "length"
    PHOTO = "upload"
    REPLY = "reply"
    REWRITE = "rewrite"

    @property
    def endpoint(self) -> str:
        return f"/api/{self.value}"


@dataclass(frozen=True)
class GenerationRequest:
    """Wire-level description of one backend call.

    ``tones`` holds display titles and ``length`` a capitalised title, the
    form the backend expects.
    """

    kind: RequestKind
    text: str = ""
    photos: tuple[str, ...] = ()
    context: str = ""
    tones: tuple[str, ...] = ()
    length: str | None = None
    previous_outputs: tuple[str, ...] = ()


_DEFAULT_PHOTO_LENGTH = "medium"


def _normalize_tones(tones) -> tuple[str, ...] | None:
    if not tones:
        return None
    return tuple(tones)


def derive_request(
    operation: Operation,
    previous_outputs: list[str] | tuple[str, ...] = (),
) -> GenerationRequest:
    """Build the backend request for *operation*.

    *previous_outputs* carries the texts already shown to the user so the
    backend can avoid repeating them.
    """
    previous = tuple(previous_outputs)

    if isinstance(operation, NormalGeneration):
        return GenerationRequest(
            RequestKind.NORMAL, text=operation.text, previous_outputs=previous,
        )
    if isinstance(operation, ToneChange):
        return GenerationRequest(
            RequestKind.TONE,
            text=operation.text,
            tones=tuple(tone_titles(operation.tones)),
            previous_outputs=previous,
        )
    if isinstance(operation, LengthChange):
        return GenerationRequest(
            RequestKind.LENGTH,
            text=operation.text,
            tones=tuple(tone_titles(operation.tones)),
            length=length_title(operation.length),
            previous_outputs=previous,
        )
    if isinstance(operation, PhotoGeneration):
        return GenerationRequest(
            RequestKind.PHOTO,
            photos=operation.photos,
            context=operation.context,
            tones=tuple(tone_titles(operation.tones)),
            length=length_title(operation.length or _DEFAULT_PHOTO_LENGTH),
            previous_outputs=previous,
        )
    if isinstance(operation, ReplyGeneration):
        return GenerationRequest(
            RequestKind.REPLY,
            text=operation.incoming_text,
            tones=tuple(tone_titles(operation.tones)),
            length=length_title(operation.length),
            previous_outputs=previous,
        )
    if isinstance(operation, RewriteGeneration):
        return GenerationRequest(
            RequestKind.REWRITE,
            text=operation.original_text,
            tones=tuple(tone_titles(operation.tones)),
            length=length_title(operation.length),
            previous_outputs=previous,
        )
    raise TypeError(f"Unknown operation: {operation!r}")


# ---------------------------------------------------------------------------
# Preference rewriting
# ---------------------------------------------------------------------------


def reflected_preferences(operation: Operation) -> tuple[frozenset[str], str | None]:
    """Return the ``(tones, length)`` that *operation* currently encodes."""
    if isinstance(operation, NormalGeneration):
        return frozenset(), None
    if isinstance(operation, ToneChange):
        return frozenset(operation.tones), None
    tones = getattr(operation, "tones", None) or ()
    return frozenset(tones), getattr(operation, "length", None)


def apply_preferences(
    operation: Operation,
    tones: list[str] | tuple[str, ...] | None,
    length: str | None,
) -> Operation:
    """Return *operation* with its tone/length payload replaced.

    Text, photos and context are preserved.  Text-only operations change
    variant to match the payload: a length makes a :class:`LengthChange`,
    tones alone make a :class:`ToneChange`, neither gives back a
    :class:`NormalGeneration`.
    """
    new_tones = _normalize_tones(tones)

    if isinstance(operation, (NormalGeneration, ToneChange, LengthChange)):
        text = operation.text
        if length:
            return LengthChange(text=text, length=length, tones=new_tones)
        if new_tones:
            return ToneChange(text=text, tones=new_tones)
        return NormalGeneration(text=text)

    if isinstance(operation, (PhotoGeneration, ReplyGeneration, RewriteGeneration)):
        return replace(operation, tones=new_tones, length=length)

    raise TypeError(f"Unknown operation: {operation!r}")
