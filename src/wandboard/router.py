"""Maps toolbar, picker and menu actions onto the controllers.

The router holds no panel or generation state of its own.  It reads the text
context, enforces the full-access gate and the single-request-in-flight rule,
and then calls into :class:`~wandboard.panels.PanelController` and
:class:`~wandboard.generation.GenerationOrchestrator`.
"""

from __future__ import annotations

import logging
from typing import Callable

from wandboard.clipboard_store import ClipboardStore, ClipKind
from wandboard.generation import GenerationOrchestrator, TextProxy
from wandboard.i18n import t
from wandboard.models import MAX_TONES, Panel, TextContext
from wandboard.operations import (
    LengthChange,
    NormalGeneration,
    Operation,
    PhotoGeneration,
    ReplyGeneration,
    RewriteGeneration,
    ToneChange,
)
from wandboard.panels import PanelController
from wandboard.platform import build_deep_link, open_url
from wandboard.store import PreferenceStore, SharedSuggestion
from wandboard.sync import PreferenceSyncLoop

logger = logging.getLogger(__name__)


class ToolbarButtonRouter:
    """User action → controller calls.

    Parameters
    ----------
    on_notice:
        Shows a short user-facing message (full access missing, clip saved...).
    on_banner:
        Shows the shared-suggestion banner, or hides it when called with
        ``None``.
    url_opener:
        Opens a companion-app deep link; returns whether it succeeded.
    """

    def __init__(
        self,
        panels: PanelController,
        orchestrator: GenerationOrchestrator,
        store: PreferenceStore,
        sync: PreferenceSyncLoop,
        text_proxy: TextProxy,
        clips: ClipboardStore,
        source_app: str = "instagram",
        companion_scheme: str = "socialwand",
        on_notice: Callable[[str], None] | None = None,
        on_banner: Callable[[SharedSuggestion | None], None] | None = None,
        url_opener: Callable[[str], bool] = open_url,
    ) -> None:
        self._panels = panels
        self._orchestrator = orchestrator
        self._store = store
        self._sync = sync
        self._text_proxy = text_proxy
        self._clips = clips
        self._source_app = source_app
        self._scheme = companion_scheme
        self._on_notice = on_notice
        self._on_banner = on_banner
        self._open_url = url_opener

        self._context = TextContext()
        self._banner: SharedSuggestion | None = None

    @property
    def context(self) -> TextContext:
        """Text context captured by the last toolbar action."""
        return self._context

    @property
    def banner(self) -> SharedSuggestion | None:
        return self._banner

    # ------------------------------------------------------------------
    # Toolbar
    # ------------------------------------------------------------------

    def wand_tap(self) -> None:
        """Generate suggestions for the current text with saved preferences."""
        if not self._can_generate():
            return
        text = self._refresh_text()
        if not text:
            return

        length = self._store.load_length()
        tones = tuple(self._store.load_tones())
        if not length and not tones:
            self._start_fresh(NormalGeneration(text=text))
            return

        # With saved preferences, suggestions still on screen are kept and
        # the new batch is prepended.
        if length:
            operation: Operation = LengthChange(text=text, length=length, tones=tones or None)
        else:
            operation = ToneChange(text=text, tones=tones)
        self._panels.show(Panel.SUGGESTIONS)
        self._orchestrator.start(operation)

    def tone_tap(self) -> None:
        self._context = self._text_proxy.read_context()
        self._panels.show(Panel.TONE_PICKER)

    def length_tap(self) -> None:
        self._context = self._text_proxy.read_context()
        self._panels.show(Panel.LENGTH_PICKER)

    def menu_tap(self) -> None:
        self._panels.show(Panel.MENU_PICKER)

    def close_tap(self) -> None:
        self._panels.close_any()

    def upload_tap(self) -> None:
        """Ask the companion app to pick photos for a caption."""
        if not self._require_full_access():
            return
        self._store.request_photo_upload(self._source_app)
        url = build_deep_link(self._scheme, "upload", source=self._source_app)
        if not self._open_url(url):
            self._notify(t("notice.upload_instructions"))

    # ------------------------------------------------------------------
    # Pickers
    # ------------------------------------------------------------------

    def apply_tones(self, tone_ids: list[str] | tuple[str, ...]) -> None:
        """Save *tone_ids* and regenerate the picker's text with them."""
        tones = tuple(tone_ids)[:MAX_TONES]
        self.save_tones(tones)
        if not self._can_generate():
            return
        text = self._context.text_to_improve.strip()
        if not text:
            self._notify(t("picker.no_text"))
            return

        operation: Operation = ToneChange(text=text, tones=tones) if tones else NormalGeneration(text=text)
        self._start_fresh(operation)

    def apply_length(self, length: str) -> None:
        """Save *length* and regenerate with it plus the saved tones."""
        self.save_length(length)
        if not self._can_generate():
            return
        text = self._context.text_to_improve.strip()
        if not text:
            self._notify(t("picker.no_text"))
            return

        tones = tuple(self._store.load_tones())
        self._start_fresh(LengthChange(text=text, length=length, tones=tones or None))

    def save_tones(self, tone_ids: list[str] | tuple[str, ...]) -> None:
        tones = tuple(tone_ids)[:MAX_TONES]
        if tones:
            self._store.save_tones(tones)
        else:
            self._store.clear_tones()
        self._sync.remember_tones(tones)

    def clear_tones(self) -> None:
        self.save_tones(())

    def save_length(self, length: str | None) -> None:
        if length:
            self._store.save_length(length)
        else:
            self._store.clear_length()
        self._sync.remember_length(length or None)

    def clear_length(self) -> None:
        self.save_length(None)

    # ------------------------------------------------------------------
    # Menu
    # ------------------------------------------------------------------

    def paste_to_clipboard(self) -> None:
        """Save the system clipboard into the clip history."""
        saved = self._clips.save_current_clipboard()
        self._panels.close_any()
        self._notify(t("notice.clip_saved") if saved else t("notice.clip_not_saved"))

    def open_clipboard_history(self) -> None:
        self._panels.show(Panel.CLIPBOARD_HISTORY)

    def reply(self) -> None:
        """Generate replies to the current text (e.g. a received message)."""
        if not self._can_generate():
            return
        text = self._refresh_text()
        if not text:
            return
        tones, length = self._saved_preferences()
        self._start_fresh(ReplyGeneration(incoming_text=text, tones=tones, length=length))

    def rewrite(self) -> None:
        if not self._can_generate():
            return
        text = self._refresh_text()
        if not text:
            return
        tones, length = self._saved_preferences()
        self._start_fresh(RewriteGeneration(original_text=text, tones=tones, length=length))

    def open_settings(self) -> None:
        if not self._require_full_access():
            return
        self._panels.close_any()
        self._open_url(build_deep_link(self._scheme, "settings"))

    # ------------------------------------------------------------------
    # Clip history
    # ------------------------------------------------------------------

    def paste_clip(self, clip_id: str) -> bool:
        clip = self._clips.get(clip_id)
        if clip is None:
            logger.warning("Clip %s no longer exists", clip_id)
            return False
        if clip.kind is ClipKind.IMAGE:
            # Only text can be pasted through the text proxy.
            logger.warning("Pasting image clips is not supported")
            return False
        self._text_proxy.insert_text(clip.content)
        return True

    def toggle_clip_bookmark(self, clip_id: str) -> bool:
        changed = self._clips.toggle_bookmark(clip_id)
        if changed:
            self._panels.rebuild(Panel.CLIPBOARD_HISTORY)
        return changed

    def delete_clip(self, clip_id: str) -> bool:
        changed = self._clips.delete(clip_id)
        if changed:
            self._panels.rebuild(Panel.CLIPBOARD_HISTORY)
        return changed

    # ------------------------------------------------------------------
    # Suggestions panel
    # ------------------------------------------------------------------

    def generate_more(self) -> None:
        """Add a batch for the current operation (or start one from the text)."""
        if not self._can_generate():
            return
        if self._orchestrator.retry():
            return
        text = self._refresh_text()
        if text:
            self._panels.show(Panel.SUGGESTIONS)
            self._orchestrator.start(NormalGeneration(text=text))

    def retry(self) -> None:
        if not self._can_generate():
            return
        self._orchestrator.retry()

    def preferences_changed(self, tone_ids: list[str] | tuple[str, ...], length: str | None) -> None:
        """Persist edited preferences and regenerate if they differ."""
        tones = tuple(tone_ids)[:MAX_TONES]
        self.save_tones(tones)
        self.save_length(length)
        if not self._can_generate():
            return
        self._orchestrator.on_preferences_changed(tones, length)

    def apply_suggestion(self, text: str) -> None:
        self._orchestrator.apply_suggestion(text)

    def show_keyboard(self) -> None:
        self._panels.hide(Panel.SUGGESTIONS)

    # ------------------------------------------------------------------
    # Companion handoffs
    # ------------------------------------------------------------------

    def check_ready_photos(self) -> bool:
        """Start a caption generation for photos the companion app left."""
        if self._is_busy() or not self._store.has_full_access():
            return False
        handoff = self._store.take_ready_photos()
        if handoff is None:
            return False

        tones, length = self._saved_preferences()
        self._start_fresh(PhotoGeneration(
            photos=handoff.photos, context=handoff.context, tones=tones, length=length,
        ))
        return True

    def check_shared_suggestion(self) -> bool:
        """Show the banner if the companion app left a new suggestion."""
        if not self._store.has_full_access() or not self._store.has_new_suggestion():
            return False
        suggestion = self._store.retrieve_suggestion()
        if suggestion is None:
            return False

        logger.info("Shared suggestion available (source: %s)", suggestion.source_app)
        self._banner = suggestion
        if self._on_banner is not None:
            self._on_banner(suggestion)
        return True

    def banner_tap(self) -> None:
        suggestion = self._banner
        if suggestion is None:
            return
        self._text_proxy.insert_text(suggestion.suggestion)
        self._dismiss_banner()

    def banner_close(self) -> None:
        if self._banner is not None:
            self._dismiss_banner()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _dismiss_banner(self) -> None:
        self._store.mark_suggestion_consumed()
        self._banner = None
        if self._on_banner is not None:
            self._on_banner(None)

    def _start_fresh(self, operation: Operation) -> None:
        self._orchestrator.reset()
        self._panels.show(Panel.SUGGESTIONS)
        self._orchestrator.start(operation)

    def _refresh_text(self) -> str:
        """Re-read the text context; returns "" (with a notice) when empty."""
        self._context = self._text_proxy.read_context()
        text = self._context.text_to_improve.strip()
        if not text:
            logger.info("No text to work on")
            self._notify(t("picker.no_text"))
        return text

    def _saved_preferences(self) -> tuple[tuple[str, ...] | None, str | None]:
        tones = tuple(self._store.load_tones())
        return tones or None, self._store.load_length()

    def _is_busy(self) -> bool:
        if self._orchestrator.state.is_loading:
            logger.debug("Generation in flight, ignoring trigger")
            return True
        return False

    def _can_generate(self) -> bool:
        return not self._is_busy() and self._require_full_access()

    def _require_full_access(self) -> bool:
        if self._store.has_full_access():
            return True
        logger.info("Full access not granted")
        self._notify(t("notice.full_access"))
        return False

    def _notify(self, message: str) -> None:
        if self._on_notice is not None:
            self._on_notice(message)
