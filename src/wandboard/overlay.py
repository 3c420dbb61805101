"""Keyboard window: toolbar, banner and the panel surfaces above it.

Everything here runs on the tkinter thread.  Panel surfaces are built on
demand by :meth:`KeyboardWindow.build_surface`, which the
:class:`~wandboard.panels.PanelController` calls; the window itself never
decides which panel is visible.
"""

from __future__ import annotations

import logging
import tkinter as tk
from typing import TYPE_CHECKING, Callable

from wandboard.clipboard_store import ClipKind
from wandboard.i18n import t
from wandboard.models import LENGTHS, MAX_TONES, TONES, GenerationState, Panel, Status, length_title

if TYPE_CHECKING:
    from wandboard.clipboard_store import ClipboardStore
    from wandboard.generation import GenerationOrchestrator
    from wandboard.panels import PanelController
    from wandboard.router import ToolbarButtonRouter
    from wandboard.store import SharedSuggestion
    from wandboard.sync import PreferenceCache

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Look
# ---------------------------------------------------------------------------

_WINDOW_W = 420
_WINDOW_H = 320

_BG = "#2a2a2a"
_BG_DARK = "#1e1e1e"
_BG_ITEM = "#3a3a3a"
_BG_HOVER = "#4a4a4a"
_BG_ACTIVE = "#4a4a8a"
_FG = "#e0e0e0"
_FG_DIM = "#888888"

_FONT = ("Segoe UI", 10)
_FONT_SMALL = ("Segoe UI", 9)

_NOTICE_MS = 2500
_CLIP_PREVIEW_CHARS = 60


def _button(parent: tk.Misc, text: str, command: Callable[[], None], **kw) -> tk.Button:
    options = dict(
        font=_FONT_SMALL, bg=_BG_ITEM, fg=_FG, activebackground=_BG_HOVER,
        activeforeground="#ffffff", relief="flat", bd=0, padx=8, pady=3, cursor="hand2",
    )
    options.update(kw)
    return tk.Button(parent, text=text, command=command, **options)


def _preview(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > _CLIP_PREVIEW_CHARS:
        return text[: _CLIP_PREVIEW_CHARS - 1] + "…"
    return text


# ---------------------------------------------------------------------------
# Surfaces
# ---------------------------------------------------------------------------


class FrameSurface:
    """A panel surface: a frame packed into the panel area while attached."""

    def __init__(self, parent: tk.Misc, populate: Callable[[tk.Frame], None]) -> None:
        self._parent = parent
        self._populate = populate
        self._frame: tk.Frame | None = None

    @property
    def is_attached(self) -> bool:
        return self._frame is not None and bool(self._frame.winfo_exists())

    def attach(self) -> None:
        frame = tk.Frame(self._parent, bg=_BG)
        self._populate(frame)
        frame.pack(fill="both", expand=True)
        self._frame = frame

    def detach(self) -> None:
        frame, self._frame = self._frame, None
        if frame is not None and frame.winfo_exists():
            frame.destroy()


# ---------------------------------------------------------------------------
# Window
# ---------------------------------------------------------------------------


class KeyboardWindow:
    """The keyboard strip.

    Parameters
    ----------
    on_suspend:
        Called when the window is unmapped (iconified or hidden).
    on_resume:
        Called when the window is mapped again.
    """

    def __init__(
        self,
        root: tk.Tk,
        on_suspend: Callable[[], None] | None = None,
        on_resume: Callable[[], None] | None = None,
    ) -> None:
        self._root = root
        self._on_suspend = on_suspend
        self._on_resume = on_resume

        self._router: ToolbarButtonRouter | None = None
        self._orchestrator: GenerationOrchestrator | None = None
        self._panels: PanelController | None = None
        self._clips: ClipboardStore | None = None
        self._preferences: Callable[[], PreferenceCache] | None = None

        self._toolbar_buttons: dict[Panel, tk.Button] = {}
        self._suggestion_body: tk.Frame | None = None
        self._notice_after: str | None = None

        self._build()

    def connect(
        self,
        router: ToolbarButtonRouter,
        orchestrator: GenerationOrchestrator,
        panels: PanelController,
        clips: ClipboardStore,
        preferences: Callable[[], PreferenceCache],
    ) -> None:
        """Attach the controllers the surfaces talk to."""
        self._router = router
        self._orchestrator = orchestrator
        self._panels = panels
        self._clips = clips
        self._preferences = preferences

        orchestrator.add_listener(self._on_generation_state)
        panels.add_listener(self._on_panel_changed)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _build(self) -> None:
        root = self._root
        root.title(t("app.name"))
        root.configure(bg=_BG)
        root.geometry(f"{_WINDOW_W}x{_WINDOW_H}")
        root.attributes("-topmost", True)

        self._banner = tk.Frame(root, bg=_BG_ACTIVE)
        self._banner_label = tk.Label(
            self._banner, font=_FONT_SMALL, bg=_BG_ACTIVE, fg="#ffffff",
            anchor="w", justify="left", cursor="hand2", wraplength=_WINDOW_W - 60,
        )
        self._banner_label.pack(side="left", fill="x", expand=True, padx=8, pady=4)
        self._banner_label.bind("<Button-1>", lambda e: self._call("banner_tap"))
        tk.Button(
            self._banner, text="×", command=lambda: self._call("banner_close"),
            font=_FONT, bg=_BG_ACTIVE, fg="#ffffff", relief="flat", bd=0,
        ).pack(side="right", padx=4)

        self._notice = tk.Label(root, text="", font=_FONT_SMALL, bg=_BG, fg=_FG_DIM)
        self._notice.pack(side="top", fill="x")

        toolbar = tk.Frame(root, bg=_BG_DARK)
        toolbar.pack(side="bottom", fill="x")
        self._add_toolbar_button(toolbar, t("toolbar.wand"), "wand_tap", Panel.SUGGESTIONS)
        self._add_toolbar_button(toolbar, t("toolbar.tone"), "tone_tap", Panel.TONE_PICKER)
        self._add_toolbar_button(toolbar, t("toolbar.length"), "length_tap", Panel.LENGTH_PICKER)
        self._add_toolbar_button(toolbar, t("toolbar.upload"), "upload_tap")
        self._add_toolbar_button(toolbar, t("toolbar.menu"), "menu_tap", Panel.MENU_PICKER)
        self._add_toolbar_button(toolbar, t("toolbar.close"), "close_tap")

        self._panel_area = tk.Frame(root, bg=_BG)
        self._panel_area.pack(side="top", fill="both", expand=True)

        root.bind("<Map>", self._on_map)
        root.bind("<Unmap>", self._on_unmap)

    def _add_toolbar_button(
        self, parent: tk.Frame, text: str, action: str, panel: Panel | None = None,
    ) -> None:
        button = _button(parent, text, lambda: self._call(action), bg=_BG_DARK)
        button.pack(side="left", fill="x", expand=True, padx=1, pady=2)
        if panel is not None:
            self._toolbar_buttons[panel] = button

    # ------------------------------------------------------------------
    # Public (UI thread)
    # ------------------------------------------------------------------

    def build_surface(self, panel: Panel) -> FrameSurface:
        """Surface factory handed to the panel controller."""
        populate = {
            Panel.SUGGESTIONS: self._populate_suggestions,
            Panel.TONE_PICKER: self._populate_tone_picker,
            Panel.LENGTH_PICKER: self._populate_length_picker,
            Panel.MENU_PICKER: self._populate_menu,
            Panel.CLIPBOARD_HISTORY: self._populate_clipboard,
        }[panel]
        return FrameSurface(self._panel_area, populate)

    def show_notice(self, message: str) -> None:
        self._notice.configure(text=message)
        if self._notice_after is not None:
            self._root.after_cancel(self._notice_after)
        self._notice_after = self._root.after(_NOTICE_MS, self._clear_notice)

    def show_banner(self, suggestion: SharedSuggestion | None) -> None:
        if suggestion is None:
            self._banner.pack_forget()
            return
        self._banner_label.configure(
            text=f"{t('banner.new_suggestion')}\n{_preview(suggestion.suggestion)}",
        )
        self._banner.pack(side="top", fill="x", before=self._notice)

    def run(self) -> None:
        """Enter the tkinter main loop (blocks until the window closes)."""
        self._root.mainloop()

    def destroy(self) -> None:
        self._root.destroy()

    # ------------------------------------------------------------------
    # Event plumbing
    # ------------------------------------------------------------------

    def _call(self, action: str, *args) -> None:
        router = self._router
        if router is None:
            return
        getattr(router, action)(*args)

    def _on_map(self, event: tk.Event) -> None:
        if event.widget is self._root and self._on_resume is not None:
            self._on_resume()

    def _on_unmap(self, event: tk.Event) -> None:
        if event.widget is self._root and self._on_suspend is not None:
            self._on_suspend()

    def _on_panel_changed(self, visible: Panel) -> None:
        active = self._panels.active_indicator if self._panels else Panel.NONE
        for panel, button in self._toolbar_buttons.items():
            button.configure(bg=_BG_ACTIVE if panel is active else _BG_DARK)

    def _on_generation_state(self, state: GenerationState) -> None:
        body = self._suggestion_body
        if body is None or not body.winfo_exists():
            return
        for child in body.winfo_children():
            child.destroy()
        self._render_suggestions(body, state)

    def _clear_notice(self) -> None:
        self._notice_after = None
        self._notice.configure(text="")

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def _populate_suggestions(self, frame: tk.Frame) -> None:
        self._build_preference_bar(frame)

        body = tk.Frame(frame, bg=_BG)
        body.pack(fill="both", expand=True)
        self._suggestion_body = body

        state = self._orchestrator.state if self._orchestrator else GenerationState.idle()
        self._render_suggestions(body, state)

    def _render_suggestions(self, body: tk.Frame, state: GenerationState) -> None:
        if state.status is Status.LOADING:
            tk.Label(body, text=t("suggestions.loading"), font=_FONT, bg=_BG, fg=_FG_DIM).pack(pady=16)
            return

        if state.status is Status.ERROR:
            tk.Label(
                body, text=state.message, font=_FONT, bg=_BG, fg="#e07070",
                wraplength=_WINDOW_W - 40,
            ).pack(pady=(16, 8))
            actions = tk.Frame(body, bg=_BG)
            actions.pack()
            _button(actions, t("suggestions.retry"), lambda: self._call("retry")).pack(side="left", padx=4)
            _button(actions, t("suggestions.keyboard"), lambda: self._call("show_keyboard")).pack(side="left", padx=4)
            return

        if state.status is Status.LOADING_MORE:
            tk.Label(body, text=t("suggestions.loading_more"), font=_FONT_SMALL, bg=_BG, fg=_FG_DIM).pack(pady=4)

        suggestions = self._orchestrator.suggestions if self._orchestrator else ()
        listing = tk.Frame(body, bg=_BG)
        listing.pack(fill="both", expand=True, padx=8)
        for suggestion in suggestions:
            label = t("suggestions.safe") if suggestion.index % 2 == 0 else t("suggestions.bold")
            card = tk.Label(
                listing, text=f"{label}: {suggestion.text}", font=_FONT,
                bg=_BG_ITEM, fg=_FG, anchor="w", justify="left",
                wraplength=_WINDOW_W - 40, padx=8, pady=4, cursor="hand2",
            )
            card.pack(fill="x", pady=2)
            card.bind("<Button-1>", lambda e, text=suggestion.text: self._call("apply_suggestion", text))
            card.bind("<Enter>", lambda e, w=card: w.configure(bg=_BG_HOVER))
            card.bind("<Leave>", lambda e, w=card: w.configure(bg=_BG_ITEM))

        actions = tk.Frame(body, bg=_BG)
        actions.pack(pady=4)
        if state.status is Status.SUCCESS:
            _button(actions, t("suggestions.more"), lambda: self._call("generate_more")).pack(side="left", padx=4)
        _button(actions, t("suggestions.keyboard"), lambda: self._call("show_keyboard")).pack(side="left", padx=4)

    def _build_preference_bar(self, frame: tk.Frame) -> None:
        """Tone menu and length choices that regenerate on change."""
        cache = self._preferences() if self._preferences else None
        current_tones = list(cache.tones) if cache else []
        current_length = cache.length if cache else None

        bar = tk.Frame(frame, bg=_BG)
        bar.pack(fill="x", padx=8, pady=4)

        tone_button = tk.Menubutton(
            bar, text=t("toolbar.tone"), font=_FONT_SMALL, bg=_BG_ITEM, fg=_FG,
            activebackground=_BG_HOVER, relief="flat",
        )
        tone_menu = tk.Menu(tone_button, tearoff=False)
        tone_vars: dict[str, tk.BooleanVar] = {}
        length_var = tk.StringVar(master=bar, value=current_length or "")

        def changed() -> None:
            tones = [tid for tid, var in tone_vars.items() if var.get()]
            self._call("preferences_changed", tones, length_var.get() or None)

        for tone_id, title in TONES.items():
            var = tk.BooleanVar(master=bar, value=tone_id in current_tones)
            tone_vars[tone_id] = var
            tone_menu.add_checkbutton(label=title, variable=var, command=changed)
        tone_button.configure(menu=tone_menu)
        tone_button.pack(side="left")

        for length in ("",) + LENGTHS:
            tk.Radiobutton(
                bar, text=length_title(length) or "–", value=length, variable=length_var,
                command=changed, font=_FONT_SMALL, bg=_BG, fg=_FG, selectcolor=_BG_DARK,
                activebackground=_BG, indicatoron=False, relief="flat", padx=6,
            ).pack(side="left", padx=1)

    # ------------------------------------------------------------------
    # Pickers
    # ------------------------------------------------------------------

    def _populate_tone_picker(self, frame: tk.Frame) -> None:
        cache = self._preferences() if self._preferences else None
        selected = list(cache.tones) if cache else []
        tone_vars: dict[str, tk.BooleanVar] = {}

        def toggled(tone_id: str) -> None:
            chosen = [tid for tid, var in tone_vars.items() if var.get()]
            if len(chosen) > MAX_TONES:
                tone_vars[tone_id].set(False)
                return
            self._call("save_tones", chosen)

        grid = tk.Frame(frame, bg=_BG)
        grid.pack(fill="both", expand=True, padx=8, pady=8)
        for i, (tone_id, title) in enumerate(TONES.items()):
            var = tk.BooleanVar(master=frame, value=tone_id in selected)
            tone_vars[tone_id] = var
            tk.Checkbutton(
                grid, text=title, variable=var, command=lambda tid=tone_id: toggled(tid),
                font=_FONT, bg=_BG, fg=_FG, selectcolor=_BG_DARK, activebackground=_BG,
                anchor="w",
            ).grid(row=i // 2, column=i % 2, sticky="w", padx=4, pady=2)

        actions = tk.Frame(frame, bg=_BG)
        actions.pack(pady=4)
        _button(
            actions, t("picker.apply"),
            lambda: self._call("apply_tones", [tid for tid, var in tone_vars.items() if var.get()]),
        ).pack(side="left", padx=4)
        _button(actions, t("picker.clear"), self._clear_tones).pack(side="left", padx=4)

    def _populate_length_picker(self, frame: tk.Frame) -> None:
        cache = self._preferences() if self._preferences else None
        length_var = tk.StringVar(master=frame, value=(cache.length if cache else None) or "")

        options = tk.Frame(frame, bg=_BG)
        options.pack(fill="both", expand=True, padx=8, pady=8)
        for length in LENGTHS:
            tk.Radiobutton(
                options, text=length_title(length), value=length, variable=length_var,
                command=lambda: self._call("save_length", length_var.get()),
                font=_FONT, bg=_BG, fg=_FG, selectcolor=_BG_DARK, activebackground=_BG,
                anchor="w",
            ).pack(fill="x", pady=2)

        def apply() -> None:
            if length_var.get():
                self._call("apply_length", length_var.get())

        actions = tk.Frame(frame, bg=_BG)
        actions.pack(pady=4)
        _button(actions, t("picker.apply"), apply).pack(side="left", padx=4)
        _button(actions, t("picker.clear"), self._clear_length).pack(side="left", padx=4)

    def _clear_tones(self) -> None:
        self._call("clear_tones")
        if self._panels is not None:
            self._panels.rebuild(Panel.TONE_PICKER)

    def _clear_length(self) -> None:
        self._call("clear_length")
        if self._panels is not None:
            self._panels.rebuild(Panel.LENGTH_PICKER)

    # ------------------------------------------------------------------
    # Menu and clipboard
    # ------------------------------------------------------------------

    def _populate_menu(self, frame: tk.Frame) -> None:
        entries = (
            ("menu.paste", "paste_to_clipboard"),
            ("menu.clipboard", "open_clipboard_history"),
            ("menu.reply", "reply"),
            ("menu.rewrite", "rewrite"),
            ("menu.settings", "open_settings"),
        )
        for key, action in entries:
            _button(frame, t(key), lambda a=action: self._call(a), anchor="w").pack(
                fill="x", padx=8, pady=2,
            )

    def _populate_clipboard(self, frame: tk.Frame) -> None:
        clips = self._clips.list() if self._clips else []
        if not clips:
            tk.Label(frame, text=t("clipboard.empty"), font=_FONT, bg=_BG, fg=_FG_DIM).pack(pady=16)
            return

        for clip in clips:
            row = tk.Frame(frame, bg=_BG_ITEM)
            row.pack(fill="x", padx=8, pady=2)

            text = t("clipboard.image") if clip.kind is ClipKind.IMAGE else _preview(clip.content)
            tk.Label(
                row, text=text, font=_FONT_SMALL, bg=_BG_ITEM, fg=_FG, anchor="w",
            ).pack(side="left", fill="x", expand=True, padx=6)

            star = "★" if clip.is_bookmarked else "☆"
            _button(row, "✕", lambda cid=clip.id: self._call("delete_clip", cid)).pack(side="right")
            _button(row, star, lambda cid=clip.id: self._call("toggle_clip_bookmark", cid)).pack(side="right")
            _button(row, t("clipboard.paste"), lambda cid=clip.id: self._call("paste_clip", cid)).pack(side="right")
