"""Polls the shared preference store and reconciles open pickers.

The companion app can edit tones and length while a picker is on screen.
Every tick re-reads both values; when one differs from the cache, the cache
is updated and the matching picker, if open, is rebuilt from the fresh
value.  Ticks run on the UI loop, so no extra synchronisation is needed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from wandboard.mainloop import UiLoop
from wandboard.models import Panel
from wandboard.panels import PanelController
from wandboard.store import PreferenceStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 500


@dataclass(frozen=True)
class PreferenceCache:
    tones: tuple[str, ...] = ()
    length: str | None = None


class PreferenceSyncLoop:
    """Periodic store → cache reconciliation.

    Start it when the keyboard view becomes active and stop it when it goes
    away, so no tick outlives the view it would rebuild.
    """

    def __init__(
        self,
        store: PreferenceStore,
        loop: UiLoop,
        panels: PanelController,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        on_change: Callable[[PreferenceCache], None] | None = None,
    ) -> None:
        self._store = store
        self._loop = loop
        self._panels = panels
        self._interval_ms = interval_ms
        self._on_change = on_change

        self._cache = PreferenceCache(
            tones=tuple(store.load_tones()),
            length=store.load_length(),
        )
        self._handle: Any = None
        self._running = False

    @property
    def cache(self) -> PreferenceCache:
        return self._cache

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info("Preference sync started (every %d ms)", self._interval_ms)
        self._schedule()

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._handle is not None:
            self._loop.cancel(self._handle)
            self._handle = None
        logger.info("Preference sync stopped")

    # ------------------------------------------------------------------
    # Local writes
    # ------------------------------------------------------------------

    def remember_tones(self, tones: list[str] | tuple[str, ...]) -> None:
        """Record a tone change made by this process (not an external edit)."""
        self._cache = PreferenceCache(tones=tuple(tones), length=self._cache.length)

    def remember_length(self, length: str | None) -> None:
        """Record a length change made by this process (not an external edit)."""
        self._cache = PreferenceCache(tones=self._cache.tones, length=length)

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self._interval_ms, self._on_tick)

    def _on_tick(self) -> None:
        self._handle = None
        if not self._running:
            return
        try:
            self.tick()
        finally:
            if self._running:
                self._schedule()

    def tick(self) -> None:
        """Reconcile once with the store."""
        length = self._store.load_length()
        tones = tuple(self._store.load_tones())
        cached = self._cache

        length_changed = length != cached.length
        tones_changed = tones != cached.tones
        if not (length_changed or tones_changed):
            return

        self._cache = PreferenceCache(tones=tones, length=length)
        logger.info("External preference change (tones=%s, length=%s)", list(tones), length)

        if length_changed:
            self._panels.rebuild(Panel.LENGTH_PICKER)
        if tones_changed:
            self._panels.rebuild(Panel.TONE_PICKER)

        if self._on_change is not None:
            self._on_change(self._cache)
