"""Overlay panel ownership and restoration across view teardown.

Exactly one :class:`~wandboard.models.Panel` may be visible at a time.  Every
transition is recorded in a restoration slot so that, when the host discards
and recreates the keyboard view, :meth:`PanelController.resume` can re-attach
the panel the user last had open without re-running the side effects of a
user-driven close.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from wandboard.models import Panel

logger = logging.getLogger(__name__)


class Surface(Protocol):
    """A panel's view, owned by the view layer."""

    @property
    def is_attached(self) -> bool: ...

    def attach(self) -> None: ...

    def detach(self) -> None: ...


SurfaceFactory = Callable[[Panel], Surface]


class PanelController:
    """Single-panel state machine.

    Parameters
    ----------
    build_surface:
        Called with a panel to obtain a fresh, not-yet-attached surface.
    on_suggestions_closed:
        Called when the user (not restoration) closes the suggestions panel.
        Used to reset the generation state so reopening starts fresh.
    """

    def __init__(
        self,
        build_surface: SurfaceFactory,
        on_suggestions_closed: Callable[[], None] | None = None,
    ) -> None:
        self._build_surface = build_surface
        self._on_suggestions_closed = on_suggestions_closed

        self._visible: Panel = Panel.NONE
        self._surface: Surface | None = None

        # Restoration slot: the panel to bring back after view recreation.
        self._last_visible: Panel = Panel.NONE
        # Toolbar highlight for the open panel.
        self._active_indicator: Panel = Panel.NONE
        # Set only while restore_if_needed() replays show()/hide().
        self._restoring = False

        self._listeners: list[Callable[[Panel], None]] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def visible(self) -> Panel:
        return self._visible

    @property
    def last_visible(self) -> Panel:
        return self._last_visible

    @property
    def active_indicator(self) -> Panel:
        return self._active_indicator

    @property
    def surface(self) -> Surface | None:
        return self._surface

    def is_attached(self, panel: Panel) -> bool:
        return (
            panel is not Panel.NONE
            and self._visible is panel
            and self._surface is not None
            and self._surface.is_attached
        )

    def add_listener(self, callback: Callable[[Panel], None]) -> None:
        """Register *callback*, called with the visible panel after each transition."""
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def show(self, panel: Panel) -> None:
        """Make *panel* the single visible panel."""
        if panel is Panel.NONE:
            self.close_any()
            return

        if self.is_attached(panel):
            logger.debug("%s already visible", panel.name)
            return

        if self._visible is panel:
            # Recorded as visible but the host dropped the surface.
            self._drop_surface()
        elif self._visible is not Panel.NONE:
            self.hide(self._visible)

        surface = self._build_surface(panel)
        surface.attach()
        self._surface = surface
        self._visible = panel
        self._last_visible = panel
        self._active_indicator = panel

        logger.info("Panel shown: %s%s", panel.name, " (restored)" if self._restoring else "")
        self._notify()

    def hide(self, panel: Panel) -> None:
        """Detach *panel* if it is the visible one."""
        if panel is Panel.NONE or self._visible is not panel:
            return

        self._drop_surface()

        if not self._restoring:
            self._last_visible = Panel.NONE
            self._active_indicator = Panel.NONE
            if panel is Panel.SUGGESTIONS and self._on_suggestions_closed is not None:
                self._on_suggestions_closed()

        logger.info("Panel hidden: %s", panel.name)
        self._notify()

    def close_any(self) -> None:
        """Hide whichever panel is open."""
        if self._visible is not Panel.NONE:
            self.hide(self._visible)

    def rebuild(self, panel: Panel) -> bool:
        """Tear down and rebuild *panel*'s surface if it is open.

        Used when the data the surface was built from changed underneath it.
        No restoration-slot or generation side effects.  Returns whether a
        rebuild happened.
        """
        if self._visible is not panel or panel is Panel.NONE:
            return False

        self._drop_surface()
        surface = self._build_surface(panel)
        surface.attach()
        self._surface = surface
        self._visible = panel

        logger.info("Panel rebuilt: %s", panel.name)
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Host view lifecycle
    # ------------------------------------------------------------------

    def restore_if_needed(self) -> bool:
        """Re-attach the last visible panel if its surface is gone.

        Returns ``True`` if a surface was attached.  Calling this again while
        the surface is attached is a no-op.
        """
        panel = self._last_visible
        if panel is Panel.NONE:
            return False

        if self.is_attached(panel):
            logger.debug("Restore skipped: %s already visible", panel.name)
            return False

        logger.info("Restoring last visible panel: %s", panel.name)
        self._restoring = True
        try:
            self.show(panel)
        finally:
            self._restoring = False
        return True

    def suspend(self) -> None:
        """The host discarded the view: forget surfaces, keep intent."""
        if self._surface is None and self._visible is Panel.NONE:
            return
        logger.info("Suspending with %s visible", self._visible.name)
        self._drop_surface()

    def resume(self) -> bool:
        """The host recreated the view: replay from the restoration slot."""
        return self.restore_if_needed()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _drop_surface(self) -> None:
        surface = self._surface
        self._surface = None
        self._visible = Panel.NONE
        if surface is not None and surface.is_attached:
            surface.detach()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self._visible)
