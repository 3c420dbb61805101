"""Main entry point: wires the keyboard controllers together."""

from __future__ import annotations

import logging
import tkinter as tk
from logging.handlers import RotatingFileHandler

from wandboard.ai_client import AIServiceClient
from wandboard.clipboard import DesktopTextProxy
from wandboard.clipboard_store import ClipboardStore
from wandboard.config import AppConfig, get_config_dir, get_shared_dir, load_config
from wandboard.generation import GenerationOrchestrator
from wandboard.i18n import init_language
from wandboard.mainloop import TkUiLoop
from wandboard.models import Panel
from wandboard.overlay import KeyboardWindow
from wandboard.panels import PanelController
from wandboard.router import ToolbarButtonRouter
from wandboard.store import PreferenceStore
from wandboard.sync import PreferenceSyncLoop

logger = logging.getLogger(__name__)


class WandApp:
    """Application orchestrator.

    Owns the tkinter root and every controller.  The window's map/unmap
    events stand in for the host creating and discarding the keyboard view.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        logger.info("Loading configuration...")
        self._config = config or load_config()
        init_language(self._config.language)

        shared_dir = get_shared_dir(self._config)
        logger.info("Shared store: %s", shared_dir)
        self._store = PreferenceStore(shared_dir)
        self._store.set_full_access(self._config.keyboard.full_access)

        self._clips = ClipboardStore(
            shared_dir, max_regular_items=self._config.clipboard.max_regular_items,
        )

        logger.info("Initialising AI service client (%s)...", self._config.service.base_url)
        self._client = AIServiceClient(
            base_url=self._config.service.base_url,
            timeout=self._config.service.timeout,
            traits_loader=self._store.load_traits,
        )

        self._root = tk.Tk()
        self._loop = TkUiLoop(self._root)
        self._window = KeyboardWindow(
            self._root, on_suspend=self.suspend, on_resume=self.resume,
        )

        self._orchestrator = GenerationOrchestrator(
            client=self._client,
            loop=self._loop,
            text_proxy=DesktopTextProxy(),
            on_applied=lambda: self._panels.hide(Panel.SUGGESTIONS),
        )
        self._panels = PanelController(
            build_surface=self._window.build_surface,
            on_suggestions_closed=self._orchestrator.reset,
        )
        self._sync = PreferenceSyncLoop(
            store=self._store,
            loop=self._loop,
            panels=self._panels,
            interval_ms=self._config.sync.poll_interval_ms,
        )
        self._router = ToolbarButtonRouter(
            panels=self._panels,
            orchestrator=self._orchestrator,
            store=self._store,
            sync=self._sync,
            text_proxy=DesktopTextProxy(),
            clips=self._clips,
            source_app=self._config.keyboard.source_app,
            companion_scheme=self._config.keyboard.companion_scheme,
            on_notice=self._window.show_notice,
            on_banner=self._window.show_banner,
        )
        self._window.connect(
            router=self._router,
            orchestrator=self._orchestrator,
            panels=self._panels,
            clips=self._clips,
            preferences=lambda: self._sync.cache,
        )
        self._root.protocol("WM_DELETE_WINDOW", self._on_quit)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Start the UI loop and block until the window is closed."""
        self._loop.start()
        logger.info("Wand keyboard is ready.")
        self._window.run()

    # ------------------------------------------------------------------
    # View lifecycle
    # ------------------------------------------------------------------

    def suspend(self) -> None:
        """The keyboard view went away: drop surfaces, stop polling."""
        logger.info("Keyboard view suspended")
        self._store.set_full_access(self._config.keyboard.full_access)
        self._panels.suspend()
        self._sync.stop()

    def resume(self) -> None:
        """The keyboard view came back: restore panels, pick up handoffs."""
        logger.info("Keyboard view resumed")
        self._store.set_full_access(self._config.keyboard.full_access)
        self._panels.resume()
        self._router.check_ready_photos()
        self._router.check_shared_suggestion()
        self._sync.start()

    # ------------------------------------------------------------------
    # Quit
    # ------------------------------------------------------------------

    def _on_quit(self) -> None:
        logger.info("Shutting down...")
        self._sync.stop()
        self._loop.stop()
        self._client.close()
        self._window.destroy()
        logger.info("Goodbye.")


# ======================================================================
# Entry point
# ======================================================================


def _setup_file_logging() -> None:
    log_dir = get_config_dir() / "logs"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_dir / "wandboard.log", maxBytes=1_000_000, backupCount=3, encoding="utf-8",
        )
    except OSError as exc:
        logger.warning("File logging disabled: %s", exc)
        return
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"),
    )
    logging.getLogger().addHandler(handler)


def main() -> None:
    """Entry point for the Wand keyboard."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    _setup_file_logging()
    app = WandApp()
    app.run()


if __name__ == "__main__":
    main()
