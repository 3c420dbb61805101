"""AI generation lifecycle: state machine, batching and replay.

The orchestrator owns the generation state, the suggestion list, the current
operation and the batch counter.  Backend calls run on a worker thread and
their results are posted back onto the UI loop before any state is touched.

There is no cancellation: if two operations overlap, both results apply in
completion order.  Callers keep a single request in flight by ignoring
generation triggers while :attr:`GenerationState.is_loading` is true.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from wandboard.ai_client import AIServiceError, InvalidResponse
from wandboard.i18n import t
from wandboard.mainloop import UiLoop
from wandboard.models import GenerationState, Suggestion, TextContext
from wandboard.operations import (
    GenerationRequest,
    Operation,
    apply_preferences,
    derive_request,
    reflected_preferences,
)

logger = logging.getLogger(__name__)


class GenerationClient(Protocol):
    def generate(self, request: GenerationRequest) -> tuple[str, str]: ...


class TextProxy(Protocol):
    """Read/write access to the focused text field."""

    def read_context(self) -> TextContext: ...

    def replace_current_text(self, text: str) -> None: ...

    def insert_text(self, text: str) -> None: ...


def _spawn_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, name="wandboard-generate", daemon=True).start()


class GenerationOrchestrator:
    """Drives generation requests and publishes :class:`GenerationState`.

    Parameters
    ----------
    client:
        Backend client; ``generate`` is only ever called on a worker.
    loop:
        UI loop used to marshal completions back onto the UI thread.
    text_proxy:
        Text-field collaborator used when a suggestion is applied.
    on_applied:
        Called after a suggestion was written into the text field
        (the app hides the suggestions panel here).
    spawn:
        Runs a callable asynchronously.  Defaults to a daemon thread.
    """

    def __init__(
        self,
        client: GenerationClient,
        loop: UiLoop,
        text_proxy: TextProxy,
        on_applied: Callable[[], None] | None = None,
        spawn: Callable[[Callable[[], None]], None] | None = None,
    ) -> None:
        self._client = client
        self._loop = loop
        self._text_proxy = text_proxy
        self._on_applied = on_applied
        self._spawn = spawn or _spawn_thread

        self._state = GenerationState.idle()
        self._suggestions: list[Suggestion] = []
        self._operation: Operation | None = None
        self._batch_count = 0

        self._listeners: list[Callable[[GenerationState], None]] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return tuple(self._suggestions)

    @property
    def current_operation(self) -> Operation | None:
        return self._operation

    @property
    def batch_count(self) -> int:
        return self._batch_count

    def add_listener(self, callback: Callable[[GenerationState], None]) -> None:
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start(self, operation: Operation) -> None:
        """Make *operation* current and issue one backend call for it.

        With suggestions already on screen the new batch is generated "more"
        style: previous texts are sent for de-duplication and the results are
        prepended.  Otherwise the list and batch counter start over.
        """
        self._operation = operation
        is_more = bool(self._suggestions)

        if is_more:
            previous = [s.text for s in self._suggestions]
            self._set_state(GenerationState.loading_more())
        else:
            previous = []
            self._suggestions = []
            self._batch_count = 0
            self._set_state(GenerationState.loading())

        request = derive_request(operation, previous)
        logger.info(
            "Starting %s generation (more=%s, previous=%d)",
            request.kind.name, is_more, len(previous),
        )
        self._spawn(lambda: self._run(request, is_more))

    def retry(self) -> bool:
        """Replay the current operation.  Returns ``False`` if there is none."""
        operation = self._operation
        if operation is None:
            logger.warning("No operation to retry")
            return False
        logger.info("Retrying %s", type(operation).__name__)
        self.start(operation)
        return True

    def on_preferences_changed(self, tones: list[str] | tuple[str, ...], length: str | None) -> bool:
        """Re-run the current operation with new tone/length preferences.

        No call is made when there is no current operation or when the
        preferences are the ones it already reflects.  Returns whether a
        new generation started.
        """
        operation = self._operation
        if operation is None:
            return False

        current_tones, current_length = reflected_preferences(operation)
        if frozenset(tones or ()) == current_tones and (length or None) == current_length:
            logger.debug("Preferences unchanged, not regenerating")
            return False

        logger.info("Preferences changed (tones=%s, length=%s), regenerating", list(tones or ()), length)
        self.start(apply_preferences(operation, tones, length))
        return True

    def apply_suggestion(self, text: str) -> None:
        """Write *text* into the focused field in place of the current text."""
        logger.info("Applying suggestion (%d chars)", len(text))
        self._text_proxy.replace_current_text(text)
        if self._on_applied is not None:
            self._on_applied()

    def reset(self) -> None:
        """Back to IDLE with no suggestions and no current operation."""
        self._suggestions = []
        self._operation = None
        self._batch_count = 0
        self._set_state(GenerationState.idle())

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _run(self, request: GenerationRequest, is_more: bool) -> None:
        """Call the backend (worker thread) and post the outcome to the UI loop."""
        try:
            alternatives = tuple(self._client.generate(request))
            if len(alternatives) < 2:
                raise InvalidResponse()
        except AIServiceError as exc:
            message = exc.message
            logger.warning("%s generation failed: %s", request.kind.name, message)
            self._loop.post(lambda: self._on_failure(message))
            return
        except Exception:
            logger.exception("%s generation crashed", request.kind.name)
            message = t("error.generic")
            self._loop.post(lambda: self._on_failure(message))
            return

        self._loop.post(lambda: self._on_success(alternatives[:2], is_more))

    # ------------------------------------------------------------------
    # UI side
    # ------------------------------------------------------------------

    def _on_success(self, alternatives: tuple[str, ...], is_more: bool) -> None:
        batch = [
            Suggestion(text=text, index=self._batch_count * 2 + offset)
            for offset, text in enumerate(alternatives)
        ]
        if is_more:
            self._suggestions[0:0] = batch
        else:
            self._suggestions = batch
        self._batch_count += 1

        logger.info(
            "Generated batch %d (total suggestions: %d)",
            self._batch_count, len(self._suggestions),
        )
        self._set_state(GenerationState.success(self._suggestions))

    def _on_failure(self, message: str) -> None:
        self._set_state(GenerationState.error(message))

    def _set_state(self, state: GenerationState) -> None:
        self._state = state
        for callback in list(self._listeners):
            callback(state)
