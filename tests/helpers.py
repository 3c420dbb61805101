"""Shared test helpers and stub classes.

Reusable fakes for the UI loop, panel surfaces, the backend client and the
text field.  Import from here instead of duplicating them in test modules.
"""

from __future__ import annotations

from typing import Any, Callable

from wandboard.models import Panel, TextContext
from wandboard.operations import GenerationRequest


class ManualLoop:
    """UI loop driven by the test: nothing runs until asked to."""

    def __init__(self) -> None:
        self.now = 0
        self.posted: list[Callable[[], None]] = []
        self._timers: dict[int, tuple[int, Callable[[], None]]] = {}
        self._next_handle = 0

    def post(self, callback: Callable[[], None]) -> None:
        self.posted.append(callback)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        self._next_handle += 1
        self._timers[self._next_handle] = (self.now + delay_ms, callback)
        return self._next_handle

    def cancel(self, handle: Any) -> None:
        self._timers.pop(handle, None)

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def run_pending(self) -> None:
        """Run posted callbacks (including ones posted while running)."""
        while self.posted:
            self.posted.pop(0)()

    def advance(self, ms: int) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.now + ms
        while True:
            due = [(when, h) for h, (when, _) in self._timers.items() if when <= target]
            if not due:
                break
            when, handle = min(due)
            _, callback = self._timers.pop(handle)
            self.now = when
            callback()
        self.now = target


class Spawner:
    """Collects worker jobs so tests control when a backend call 'finishes'."""

    def __init__(self) -> None:
        self.jobs: list[Callable[[], None]] = []

    def __call__(self, job: Callable[[], None]) -> None:
        self.jobs.append(job)

    def run_all(self) -> None:
        while self.jobs:
            self.jobs.pop(0)()


class FakeSurface:
    def __init__(self, panel: Panel) -> None:
        self.panel = panel
        self.attached = False
        self.attach_count = 0
        self.detach_count = 0

    @property
    def is_attached(self) -> bool:
        return self.attached

    def attach(self) -> None:
        self.attached = True
        self.attach_count += 1

    def detach(self) -> None:
        self.attached = False
        self.detach_count += 1


class SurfaceFactory:
    """Builds :class:`FakeSurface` objects and remembers every one."""

    def __init__(self) -> None:
        self.built: list[FakeSurface] = []

    def __call__(self, panel: Panel) -> FakeSurface:
        surface = FakeSurface(panel)
        self.built.append(surface)
        return surface

    def count(self, panel: Panel) -> int:
        return sum(1 for s in self.built if s.panel is panel)

    def attached(self) -> list[FakeSurface]:
        return [s for s in self.built if s.attached]


class FakeClient:
    """Backend stub.  Queue tuples or exceptions with :meth:`queue`."""

    def __init__(self) -> None:
        self.requests: list[GenerationRequest] = []
        self._responses: list[Any] = []

    def queue(self, *responses: Any) -> None:
        self._responses.extend(responses)

    def generate(self, request: GenerationRequest) -> tuple[str, ...]:
        self.requests.append(request)
        if self._responses:
            response = self._responses.pop(0)
        else:
            n = len(self.requests)
            response = (f"safe {n}", f"bold {n}")
        if isinstance(response, BaseException):
            raise response
        return response


class FakeTextProxy:
    def __init__(self, full_text: str = "", selected_text: str | None = None) -> None:
        self.context = TextContext(full_text=full_text, selected_text=selected_text)
        self.replaced: list[str] = []
        self.inserted: list[str] = []

    def read_context(self) -> TextContext:
        return self.context

    def replace_current_text(self, text: str) -> None:
        self.replaced.append(text)

    def insert_text(self, text: str) -> None:
        self.inserted.append(text)


def finish_generation(spawner: Spawner, loop: ManualLoop) -> None:
    """Let every in-flight backend call complete and apply on the UI loop."""
    spawner.run_all()
    loop.run_pending()
