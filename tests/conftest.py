"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tests.helpers import FakeClient, FakeTextProxy, ManualLoop, Spawner, SurfaceFactory
from wandboard.clipboard_store import ClipboardStore
from wandboard.generation import GenerationOrchestrator
from wandboard.models import Panel
from wandboard.panels import PanelController
from wandboard.router import ToolbarButtonRouter
from wandboard.store import PreferenceStore
from wandboard.sync import PreferenceSyncLoop


@pytest.fixture
def loop() -> ManualLoop:
    return ManualLoop()


@pytest.fixture
def spawner() -> Spawner:
    return Spawner()


@pytest.fixture
def surfaces() -> SurfaceFactory:
    return SurfaceFactory()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def text_proxy() -> FakeTextProxy:
    return FakeTextProxy(full_text="hey are you free tonight")


@pytest.fixture
def store(tmp_path) -> PreferenceStore:
    store = PreferenceStore(tmp_path / "shared")
    store.set_full_access(True)
    return store


@pytest.fixture
def clips(tmp_path) -> ClipboardStore:
    return ClipboardStore(tmp_path / "clips")


@pytest.fixture
def orchestrator(request, client, loop, text_proxy, spawner) -> GenerationOrchestrator:
    return GenerationOrchestrator(
        client=client,
        loop=loop,
        text_proxy=text_proxy,
        on_applied=lambda: request.getfixturevalue("panels").hide(Panel.SUGGESTIONS),
        spawn=spawner,
    )


@pytest.fixture
def panels(surfaces, orchestrator) -> PanelController:
    return PanelController(surfaces, on_suggestions_closed=orchestrator.reset)


@pytest.fixture
def sync(store, loop, panels) -> PreferenceSyncLoop:
    return PreferenceSyncLoop(store, loop, panels, interval_ms=500)


@pytest.fixture
def notices() -> list[str]:
    return []


@pytest.fixture
def opened_urls() -> list[str]:
    return []


@pytest.fixture
def router(panels, orchestrator, store, sync, text_proxy, clips, notices, opened_urls) -> ToolbarButtonRouter:
    def open_url(url: str) -> bool:
        opened_urls.append(url)
        return True

    return ToolbarButtonRouter(
        panels=panels,
        orchestrator=orchestrator,
        store=store,
        sync=sync,
        text_proxy=text_proxy,
        clips=clips,
        on_notice=notices.append,
        url_opener=open_url,
    )

