"""Tests for the bounded clip history."""

from __future__ import annotations

import pytest
from PIL import Image

from wandboard import clipboard_store
from wandboard.clipboard_store import ClipboardStore, ClipKind


def test_save_and_list_text(clips) -> None:
    assert clips.save_text("first") is True
    assert clips.save_text("second") is True

    assert [c.content for c in clips.list()] == ["second", "first"]


def test_empty_and_duplicate_text_is_rejected(clips) -> None:
    assert clips.save_text("") is False
    assert clips.save_text("same") is True
    assert clips.save_text("same") is False

    assert len(clips.list()) == 1


def test_regular_items_are_capped_oldest_first(tmp_path) -> None:
    clips = ClipboardStore(tmp_path, max_regular_items=3)
    for i in range(5):
        clips.save_text(f"clip {i}")

    assert [c.content for c in clips.list()] == ["clip 4", "clip 3", "clip 2"]


def test_bookmarked_items_survive_the_cap_and_sort_first(tmp_path) -> None:
    clips = ClipboardStore(tmp_path, max_regular_items=2)
    clips.save_text("keeper")
    keeper = clips.list()[0]
    assert clips.toggle_bookmark(keeper.id) is True

    for i in range(4):
        clips.save_text(f"clip {i}")

    listed = clips.list()
    assert listed[0].content == "keeper"
    assert listed[0].is_bookmarked
    assert [c.content for c in listed[1:]] == ["clip 3", "clip 2"]


def test_unknown_ids_report_failure(clips) -> None:
    assert clips.toggle_bookmark("missing") is False
    assert clips.delete("missing") is False


def test_delete_and_clear_all(clips) -> None:
    clips.save_text("a")
    clips.save_text("b")
    target = clips.list()[0]

    assert clips.delete(target.id) is True
    assert [c.content for c in clips.list()] == ["a"]

    assert clips.clear_all() is True
    assert clips.list() == []


def test_image_clips_are_stored_as_png(clips) -> None:
    image = Image.new("RGB", (4, 4), color=(200, 10, 10))

    assert clips.save_image(image) is True
    assert clips.save_image(image.copy()) is False

    item = clips.list()[0]
    assert item.kind is ClipKind.IMAGE
    path = clips.image_path(item)
    assert path is not None and path.suffix == ".png"

    assert clips.delete(item.id) is True
    assert not path.exists()


def test_corrupt_history_reads_as_empty(tmp_path) -> None:
    (tmp_path / ClipboardStore.FILENAME).write_text("{{{", encoding="utf-8")

    assert ClipboardStore(tmp_path).list() == []


@pytest.fixture
def fake_system_clipboard(monkeypatch):
    state = {"text": "", "image": None}
    monkeypatch.setattr(clipboard_store.pyperclip, "paste", lambda: state["text"])
    monkeypatch.setattr(clipboard_store.ImageGrab, "grabclipboard", lambda: state["image"])
    return state


def test_save_current_clipboard_prefers_text(clips, fake_system_clipboard) -> None:
    fake_system_clipboard["text"] = "copied words"

    assert clips.save_current_clipboard() is True
    assert clips.list()[0].content == "copied words"


def test_save_current_clipboard_falls_back_to_image(clips, fake_system_clipboard) -> None:
    fake_system_clipboard["image"] = Image.new("RGB", (2, 2))

    assert clips.save_current_clipboard() is True
    assert clips.list()[0].kind is ClipKind.IMAGE


def test_save_current_clipboard_with_nothing(clips, fake_system_clipboard) -> None:
    assert clips.save_current_clipboard() is False
    assert clips.list() == []
