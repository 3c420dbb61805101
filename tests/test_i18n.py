"""Tests for locale packs and string lookup."""

from __future__ import annotations

import json

import pytest

from wandboard import i18n
from wandboard.i18n import get_language, init_language, load_locale, set_language, t


@pytest.fixture
def locales_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(i18n, "get_locales_dir", lambda: tmp_path)
    yield tmp_path
    monkeypatch.undo()
    init_language("en")


def _write_pack(directory, lang: str, name: str, translations: dict) -> None:
    payload = {"meta": {"name": name}, "translations": translations}
    (directory / f"{lang}.json").write_text(json.dumps(payload), encoding="utf-8")


def test_shipped_english_pack_has_a_name() -> None:
    pack = load_locale("en")

    assert pack is not None
    assert pack["meta"]["name"] == "English"


def test_partial_pack_falls_back_per_key(locales_dir) -> None:
    _write_pack(locales_dir, "de", "Deutsch", {"toolbar.tone": "Ton"})

    assert set_language("de") is True
    assert get_language() == "de"
    assert t("toolbar.tone") == "Ton"
    assert t("toolbar.length") == "Length"


def test_unknown_language_keeps_current(locales_dir) -> None:
    _write_pack(locales_dir, "en", "English", {})
    init_language("en")

    assert set_language("xx") is False
    assert get_language() == "en"


def test_init_without_any_pack_uses_builtin_strings(locales_dir) -> None:
    init_language("fr")

    assert get_language() == "en"
    assert t("notice.full_access") == "Full Access required for this feature"


def test_unreadable_pack_is_ignored(locales_dir) -> None:
    (locales_dir / "es.json").write_text("{not json", encoding="utf-8")

    assert set_language("es") is False
    assert load_locale("es") is None


def test_placeholders_and_unknown_keys() -> None:
    assert t("error.http", status=502) == "Request failed (HTTP 502)"
    assert t("error.http") == "Request failed (HTTP {status})"
    assert t("no.such.key") == "no.such.key"
    assert t("no.such.key", default="fallback") == "fallback"
