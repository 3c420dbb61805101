"""Settings persistence (TOML) and config schema."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path

import tomli_w

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config schema
# ---------------------------------------------------------------------------


@dataclass
class ServiceConfig:
    base_url: str = "http://127.0.0.1:3000"
    timeout: float = 30.0  # seconds; a request must resolve within this bound


@dataclass
class SyncConfig:
    poll_interval_ms: int = 500


@dataclass
class StoreConfig:
    # Directory shared with the companion app ("" = ~/.wandboard/shared)
    shared_dir: str = ""


@dataclass
class ClipboardConfig:
    max_regular_items: int = 15


@dataclass
class KeyboardConfig:
    # Whether the host granted elevated (network) access to the keyboard
    full_access: bool = True
    source_app: str = "instagram"
    companion_scheme: str = "socialwand"


@dataclass
class AppConfig:
    service: ServiceConfig = field(default_factory=ServiceConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    clipboard: ClipboardConfig = field(default_factory=ClipboardConfig)
    keyboard: KeyboardConfig = field(default_factory=KeyboardConfig)
    language: str = "en"  # UI language code


# Lower bounds for numeric settings; values below are reset to the default.
_MINIMUMS: dict[tuple[str, str], float] = {
    ("service", "timeout"): 1.0,
    ("sync", "poll_interval_ms"): 50,
    ("clipboard", "max_regular_items"): 1,
}


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def get_config_dir() -> Path:
    """Return the per-user config directory (~/.wandboard)."""
    return Path.home() / ".wandboard"


def get_config_path() -> Path:
    return get_config_dir() / "config.toml"


def get_shared_dir(config: AppConfig) -> Path:
    """Return the directory shared with the companion app."""
    if config.store.shared_dir:
        return Path(config.store.shared_dir).expanduser()
    return get_config_dir() / "shared"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _section_from(name: str, default: object, raw: object) -> object:
    """Overlay the *raw* TOML table on the *default* section instance.

    Unknown keys are dropped.  A value whose type does not match the
    default's, or that falls below its minimum, keeps the default.
    """
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning("Config section [%s] is not a table, using defaults", name)
        return default

    for f in fields(default):
        if f.name not in raw:
            continue
        value = raw[f.name]
        current = getattr(default, f.name)
        if isinstance(current, float) and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if type(value) is not type(current):
            logger.warning("Config %s.%s has wrong type (%r), using default", name, f.name, value)
            continue
        minimum = _MINIMUMS.get((name, f.name))
        if minimum is not None and value < minimum:
            logger.warning("Config %s.%s=%r is below %s, using default", name, f.name, value, minimum)
            continue
        setattr(default, f.name, value)
    return default


def _parse(data: dict) -> AppConfig:
    config = AppConfig()
    for f in fields(config):
        current = getattr(config, f.name)
        if is_dataclass(current):
            setattr(config, f.name, _section_from(f.name, current, data.get(f.name)))
        elif isinstance(data.get(f.name), type(current)):
            setattr(config, f.name, data[f.name])
    return config


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> AppConfig:
    """Read the settings file, filling anything missing from the defaults.

    A missing file is written out with defaults.  A file that is not valid
    TOML is left untouched and the defaults are used for this run.
    """
    path = path or get_config_path()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        logger.info("No config at %s, writing defaults", path)
        config = AppConfig()
        save_config(config, path)
        return config
    except tomllib.TOMLDecodeError as exc:
        logger.error("Config %s is not valid TOML (%s), using defaults", path, exc)
        return AppConfig()

    return _parse(data)


def save_config(config: AppConfig, path: Path | None = None) -> None:
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(asdict(config), f)
    logger.info("Configuration saved to %s", path)
