from __future__ import annotations

import json
import os
import sys
from pathlib import Path

from .models import AppConfig, RunMode

APP_NAME = "MediaRelay"
APP_VERSION = "1.0.0"

CONFIG_FILENAME = "MediaRelay_config.json"
CONFIG_SCHEMA_VERSION = 1

RUN_MODE_ENV = "MEDIARELAY_ENV"
SCRIPT_PATH_ENV = "MEDIARELAY_SCRIPT"
DEFAULT_SCRIPT_NAME = "thuis.bat" if os.name == "nt" else "thuis.sh"
DEFAULT_SAVE_EXTENSION = "mp4"


def _paths():
    from . import paths as paths_module

    return paths_module


def _coerce_int(value: object, default: int, minimum: int, maximum: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = default
    return max(minimum, min(maximum, parsed))


def _coerce_bool(value: object, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off"}:
            return False
    return default


def _coerce_non_empty_text(value: object, *, default: str) -> str:
    text = str(value or "").strip()
    return text if text else str(default)


def resolve_run_mode() -> RunMode:
    override = str(os.environ.get(RUN_MODE_ENV, "") or "").strip().lower()
    if override in {mode.value for mode in RunMode}:
        return RunMode(override)
    if getattr(sys, "frozen", False):
        return RunMode.PRODUCTION
    return RunMode.DEVELOPMENT


def default_config() -> AppConfig:
    return AppConfig(
        schema_version=CONFIG_SCHEMA_VERSION,
        script_path=DEFAULT_SCRIPT_NAME,
        save_extension=DEFAULT_SAVE_EXTENSION,
        window_geometry="",
        show_console=resolve_run_mode() is RunMode.DEVELOPMENT,
    )


def _sanitize_payload(payload: dict[str, object]) -> AppConfig:
    defaults = default_config()
    save_extension = _coerce_non_empty_text(
        payload.get("save_extension", defaults.save_extension),
        default=defaults.save_extension,
    ).lstrip(".").lower()
    return AppConfig(
        schema_version=_coerce_int(
            payload.get("schema_version", CONFIG_SCHEMA_VERSION),
            CONFIG_SCHEMA_VERSION,
            0,
            CONFIG_SCHEMA_VERSION,
        ),
        script_path=_coerce_non_empty_text(
            payload.get("script_path", defaults.script_path),
            default=defaults.script_path,
        ),
        save_extension=save_extension or DEFAULT_SAVE_EXTENSION,
        window_geometry=str(payload.get("window_geometry", defaults.window_geometry) or ""),
        show_console=_coerce_bool(payload.get("show_console"), default=defaults.show_console),
    )


def config_path() -> Path:
    return _paths().runtime_storage_dir() / CONFIG_FILENAME


def _load_config_from_path(path: Path) -> AppConfig | None:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            return _sanitize_payload(raw)
    except (OSError, UnicodeError, json.JSONDecodeError, TypeError, ValueError):
        return None
    return None


def load_config() -> AppConfig:
    primary = config_path()
    if primary.exists():
        loaded = _load_config_from_path(primary)
        if loaded is not None:
            return loaded
    return default_config()


def config_to_dict(config: AppConfig) -> dict[str, object]:
    return {
        "schema_version": CONFIG_SCHEMA_VERSION,
        "script_path": str(config.script_path or DEFAULT_SCRIPT_NAME),
        "save_extension": str(config.save_extension or DEFAULT_SAVE_EXTENSION),
        "window_geometry": str(config.window_geometry or ""),
        "show_console": bool(config.show_console),
    }


def save_config(config: AppConfig) -> str | None:
    payload = config_to_dict(config)
    path = config_path()
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(str(tmp_path), str(path))
        return str(path)
    except (OSError, TypeError, ValueError):
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        return None
