from __future__ import annotations

import os
import shutil
import sys
from functools import lru_cache
from pathlib import Path

from .config import APP_NAME, SCRIPT_PATH_ENV


@lru_cache(maxsize=1)
def app_dir() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[2]


@lru_cache(maxsize=1)
def appdata_dir() -> Path:
    base = os.environ.get("LOCALAPPDATA")
    if base:
        return Path(base).resolve() / APP_NAME
    return Path.home() / APP_NAME


@lru_cache(maxsize=1)
def runtime_storage_dir() -> Path:
    target = appdata_dir()
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(
            f"Unable to create storage directory: {target}. "
            "Check folder permissions and available disk space."
        ) from exc
    return target


def _unique_paths(paths: list[Path]) -> list[Path]:
    seen: set[Path] = set()
    unique: list[Path] = []
    for path in paths:
        resolved = path.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        unique.append(resolved)
    return unique


def resolve_script(script_path: str) -> str | None:
    """Locate the download script.

    An explicit ``MEDIARELAY_SCRIPT`` wins over the configured value. Absolute
    paths are taken as-is; bare names are looked up in the storage dir, the
    app dir and finally ``PATH``.
    """
    name = str(os.environ.get(SCRIPT_PATH_ENV, "") or "").strip() or str(script_path or "").strip()
    if not name:
        return None
    candidate = Path(name).expanduser()
    if candidate.is_absolute():
        return str(candidate) if candidate.is_file() else None

    for base in _unique_paths([runtime_storage_dir(), app_dir(), Path.cwd()]):
        located = base / candidate
        if located.is_file():
            return str(located)

    found = shutil.which(name)
    if found:
        return str(Path(found).resolve())
    return None
