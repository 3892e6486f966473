import os
import stat
import sys
import time
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QCoreApplication, QEventLoop  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from mediarelay.core import paths  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication(sys.argv[:1])
    yield app


@pytest.fixture
def storage_dir(tmp_path, monkeypatch):
    base = tmp_path / "appdata"
    monkeypatch.setenv("LOCALAPPDATA", str(base))
    monkeypatch.delenv("MEDIARELAY_SCRIPT", raising=False)
    monkeypatch.delenv("MEDIARELAY_ENV", raising=False)
    paths.appdata_dir.cache_clear()
    paths.runtime_storage_dir.cache_clear()
    yield base / "MediaRelay"
    paths.appdata_dir.cache_clear()
    paths.runtime_storage_dir.cache_clear()


@pytest.fixture
def make_script(tmp_path):
    """Write an executable POSIX shell script and return its path."""

    def _make(body: str, name: str = "fetch.sh") -> Path:
        script = tmp_path / name
        script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


def _process_events_until(predicate, timeout: float) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        QCoreApplication.processEvents(QEventLoop.AllEvents, 50)
        if predicate():
            return True
        time.sleep(0.01)
    QCoreApplication.processEvents(QEventLoop.AllEvents, 50)
    return bool(predicate())


@pytest.fixture
def wait_until(qapp):
    def _wait(predicate, timeout: float = 5.0) -> bool:
        return _process_events_until(predicate, timeout)

    return _wait


@pytest.fixture
def pump_events(qapp):
    def _pump(duration: float = 0.3) -> None:
        _process_events_until(lambda: False, duration)

    return _pump
