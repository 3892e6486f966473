from __future__ import annotations

from collections.abc import Callable
from typing import Any

from PySide6.QtCore import QObject, Signal


class BaseWorker(QObject):
    errorRaised = Signal(str, str)
    finishedSummary = Signal(object)
    finished = Signal()

    def run_guarded(
        self,
        *,
        execute: Callable[[], Any],
        on_result: Callable[[Any], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        try:
            result = execute()
        except Exception as exc:
            if on_error is not None:
                on_error(exc)
        else:
            if on_result is not None:
                on_result(result)
        finally:
            self.finished.emit()
