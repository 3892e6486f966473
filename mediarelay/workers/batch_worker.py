from __future__ import annotations

from .base_worker import BaseWorker
from ..core.batch_service import BatchService
from ..core.models import BatchResult


class BatchWorker(BaseWorker):
    def __init__(self, service: BatchService, url: str) -> None:
        super().__init__()
        self._service = service
        self._url = url

    @property
    def url(self) -> str:
        return self._url

    def run(self) -> None:
        def execute() -> BatchResult:
            return self._service.run(self._url)

        def on_result(result: BatchResult) -> None:
            self.finishedSummary.emit(result)

        # Failures never produce a summary; the request stays unanswered.
        def on_error(exc: Exception) -> None:
            self.errorRaised.emit("batch", str(exc))

        self.run_guarded(
            execute=execute,
            on_result=on_result,
            on_error=on_error,
        )
