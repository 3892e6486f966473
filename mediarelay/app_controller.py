from __future__ import annotations

import uuid
from collections.abc import Callable

from PySide6.QtCore import QByteArray, QObject, QThread, Qt
from PySide6.QtWidgets import QWidget

from .bridge import BATCH_COMPLETE, RUN_BATCH, SHOW_SAVE_DIALOG, IpcBridge
from .core.batch_service import BatchService
from .core.config import load_config, resolve_run_mode, save_config
from .core.models import AppConfig, BatchResult
from .ui.dialogs import ask_save_path
from .ui.main_window import MainWindow
from .workers.batch_worker import BatchWorker

SHUTDOWN_THREAD_WAIT_MS = 1500
SavePrompt = Callable[..., str | None]


class AppController(QObject):
    """Owns the window, runs the download script and answers the bridge."""

    def __init__(
        self,
        app,
        *,
        config: AppConfig | None = None,
        service: BatchService | None = None,
        save_prompt: SavePrompt | None = None,
    ) -> None:
        super().__init__()
        self.app = app
        self.config: AppConfig = config if config is not None else load_config()
        self.run_mode = resolve_run_mode()
        self.batch_service = service if service is not None else BatchService(self.config.script_path)
        self._save_prompt: SavePrompt = save_prompt or ask_save_path

        self.bridge = IpcBridge(self)
        self.window = MainWindow(self.bridge, show_console=self.config.show_console)
        self.window.set_close_handler(self._on_close_request)

        self._batch_threads: dict[str, QThread] = {}
        self._batch_workers: dict[str, BatchWorker] = {}

        self.bridge.handle(RUN_BATCH, self._on_run_batch)
        self.bridge.handle(SHOW_SAVE_DIALOG, self._on_show_save_dialog)

    def run(self) -> None:
        self._restore_geometry()
        self.window.show()
        self._log(f"Running in {self.run_mode.value} mode.")

    def _log(self, message: str) -> None:
        self.window.append_log(message)

    def _on_run_batch(self, url: object) -> None:
        request_id = uuid.uuid4().hex
        thread = QThread(self)
        thread.setProperty("request_id", request_id)
        worker = BatchWorker(self.batch_service, str(url if url is not None else ""))
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.errorRaised.connect(self._on_batch_error, Qt.ConnectionType.QueuedConnection)
        worker.finishedSummary.connect(self._on_batch_summary, Qt.ConnectionType.QueuedConnection)
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(self._on_batch_thread_finished, Qt.ConnectionType.QueuedConnection)
        thread.finished.connect(thread.deleteLater)
        self._batch_threads[request_id] = thread
        self._batch_workers[request_id] = worker
        thread.start()

    def _on_batch_error(self, _job_id: str, error: str) -> None:
        self._log(f"Error executing batch file: {error}")

    def _on_batch_summary(self, payload: object) -> None:
        if not isinstance(payload, BatchResult):
            return
        if payload.file_path:
            self._log(f"Downloaded file path: {payload.file_path}")
        else:
            self._log("Unable to extract downloaded file path.")
        self.bridge.reply(BATCH_COMPLETE, payload.to_message())

    def _on_batch_thread_finished(self) -> None:
        sender = self.sender()
        if not isinstance(sender, QThread):
            return
        request_id = str(sender.property("request_id") or "").strip()
        self._batch_threads.pop(request_id, None)
        self._batch_workers.pop(request_id, None)

    def running_batch_count(self) -> int:
        return len(self._batch_threads)

    def _on_show_save_dialog(self, file_path: object) -> None:
        parent: QWidget | None = self.window
        selected = self._save_prompt(
            parent,
            str(file_path or ""),
            extension=self.config.save_extension,
            title="Save video",
        )
        if not selected:
            return
        self._log(f"Selected file path: {selected}")

    def _restore_geometry(self) -> None:
        encoded = str(self.config.window_geometry or "").strip()
        if not encoded:
            return
        try:
            payload = QByteArray.fromBase64(encoded.encode("ascii"))
            if payload:
                self.window.restoreGeometry(payload)
        except (UnicodeEncodeError, ValueError):
            return

    def _flush_config_save(self) -> None:
        try:
            self.config.window_geometry = (
                self.window.saveGeometry().toBase64().data().decode("ascii")
            )
        except (RuntimeError, UnicodeDecodeError):
            self.config.window_geometry = ""
        if save_config(self.config) is None:
            self._log("Unable to save settings.")

    @staticmethod
    def _wait_for_thread_shutdown(thread: QThread | None, *, timeout_ms: int) -> bool:
        if thread is None:
            return True
        try:
            if not thread.isRunning():
                return True
        except RuntimeError:
            return True
        try:
            return bool(thread.wait(max(0, int(timeout_ms))))
        except RuntimeError:
            return True

    def _running_batch_threads(self) -> list[QThread]:
        running: list[QThread] = []
        for thread in list(self._batch_threads.values()):
            try:
                if thread.isRunning():
                    running.append(thread)
            except RuntimeError:
                continue
        return running

    def _wait_for_all_batch_threads_to_finish(self, *, timeout_ms: int) -> tuple[bool, list[QThread]]:
        remaining: list[QThread] = []
        for thread in self._running_batch_threads():
            if not self._wait_for_thread_shutdown(thread, timeout_ms=timeout_ms):
                remaining.append(thread)
        return (len(remaining) == 0), remaining

    @staticmethod
    def _force_terminate_threads(threads: list[QThread]) -> None:
        for thread in threads:
            try:
                if not thread.isRunning():
                    continue
            except RuntimeError:
                continue
            try:
                thread.terminate()
            except RuntimeError:
                continue
            try:
                thread.wait(300)
            except RuntimeError:
                continue

    def _on_close_request(self) -> bool:
        self._flush_config_save()
        # Killing the scripts unblocks the workers waiting on them.
        self.batch_service.cancel_all()
        finished, remaining = self._wait_for_all_batch_threads_to_finish(timeout_ms=SHUTDOWN_THREAD_WAIT_MS)
        if not finished:
            self._force_terminate_threads(remaining)
        return True
