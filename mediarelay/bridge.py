from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import QObject, Signal

RUN_BATCH = "run-batch"
SHOW_SAVE_DIALOG = "show-save-dialog"
BATCH_COMPLETE = "batch-complete"

OUTBOUND_CHANNELS = (RUN_BATCH, SHOW_SAVE_DIALOG)
INBOUND_CHANNELS = (BATCH_COMPLETE,)


class IpcBridge(QObject):
    """Fixed message surface between the window and the controller.

    The window only sends on the outbound channels and listens on the inbound
    one; the controller does the opposite. Values pass through untouched.
    """

    runBatchRequested = Signal(object)
    saveDialogRequested = Signal(object)
    batchCompleted = Signal(object)

    def _outbound_signal(self, channel: str):
        if channel == RUN_BATCH:
            return self.runBatchRequested
        if channel == SHOW_SAVE_DIALOG:
            return self.saveDialogRequested
        raise ValueError(f"Unknown outbound channel: {channel!r}")

    def _inbound_signal(self, channel: str):
        if channel == BATCH_COMPLETE:
            return self.batchCompleted
        raise ValueError(f"Unknown inbound channel: {channel!r}")

    def send(self, channel: str, value: object) -> None:
        self._outbound_signal(channel).emit(value)

    def on(self, channel: str, listener: Callable[[object], None]) -> None:
        self._inbound_signal(channel).connect(listener)

    def handle(self, channel: str, handler: Callable[[object], None]) -> None:
        self._outbound_signal(channel).connect(handler)

    def reply(self, channel: str, payload: object) -> None:
        self._inbound_signal(channel).emit(payload)
