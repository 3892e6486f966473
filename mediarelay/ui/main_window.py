from __future__ import annotations

import platform
from collections.abc import Callable
from pathlib import Path

import PySide6
from PySide6.QtCore import Qt, qVersion
from PySide6.QtGui import QCloseEvent, QIcon
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from ..bridge import BATCH_COMPLETE, RUN_BATCH, SHOW_SAVE_DIALOG, IpcBridge
from ..core.config import APP_NAME, APP_VERSION
from ..core.models import BatchResult, SessionState
from .widget_utils import set_widget_pointer_cursor

SUBTITLE_TEXT = "Fetch a media file through the download script, then save it."
_BASE_WIDTH = 800
_BASE_HEIGHT = 600


def runtime_versions_text() -> str:
    return (
        f"Python {platform.python_version()} | "
        f"Qt {qVersion()} | "
        f"PySide6 {PySide6.__version__}"
    )


class MainWindow(QMainWindow):
    """URL input, run button and the download button revealed by a result.

    The window has no OS access of its own: everything it asks for goes
    through the bridge it was given.
    """

    def __init__(
        self,
        bridge: IpcBridge,
        *,
        show_console: bool = True,
        icon_path: Path | None = None,
    ) -> None:
        super().__init__()
        self._bridge = bridge
        self._close_handler: Callable[[], bool] | None = None
        self._session_state = SessionState.IDLE
        self._result_file: str | None = None

        self.setWindowTitle(APP_NAME)
        if icon_path and icon_path.exists():
            self.setWindowIcon(QIcon(str(icon_path)))
        self.resize(_BASE_WIDTH, _BASE_HEIGHT)

        self._build_ui()
        self.set_console_visible(show_console)
        self._bridge.on(BATCH_COMPLETE, self._on_batch_complete)

    @property
    def session_state(self) -> SessionState:
        return self._session_state

    @property
    def result_file(self) -> str | None:
        return self._result_file

    def _build_ui(self) -> None:
        root = QWidget(self)
        root.setObjectName("mrRoot")
        self.setCentralWidget(root)

        outer = QVBoxLayout(root)
        outer.setContentsMargins(10, 10, 10, 6)
        outer.setSpacing(7)
        self._outer_layout = outer

        self._build_header_card(root)
        self._build_input_card(root)
        self._build_console_card(root)
        self._build_footer_section(root)

    def _build_header_card(self, root: QWidget) -> None:
        header = QFrame(root)
        self.header_card = header
        header.setObjectName("card")
        header.setSizePolicy(QSizePolicy.Preferred, QSizePolicy.Fixed)
        header_layout = QVBoxLayout(header)
        header_layout.setContentsMargins(10, 8, 10, 8)
        header_layout.setSpacing(2)
        self.title_label = QLabel(APP_NAME, header)
        self.title_label.setObjectName("title")
        self.subtitle_label = QLabel(SUBTITLE_TEXT, header)
        self.subtitle_label.setObjectName("subtitle")
        header_layout.addWidget(self.title_label)
        header_layout.addWidget(self.subtitle_label)
        self._outer_layout.addWidget(header)

    def _build_input_card(self, root: QWidget) -> None:
        input_card = QFrame(root)
        self.input_card = input_card
        input_card.setObjectName("card")
        input_card.setSizePolicy(QSizePolicy.Preferred, QSizePolicy.Fixed)
        input_layout = QVBoxLayout(input_card)
        input_layout.setContentsMargins(10, 8, 10, 8)
        input_layout.setSpacing(6)

        self.url_input = QLineEdit(input_card)
        self.url_input.setObjectName("mpdUrl")
        self.url_input.setPlaceholderText('Paste media link/URL')
        self.url_input.setText("")
        input_layout.addWidget(self.url_input)

        button_row = QHBoxLayout()
        button_row.setSpacing(8)
        self.run_button = QPushButton('Run', input_card)
        self.run_button.setObjectName("runBatch")
        self.run_button.clicked.connect(self._emit_run_batch)
        self.download_button = QPushButton('Download', input_card)
        self.download_button.setObjectName("downloadButton")
        self.download_button.clicked.connect(self._emit_show_save_dialog)
        self.download_button.setVisible(False)
        button_row.addWidget(self.run_button)
        button_row.addWidget(self.download_button)
        button_row.addStretch(1)
        input_layout.addLayout(button_row)
        set_widget_pointer_cursor(self.run_button)

        self._outer_layout.addWidget(input_card)

    def _build_console_card(self, root: QWidget) -> None:
        console_card = QFrame(root)
        self.console_card = console_card
        console_card.setObjectName("card")
        console_layout = QVBoxLayout(console_card)
        console_layout.setContentsMargins(10, 8, 10, 8)
        console_layout.setSpacing(4)
        self.console_output = QPlainTextEdit(console_card)
        self.console_output.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.console_output.setReadOnly(True)
        self.console_output.setTextInteractionFlags(Qt.TextSelectableByMouse | Qt.TextSelectableByKeyboard)
        self.console_output.setMaximumBlockCount(1200)
        self.console_output.setMinimumHeight(98)
        self.console_output.setPlaceholderText('Console output')
        console_layout.addWidget(self.console_output, 1)
        self._outer_layout.addWidget(console_card, 1)

    def _build_footer_section(self, root: QWidget) -> None:
        footer = QHBoxLayout()
        footer.setContentsMargins(2, 0, 2, 0)
        self.versions_label = QLabel(runtime_versions_text(), root)
        self.versions_label.setObjectName("versions")
        self.version_label = QLabel(f"v{APP_VERSION}", root)
        self.version_label.setObjectName("appVersion")
        footer.addWidget(self.versions_label)
        footer.addStretch(1)
        footer.addWidget(self.version_label)
        self._outer_layout.addLayout(footer)

    def _emit_run_batch(self) -> None:
        self._session_state = SessionState.AWAITING_RESULT
        self._bridge.send(RUN_BATCH, self.url_input.text())

    def _emit_show_save_dialog(self) -> None:
        if not self._result_file:
            return
        self.append_log(f"Download file: {self._result_file}")
        self._session_state = SessionState.SAVE_REQUESTED
        self._bridge.send(SHOW_SAVE_DIALOG, self._result_file)

    def _on_batch_complete(self, payload: object) -> None:
        result = BatchResult.from_message(payload)
        self.append_log(f"Batch complete: {result.text_output}")
        self._session_state = SessionState.RESULT_SHOWN
        if not result.has_file:
            return
        self._result_file = result.file_path
        self.download_button.setVisible(True)
        set_widget_pointer_cursor(self.download_button)

    def set_console_visible(self, visible: bool) -> None:
        self.console_card.setVisible(bool(visible))

    def set_close_handler(self, handler: Callable[[], bool]) -> None:
        self._close_handler = handler

    def closeEvent(self, event: QCloseEvent) -> None:
        if self._close_handler and not self._close_handler():
            event.ignore()
            return
        event.accept()

    def append_log(self, text: str) -> None:
        value = str(text or "").strip()
        if not value:
            return
        self.console_output.appendPlainText(value)
        self.console_output.verticalScrollBar().setValue(self.console_output.verticalScrollBar().maximum())
