from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QWidget


def set_widget_pointer_cursor(widget: QWidget) -> None:
    try:
        if widget.isEnabled() and not widget.isHidden():
            widget.setCursor(Qt.PointingHandCursor)
        else:
            widget.unsetCursor()
    except RuntimeError:
        return
