from __future__ import annotations

from PySide6.QtWidgets import QFileDialog, QMessageBox, QWidget


def save_file_filter(extension: str) -> str:
    ext = str(extension or "").strip().lstrip(".").lower() or "mp4"
    return f"{ext.upper()} Files (*.{ext})"


def ask_save_path(
    parent: QWidget | None,
    default_path: str,
    *,
    extension: str = "mp4",
    title: str = "Save file",
) -> str | None:
    """Show the native save prompt; ``None`` when the user cancels."""
    selected, _ = QFileDialog.getSaveFileName(
        parent,
        title,
        str(default_path or ""),
        save_file_filter(extension),
    )
    if not selected:
        return None
    return str(selected)


def show_critical(parent: QWidget | None, title: str, text: str) -> None:
    QMessageBox.critical(parent, str(title or ""), str(text or ""))
