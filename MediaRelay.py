"""
MediaRelay - run the media download script and save what it fetched.

Launch with ``python MediaRelay.py`` or the ``mediarelay`` console script.
Set ``MEDIARELAY_ENV=production`` to start with the log console hidden and
``MEDIARELAY_SCRIPT`` to point at a different download script.
"""
from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from mediarelay.core.config import APP_NAME, APP_VERSION


def main() -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationDisplayName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setOrganizationName(APP_NAME)

    from mediarelay.app_controller import AppController
    from mediarelay.ui.dialogs import show_critical

    try:
        controller = AppController(app)
    except RuntimeError as exc:
        show_critical(None, APP_NAME, str(exc))
        return 1
    controller.run()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
