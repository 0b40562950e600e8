"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m kroppit [image]
    kroppit [image]          (after pip install)

Set KROPPIT_LOG_LEVEL (e.g. DEBUG, INFO) to see log output on stderr.
"""

import logging
import os
import sys
from pathlib import Path

from PyQt6.QtWidgets import QApplication

from kroppit.config import APP_NAME, APP_TITLE
from kroppit.main_window import MainWindow

DARK_STYLESHEET = """
    QMainWindow { background: #2b2b2b; }
    QWidget { background: #2b2b2b; color: #ddd; font-size: 10pt; }
    QGroupBox { border: 1px solid #555; border-radius: 4px; margin-top: 8px; padding-top: 12px; font-weight: bold; }
    QGroupBox::title { subcontrol-origin: margin; left: 8px; padding: 0 4px; }
    QPushButton { background: #3a3a3a; border: 1px solid #555; border-radius: 4px; padding: 6px 12px; }
    QPushButton:hover { background: #4a4a4a; }
    QPushButton:pressed { background: #2a2a2a; }
    QPushButton:disabled { color: #666; }
    QToolBar { background: #333; border-bottom: 1px solid #444; spacing: 4px; padding: 4px; }
    QStatusBar { background: #333; border-top: 1px solid #444; }
    QPlainTextEdit { background: #1e1e1e; border: 1px solid #444; }
"""


def configure_logging() -> None:
    level_name = os.environ.get("KROPPIT_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    configure_logging()

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationDisplayName(APP_TITLE)
    app.setStyleSheet(DARK_STYLESHEET)

    args = [a for a in sys.argv[1:] if not a.startswith("-")]
    initial_path = Path(args[0]) if args else None

    window = MainWindow(initial_path)
    window.show()

    try:
        sys.exit(app.exec())
    except (SystemExit, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()
