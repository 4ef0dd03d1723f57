"""Entry point: logging, single-instance lock, preferences DB, main window."""

import logging
import sys

from bucketview import constants


def run(argv: list[str]) -> int:
    """Start the GUI and block until the main window closes. Returns the exit code."""
    constants.APP_DIR.mkdir(parents=True, exist_ok=True)

    # Logging first so anything imported below can log
    from bucketview.logging_setup import setup_logging

    setup_logging()
    logger = logging.getLogger("bucketview.app")
    logger.info("Starting %s on %s", constants.APP_NAME, sys.platform)

    from PyQt6.QtCore import QLockFile
    from PyQt6.QtWidgets import QApplication

    app = QApplication(argv)
    app.setApplicationName(constants.APP_NAME)
    app.setApplicationDisplayName(constants.APP_NAME)

    lock = QLockFile(str(constants.APP_DIR / "bucketview.lock"))
    if not lock.tryLock(100):
        logger.warning("%s is already running", constants.APP_NAME)
        return 0

    from bucketview.db.database import Database
    from bucketview.main_window import MainWindow

    db = Database()
    try:
        window = MainWindow(db=db)
        window.show()
        exit_code = app.exec()
    finally:
        db.close()
        lock.unlock()
    logger.info("Exiting with code %d", exit_code)
    return exit_code


def main() -> None:
    sys.exit(run(sys.argv))


if __name__ == "__main__":
    main()
