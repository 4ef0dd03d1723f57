import logging
from logging.handlers import RotatingFileHandler

from bucketview import constants


def setup_logging(level: int = logging.DEBUG) -> logging.Logger:
    """Attach a rotating file handler to the ``bucketview`` logger."""
    constants.LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        constants.LOG_FILE,
        maxBytes=constants.MAX_LOG_SIZE,
        backupCount=constants.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s [%(name)s] %(message)s")
    )
    root = logging.getLogger("bucketview")
    root.setLevel(level)
    # Re-running setup (tests, settings reload) must not stack handlers
    for existing in list(root.handlers):
        if isinstance(existing, RotatingFileHandler):
            root.removeHandler(existing)
            existing.close()
    root.addHandler(handler)
    return root
