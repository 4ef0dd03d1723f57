from pathlib import Path

APP_NAME = "BucketView"
APP_DIR = Path.home() / ".bucketview"
DB_PATH = APP_DIR / "bucketview.db"
LOG_DIR = APP_DIR / "logs"
LOG_FILE = LOG_DIR / "bucketview.log"
KEYRING_SERVICE = "bucketview"

# Connection defaults
DEFAULT_REGION = "us-east-1"
DELIMITER = "/"

# Listing
LISTING_PAGE_SIZE = 100  # MaxKeys per request
MAX_LISTING_PAGE_SIZE = 1000
LOAD_MORE_THRESHOLD_PX = 100  # distance from the bottom that triggers the next page
DELETE_BATCH_SIZE = 1000

# Transfers
CHUNK_SIZE = 5 * 1024 * 1024  # 5 MB, S3 minimum part size except the last
DOWNLOAD_CHUNK_SIZE = 1024 * 1024
MAX_CONCURRENT_TRANSFERS = 2
UPLOAD_PARTS_WEIGHT = 90  # percent reported once all parts are sent

# Presigned URLs
DEFAULT_PRESIGN_EXPIRY = 3600
MIN_PRESIGN_EXPIRY = 1
MAX_PRESIGN_EXPIRY = 7 * 24 * 3600  # 604800

# Preview
PREVIEW_TEXT_BYTES = 64 * 1024
PREVIEW_IMAGE_MAX_BYTES = 10 * 1024 * 1024

# UI defaults
MIN_WINDOW_WIDTH = 800
MIN_WINDOW_HEIGHT = 550
NAV_HISTORY_MAX = 50
TRANSFER_COALESCE_MS = 100

# Logging
MAX_LOG_SIZE = 5 * 1024 * 1024  # 5 MB per file
LOG_BACKUP_COUNT = 3
