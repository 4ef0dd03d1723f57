"""Upload worker: handles single and multipart uploads as a QRunnable."""

from __future__ import annotations

import logging
import math
import mimetypes
import threading
import traceback
from pathlib import Path
from typing import TYPE_CHECKING

from PyQt6.QtCore import QObject, QRunnable, pyqtSignal

from bucketview.constants import CHUNK_SIZE, UPLOAD_PARTS_WEIGHT
from bucketview.core.s3_client import S3ClientError

if TYPE_CHECKING:
    from bucketview.core.s3_client import S3Client

logger = logging.getLogger("bucketview.upload_worker")


def part_count(file_size: int) -> int:
    """Number of CHUNK_SIZE parts needed for a file (the last may be short)."""
    return max(1, math.ceil(file_size / CHUNK_SIZE))


def parts_progress(parts_done: int, total_parts: int) -> int:
    """Percent shown after ``parts_done`` parts; the final step to 100 is completion."""
    return round(parts_done / total_parts * UPLOAD_PARTS_WEIGHT)


class UploadWorkerSignals(QObject):
    progress = pyqtSignal(int, int)  # job_id, percent
    finished = pyqtSignal(int, str, int)  # job_id, key, size
    failed = pyqtSignal(int, str, str)  # job_id, user_msg, detail
    cancelled = pyqtSignal(int)  # job_id


class UploadWorker(QRunnable):
    """Uploads one local file to one key, multipart above CHUNK_SIZE."""

    def __init__(
        self,
        job_id: int,
        s3_client: S3Client,
        bucket: str,
        local_path: str | Path,
        key: str,
        cancel_event: threading.Event | None = None,
    ) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self.signals = UploadWorkerSignals()
        self.job_id = job_id
        self._s3 = s3_client
        self._bucket = bucket
        self._local_path = Path(local_path)
        self._key = key
        self._cancel = cancel_event or threading.Event()

    def run(self) -> None:
        try:
            self._do_upload()
        except S3ClientError as e:
            logger.error("Upload %d of '%s' failed: %s", self.job_id, self._key, e.detail or e)
            self.signals.failed.emit(self.job_id, e.user_message, e.detail)
        except Exception as e:
            logger.error("Upload %d of '%s' failed: %s", self.job_id, self._key, e)
            self.signals.failed.emit(self.job_id, str(e), traceback.format_exc())

    def _do_upload(self) -> None:
        if not self._local_path.is_file():
            logger.warning("Upload %d source missing: %s", self.job_id, self._local_path)
            self.signals.failed.emit(
                self.job_id, "Source file no longer exists.", str(self._local_path)
            )
            return

        if self._cancel.is_set():
            self.signals.cancelled.emit(self.job_id)
            logger.info("Upload %d cancelled before start", self.job_id)
            return

        file_size = self._local_path.stat().st_size
        content_type, _ = mimetypes.guess_type(self._local_path.name)
        logger.info(
            "Upload %d started: %s -> s3://%s/%s (%d bytes)",
            self.job_id,
            self._local_path,
            self._bucket,
            self._key,
            file_size,
        )

        if file_size < CHUNK_SIZE:
            self._single_upload(file_size, content_type)
        else:
            if not self._multipart_upload(file_size, content_type):
                return

        self.signals.progress.emit(self.job_id, 100)
        self.signals.finished.emit(self.job_id, self._key, file_size)
        logger.info("Upload %d completed", self.job_id)

    def _single_upload(self, file_size: int, content_type: str | None) -> None:
        self.signals.progress.emit(self.job_id, 50)
        data = self._local_path.read_bytes()
        self._s3.put_object(self._bucket, self._key, data, content_type)

    def _multipart_upload(self, file_size: int, content_type: str | None) -> bool:
        """Send the file part by part. Returns False if the upload was cancelled."""
        num_parts = part_count(file_size)
        upload_id = self._s3.create_multipart_upload(self._bucket, self._key, content_type)
        parts: list[dict] = []
        try:
            with open(self._local_path, "rb") as f:
                for part_number in range(1, num_parts + 1):
                    if self._cancel.is_set():
                        self._abort(upload_id)
                        self.signals.cancelled.emit(self.job_id)
                        logger.info("Upload %d cancelled at part %d", self.job_id, part_number)
                        return False
                    data = f.read(CHUNK_SIZE)
                    etag = self._s3.upload_part(
                        self._bucket, self._key, upload_id, part_number, data
                    )
                    parts.append({"ETag": etag, "PartNumber": part_number})
                    self.signals.progress.emit(
                        self.job_id, parts_progress(part_number, num_parts)
                    )
            self._s3.complete_multipart_upload(self._bucket, self._key, upload_id, parts)
        except Exception:
            self._abort(upload_id)
            raise
        return True

    def _abort(self, upload_id: str) -> None:
        """Abort the multipart session; a failure here never masks the original error."""
        try:
            self._s3.abort_multipart_upload(self._bucket, self._key, upload_id)
        except S3ClientError as e:
            logger.warning(
                "Failed to abort multipart upload %s for '%s': %s",
                upload_id,
                self._key,
                e.detail or e.user_message,
            )
