"""Download worker: streams an object to disk as a QRunnable."""

from __future__ import annotations

import logging
import threading
import traceback
from pathlib import Path
from typing import TYPE_CHECKING

from PyQt6.QtCore import QObject, QRunnable, pyqtSignal

from bucketview.constants import DOWNLOAD_CHUNK_SIZE
from bucketview.core.s3_client import S3ClientError

if TYPE_CHECKING:
    from bucketview.core.s3_client import S3Client

logger = logging.getLogger("bucketview.download_worker")


class DownloadWorkerSignals(QObject):
    progress = pyqtSignal(int, int, int)  # job_id, bytes_done, total
    finished = pyqtSignal(int)  # job_id
    failed = pyqtSignal(int, str, str)  # job_id, user_msg, detail
    cancelled = pyqtSignal(int)  # job_id


class DownloadWorker(QRunnable):
    """Downloads one object into a temp file, then renames it into place."""

    def __init__(
        self,
        job_id: int,
        s3_client: S3Client,
        bucket: str,
        key: str,
        local_path: str | Path,
        cancel_event: threading.Event | None = None,
    ) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self.signals = DownloadWorkerSignals()
        self.job_id = job_id
        self._s3 = s3_client
        self._bucket = bucket
        self._key = key
        self._local_path = Path(local_path)
        self._cancel = cancel_event or threading.Event()

    @property
    def temp_path(self) -> Path:
        return self._local_path.parent / f".bucketview-download-{self.job_id}.tmp"

    def run(self) -> None:
        try:
            self._do_download()
        except S3ClientError as e:
            logger.error("Download %d of '%s' failed: %s", self.job_id, self._key, e.detail or e)
            self._remove_temp()
            self.signals.failed.emit(self.job_id, e.user_message, e.detail)
        except Exception as e:
            logger.error("Download %d of '%s' failed: %s", self.job_id, self._key, e)
            self._remove_temp()
            self.signals.failed.emit(self.job_id, str(e), traceback.format_exc())

    def _do_download(self) -> None:
        if self._cancel.is_set():
            self.signals.cancelled.emit(self.job_id)
            logger.info("Download %d cancelled before start", self.job_id)
            return

        if not self._local_path.parent.is_dir():
            self.signals.failed.emit(
                self.job_id,
                "Destination directory does not exist.",
                str(self._local_path.parent),
            )
            return

        total = self._s3.head_object(self._bucket, self._key).size or 0
        logger.info(
            "Download %d started: s3://%s/%s -> %s (%d bytes)",
            self.job_id,
            self._bucket,
            self._key,
            self._local_path,
            total,
        )
        body = self._s3.get_object(self._bucket, self._key)

        done = 0
        temp_path = self.temp_path
        try:
            with open(temp_path, "wb") as f:
                while True:
                    if self._cancel.is_set():
                        break
                    chunk = body.read(DOWNLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    done += len(chunk)
                    self.signals.progress.emit(self.job_id, done, total)
        finally:
            body.close()

        if self._cancel.is_set():
            self._remove_temp()
            self.signals.cancelled.emit(self.job_id)
            logger.info("Download %d cancelled at %d bytes", self.job_id, done)
            return

        temp_path.replace(self._local_path)
        self.signals.progress.emit(self.job_id, done, done)
        self.signals.finished.emit(self.job_id)
        logger.info("Download %d completed", self.job_id)

    def _remove_temp(self) -> None:
        temp_path = self.temp_path
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                logger.exception(
                    "Failed to remove temp file for download %d: %s", self.job_id, temp_path
                )
