"""Transfer engine: runs uploads and downloads on a worker pool."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from PyQt6.QtCore import QObject, QThreadPool, pyqtSignal

from bucketview.constants import MAX_CONCURRENT_TRANSFERS
from bucketview.core.download_worker import DownloadWorker
from bucketview.core.upload_worker import UploadWorker

if TYPE_CHECKING:
    from bucketview.core.s3_client import S3Client

logger = logging.getLogger("bucketview.transfers")

# Job ids stay unique across engines
_job_ids = itertools.count(1)

UPLOAD = "upload"
DOWNLOAD = "download"


@dataclass
class TransferJob:
    """One queued, running, or finished transfer."""

    job_id: int
    direction: str  # "upload" or "download"
    key: str
    local_path: str
    total_bytes: int = 0
    transferred_bytes: int = 0
    status: str = "queued"
    error_message: str = ""
    bucket: str = ""

    @property
    def filename(self) -> str:
        return Path(self.local_path).name

    @property
    def is_active(self) -> bool:
        return self.status in ("queued", "in_progress")


class TransferEngine(QObject):
    """Manages the transfer queue and the one worker pool shared by every bucket.

    New jobs run against the client given to :meth:`set_client`; jobs already
    queued keep the client they were created with.
    """

    transfer_added = pyqtSignal(int)  # job_id
    transfer_progress = pyqtSignal(int, int, int)  # job_id, bytes_done, total
    transfer_finished = pyqtSignal(int)  # job_id
    transfer_failed = pyqtSignal(int, str, str)  # job_id, user_msg, detail
    transfer_cancelled = pyqtSignal(int)  # job_id

    def __init__(
        self,
        s3_client: S3Client | None = None,
        max_workers: int = MAX_CONCURRENT_TRANSFERS,
    ) -> None:
        super().__init__()
        self._s3 = s3_client
        self._pool = QThreadPool()
        self._pool.setMaxThreadCount(max(1, max_workers))
        self._jobs: dict[int, TransferJob] = {}
        self._cancel_events: dict[int, threading.Event] = {}

    def set_client(self, s3_client: S3Client | None) -> None:
        self._s3 = s3_client

    @property
    def has_client(self) -> bool:
        return self._s3 is not None

    def max_workers(self) -> int:
        return self._pool.maxThreadCount()

    def set_max_workers(self, count: int) -> None:
        self._pool.setMaxThreadCount(max(1, count))

    def job(self, job_id: int) -> TransferJob | None:
        return self._jobs.get(job_id)

    def jobs(self) -> list[TransferJob]:
        return list(self._jobs.values())

    def active_count(self) -> int:
        return sum(1 for j in self._jobs.values() if j.is_active)

    def enqueue_upload(self, bucket: str, local_path: str | Path, key: str) -> int:
        """Queue a local file for upload to ``bucket/key``. Returns the job id."""
        client = self._require_client()
        path = Path(local_path)
        size = path.stat().st_size if path.is_file() else 0
        job = self._new_job(UPLOAD, key, str(path), size, bucket)
        worker = UploadWorker(
            job.job_id,
            client,
            bucket,
            path,
            key,
            self._cancel_events[job.job_id],
        )
        worker.signals.progress.connect(self._on_upload_progress)
        worker.signals.finished.connect(self._on_upload_finished)
        worker.signals.failed.connect(self._on_failed)
        worker.signals.cancelled.connect(self._on_cancelled)
        self._start(job, worker)
        return job.job_id

    def enqueue_download(
        self, bucket: str, key: str, local_path: str | Path, size: int = 0
    ) -> int:
        """Queue ``bucket/key`` for download to ``local_path``. Returns the job id."""
        client = self._require_client()
        job = self._new_job(DOWNLOAD, key, str(local_path), size, bucket)
        worker = DownloadWorker(
            job.job_id,
            client,
            bucket,
            key,
            local_path,
            self._cancel_events[job.job_id],
        )
        worker.signals.progress.connect(self._on_download_progress)
        worker.signals.finished.connect(self._on_finished)
        worker.signals.failed.connect(self._on_failed)
        worker.signals.cancelled.connect(self._on_cancelled)
        self._start(job, worker)
        return job.job_id

    def cancel(self, job_id: int) -> None:
        """Ask a transfer to stop at its next checkpoint."""
        evt = self._cancel_events.get(job_id)
        if evt:
            evt.set()
            logger.info("Cancel requested for transfer %d", job_id)

    def cancel_all(self) -> None:
        for job_id in list(self._cancel_events):
            self.cancel(job_id)

    def wait_for_done(self, msecs: int = -1) -> bool:
        return self._pool.waitForDone(msecs)

    # --- Internal ---

    def _require_client(self) -> S3Client:
        if self._s3 is None:
            raise RuntimeError("No S3 connection for transfers")
        return self._s3

    def _new_job(
        self, direction: str, key: str, local_path: str, size: int, bucket: str = ""
    ) -> TransferJob:
        job = TransferJob(
            job_id=next(_job_ids),
            direction=direction,
            key=key,
            local_path=local_path,
            total_bytes=size,
            bucket=bucket,
        )
        self._jobs[job.job_id] = job
        self._cancel_events[job.job_id] = threading.Event()
        return job

    def _start(self, job: TransferJob, worker) -> None:
        self.transfer_added.emit(job.job_id)
        self._pool.start(worker)
        logger.info(
            "Enqueued %s %d: %s <-> s3://%s/%s",
            job.direction,
            job.job_id,
            job.local_path,
            job.bucket,
            job.key,
        )

    # --- Signal handlers ---

    def _on_upload_progress(self, job_id: int, percent: int) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            return
        done = round(job.total_bytes * percent / 100)
        self._on_download_progress(job_id, done, job.total_bytes)

    def _on_download_progress(self, job_id: int, done: int, total: int) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            return
        job.status = "in_progress"
        job.transferred_bytes = done
        job.total_bytes = total
        self.transfer_progress.emit(job_id, done, total)

    def _on_upload_finished(self, job_id: int, key: str, size: int) -> None:
        job = self._jobs.get(job_id)
        if job is not None:
            job.total_bytes = size
        self._on_finished(job_id)

    def _on_finished(self, job_id: int) -> None:
        job = self._jobs.get(job_id)
        if job is not None:
            job.status = "completed"
            job.transferred_bytes = job.total_bytes
        self._cancel_events.pop(job_id, None)
        self.transfer_finished.emit(job_id)

    def _on_failed(self, job_id: int, user_msg: str, detail: str) -> None:
        job = self._jobs.get(job_id)
        if job is not None:
            job.status = "failed"
            job.error_message = user_msg
        self._cancel_events.pop(job_id, None)
        self.transfer_failed.emit(job_id, user_msg, detail)

    def _on_cancelled(self, job_id: int) -> None:
        job = self._jobs.get(job_id)
        if job is not None:
            job.status = "cancelled"
        self._cancel_events.pop(job_id, None)
        self.transfer_cancelled.emit(job_id)
