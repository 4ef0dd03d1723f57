"""Transfer model for the transfer panel with signal coalescing."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PyQt6.QtCore import QAbstractTableModel, QModelIndex, Qt, QTimer

from bucketview.constants import TRANSFER_COALESCE_MS
from bucketview.models.s3_objects import format_size

if TYPE_CHECKING:
    from bucketview.core.transfers import TransferJob

logger = logging.getLogger("bucketview.transfer_model")

# Column indices
COL_DIRECTION = 0
COL_FILE = 1
COL_PROGRESS = 2
COL_STATUS = 3

_COLUMN_HEADERS = ["", "File", "Progress", "Status"]
_COLUMN_COUNT = len(_COLUMN_HEADERS)


def _format_progress(transferred: int, total: int) -> str:
    if total <= 0:
        return format_size(transferred) if transferred > 0 else ""
    return f"{format_size(transferred)} / {format_size(total)}"


def _format_pct(transferred: int, total: int) -> str:
    if total <= 0:
        return "0%"
    pct = max(0, min((transferred / total) * 100, 100))
    return f"{pct:.0f}%"


def _format_status(job: TransferJob) -> str:
    if job.status == "completed":
        return "Complete"
    if job.status == "failed":
        return "Failed"
    if job.status == "cancelled":
        return "Cancelled"
    if job.status == "in_progress":
        return _format_pct(job.transferred_bytes, job.total_bytes)
    return "Queued"


class TransferModel(QAbstractTableModel):
    """Table model for transfers with coalesced repaints."""

    _EMPTY_INDEX = QModelIndex()

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._rows: list[TransferJob] = []
        self._id_to_row: dict[int, int] = {}
        self._dirty_rows: set[int] = set()

        self._timer = QTimer(self)
        self._timer.setInterval(TRANSFER_COALESCE_MS)
        self._timer.timeout.connect(self._flush_updates)

    # --- Qt model interface ---

    def rowCount(self, parent: QModelIndex = _EMPTY_INDEX) -> int:
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = _EMPTY_INDEX) -> int:
        if parent.isValid():
            return 0
        return _COLUMN_COUNT

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid() or index.row() >= len(self._rows):
            return None

        job = self._rows[index.row()]
        col = index.column()

        if role == Qt.ItemDataRole.DisplayRole:
            if col == COL_DIRECTION:
                return "↑" if job.direction == "upload" else "↓"
            if col == COL_FILE:
                return job.filename
            if col == COL_PROGRESS:
                return _format_progress(job.transferred_bytes, job.total_bytes)
            if col == COL_STATUS:
                return _format_status(job)
            return None

        if role == Qt.ItemDataRole.TextAlignmentRole:
            if col == COL_PROGRESS:
                return Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter
            if col == COL_DIRECTION:
                return Qt.AlignmentFlag.AlignCenter | Qt.AlignmentFlag.AlignVCenter
            return Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter

        if role == Qt.ItemDataRole.UserRole:
            return job

        if role == Qt.ItemDataRole.ToolTipRole:
            if col == COL_STATUS and job.status == "failed":
                return job.error_message
            if col == COL_FILE:
                return job.key
            return None

        return None

    def headerData(
        self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole
    ):
        if (
            orientation == Qt.Orientation.Horizontal
            and role == Qt.ItemDataRole.DisplayRole
            and 0 <= section < _COLUMN_COUNT
        ):
            return _COLUMN_HEADERS[section]
        return None

    # --- Public API ---

    def add_job(self, job: TransferJob) -> None:
        """Start tracking a job. The job object is shared with the engine."""
        if job.job_id in self._id_to_row:
            return
        idx = len(self._rows)
        self.beginInsertRows(QModelIndex(), idx, idx)
        self._rows.append(job)
        self._id_to_row[job.job_id] = idx
        self.endInsertRows()

        if not self._timer.isActive():
            self._timer.start()

    def get_job(self, row: int) -> TransferJob | None:
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def clear_finished(self) -> int:
        """Drop completed, failed and cancelled rows. Returns how many were removed."""
        keep = [job for job in self._rows if job.is_active]
        removed = len(self._rows) - len(keep)
        if removed:
            self.beginResetModel()
            self._rows = keep
            self._id_to_row = {job.job_id: i for i, job in enumerate(keep)}
            self._dirty_rows.clear()
            self.endResetModel()
        return removed

    def mark_changed(self, job_id: int, *_args) -> None:
        """Schedule a repaint of a job's row at the next coalescing tick."""
        idx = self._id_to_row.get(job_id)
        if idx is not None:
            self._dirty_rows.add(idx)
        if not self._timer.isActive():
            self._timer.start()

    # --- Internal ---

    def _flush_updates(self) -> None:
        if self._dirty_rows:
            min_row = min(self._dirty_rows)
            max_row = max(self._dirty_rows)
            self.dataChanged.emit(self.index(min_row, 0), self.index(max_row, _COLUMN_COUNT - 1))
            self._dirty_rows.clear()

        if self.active_count() == 0:
            self._timer.stop()

    def active_count(self) -> int:
        return sum(1 for job in self._rows if job.is_active)
