"""Tests for TransferModel and transfer panel."""

from unittest.mock import MagicMock

from PyQt6.QtCore import Qt

from bucketview.core.transfers import DOWNLOAD, UPLOAD, TransferEngine, TransferJob
from bucketview.models.transfer_model import (
    COL_DIRECTION,
    COL_FILE,
    COL_PROGRESS,
    COL_STATUS,
    TransferModel,
    _format_pct,
    _format_progress,
    _format_status,
)
from bucketview.ui.transfer_panel import TransferPanelWidget


def _job(job_id=1, direction=UPLOAD, status="queued", done=0, total=100):
    return TransferJob(
        job_id=job_id,
        direction=direction,
        key=f"docs/file{job_id}.txt",
        local_path=f"/tmp/file{job_id}.txt",
        total_bytes=total,
        transferred_bytes=done,
        status=status,
    )


class TestFormatProgress:
    def test_zero_total(self):
        assert _format_progress(0, 0) == ""

    def test_unknown_total(self):
        assert _format_progress(2048, 0) == "2.0 KB"

    def test_half(self):
        assert _format_progress(50, 100) == "50 B / 100 B"

    def test_megabytes(self):
        mb = 1024 * 1024
        assert _format_progress(5 * mb, 10 * mb) == "5.0 MB / 10.0 MB"


class TestFormatPct:
    def test_zero_total(self):
        assert _format_pct(10, 0) == "0%"

    def test_half(self):
        assert _format_pct(50, 100) == "50%"

    def test_clamped(self):
        assert _format_pct(150, 100) == "100%"


class TestFormatStatus:
    def test_queued(self):
        assert _format_status(_job()) == "Queued"

    def test_in_progress(self):
        assert _format_status(_job(status="in_progress", done=25)) == "25%"

    def test_completed(self):
        assert _format_status(_job(status="completed")) == "Complete"

    def test_failed(self):
        assert _format_status(_job(status="failed")) == "Failed"

    def test_cancelled(self):
        assert _format_status(_job(status="cancelled")) == "Cancelled"


class TestTransferModel:
    def test_empty(self, qtbot):
        model = TransferModel()
        assert model.rowCount() == 0
        assert model.columnCount() == 4

    def test_headers(self, qtbot):
        model = TransferModel()
        headers = [model.headerData(i, Qt.Orientation.Horizontal) for i in range(4)]
        assert headers == ["", "File", "Progress", "Status"]
        assert model.headerData(9, Qt.Orientation.Horizontal) is None

    def test_add_job(self, qtbot):
        model = TransferModel()
        model.add_job(_job(1))
        assert model.rowCount() == 1
        assert model.get_job(0).job_id == 1
        assert model.get_job(5) is None

    def test_add_job_twice_ignored(self, qtbot):
        model = TransferModel()
        job = _job(1)
        model.add_job(job)
        model.add_job(job)
        assert model.rowCount() == 1

    def test_display_columns(self, qtbot):
        model = TransferModel()
        model.add_job(_job(1, direction=DOWNLOAD, status="in_progress", done=50))
        assert model.data(model.index(0, COL_DIRECTION)) == "↓"
        assert model.data(model.index(0, COL_FILE)) == "file1.txt"
        assert model.data(model.index(0, COL_PROGRESS)) == "50 B / 100 B"
        assert model.data(model.index(0, COL_STATUS)) == "50%"

    def test_upload_arrow(self, qtbot):
        model = TransferModel()
        model.add_job(_job(1, direction=UPLOAD))
        assert model.data(model.index(0, COL_DIRECTION)) == "↑"

    def test_failed_tooltip(self, qtbot):
        model = TransferModel()
        job = _job(1, status="failed")
        job.error_message = "Access denied."
        model.add_job(job)
        tooltip = model.data(model.index(0, COL_STATUS), Qt.ItemDataRole.ToolTipRole)
        assert tooltip == "Access denied."
        file_tip = model.data(model.index(0, COL_FILE), Qt.ItemDataRole.ToolTipRole)
        assert file_tip == "docs/file1.txt"

    def test_user_role_returns_job(self, qtbot):
        model = TransferModel()
        job = _job(3)
        model.add_job(job)
        assert model.data(model.index(0, 0), Qt.ItemDataRole.UserRole) is job

    def test_shared_job_reflects_changes(self, qtbot):
        model = TransferModel()
        job = _job(1)
        model.add_job(job)
        job.status = "in_progress"
        job.transferred_bytes = 75
        model.mark_changed(1)
        assert model.data(model.index(0, COL_STATUS)) == "75%"

    def test_mark_changed_flushes(self, qtbot):
        model = TransferModel()
        model.add_job(_job(1))
        model.add_job(_job(2))
        changed = []
        model.dataChanged.connect(lambda tl, br: changed.append((tl.row(), br.row())))
        model.mark_changed(1)
        model.mark_changed(2)
        model._flush_updates()
        assert changed == [(0, 1)]

    def test_mark_changed_unknown_job(self, qtbot):
        model = TransferModel()
        model.mark_changed(42)
        assert model._dirty_rows == set()

    def test_clear_finished(self, qtbot):
        model = TransferModel()
        model.add_job(_job(1, status="completed"))
        model.add_job(_job(2, status="in_progress"))
        model.add_job(_job(3, status="failed"))
        model.add_job(_job(4, status="cancelled"))
        assert model.clear_finished() == 3
        assert model.rowCount() == 1
        assert model.get_job(0).job_id == 2
        # Row map is rebuilt after removal
        assert model._id_to_row == {2: 0}

    def test_clear_finished_nothing_to_do(self, qtbot):
        model = TransferModel()
        model.add_job(_job(1))
        assert model.clear_finished() == 0

    def test_active_count(self, qtbot):
        model = TransferModel()
        model.add_job(_job(1, status="queued"))
        model.add_job(_job(2, status="in_progress"))
        model.add_job(_job(3, status="completed"))
        assert model.active_count() == 2

    def test_timer_stops_when_idle(self, qtbot):
        model = TransferModel()
        model.add_job(_job(1, status="completed"))
        model._flush_updates()
        assert not model._timer.isActive()


class TestTransferPanel:
    def test_header_idle(self, qtbot):
        panel = TransferPanelWidget()
        qtbot.addWidget(panel)
        assert panel.header_text() == "Transfers"

    def test_added_job_shows_up(self, qtbot):
        panel = TransferPanelWidget()
        qtbot.addWidget(panel)
        engine = TransferEngine(MagicMock())
        panel.set_engine(engine)

        job = engine._new_job(UPLOAD, "a.txt", "/tmp/a.txt", 10)
        engine.transfer_added.emit(job.job_id)

        assert panel.model.rowCount() == 1
        assert panel.header_text() == "Transfers (1 active)"

    def test_cancel_routed_to_engine(self, qtbot):
        panel = TransferPanelWidget()
        qtbot.addWidget(panel)
        engine = TransferEngine(MagicMock())
        panel.set_engine(engine)

        job_a = engine._new_job(DOWNLOAD, "a", "/tmp/a", 1, "one")
        engine.transfer_added.emit(job_a.job_id)
        job_b = engine._new_job(DOWNLOAD, "b", "/tmp/b", 1, "two")
        engine.transfer_added.emit(job_b.job_id)

        panel.cancel_requested.emit(job_b.job_id)
        assert engine._cancel_events[job_b.job_id].is_set()
        assert not engine._cancel_events[job_a.job_id].is_set()

    def test_cancel_without_engine_is_noop(self, qtbot):
        panel = TransferPanelWidget()
        qtbot.addWidget(panel)
        panel.cancel_requested.emit(42)
        assert panel.model.rowCount() == 0

    def test_clear_finished_updates_header(self, qtbot):
        panel = TransferPanelWidget()
        qtbot.addWidget(panel)
        engine = TransferEngine(MagicMock())
        panel.set_engine(engine)

        job = engine._new_job(UPLOAD, "a.txt", "/tmp/a.txt", 10)
        engine.transfer_added.emit(job.job_id)
        engine._on_finished(job.job_id)
        assert panel.header_text() == "Transfers"

        panel._on_clear_finished()
        assert panel.model.rowCount() == 0
