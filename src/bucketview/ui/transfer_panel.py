"""Transfer panel widget for the bottom dock."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QMenu,
    QPushButton,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from bucketview.models.transfer_model import TransferModel

if TYPE_CHECKING:
    from bucketview.core.transfers import TransferEngine

logger = logging.getLogger("bucketview.transfer_panel")


class TransferPanelWidget(QWidget):
    """Panel showing active and finished transfers."""

    cancel_requested = pyqtSignal(int)  # job_id

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._engine: TransferEngine | None = None
        self._setup_ui()
        self.cancel_requested.connect(self._on_cancel_requested)

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        header = QHBoxLayout()
        header.setContentsMargins(8, 4, 8, 4)
        self._header_label = QLabel("Transfers")
        header.addWidget(self._header_label)
        header.addStretch()

        self._clear_btn = QPushButton("Clear Finished")
        self._clear_btn.clicked.connect(self._on_clear_finished)
        header.addWidget(self._clear_btn)

        header_widget = QWidget()
        header_widget.setLayout(header)
        layout.addWidget(header_widget)

        self._model = TransferModel()
        self._table = QTableView()
        self._table.setModel(self._model)
        self._table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self._table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self._table.setShowGrid(False)
        self._table.setAlternatingRowColors(True)
        self._table.verticalHeader().setVisible(False)
        self._table.horizontalHeader().setStretchLastSection(True)
        self._table.horizontalHeader().setSectionResizeMode(1, QHeaderView.ResizeMode.Stretch)
        self._table.setColumnWidth(0, 30)
        self._table.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self._table.customContextMenuRequested.connect(self._on_context_menu)
        layout.addWidget(self._table)

    @property
    def model(self) -> TransferModel:
        return self._model

    def header_text(self) -> str:
        return self._header_label.text()

    def set_engine(self, engine: TransferEngine) -> None:
        """Wire the transfer engine signals to the model."""
        self._engine = engine
        engine.transfer_added.connect(self._on_added)
        engine.transfer_progress.connect(self._on_changed)
        engine.transfer_finished.connect(self._on_changed)
        engine.transfer_failed.connect(self._on_changed)
        engine.transfer_cancelled.connect(self._on_changed)

    def _on_added(self, job_id: int) -> None:
        job = self._engine.job(job_id) if self._engine is not None else None
        if job is None:
            return
        self._model.add_job(job)
        self._update_header()

    def _on_changed(self, job_id: int, *_args) -> None:
        self._model.mark_changed(job_id)
        self._update_header()

    def _on_cancel_requested(self, job_id: int) -> None:
        if self._engine is not None:
            self._engine.cancel(job_id)

    def _on_clear_finished(self) -> None:
        self._model.clear_finished()
        self._update_header()

    def _update_header(self) -> None:
        active = self._model.active_count()
        if active:
            self._header_label.setText(f"Transfers ({active} active)")
        else:
            self._header_label.setText("Transfers")

    def _on_context_menu(self, pos) -> None:
        index = self._table.indexAt(pos)
        if not index.isValid():
            return
        job = self._model.get_job(index.row())
        if job is None or not job.is_active:
            return

        menu = QMenu(self)
        job_id = job.job_id
        cancel_action = menu.addAction("Cancel")
        cancel_action.triggered.connect(lambda: self.cancel_requested.emit(job_id))
        menu.exec(self._table.viewport().mapToGlobal(pos))
