"""Get Info dialog showing object properties, user metadata and tags."""

from __future__ import annotations

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QGroupBox,
    QHeaderView,
    QLabel,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
)

from bucketview.core.paths import basename
from bucketview.models.s3_objects import ObjectInfo, format_size, format_timestamp


def _selectable(text: str) -> QLabel:
    label = QLabel(text)
    label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
    label.setWordWrap(True)
    return label


class GetInfoDialog(QDialog):
    """Shows detailed metadata for one object."""

    def __init__(self, info: ObjectInfo, bucket: str = "", parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Get Info")
        self.setMinimumWidth(460)

        layout = QVBoxLayout(self)

        # File name (large)
        name_label = QLabel(basename(info.key))
        name_label.setStyleSheet("font-size: 16px; font-weight: bold;")
        layout.addWidget(name_label)

        form = QFormLayout()
        if bucket:
            form.addRow("Bucket:", _selectable(bucket))
        form.addRow("Key:", _selectable(info.key))
        form.addRow("Size:", QLabel(f"{format_size(info.size)} ({info.size:,} bytes)"))
        form.addRow("Content Type:", QLabel(info.content_type or "-"))
        form.addRow("Last Modified:", QLabel(format_timestamp(info.last_modified)))
        form.addRow("Storage Class:", QLabel(info.storage_class or "-"))
        form.addRow("ETag:", _selectable(info.etag or "-"))
        layout.addLayout(form)

        self.metadata_table = self._add_pairs_section(layout, "Metadata", info.metadata)
        self.tags_table = self._add_pairs_section(layout, "Tags", info.tags)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    @staticmethod
    def _add_pairs_section(layout: QVBoxLayout, title: str, pairs: dict[str, str]):
        """Add a key/value table, or a "None" label when there is nothing to show."""
        group = QGroupBox(title)
        group_layout = QVBoxLayout(group)
        layout.addWidget(group)
        if not pairs:
            empty = QLabel("None")
            empty.setStyleSheet("color: gray;")
            group_layout.addWidget(empty)
            return None

        table = QTableWidget(len(pairs), 2)
        table.setHorizontalHeaderLabels(["Key", "Value"])
        table.verticalHeader().setVisible(False)
        table.horizontalHeader().setSectionResizeMode(1, QHeaderView.ResizeMode.Stretch)
        table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        for row, (key, value) in enumerate(sorted(pairs.items())):
            table.setItem(row, 0, QTableWidgetItem(key))
            table.setItem(row, 1, QTableWidgetItem(value))
        table.setMaximumHeight(160)
        group_layout.addWidget(table)
        return table
