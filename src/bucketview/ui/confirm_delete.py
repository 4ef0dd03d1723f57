"""Delete confirmation dialog."""

from __future__ import annotations

from PyQt6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QListWidget,
    QVBoxLayout,
)

from bucketview.constants import DELIMITER
from bucketview.models.s3_objects import format_size

MAX_LISTED_KEYS = 10


class DeleteConfirmDialog(QDialog):
    """Confirm deletion of objects and folders."""

    def __init__(
        self,
        keys: list[str],
        total_size: int = 0,
        parent=None,
    ) -> None:
        super().__init__(parent)
        count = len(keys)
        plural = "s" if count != 1 else ""
        self.setWindowTitle(f"Delete {count} item{plural}?")
        self.setMinimumWidth(400)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(f"Are you sure you want to delete {count} item{plural}?"))

        self.file_list = QListWidget()
        for key in keys[:MAX_LISTED_KEYS]:
            self.file_list.addItem(key)
        if count > MAX_LISTED_KEYS:
            self.file_list.addItem(f"...and {count - MAX_LISTED_KEYS} more")
        self.file_list.setMaximumHeight(200)
        layout.addWidget(self.file_list)

        if total_size > 0:
            layout.addWidget(QLabel(f"Total size: {format_size(total_size)}"))

        if any(key.endswith(DELIMITER) for key in keys):
            layout.addWidget(QLabel("Folders are deleted with everything inside them."))

        layout.addWidget(QLabel("This action cannot be undone."))

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Cancel | QDialogButtonBox.StandardButton.Ok
        )
        buttons.button(QDialogButtonBox.StandardButton.Ok).setText("Delete")
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)
