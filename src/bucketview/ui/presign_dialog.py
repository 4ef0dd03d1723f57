"""Dialog for minting a time-limited GET URL for one object."""

from __future__ import annotations

import logging
import shlex
from typing import TYPE_CHECKING

from PyQt6.QtWidgets import (
    QApplication,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
)

from bucketview.constants import DEFAULT_PRESIGN_EXPIRY, MAX_PRESIGN_EXPIRY, MIN_PRESIGN_EXPIRY
from bucketview.core.paths import basename
from bucketview.core.s3_client import EXPIRY_ERROR, S3ClientError

if TYPE_CHECKING:
    from bucketview.core.s3_client import S3Client

logger = logging.getLogger("bucketview.presign_dialog")

# (label, seconds per unit), largest first so defaults pick the coarsest exact unit
EXPIRY_UNITS = [
    ("days", 86400),
    ("hours", 3600),
    ("minutes", 60),
    ("seconds", 1),
]


def split_expiry(seconds: int) -> tuple[int, int]:
    """Express ``seconds`` as (amount, unit index) using the largest exact unit."""
    for idx, (_, factor) in enumerate(EXPIRY_UNITS):
        if seconds >= factor and seconds % factor == 0:
            return seconds // factor, idx
    return seconds, len(EXPIRY_UNITS) - 1


def download_commands(url: str, key: str) -> tuple[str, str]:
    """Shell one-liners that fetch a presigned URL into a local file.

    Both the URL and the file name are quoted for a POSIX shell.
    """
    quoted_url = shlex.quote(url)
    filename = shlex.quote(basename(key) or "download")
    return f"curl -L {quoted_url} -o {filename}", f"wget {quoted_url} -O {filename}"


class PresignDialog(QDialog):
    """Generate and copy a presigned GET URL."""

    def __init__(
        self,
        s3_client: S3Client,
        bucket: str,
        key: str,
        default_expiry: int = DEFAULT_PRESIGN_EXPIRY,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self._s3 = s3_client
        self._bucket = bucket
        self._key = key
        self.setWindowTitle("Presigned URL")
        self.setMinimumWidth(560)

        layout = QVBoxLayout(self)
        title = QLabel(basename(key))
        title.setStyleSheet("font-size: 14px; font-weight: bold;")
        layout.addWidget(title)

        form = QFormLayout()
        expiry_row = QHBoxLayout()
        self.amount_spin = QSpinBox()
        self.amount_spin.setRange(MIN_PRESIGN_EXPIRY, MAX_PRESIGN_EXPIRY)
        self.unit_combo = QComboBox()
        for label, _ in EXPIRY_UNITS:
            self.unit_combo.addItem(label)
        amount, unit_idx = split_expiry(default_expiry)
        self.amount_spin.setValue(amount)
        self.unit_combo.setCurrentIndex(unit_idx)
        expiry_row.addWidget(self.amount_spin)
        expiry_row.addWidget(self.unit_combo)
        self.generate_btn = QPushButton("Generate")
        self.generate_btn.clicked.connect(self.generate)
        expiry_row.addWidget(self.generate_btn)
        expiry_row.addStretch()
        form.addRow("Expires in:", expiry_row)

        url_row = QHBoxLayout()
        self.url_edit = QLineEdit()
        self.url_edit.setReadOnly(True)
        self.url_edit.setPlaceholderText("Click Generate to create a URL")
        url_row.addWidget(self.url_edit, 1)
        self.copy_btn = QPushButton("Copy")
        self.copy_btn.setEnabled(False)
        self.copy_btn.clicked.connect(self.copy_url)
        url_row.addWidget(self.copy_btn)
        form.addRow("URL:", url_row)

        self.curl_edit = QLineEdit()
        self.curl_edit.setReadOnly(True)
        form.addRow("curl:", self.curl_edit)
        self.wget_edit = QLineEdit()
        self.wget_edit.setReadOnly(True)
        form.addRow("wget:", self.wget_edit)
        layout.addLayout(form)

        self.error_label = QLabel()
        self.error_label.setStyleSheet("color: red;")
        self.error_label.setWordWrap(True)
        self.error_label.setVisible(False)
        layout.addWidget(self.error_label)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def expiry_seconds(self) -> int:
        _, factor = EXPIRY_UNITS[self.unit_combo.currentIndex()]
        return self.amount_spin.value() * factor

    def generate(self) -> str | None:
        """Validate the expiry and sign a URL. Returns the URL, or None on error."""
        seconds = self.expiry_seconds()
        if not MIN_PRESIGN_EXPIRY <= seconds <= MAX_PRESIGN_EXPIRY:
            self._show_error(EXPIRY_ERROR)
            return None
        try:
            url = self._s3.generate_presigned_url(self._bucket, self._key, seconds)
        except S3ClientError as e:
            self._show_error(e.user_message)
            return None

        self.error_label.setVisible(False)
        self.url_edit.setText(url)
        curl_cmd, wget_cmd = download_commands(url, self._key)
        self.curl_edit.setText(curl_cmd)
        self.wget_edit.setText(wget_cmd)
        self.copy_btn.setEnabled(True)
        logger.info("Presigned URL generated for '%s' (%d s)", self._key, seconds)
        return url

    def copy_url(self) -> None:
        url = self.url_edit.text()
        if url:
            QApplication.clipboard().setText(url)
            self.copy_btn.setText("Copied")

    def _show_error(self, message: str) -> None:
        self.url_edit.clear()
        self.curl_edit.clear()
        self.wget_edit.clear()
        self.copy_btn.setEnabled(False)
        self.error_label.setText(message)
        self.error_label.setVisible(True)
