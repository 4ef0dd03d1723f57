"""Quick-look dialog for text and image objects."""

from __future__ import annotations

import codecs
import logging
import mimetypes
from typing import TYPE_CHECKING

from PyQt6.QtCore import QObject, Qt, QThread, pyqtSignal
from PyQt6.QtGui import QFont, QPixmap, QTextCursor
from PyQt6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
)

from bucketview.constants import PREVIEW_IMAGE_MAX_BYTES, PREVIEW_TEXT_BYTES
from bucketview.models.s3_objects import format_size

if TYPE_CHECKING:
    from bucketview.core.s3_client import S3Client
    from bucketview.models.s3_objects import S3Item

logger = logging.getLogger("bucketview.preview_dialog")

TEXT = "text"
IMAGE = "image"
UNSUPPORTED = "unsupported"

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "application/x-sh",
    "application/x-yaml",
    "application/yaml",
    "application/toml",
    "application/sql",
}
_TEXT_EXTENSIONS = {
    ".txt", ".md", ".log", ".csv", ".tsv", ".json", ".xml", ".yaml", ".yml",
    ".toml", ".ini", ".cfg", ".conf", ".py", ".js", ".ts", ".sh", ".sql", ".html", ".css",
}
_IMAGE_TYPES = {"image/png", "image/jpeg", "image/gif", "image/bmp", "image/webp"}


def detect_preview_kind(key: str, content_type: str | None = None) -> str:
    """Decide how to preview ``key``: TEXT, IMAGE, or UNSUPPORTED."""
    ctype = (content_type or "").split(";", 1)[0].strip().lower()
    if not ctype or ctype in ("application/octet-stream", "binary/octet-stream"):
        ctype = (mimetypes.guess_type(key)[0] or "").lower()
    if ctype in _IMAGE_TYPES:
        return IMAGE
    if ctype.startswith("text/") or ctype in _TEXT_APPLICATION_TYPES:
        return TEXT
    suffix = "." + key.rsplit(".", 1)[-1].lower() if "." in key else ""
    if suffix in _TEXT_EXTENSIONS:
        return TEXT
    return UNSUPPORTED


class _LoadSignals(QObject):
    inspected = pyqtSignal(object)  # S3Item with content type
    loaded = pyqtSignal(object, int, int)  # data, start, total
    error = pyqtSignal(str)


class _InspectWorker(QThread):
    """Reads the object's content type and size before choosing a preview."""

    def __init__(self, s3_client: S3Client, bucket: str, key: str,
                 parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.signals = _LoadSignals()
        self._s3 = s3_client
        self._bucket = bucket
        self._key = key

    def run(self) -> None:
        try:
            self.signals.inspected.emit(self._s3.head_object(self._bucket, self._key))
        except Exception as e:
            logger.error("Preview inspect failed for '%s': %s", self._key, e)
            self.signals.error.emit(str(e))


class _LoadWorker(QThread):
    """Reads one byte range off the UI thread."""

    def __init__(self, s3_client: S3Client, bucket: str, key: str, start: int, length: int,
                 parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.signals = _LoadSignals()
        self._s3 = s3_client
        self._bucket = bucket
        self._key = key
        self._start = start
        self._length = length

    def run(self) -> None:
        try:
            data, total = self._s3.read_object_range(
                self._bucket, self._key, self._start, self._length
            )
            self.signals.loaded.emit(data, self._start, total)
        except Exception as e:
            logger.error("Preview load failed for '%s': %s", self._key, e)
            self.signals.error.emit(str(e))


class PreviewDialog(QDialog):
    """Shows the head of a text object, or a whole image."""

    def __init__(self, s3_client: S3Client, bucket: str, item: S3Item, parent=None) -> None:
        super().__init__(parent)
        self._s3 = s3_client
        self._bucket = bucket
        self._item = item
        self._kind: str | None = None
        self._workers: list[QThread] = []
        self._loading = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._next_start = 0
        self._total: int | None = item.size

        self.setWindowTitle(f"Preview: {item.name}")
        self.resize(720, 520)

        layout = QVBoxLayout(self)

        self.status_label = QLabel()
        self.status_label.setStyleSheet("color: gray;")
        self.status_label.setWordWrap(True)
        layout.addWidget(self.status_label)

        self.text_view = QPlainTextEdit()
        self.text_view.setReadOnly(True)
        self.text_view.setFont(QFont("monospace"))
        self.text_view.setVisible(False)
        layout.addWidget(self.text_view, 1)

        self.image_label = QLabel()
        self.image_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._image_scroll = QScrollArea()
        self._image_scroll.setWidget(self.image_label)
        self._image_scroll.setWidgetResizable(True)
        self._image_scroll.setVisible(False)
        layout.addWidget(self._image_scroll, 1)

        bottom = QHBoxLayout()
        self.more_btn = QPushButton("Load more")
        self.more_btn.setVisible(False)
        self.more_btn.clicked.connect(self.load_more)
        bottom.addWidget(self.more_btn)
        bottom.addStretch()
        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)
        bottom.addWidget(buttons)
        layout.addLayout(bottom)

        self._start_preview()

    def kind(self) -> str | None:
        """TEXT, IMAGE or UNSUPPORTED once the object has been inspected."""
        return self._kind

    # --- Loading ---

    def _start_preview(self) -> None:
        self._loading = True
        self.status_label.setText("Loading...")
        worker = _InspectWorker(self._s3, self._bucket, self._item.key, self)
        worker.signals.inspected.connect(self._on_inspected)
        worker.signals.error.connect(self._on_error)
        self._workers.append(worker)
        worker.start()

    def _on_inspected(self, head: S3Item) -> None:
        self._loading = False
        self._kind = detect_preview_kind(self._item.key, head.content_type)
        if head.size is not None:
            self._total = head.size
        logger.debug("Preview of '%s' as %s (%s)", self._item.key, self._kind, head.content_type)

        if self._kind == UNSUPPORTED:
            self.status_label.setText("No preview is available for this file type.")
            return
        if self._total == 0:
            self.status_label.setText("This file is empty.")
            return
        if self._kind == IMAGE:
            size = self._total or 0
            if size > PREVIEW_IMAGE_MAX_BYTES:
                self.status_label.setText(
                    f"Image is too large to preview ({format_size(size)}). Download it instead."
                )
                return
            self._load(0, size or PREVIEW_IMAGE_MAX_BYTES)
        else:
            self.text_view.setVisible(True)
            self._load(0, PREVIEW_TEXT_BYTES)

    def load_more(self) -> None:
        if self._kind != TEXT or self.is_loading():
            return
        if self._total is not None and self._next_start >= self._total:
            return
        self._load(self._next_start, PREVIEW_TEXT_BYTES)

    def is_loading(self) -> bool:
        return self._loading

    def _load(self, start: int, length: int) -> None:
        self._loading = True
        self.status_label.setText("Loading...")
        self.more_btn.setEnabled(False)
        worker = _LoadWorker(self._s3, self._bucket, self._item.key, start, length, self)
        worker.signals.loaded.connect(self._on_loaded)
        worker.signals.error.connect(self._on_error)
        self._workers.append(worker)
        worker.start()

    def _on_loaded(self, data: bytes, start: int, total: int) -> None:
        self._loading = False
        self._total = total
        if self._kind == IMAGE:
            self._show_image(data)
            return

        final = start + len(data) >= total
        text = self._decoder.decode(data, final=final)
        self.text_view.moveCursor(QTextCursor.MoveOperation.End)
        self.text_view.insertPlainText(text)
        self._next_start = start + len(data)

        more = self._next_start < total
        self.more_btn.setVisible(more)
        self.more_btn.setEnabled(more)
        self.status_label.setText(
            f"Showing {format_size(self._next_start)} of {format_size(total)}"
            if more
            else f"{format_size(total)}"
        )

    def _show_image(self, data: bytes) -> None:
        pixmap = QPixmap()
        if not pixmap.loadFromData(data):
            self.status_label.setText("The image could not be decoded.")
            return
        self.image_label.setPixmap(pixmap)
        self._image_scroll.setVisible(True)
        self.status_label.setText(f"{pixmap.width()} × {pixmap.height()}, {format_size(len(data))}")

    def _on_error(self, message: str) -> None:
        self._loading = False
        self.status_label.setText(f"Could not load preview: {message}")
        self.more_btn.setEnabled(True)

    def done(self, result: int) -> None:
        for worker in self._workers:
            if worker.isRunning():
                worker.wait()
        super().done(result)
