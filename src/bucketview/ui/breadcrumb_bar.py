"""Clickable breadcrumb path bar with edit mode."""

from PyQt6.QtCore import QEvent, Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QSizePolicy,
    QToolButton,
    QWidget,
)

from bucketview.core.paths import normalize_prefix, split_prefix


class BreadcrumbBar(QWidget):
    """Breadcrumb navigation bar for ``bucket / folder / folder``.

    Shows the bucket and each prefix segment as a clickable button. Clicking
    whitespace to the right enters edit mode with a QLineEdit for typing a
    path directly. Both signals carry a normalized prefix.
    """

    path_clicked = pyqtSignal(str)  # emitted when a segment is clicked
    path_edited = pyqtSignal(str)  # emitted when path is typed and Enter pressed

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._bucket = ""
        self._current_path = ""
        self._editing = False

        self._layout = QHBoxLayout(self)
        self._layout.setContentsMargins(2, 0, 2, 0)
        self._layout.setSpacing(0)

        # Edit line (hidden by default)
        self._edit = QLineEdit(self)
        self._edit.setVisible(False)
        self._edit.setPlaceholderText("folder/subfolder/")
        self._edit.returnPressed.connect(self._on_edit_accepted)
        self._edit.installEventFilter(self)

        self.setMouseTracking(True)
        self.setCursor(Qt.CursorShape.IBeamCursor)

    def set_bucket(self, bucket: str) -> None:
        self._bucket = bucket
        if not self._editing:
            self._rebuild_segments()

    def set_path(self, path: str) -> None:
        """Set the displayed prefix, rebuilding segment buttons."""
        self._current_path = normalize_prefix(path)
        if not self._editing:
            self._rebuild_segments()

    def current_path(self) -> str:
        return self._current_path

    def segment_labels(self) -> list[str]:
        """Text of the visible segment buttons, bucket first."""
        labels = []
        for i in range(self._layout.count()):
            w = self._layout.itemAt(i).widget()
            if isinstance(w, QToolButton):
                labels.append(w.text())
        return labels

    def _rebuild_segments(self) -> None:
        while self._layout.count():
            item = self._layout.takeAt(0)
            widget = item.widget()
            if widget and widget is not self._edit:
                widget.deleteLater()

        if not self._bucket:
            return

        segments = [(self._bucket, "")] + split_prefix(self._current_path)
        for i, (label, prefix) in enumerate(segments):
            if i > 0:
                sep = QLabel("/")
                sep.setStyleSheet("color: gray; padding: 0 2px;")
                self._layout.addWidget(sep)

            btn = QToolButton()
            btn.setText(label)
            btn.setAutoRaise(True)
            btn.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextOnly)
            btn.clicked.connect(lambda checked, p=prefix: self.path_clicked.emit(p))
            self._layout.addWidget(btn)

        # Spacer to fill remaining width (clicking it enters edit mode)
        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self._layout.addWidget(spacer)

    def _enter_edit_mode(self) -> None:
        self._editing = True
        for i in range(self._layout.count()):
            w = self._layout.itemAt(i).widget()
            if w:
                w.setVisible(False)

        self._edit.setText(self._current_path)
        self._edit.setVisible(True)
        self._edit.selectAll()
        self._edit.setFocus()
        self._layout.addWidget(self._edit)

    def _exit_edit_mode(self) -> None:
        self._editing = False
        self._edit.setVisible(False)
        self._rebuild_segments()

    def _on_edit_accepted(self) -> None:
        text = self._edit.text()
        self._exit_edit_mode()
        self.path_edited.emit(normalize_prefix(text.strip()))

    def mousePressEvent(self, event) -> None:
        # Click on empty area enters edit mode
        if not self._editing and self._bucket:
            child = self.childAt(event.pos())
            if child is None or not isinstance(child, QToolButton):
                self._enter_edit_mode()
                return
        super().mousePressEvent(event)

    def eventFilter(self, obj, event) -> bool:
        if obj is self._edit:
            if event.type() == QEvent.Type.KeyPress:
                if event.key() == Qt.Key.Key_Escape:
                    self._exit_edit_mode()
                    return True
            elif event.type() == QEvent.Type.FocusOut:
                if self._editing:
                    self._exit_edit_mode()
                return False
        return super().eventFilter(obj, event)
