"""Bucket browser pane: paged listing of one prefix at a time."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PyQt6.QtCore import (
    QModelIndex,
    QObject,
    QSortFilterProxyModel,
    Qt,
    QThread,
    QTimer,
    pyqtSignal,
)
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMenu,
    QTableView,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from bucketview.constants import (
    DELIMITER,
    LISTING_PAGE_SIZE,
    LOAD_MORE_THRESHOLD_PX,
    NAV_HISTORY_MAX,
)
from bucketview.core.paths import normalize_prefix, parent_prefix
from bucketview.models.s3_objects import (
    SORT_ROLE,
    ListingPage,
    S3Item,
    S3ObjectModel,
    format_size,
)
from bucketview.ui.breadcrumb_bar import BreadcrumbBar

if TYPE_CHECKING:
    from bucketview.core.s3_client import S3Client

logger = logging.getLogger("bucketview.s3_pane")


class _FetchSignals(QObject):
    """Signals emitted by the fetch worker."""

    page_ready = pyqtSignal(str, object, bool, int)  # prefix, ListingPage, append, fetch_id
    error = pyqtSignal(str, str, int)  # prefix, error_message, fetch_id


class _FetchWorker(QThread):
    """Background thread fetching one listing page."""

    def __init__(
        self,
        s3_client: S3Client,
        bucket: str,
        prefix: str,
        continuation_token: str | None,
        page_size: int,
        fetch_id: int,
        append: bool,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.signals = _FetchSignals()
        self._s3 = s3_client
        self._bucket = bucket
        self._prefix = prefix
        self._token = continuation_token
        self._page_size = page_size
        self._fetch_id = fetch_id
        self._append = append

    def run(self) -> None:
        try:
            page = self._s3.list_objects_page(
                self._bucket,
                self._prefix,
                continuation_token=self._token,
                max_keys=self._page_size,
            )
            self.signals.page_ready.emit(self._prefix, page, self._append, self._fetch_id)
        except Exception as e:
            logger.error("Fetch failed for prefix '%s': %s", self._prefix, e)
            self.signals.error.emit(self._prefix, str(e), self._fetch_id)


class S3PaneWidget(QWidget):
    """Pane for browsing bucket contents with infinite scroll."""

    directory_changed = pyqtSignal(str)  # current prefix
    status_message = pyqtSignal(str)  # for status bar updates
    download_requested = pyqtSignal(list)  # list of S3Item
    delete_requested = pyqtSignal(list)  # list of S3Item
    new_folder_requested = pyqtSignal()
    upload_requested = pyqtSignal()
    get_info_requested = pyqtSignal(object)  # S3Item
    preview_requested = pyqtSignal(object)  # S3Item
    presign_requested = pyqtSignal(object)  # S3Item
    files_dropped = pyqtSignal(list)  # local file paths (str) dropped onto the pane

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._s3_client: S3Client | None = None
        self._bucket: str = ""
        self._current_prefix: str = ""
        self._history_back: list[str] = []
        self._history_forward: list[str] = []
        self._fetch_id: int = 0
        self._fetch_worker: _FetchWorker | None = None
        self._connected = False
        self._page_size = LISTING_PAGE_SIZE
        self._continuation_token: str | None = None
        self._has_more = False
        self._loading = False

        self._setup_ui()
        self.setAcceptDrops(True)

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        # Mini toolbar
        toolbar = QHBoxLayout()
        toolbar.setContentsMargins(4, 2, 4, 2)
        toolbar.setSpacing(2)

        self._back_btn = QToolButton()
        self._back_btn.setText("◀")
        self._back_btn.setToolTip("Back")
        self._back_btn.setAutoRaise(True)
        self._back_btn.clicked.connect(self.go_back)
        self._back_btn.setEnabled(False)
        toolbar.addWidget(self._back_btn)

        self._forward_btn = QToolButton()
        self._forward_btn.setText("▶")
        self._forward_btn.setToolTip("Forward")
        self._forward_btn.setAutoRaise(True)
        self._forward_btn.clicked.connect(self.go_forward)
        self._forward_btn.setEnabled(False)
        toolbar.addWidget(self._forward_btn)

        self._up_btn = QToolButton()
        self._up_btn.setText("▲")
        self._up_btn.setToolTip("Enclosing folder")
        self._up_btn.setAutoRaise(True)
        self._up_btn.clicked.connect(self.go_up)
        self._up_btn.setEnabled(False)
        toolbar.addWidget(self._up_btn)

        self._search_btn = QToolButton()
        self._search_btn.setText("🔍")
        self._search_btn.setToolTip("Filter (Ctrl+F)")
        self._search_btn.setAutoRaise(True)
        self._search_btn.setCheckable(True)
        self._search_btn.toggled.connect(self._toggle_filter)
        toolbar.addWidget(self._search_btn)

        self._breadcrumb = BreadcrumbBar()
        self._breadcrumb.path_clicked.connect(self._on_breadcrumb_navigate)
        self._breadcrumb.path_edited.connect(self._on_breadcrumb_navigate)
        toolbar.addWidget(self._breadcrumb, 1)

        toolbar_widget = QWidget()
        toolbar_widget.setLayout(toolbar)
        layout.addWidget(toolbar_widget)

        # Filter bar (hidden by default)
        self._filter_bar = QLineEdit()
        self._filter_bar.setPlaceholderText("Filter loaded items by name...")
        self._filter_bar.setClearButtonEnabled(True)
        self._filter_bar.setVisible(False)
        self._filter_bar.textChanged.connect(self._on_filter_changed)
        layout.addWidget(self._filter_bar)

        # Table view
        self._model = S3ObjectModel()
        self._proxy = QSortFilterProxyModel()
        self._proxy.setSourceModel(self._model)
        self._proxy.setSortRole(SORT_ROLE)
        self._proxy.setFilterCaseSensitivity(Qt.CaseSensitivity.CaseInsensitive)
        self._proxy.setFilterKeyColumn(0)  # Filter on Name column

        self._table = QTableView()
        self._table.setModel(self._proxy)
        self._table.setSelectionMode(QAbstractItemView.SelectionMode.ExtendedSelection)
        self._table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self._table.setVerticalScrollMode(QAbstractItemView.ScrollMode.ScrollPerPixel)
        self._table.setShowGrid(False)
        self._table.setAlternatingRowColors(True)
        self._table.verticalHeader().setVisible(False)
        self._table.setSortingEnabled(True)
        self._table.sortByColumn(0, Qt.SortOrder.AscendingOrder)
        self._table.horizontalHeader().setStretchLastSection(True)
        self._table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        self._table.doubleClicked.connect(self._on_double_click)
        self._table.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self._table.customContextMenuRequested.connect(self._on_context_menu)
        self._table.verticalScrollBar().valueChanged.connect(self._on_scrolled)
        layout.addWidget(self._table, 1)

        # Status/error label (hidden by default)
        self._status_label = QLabel()
        self._status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._status_label.setStyleSheet("color: gray; padding: 20px;")
        self._status_label.setWordWrap(True)
        self._status_label.setVisible(False)
        layout.addWidget(self._status_label)

        # Placeholder (shown when not connected)
        self._placeholder = QLabel("Connect to a storage endpoint to browse files")
        self._placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._placeholder.setStyleSheet("color: gray;")
        layout.addWidget(self._placeholder)
        self._table.setVisible(False)

        # Footer
        self._footer = QLabel("0 items")
        self._footer.setContentsMargins(8, 2, 8, 2)
        self._footer.setStyleSheet("color: gray; font-size: 11px;")
        layout.addWidget(self._footer)

    # --- Public API ---

    def set_client(self, s3_client: S3Client) -> None:
        """Set the S3 client to use for fetching."""
        self._s3_client = s3_client
        self._connected = True
        self._placeholder.setVisible(False)
        self._table.setVisible(True)

    def set_page_size(self, page_size: int) -> None:
        self._page_size = page_size

    def set_bucket(self, bucket_name: str) -> None:
        """Switch to a different bucket, starting at its root."""
        self._bucket = bucket_name
        self._breadcrumb.set_bucket(bucket_name)
        self._history_back.clear()
        self._history_forward.clear()
        self._current_prefix = ""
        self.navigate_to("", record_history=False)

    def bucket(self) -> str:
        return self._bucket

    def navigate_to(self, prefix: str, record_history: bool = True) -> None:
        """Show the first page of ``prefix``, discarding any previous listing."""
        if not self._s3_client or not self._bucket:
            return
        prefix = normalize_prefix(prefix)

        if record_history and self._current_prefix != prefix:
            self._history_back.append(self._current_prefix)
            if len(self._history_back) > NAV_HISTORY_MAX:
                self._history_back = self._history_back[-NAV_HISTORY_MAX:]
            self._history_forward.clear()

        self._current_prefix = prefix
        self._continuation_token = None
        self._has_more = False
        self._breadcrumb.set_path(prefix)
        self._update_nav_buttons()

        self._model.clear()
        self._show_loading()
        self._launch_fetch(prefix, None, append=False)
        self.directory_changed.emit(prefix)

    def go_back(self) -> None:
        if not self._history_back:
            return
        self._history_forward.append(self._current_prefix)
        prefix = self._history_back.pop()
        self.navigate_to(prefix, record_history=False)

    def go_forward(self) -> None:
        if not self._history_forward:
            return
        self._history_back.append(self._current_prefix)
        prefix = self._history_forward.pop()
        self.navigate_to(prefix, record_history=False)

    def go_up(self) -> None:
        if self._current_prefix:
            self.navigate_to(parent_prefix(self._current_prefix))

    def refresh(self) -> None:
        """Reload the current prefix from its first page."""
        self.navigate_to(self._current_prefix, record_history=False)

    def load_more(self) -> None:
        """Fetch and append the next page, if there is one and none is in flight."""
        if self._loading or not self._has_more or not self._continuation_token:
            return
        logger.debug("Loading next page of '%s'", self._current_prefix)
        self._launch_fetch(self._current_prefix, self._continuation_token, append=True)

    def current_prefix(self) -> str:
        return self._current_prefix

    def has_more(self) -> bool:
        return self._has_more

    def is_loading(self) -> bool:
        return self._loading

    def continuation_token(self) -> str | None:
        return self._continuation_token

    def model(self) -> S3ObjectModel:
        return self._model

    def selected_items(self) -> list[S3Item]:
        """Return S3Items for selected rows."""
        items = []
        for idx in self._table.selectionModel().selectedRows():
            source_idx = self._proxy.mapToSource(idx)
            item = self._model.get_item(source_idx.row())
            if item:
                items.append(item)
        return items

    # --- Optimistic mutation interface ---

    def notify_upload_complete(self, key: str, size: int) -> None:
        """Optimistic: show an uploaded object (or its folder) in the current listing."""
        prefix = self._current_prefix
        if not key.startswith(prefix):
            return
        rest = key[len(prefix) :]
        if DELIMITER in rest:
            folder = rest.split(DELIMITER, 1)[0]
            self.notify_new_folder(f"{prefix}{folder}{DELIMITER}")
            return
        self._model.insert_item(S3Item(name=rest, key=key, is_prefix=False, size=size))
        self._update_footer()

    def notify_new_folder(self, key: str) -> None:
        """Optimistic: insert a new prefix (folder)."""
        name = key[len(self._current_prefix) :].rstrip(DELIMITER)
        self._model.insert_item(S3Item(name=name, key=key, is_prefix=True, size=0))
        self._update_footer()

    def notify_delete_complete(self, keys: list[str]) -> None:
        """Optimistic: remove deleted objects from current listing."""
        self._model.remove_items(set(keys))
        self._update_footer()

    # --- Filter ---

    def _toggle_filter(self, checked: bool) -> None:
        self._filter_bar.setVisible(checked)
        if checked:
            self._filter_bar.setFocus()
        else:
            self._filter_bar.clear()

    def _on_filter_changed(self, text: str) -> None:
        self._proxy.setFilterFixedString(text)
        self._update_footer()

    # --- Internal ---

    def _launch_fetch(self, prefix: str, token: str | None, append: bool) -> None:
        """Launch a background fetch for one page of the given prefix."""
        self._fetch_id += 1
        self._loading = True

        worker = _FetchWorker(
            self._s3_client,
            self._bucket,
            prefix,
            token,
            self._page_size,
            self._fetch_id,
            append,
            self,
        )
        worker.signals.page_ready.connect(self._on_page_ready)
        worker.signals.error.connect(self._on_fetch_error)
        worker.finished.connect(worker.deleteLater)
        self._fetch_worker = worker
        worker.start()

    def _on_page_ready(self, prefix: str, page: ListingPage, append: bool, fetch_id: int) -> None:
        if fetch_id != self._fetch_id:
            logger.debug("Dropping stale page for '%s' (fetch %d)", prefix, fetch_id)
            return

        self._loading = False
        self._continuation_token = page.continuation_token
        self._has_more = page.has_more
        if append:
            self._model.append_items(page.items)
        else:
            self._model.set_items(page.items)
        self._status_label.setVisible(False)
        self._update_footer()
        self.status_message.emit(f"Loaded {self._model.item_count()} items")

        # A short first page leaves nothing to scroll, so keep filling the view
        QTimer.singleShot(0, self._fill_viewport)

    def _fill_viewport(self) -> None:
        if self._has_more and not self._loading and self._table.verticalScrollBar().maximum() == 0:
            self.load_more()

    def _on_scrolled(self, value: int) -> None:
        bar = self._table.verticalScrollBar()
        if bar.maximum() - value <= LOAD_MORE_THRESHOLD_PX:
            self.load_more()

    def _on_fetch_error(self, prefix: str, error_msg: str, fetch_id: int) -> None:
        """Handle fetch failure."""
        if fetch_id != self._fetch_id:
            return
        self._loading = False
        self._status_label.setText(f"Error loading: {error_msg}\nClick Refresh to retry.")
        self._status_label.setVisible(True)
        self.status_message.emit(f"Error: {error_msg}")

    def _show_loading(self) -> None:
        self._status_label.setText("Loading...")
        self._status_label.setVisible(True)

    def _on_breadcrumb_navigate(self, prefix: str) -> None:
        self.navigate_to(normalize_prefix(prefix))

    def _on_double_click(self, index: QModelIndex) -> None:
        source_idx = self._proxy.mapToSource(index)
        item = self._model.get_item(source_idx.row())
        if not item:
            return
        if item.is_prefix:
            self.navigate_to(item.key)
        else:
            self.preview_requested.emit(item)

    def _update_nav_buttons(self) -> None:
        self._back_btn.setEnabled(len(self._history_back) > 0)
        self._forward_btn.setEnabled(len(self._history_forward) > 0)
        self._up_btn.setEnabled(bool(self._current_prefix))

    def _update_footer(self) -> None:
        total = self._model.item_count()
        visible = self._proxy.rowCount()
        size_str = format_size(self._model.total_size())

        if self._filter_bar.isVisible() and self._filter_bar.text():
            text = f"{visible} of {total} items, {size_str}"
        else:
            text = f"{total} items, {size_str}"
        if self._has_more:
            text += " (more available)"
        self._footer.setText(text)

    def _on_context_menu(self, pos) -> None:
        menu = QMenu(self)
        self._build_context_menu(menu)
        menu.exec(self._table.viewport().mapToGlobal(pos))

    def _build_context_menu(self, menu: QMenu) -> None:
        selected = self.selected_items()
        files = [item for item in selected if not item.is_prefix]
        single_file = files[0] if len(selected) == 1 and files else None

        if selected:
            if single_file:
                preview_action = menu.addAction("Preview")
                preview_action.triggered.connect(lambda: self.preview_requested.emit(single_file))

            if files:
                download_action = menu.addAction("Download")
                download_action.triggered.connect(lambda: self.download_requested.emit(files))

            if single_file:
                presign_action = menu.addAction("Copy Presigned URL...")
                presign_action.triggered.connect(lambda: self.presign_requested.emit(single_file))
                info_action = menu.addAction("Get Info")
                info_action.triggered.connect(lambda: self.get_info_requested.emit(single_file))

            menu.addSeparator()
            delete_action = menu.addAction("Delete")
            delete_action.triggered.connect(lambda: self.delete_requested.emit(selected))
        else:
            upload_action = menu.addAction("Upload Files...")
            upload_action.triggered.connect(self.upload_requested.emit)

            new_folder_action = menu.addAction("New Folder")
            new_folder_action.triggered.connect(self.new_folder_requested.emit)

            menu.addSeparator()
            refresh_action = menu.addAction("Refresh")
            refresh_action.triggered.connect(self.refresh)

    # --- Drag and drop ---

    def dragEnterEvent(self, event) -> None:
        if self._bucket and event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            super().dragEnterEvent(event)

    def dragMoveEvent(self, event) -> None:
        if self._bucket and event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            super().dragMoveEvent(event)

    def dropEvent(self, event) -> None:
        if event.mimeData().hasUrls():
            paths = [url.toLocalFile() for url in event.mimeData().urls() if url.isLocalFile()]
            if paths:
                self.files_dropped.emit(paths)
                event.acceptProposedAction()
                return
        super().dropEvent(event)
