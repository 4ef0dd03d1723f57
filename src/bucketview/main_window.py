"""Main application window: bucket browser with toolbar, menus, transfer dock."""

import logging
import sys
from pathlib import Path

from PyQt6.QtCore import QByteArray, QObject, Qt, QThread, QTimer, QUrl, pyqtSignal
from PyQt6.QtGui import QAction, QDesktopServices, QKeySequence
from PyQt6.QtWidgets import (
    QComboBox,
    QDialog,
    QDockWidget,
    QFileDialog,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QToolBar,
    QWidget,
)

from bucketview.constants import (
    APP_NAME,
    DEFAULT_PRESIGN_EXPIRY,
    DELIMITER,
    LISTING_PAGE_SIZE,
    LOG_DIR,
    MAX_CONCURRENT_TRANSFERS,
    MIN_WINDOW_HEIGHT,
    MIN_WINDOW_WIDTH,
)
from bucketview.core.credentials import CredentialStore, KeyringError, Profile, discover_aws_profiles
from bucketview.core.paths import compose_key
from bucketview.core.s3_client import S3Client, S3ClientError
from bucketview.core.transfers import UPLOAD, TransferEngine
from bucketview.db.database import get_bool_pref, get_int_pref, get_pref, set_pref
from bucketview.ui.confirm_delete import DeleteConfirmDialog
from bucketview.ui.get_info import GetInfoDialog
from bucketview.ui.presign_dialog import PresignDialog
from bucketview.ui.preview_dialog import PreviewDialog
from bucketview.ui.s3_pane import S3PaneWidget
from bucketview.ui.settings_dialog import SettingsDialog
from bucketview.ui.setup_wizard import SetupWizard
from bucketview.ui.transfer_panel import TransferPanelWidget

logger = logging.getLogger("bucketview.main_window")


class _ConnectSignals(QObject):
    connected = pyqtSignal(object, list)  # S3Client, bucket_names
    failed = pyqtSignal(str)  # error message


class _ConnectWorker(QThread):
    """Background thread for connecting to a profile and listing buckets."""

    def __init__(self, profile: Profile, parent=None) -> None:
        super().__init__(parent)
        self.signals = _ConnectSignals()
        self._profile = profile

    def run(self) -> None:
        try:
            client = S3Client(self._profile)
            buckets = [b.name for b in client.list_buckets()]
            self.signals.connected.emit(client, buckets)
        except S3ClientError as e:
            self.signals.failed.emit(e.user_message)
        except Exception as e:
            logger.exception("Unexpected error connecting to '%s'", self._profile.name)
            self.signals.failed.emit(str(e))


class _DeleteSignals(QObject):
    finished = pyqtSignal(list, int)  # deleted top-level keys, failed object count
    failed = pyqtSignal(str)  # error message


class _DeleteWorker(QThread):
    """Background thread for deleting objects. Folders are expanded recursively."""

    def __init__(self, s3_client: S3Client, bucket: str, keys: list[str], parent=None) -> None:
        super().__init__(parent)
        self.signals = _DeleteSignals()
        self._s3 = s3_client
        self._bucket = bucket
        self._keys = keys

    def run(self) -> None:
        try:
            expanded: dict[str, list[str]] = {}
            for key in self._keys:
                if key.endswith(DELIMITER):
                    expanded[key] = list(self._s3.iter_keys(self._bucket, key)) or [key]
                else:
                    expanded[key] = [key]
            all_keys = list(dict.fromkeys(k for keys in expanded.values() for k in keys))
            failed = set(self._s3.delete_objects(self._bucket, all_keys))
            deleted = [
                top for top, keys in expanded.items() if not any(k in failed for k in keys)
            ]
            self.signals.finished.emit(deleted, len(failed))
        except S3ClientError as e:
            self.signals.failed.emit(e.user_message)
        except Exception as e:
            logger.exception("Unexpected error deleting objects")
            self.signals.failed.emit(str(e))


class _InfoSignals(QObject):
    loaded = pyqtSignal(object)  # ObjectInfo
    failed = pyqtSignal(str)


class _InfoWorker(QThread):
    """Fetches object properties and tags for the Get Info dialog."""

    def __init__(self, s3_client: S3Client, bucket: str, key: str, parent=None) -> None:
        super().__init__(parent)
        self.signals = _InfoSignals()
        self._s3 = s3_client
        self._bucket = bucket
        self._key = key

    def run(self) -> None:
        try:
            self.signals.loaded.emit(self._s3.get_object_info(self._bucket, self._key))
        except S3ClientError as e:
            self.signals.failed.emit(e.user_message)
        except Exception as e:
            logger.exception("Unexpected error reading info for '%s'", self._key)
            self.signals.failed.emit(str(e))


class MainWindow(QMainWindow):
    def __init__(self, db=None, store: CredentialStore | None = None) -> None:
        super().__init__()
        self._db = db
        self._store = store or CredentialStore()
        self._s3_client: S3Client | None = None
        self._connect_worker: _ConnectWorker | None = None
        self._delete_workers: list[_DeleteWorker] = []
        self._info_worker: _InfoWorker | None = None
        self._wizard: SetupWizard | None = None
        self._aws_profile_names: set[str] = set()

        self.setWindowTitle(APP_NAME)
        self.setMinimumSize(MIN_WINDOW_WIDTH, MIN_WINDOW_HEIGHT)

        self._setup_toolbar()
        self._setup_central()
        self._setup_transfer_dock()
        self.set_transfer_engine(
            TransferEngine(
                max_workers=self._pref_int("max_concurrent_transfers", MAX_CONCURRENT_TRANSFERS)
            )
        )
        self._setup_status_bar()
        self._setup_menus()
        self._restore_state()

        self._profile_combo.currentIndexChanged.connect(self._on_profile_selected)
        self._bucket_combo.currentIndexChanged.connect(self._on_bucket_selected)

        self._s3_pane.upload_requested.connect(self._on_upload_requested)
        self._s3_pane.files_dropped.connect(self._on_files_dropped)
        self._s3_pane.download_requested.connect(self._on_download_requested)
        self._s3_pane.delete_requested.connect(self._on_delete_requested)
        self._s3_pane.new_folder_requested.connect(self._on_new_folder_requested)
        self._s3_pane.get_info_requested.connect(self._on_get_info_requested)
        self._s3_pane.preview_requested.connect(self._on_preview_requested)
        self._s3_pane.presign_requested.connect(self._on_presign_requested)
        self._s3_pane.directory_changed.connect(self._update_object_count)

        logger.info("Main window initialized")

        # Discover profiles and connect after event loop starts
        QTimer.singleShot(0, self._init_connection)

    # --- Toolbar ---

    def _setup_toolbar(self) -> None:
        toolbar = QToolBar("Main")
        toolbar.setObjectName("main_toolbar")
        toolbar.setMovable(False)
        toolbar.setFloatable(False)
        self.addToolBar(toolbar)

        self._profile_combo = QComboBox()
        self._profile_combo.setToolTip("Profile")
        self._profile_combo.setMinimumWidth(100)
        toolbar.addWidget(self._profile_combo)

        toolbar.addSeparator()

        self._bucket_combo = QComboBox()
        self._bucket_combo.setToolTip("Bucket")
        self._bucket_combo.setMinimumWidth(150)
        toolbar.addWidget(self._bucket_combo)

        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        toolbar.addWidget(spacer)

        self._upload_btn = QPushButton("Upload")
        self._upload_btn.setFlat(True)
        self._upload_btn.setEnabled(False)
        self._upload_btn.clicked.connect(self._on_upload_requested)
        toolbar.addWidget(self._upload_btn)

        self._refresh_btn = QPushButton("Refresh")
        self._refresh_btn.setFlat(True)
        self._refresh_btn.clicked.connect(self._on_refresh_clicked)
        toolbar.addWidget(self._refresh_btn)

        self._settings_btn = QPushButton("Settings")
        self._settings_btn.setToolTip("Settings")
        self._settings_btn.setFlat(True)
        self._settings_btn.clicked.connect(self._open_settings)
        toolbar.addWidget(self._settings_btn)

    def _on_refresh_clicked(self) -> None:
        if self._s3_pane.bucket():
            self._s3_pane.refresh()

    # --- Connection flow ---

    def _init_connection(self) -> None:
        """Discover profiles and connect to the last-used or first available."""
        self._populate_profiles()

        if self._profile_combo.count() == 0:
            self._show_setup_wizard()
            return

        target_idx = 0
        if self._db:
            last_profile = get_pref(self._db, "last_profile")
            if last_profile:
                idx = self._profile_combo.findData(last_profile)
                if idx >= 0:
                    target_idx = idx

        self._profile_combo.blockSignals(True)
        self._profile_combo.setCurrentIndex(target_idx)
        self._profile_combo.blockSignals(False)
        self._on_profile_selected(target_idx)

    def _populate_profiles(self) -> None:
        """Discover AWS CLI profiles and custom keyring profiles."""
        self._profile_combo.blockSignals(True)
        self._profile_combo.clear()
        self._aws_profile_names = set()

        for name in discover_aws_profiles():
            self._profile_combo.addItem(f"{name} (AWS)", name)
            self._aws_profile_names.add(name)

        for name in self._store.list_profiles():
            if name not in self._aws_profile_names:
                self._profile_combo.addItem(name, name)

        self._profile_combo.blockSignals(False)

    def _on_profile_selected(self, index: int) -> None:
        """Connect to the profile chosen in the combo."""
        if index < 0:
            return

        profile_name = self._profile_combo.currentData()
        if not profile_name:
            return

        if profile_name in self._aws_profile_names:
            profile = Profile(name=profile_name, is_aws_profile=True)
        else:
            profile = self._store.get_profile(profile_name)
            if not profile:
                self.set_status(f"Profile '{profile_name}' not found")
                return

        self._connect_to_profile(profile)

    def _connect_to_profile(self, profile: Profile) -> None:
        """Create an S3 client and list buckets in a background thread."""
        if self._connect_worker is not None:
            self._connect_worker.signals.connected.disconnect()
            self._connect_worker.signals.failed.disconnect()

        self.set_status(f"Connecting to '{profile.name}'...")
        self._bucket_combo.blockSignals(True)
        self._bucket_combo.clear()
        self._bucket_combo.blockSignals(False)

        worker = _ConnectWorker(profile, self)
        worker.signals.connected.connect(self._on_connected)
        worker.signals.failed.connect(self._on_connect_failed)
        worker.finished.connect(worker.deleteLater)
        self._connect_worker = worker
        worker.start()

    def _on_connected(self, client: S3Client, buckets: list[str]) -> None:
        """Populate the bucket combo after a successful connection."""
        self._connect_worker = None
        self._s3_client = client
        self._s3_pane.set_client(client)
        self._transfer_engine.set_client(client)

        self._bucket_combo.blockSignals(True)
        self._bucket_combo.clear()
        for name in sorted(buckets):
            self._bucket_combo.addItem(name, name)
        self._bucket_combo.blockSignals(False)

        profile_name = self._profile_combo.currentData()
        self.set_status(f"Connected: {len(buckets)} bucket(s)")

        if self._db and profile_name:
            set_pref(self._db, "last_profile", profile_name)

        if self._bucket_combo.count() > 0:
            target_idx = 0
            if self._db:
                last_bucket = get_pref(self._db, "last_bucket")
                if last_bucket:
                    idx = self._bucket_combo.findData(last_bucket)
                    if idx >= 0:
                        target_idx = idx
            self._bucket_combo.blockSignals(True)
            self._bucket_combo.setCurrentIndex(target_idx)
            self._bucket_combo.blockSignals(False)
            self._on_bucket_selected(target_idx)

    def _on_connect_failed(self, error_message: str) -> None:
        self._connect_worker = None
        self.set_status(f"Connection failed: {error_message}")
        logger.warning("Connection failed: %s", error_message)

    def _on_bucket_selected(self, index: int) -> None:
        """Switch the browser to the chosen bucket."""
        if index < 0 or self._s3_client is None:
            return
        bucket_name = self._bucket_combo.currentData()
        if not bucket_name:
            return

        self._s3_pane.set_page_size(self._pref_int("listing_page_size", LISTING_PAGE_SIZE))
        self._s3_pane.set_bucket(bucket_name)
        self._upload_btn.setEnabled(True)
        self.set_status(f"Browsing {bucket_name}")

        if self._db:
            set_pref(self._db, "last_bucket", bucket_name)

    def _show_setup_wizard(self) -> None:
        """Show the setup wizard, passing already-discovered profiles."""
        aws_profiles = sorted(self._aws_profile_names) or None
        self._wizard = SetupWizard(self._store, self, aws_profiles=aws_profiles)
        self._wizard.finished.connect(self._on_wizard_finished)
        self._wizard.open()  # Window-modal, non-blocking

    def _on_wizard_finished(self, result: int) -> None:
        """Defer applying the result until the wizard has fully closed."""
        wizard = self._wizard
        self._wizard = None
        if result != QDialog.DialogCode.Accepted.value or wizard is None:
            return
        QTimer.singleShot(0, lambda: self._apply_wizard_result(wizard))

    def _apply_wizard_result(self, wizard: SetupWizard) -> None:
        profile = wizard.get_profile()
        bucket_name = wizard.get_bucket()

        if not profile.is_aws_profile:
            try:
                self._store.save_profile(profile)
            except KeyringError as e:
                logger.error("Failed to save profile from wizard: %s", e)
                QMessageBox.warning(self, "Keychain Error", f"Could not save the profile:\n{e}")
                return

        logger.info("Setup complete: profile='%s', bucket='%s'", profile.name, bucket_name)

        if self._db and bucket_name:
            set_pref(self._db, "last_bucket", bucket_name)

        self._populate_profiles()
        idx = self._profile_combo.findData(profile.name)
        if idx >= 0:
            self._profile_combo.blockSignals(True)
            self._profile_combo.setCurrentIndex(idx)
            self._profile_combo.blockSignals(False)
            self._on_profile_selected(idx)

    # --- Transfers ---

    def set_transfer_engine(self, engine: TransferEngine) -> None:
        """Wire a TransferEngine to the panel and the optimistic listing updates."""
        self._transfer_engine = engine
        self._transfer_panel.set_engine(engine)
        engine.transfer_finished.connect(self._on_transfer_finished)
        engine.transfer_failed.connect(self._on_transfer_failed)

    @property
    def transfer_engine(self) -> TransferEngine:
        return self._transfer_engine

    def _on_transfer_finished(self, job_id: int) -> None:
        job = self._transfer_engine.job(job_id)
        if job is None:
            return
        if job.direction == UPLOAD:
            if job.bucket == self._s3_pane.bucket():
                self._s3_pane.notify_upload_complete(job.key, job.total_bytes)
            self.set_status(f"Uploaded {job.filename}")
        else:
            self.set_status(f"Downloaded {job.filename}")
        self._update_object_count()

    def _on_transfer_failed(self, job_id: int, user_msg: str, detail: str) -> None:
        logger.warning("Transfer %d failed: %s %s", job_id, user_msg, detail)
        self.set_status(f"Transfer failed: {user_msg}")

    def _can_transfer(self) -> bool:
        return self._transfer_engine.has_client and bool(self._s3_pane.bucket())

    def _on_upload_requested(self) -> None:
        if not self._can_transfer():
            self.set_status("Not connected, cannot upload")
            return
        paths, _ = QFileDialog.getOpenFileNames(self, "Upload Files")
        if paths:
            self._enqueue_uploads(paths)

    def _on_files_dropped(self, paths: list[str]) -> None:
        self._enqueue_uploads(paths)

    def _enqueue_uploads(self, paths: list[str]) -> None:
        """Queue each file (or each file inside a dropped folder) under the current prefix."""
        if not self._can_transfer():
            self.set_status("Not connected, cannot upload")
            return

        bucket = self._s3_pane.bucket()
        prefix = self._s3_pane.current_prefix()
        count = 0
        for path_str in paths:
            path = Path(path_str)
            if path.is_dir():
                for file_path in sorted(path.rglob("*")):
                    if file_path.is_file():
                        rel = file_path.relative_to(path.parent).as_posix()
                        self._transfer_engine.enqueue_upload(
                            bucket, file_path, compose_key(prefix, rel)
                        )
                        count += 1
            elif path.is_file():
                self._transfer_engine.enqueue_upload(bucket, path, compose_key(prefix, path.name))
                count += 1

        if count:
            self._transfer_dock.setVisible(True)
            self.set_status(f"Uploading {count} file(s)...")

    def _on_download_requested(self, items: list) -> None:
        if not self._can_transfer():
            self.set_status("Not connected, cannot download")
            return
        files = [i for i in items if not i.is_prefix]
        if not files:
            return

        default_dir = str(Path.home() / "Downloads")
        if self._db:
            default_dir = get_pref(self._db, "default_download_dir", default_dir)
        dest = QFileDialog.getExistingDirectory(self, "Download To", default_dir)
        if not dest:
            return

        bucket = self._s3_pane.bucket()
        for item in files:
            self._transfer_engine.enqueue_download(
                bucket, item.key, Path(dest) / item.name, item.size or 0
            )
        self._transfer_dock.setVisible(True)
        self.set_status(f"Downloading {len(files)} file(s)...")

    # --- Delete ---

    def _on_delete_requested(self, items: list) -> None:
        if not self._s3_client or not items:
            return
        bucket = self._s3_pane.bucket()
        if not bucket:
            return

        keys = [i.key for i in items]
        total = sum(i.size or 0 for i in items if not i.is_prefix)
        dialog = DeleteConfirmDialog(keys, total, parent=self)
        if dialog.exec() != QDialog.DialogCode.Accepted:
            return

        self.set_status(f"Deleting {len(keys)} item(s)...")
        self._start_delete(bucket, keys)

    def _start_delete(self, bucket: str, keys: list[str]) -> _DeleteWorker:
        worker = _DeleteWorker(self._s3_client, bucket, keys, self)
        worker.signals.finished.connect(
            lambda deleted, failed: self._on_delete_finished(deleted, failed, bucket)
        )
        worker.signals.failed.connect(self._on_delete_failed)
        worker.finished.connect(lambda: self._on_delete_worker_done(worker))
        self._delete_workers.append(worker)
        worker.start()
        return worker

    def _on_delete_worker_done(self, worker: _DeleteWorker) -> None:
        if worker in self._delete_workers:
            self._delete_workers.remove(worker)
        worker.deleteLater()

    def _on_delete_finished(
        self, deleted_keys: list[str], failed_count: int, bucket: str | None = None
    ) -> None:
        if bucket is None or bucket == self._s3_pane.bucket():
            self._s3_pane.notify_delete_complete(deleted_keys)
        self._update_object_count()
        if failed_count:
            self.set_status(
                f"Deleted {len(deleted_keys)} item(s), {failed_count} object(s) could not be deleted"
            )
        else:
            self.set_status(f"Deleted {len(deleted_keys)} item(s)")

    def _on_delete_failed(self, message: str) -> None:
        self.set_status(f"Delete failed: {message}")
        QMessageBox.warning(self, "Delete Failed", message)

    # --- New folder ---

    def _on_new_folder_requested(self) -> None:
        if not self._s3_client or not self._s3_pane.bucket():
            self.set_status("Not connected, cannot create folder")
            return

        name, ok = QInputDialog.getText(self, "New Folder", "Folder name:")
        if not ok or not name.strip():
            return

        try:
            key = self._s3_client.create_folder(
                self._s3_pane.bucket(), self._s3_pane.current_prefix(), name
            )
        except S3ClientError as e:
            logger.warning("Failed to create folder '%s': %s", name, e.detail)
            self.set_status(f"Failed to create folder: {e.user_message}")
            return
        self._s3_pane.notify_new_folder(key)
        self.set_status(f"Created folder '{name.strip().strip(DELIMITER)}'")

    # --- Get Info / Preview / Presign ---

    def _on_get_info_requested(self, item) -> None:
        if not self._s3_client or item is None or item.is_prefix:
            return
        bucket = self._s3_pane.bucket()
        self.set_status(f"Loading info for {item.name}...")
        worker = _InfoWorker(self._s3_client, bucket, item.key, self)
        worker.signals.loaded.connect(lambda info: self._show_info(info, bucket))
        worker.signals.failed.connect(lambda msg: self.set_status(f"Get Info failed: {msg}"))
        worker.finished.connect(worker.deleteLater)
        self._info_worker = worker
        worker.start()

    def _show_info(self, info, bucket: str) -> None:
        self._info_worker = None
        self.set_status("Ready")
        GetInfoDialog(info, bucket, parent=self).exec()

    def _on_preview_requested(self, item) -> None:
        if not self._s3_client or item is None or item.is_prefix:
            return
        PreviewDialog(self._s3_client, self._s3_pane.bucket(), item, parent=self).exec()

    def _on_presign_requested(self, item) -> None:
        if not self._s3_client or item is None or item.is_prefix:
            return
        expiry = self._pref_int("presign_expiry", DEFAULT_PRESIGN_EXPIRY)
        PresignDialog(
            self._s3_client, self._s3_pane.bucket(), item.key, expiry, parent=self
        ).exec()

    # --- Central widget ---

    def _setup_central(self) -> None:
        self._s3_pane = S3PaneWidget()
        self._s3_pane.status_message.connect(self.set_status)
        self.setCentralWidget(self._s3_pane)

    # --- Transfer panel dock ---

    def _setup_transfer_dock(self) -> None:
        self._transfer_dock = QDockWidget("Transfers", self)
        self._transfer_dock.setObjectName("transfer_dock")
        self._transfer_dock.setAllowedAreas(Qt.DockWidgetArea.BottomDockWidgetArea)
        self._transfer_dock.setFeatures(QDockWidget.DockWidgetFeature.DockWidgetClosable)
        self._transfer_panel = TransferPanelWidget()
        self._transfer_panel.setMinimumHeight(80)
        self._transfer_dock.setWidget(self._transfer_panel)
        self.addDockWidget(Qt.DockWidgetArea.BottomDockWidgetArea, self._transfer_dock)

    @property
    def transfer_panel(self) -> TransferPanelWidget:
        return self._transfer_panel

    # --- Status bar ---

    def _setup_status_bar(self) -> None:
        sb = self.statusBar()
        self._status_label = QLabel("Ready")
        self._object_count_label = QLabel("")
        sb.addWidget(self._status_label, 1)
        sb.addPermanentWidget(self._object_count_label)
        self._s3_pane.model().rowsInserted.connect(self._update_object_count)
        self._s3_pane.model().rowsRemoved.connect(self._update_object_count)
        self._s3_pane.model().modelReset.connect(self._update_object_count)

    def set_status(self, text: str) -> None:
        self._status_label.setText(text)

    def status_text(self) -> str:
        return self._status_label.text()

    def _update_object_count(self, *_args) -> None:
        count = self._s3_pane.model().item_count()
        self._object_count_label.setText(f"{count} item(s)" if count else "")

    @property
    def s3_pane(self) -> S3PaneWidget:
        return self._s3_pane

    @property
    def profile_combo(self) -> QComboBox:
        return self._profile_combo

    @property
    def bucket_combo(self) -> QComboBox:
        return self._bucket_combo

    # --- Settings ---

    def _open_settings(self) -> None:
        current_profile = self._profile_combo.currentData()
        dialog = SettingsDialog(store=self._store, db=self._db, parent=self)
        dialog.settings_changed.connect(self._apply_settings)
        dialog.exec()
        self._populate_profiles()
        if current_profile:
            idx = self._profile_combo.findData(current_profile)
            if idx >= 0:
                self._profile_combo.blockSignals(True)
                self._profile_combo.setCurrentIndex(idx)
                self._profile_combo.blockSignals(False)

    def _apply_settings(self) -> None:
        self._s3_pane.set_page_size(self._pref_int("listing_page_size", LISTING_PAGE_SIZE))
        self._transfer_engine.set_max_workers(
            self._pref_int("max_concurrent_transfers", MAX_CONCURRENT_TRANSFERS)
        )

    def _pref_int(self, key: str, default: int) -> int:
        if self._db is None:
            return default
        return get_int_pref(self._db, key, default)

    # --- Window state save/restore ---

    def _save_state(self) -> None:
        """Save window geometry and dock state to preferences."""
        if self._db is None:
            return
        set_pref(self._db, "window_geometry", self.saveGeometry().toBase64().data().decode())
        set_pref(self._db, "window_state", self.saveState().toBase64().data().decode())
        set_pref(
            self._db,
            "transfer_dock_visible",
            "true" if self._transfer_dock.isVisible() else "false",
        )

    def _restore_state(self) -> None:
        """Restore window geometry and dock state."""
        if self._db is None:
            return

        geom = get_pref(self._db, "window_geometry")
        if geom:
            self.restoreGeometry(QByteArray.fromBase64(geom.encode()))

        state = get_pref(self._db, "window_state")
        if state:
            self.restoreState(QByteArray.fromBase64(state.encode()))

        self._transfer_dock.setVisible(get_bool_pref(self._db, "transfer_dock_visible", True))

    def closeEvent(self, event) -> None:
        self._save_state()
        if self._transfer_engine.active_count():
            logger.info("Cancelling %d active transfer(s)", self._transfer_engine.active_count())
            self._transfer_engine.cancel_all()
        for worker in list(self._delete_workers):
            worker.wait()
        super().closeEvent(event)

    # --- Show Log Folder ---

    def _open_log_directory(self) -> None:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        QDesktopServices.openUrl(QUrl.fromLocalFile(str(LOG_DIR)))

    # --- Menus ---

    def _setup_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")

        upload_action = QAction("&Upload Files...", self)
        upload_action.setShortcut(QKeySequence("Ctrl+U"))
        upload_action.triggered.connect(self._on_upload_requested)
        file_menu.addAction(upload_action)

        folder_action = QAction("New &Folder...", self)
        folder_action.setShortcut(QKeySequence("Ctrl+Shift+N"))
        folder_action.triggered.connect(self._on_new_folder_requested)
        file_menu.addAction(folder_action)

        file_menu.addSeparator()

        settings_action = QAction("&Settings...", self)
        settings_action.triggered.connect(self._open_settings)
        if sys.platform == "darwin":
            settings_action.setShortcut(QKeySequence("Ctrl+,"))
            settings_action.setMenuRole(QAction.MenuRole.PreferencesRole)
        file_menu.addAction(settings_action)

        wizard_action = QAction("Setup &Wizard...", self)
        wizard_action.triggered.connect(self._show_setup_wizard)
        file_menu.addAction(wizard_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        if sys.platform == "darwin":
            quit_action.setMenuRole(QAction.MenuRole.QuitRole)
        file_menu.addAction(quit_action)

        view_menu = menu_bar.addMenu("&View")
        self._toggle_transfers_action = self._transfer_dock.toggleViewAction()
        self._toggle_transfers_action.setText("Show &Transfers")
        view_menu.addAction(self._toggle_transfers_action)

        go_menu = menu_bar.addMenu("&Go")
        back_action = QAction("&Back", self)
        back_action.setShortcut(QKeySequence("Alt+Left"))
        back_action.triggered.connect(self._s3_pane.go_back)
        go_menu.addAction(back_action)

        forward_action = QAction("&Forward", self)
        forward_action.setShortcut(QKeySequence("Alt+Right"))
        forward_action.triggered.connect(self._s3_pane.go_forward)
        go_menu.addAction(forward_action)

        up_action = QAction("Enclosing &Folder", self)
        up_action.setShortcut(QKeySequence("Alt+Up"))
        up_action.triggered.connect(self._s3_pane.go_up)
        go_menu.addAction(up_action)

        bucket_menu = menu_bar.addMenu("&Bucket")
        self._refresh_action = QAction("&Refresh", self)
        self._refresh_action.setShortcut(QKeySequence("Ctrl+R"))
        self._refresh_action.triggered.connect(self._s3_pane.refresh)
        bucket_menu.addAction(self._refresh_action)

        self._load_more_action = QAction("Load &More", self)
        self._load_more_action.triggered.connect(self._s3_pane.load_more)
        bucket_menu.addAction(self._load_more_action)

        help_menu = menu_bar.addMenu("&Help")
        self._show_log_action = QAction("Show &Log Folder", self)
        self._show_log_action.triggered.connect(self._open_log_directory)
        help_menu.addAction(self._show_log_action)
