"""Settings dialog with tabs for profiles, transfers, and general options."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from bucketview.constants import (
    DEFAULT_PRESIGN_EXPIRY,
    DEFAULT_REGION,
    LISTING_PAGE_SIZE,
    MAX_CONCURRENT_TRANSFERS,
    MAX_LISTING_PAGE_SIZE,
    MAX_PRESIGN_EXPIRY,
    MIN_PRESIGN_EXPIRY,
)
from bucketview.core.credentials import (
    CredentialStore,
    KeyringError,
    Profile,
    discover_aws_profiles,
)
from bucketview.db.database import get_int_pref, get_pref, set_pref
from bucketview.ui.setup_wizard import make_region_combo, region_from_combo, select_region

if TYPE_CHECKING:
    from bucketview.db.database import Database

logger = logging.getLogger("bucketview.settings_dialog")

_AWS_ROLE = Qt.ItemDataRole.UserRole + 1


class ProfilesTab(QWidget):
    """Tab for managing connection profiles."""

    profile_changed = pyqtSignal()

    def __init__(self, store: CredentialStore, parent=None) -> None:
        super().__init__(parent)
        self._store = store

        layout = QVBoxLayout(self)

        layout.addWidget(QLabel("Saved Profiles:"))
        self._profile_list = QListWidget()
        layout.addWidget(self._profile_list)

        btn_row = QHBoxLayout()
        self._add_btn = QPushButton("Add Profile...")
        self._add_btn.clicked.connect(self._on_add)
        btn_row.addWidget(self._add_btn)

        self._edit_btn = QPushButton("Edit...")
        self._edit_btn.clicked.connect(self._on_edit)
        self._edit_btn.setEnabled(False)
        btn_row.addWidget(self._edit_btn)

        self._delete_btn = QPushButton("Delete")
        self._delete_btn.clicked.connect(self._on_delete)
        self._delete_btn.setEnabled(False)
        btn_row.addWidget(self._delete_btn)

        btn_row.addStretch()
        layout.addLayout(btn_row)

        hint = QLabel("AWS CLI profiles are managed with 'aws configure'.")
        hint.setStyleSheet("color: gray; font-size: 11px;")
        layout.addWidget(hint)

        self._profile_list.currentItemChanged.connect(self._on_selection_changed)
        self._refresh_list()

    def _refresh_list(self) -> None:
        self._profile_list.clear()
        for name in discover_aws_profiles():
            item = QListWidgetItem(f"{name} (AWS CLI)")
            item.setData(Qt.ItemDataRole.UserRole, name)
            item.setData(_AWS_ROLE, True)
            self._profile_list.addItem(item)
        for name in self._store.list_profiles():
            item = QListWidgetItem(name)
            item.setData(Qt.ItemDataRole.UserRole, name)
            item.setData(_AWS_ROLE, False)
            self._profile_list.addItem(item)

    def _selected_name(self) -> str | None:
        """Name of the selected keyring profile (AWS CLI entries are read-only)."""
        item = self._profile_list.currentItem()
        if item is None or item.data(_AWS_ROLE):
            return None
        return item.data(Qt.ItemDataRole.UserRole)

    def _on_selection_changed(self) -> None:
        editable = self._selected_name() is not None
        self._edit_btn.setEnabled(editable)
        self._delete_btn.setEnabled(editable)

    def _on_add(self) -> None:
        dialog = ProfileEditDialog(self._store, parent=self)
        if dialog.exec() == QDialog.DialogCode.Accepted:
            self._refresh_list()
            self.profile_changed.emit()

    def _on_edit(self) -> None:
        name = self._selected_name()
        if not name:
            return
        profile = self._store.get_profile(name)
        if profile:
            dialog = ProfileEditDialog(self._store, profile=profile, parent=self)
            if dialog.exec() == QDialog.DialogCode.Accepted:
                self._refresh_list()
                self.profile_changed.emit()

    def _on_delete(self) -> None:
        name = self._selected_name()
        if not name:
            return
        reply = QMessageBox.question(
            self,
            "Delete Profile",
            f"Remove profile '{name}'?\n\n"
            "Credentials will be removed from the system keychain.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if reply != QMessageBox.StandardButton.Yes:
            return
        try:
            self._store.delete_profile(name)
        except KeyringError as e:
            QMessageBox.warning(self, "Keychain Error", f"Could not delete the profile:\n{e}")
            return
        self._refresh_list()
        self.profile_changed.emit()


class ProfileEditDialog(QDialog):
    """Dialog for adding or editing a connection profile."""

    def __init__(
        self,
        store: CredentialStore,
        profile: Profile | None = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._editing = profile is not None

        self.setWindowTitle("Edit Profile" if self._editing else "Add Profile")
        self.setMinimumWidth(420)

        layout = QFormLayout(self)

        self._name_edit = QLineEdit()
        layout.addRow("Profile Name:", self._name_edit)

        self._endpoint_edit = QLineEdit()
        self._endpoint_edit.setPlaceholderText("Empty for AWS, e.g. http://localhost:9000")
        layout.addRow("Endpoint URL:", self._endpoint_edit)

        self._access_key_edit = QLineEdit()
        layout.addRow("Access Key ID:", self._access_key_edit)

        self._secret_key_edit = QLineEdit()
        self._secret_key_edit.setEchoMode(QLineEdit.EchoMode.Password)
        layout.addRow("Secret Access Key:", self._secret_key_edit)

        self._region_combo = make_region_combo()
        layout.addRow("Region:", self._region_combo)

        if profile:
            self._name_edit.setText(profile.name)
            self._name_edit.setReadOnly(True)
            self._endpoint_edit.setText(profile.endpoint_url)
            self._access_key_edit.setText(profile.access_key_id)
            self._secret_key_edit.setText(profile.secret_access_key)
            select_region(self._region_combo, profile.effective_region())
        else:
            select_region(self._region_combo, DEFAULT_REGION)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        layout.addRow(buttons)

    def build_profile(self) -> Profile:
        return Profile(
            name=self._name_edit.text().strip(),
            access_key_id=self._access_key_edit.text().strip(),
            secret_access_key=self._secret_key_edit.text().strip(),
            region=region_from_combo(self._region_combo) or DEFAULT_REGION,
            endpoint_url=self._endpoint_edit.text().strip(),
        )

    def _on_accept(self) -> None:
        profile = self.build_profile()
        if not profile.name or not profile.is_configured():
            QMessageBox.warning(
                self, "Missing Fields", "Profile name and both keys are required."
            )
            return
        try:
            self._store.save_profile(profile)
        except KeyringError as e:
            QMessageBox.warning(self, "Keychain Error", f"Could not save the profile:\n{e}")
            return
        self.accept()


class TransfersTab(QWidget):
    """Tab for transfer settings."""

    def __init__(self, db: Database | None = None, parent=None) -> None:
        super().__init__(parent)
        self._db = db

        layout = QFormLayout(self)

        self._max_concurrent = QSpinBox()
        self._max_concurrent.setRange(1, 16)
        self._max_concurrent.setValue(MAX_CONCURRENT_TRANSFERS)
        layout.addRow("Max concurrent transfers:", self._max_concurrent)

        if db:
            self._max_concurrent.setValue(
                get_int_pref(db, "max_concurrent_transfers", MAX_CONCURRENT_TRANSFERS)
            )

    def apply_settings(self) -> None:
        if self._db:
            set_pref(self._db, "max_concurrent_transfers", str(self._max_concurrent.value()))


class GeneralTab(QWidget):
    """Tab for general settings."""

    def __init__(self, db: Database | None = None, parent=None) -> None:
        super().__init__(parent)
        self._db = db

        layout = QFormLayout(self)

        dir_row = QHBoxLayout()
        self._dir_edit = QLineEdit()
        dir_row.addWidget(self._dir_edit)
        browse_btn = QPushButton("Browse...")
        browse_btn.clicked.connect(self._browse_directory)
        dir_row.addWidget(browse_btn)
        layout.addRow("Download directory:", dir_row)

        self._page_size = QSpinBox()
        self._page_size.setRange(1, MAX_LISTING_PAGE_SIZE)
        self._page_size.setValue(LISTING_PAGE_SIZE)
        layout.addRow("Items per listing page:", self._page_size)

        self._presign_expiry = QSpinBox()
        self._presign_expiry.setRange(MIN_PRESIGN_EXPIRY, MAX_PRESIGN_EXPIRY)
        self._presign_expiry.setSuffix(" s")
        self._presign_expiry.setValue(DEFAULT_PRESIGN_EXPIRY)
        layout.addRow("Default link expiry:", self._presign_expiry)

        self._dir_edit.setText(str(Path.home() / "Downloads"))
        if db:
            self._dir_edit.setText(get_pref(db, "default_download_dir", self._dir_edit.text()))
            self._page_size.setValue(get_int_pref(db, "listing_page_size", LISTING_PAGE_SIZE))
            self._presign_expiry.setValue(
                get_int_pref(db, "presign_expiry", DEFAULT_PRESIGN_EXPIRY)
            )

    def _browse_directory(self) -> None:
        path = QFileDialog.getExistingDirectory(
            self, "Select Download Directory", self._dir_edit.text()
        )
        if path:
            self._dir_edit.setText(path)

    def apply_settings(self) -> None:
        if self._db:
            set_pref(self._db, "default_download_dir", self._dir_edit.text())
            set_pref(self._db, "listing_page_size", str(self._page_size.value()))
            set_pref(self._db, "presign_expiry", str(self._presign_expiry.value()))


class SettingsDialog(QDialog):
    """Application settings dialog."""

    settings_changed = pyqtSignal()

    def __init__(
        self,
        store: CredentialStore | None = None,
        db: Database | None = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self._store = store or CredentialStore()
        self._db = db
        self.setWindowTitle("Settings")
        self.setMinimumSize(500, 400)

        layout = QVBoxLayout(self)

        self._tabs = QTabWidget()

        self._profiles_tab = ProfilesTab(self._store)
        self._tabs.addTab(self._profiles_tab, "Profiles")

        self._transfers_tab = TransfersTab(db)
        self._tabs.addTab(self._transfers_tab, "Transfers")

        self._general_tab = GeneralTab(db)
        self._tabs.addTab(self._general_tab, "General")

        layout.addWidget(self._tabs)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    @property
    def profiles_changed_signal(self):
        return self._profiles_tab.profile_changed

    def _on_accept(self) -> None:
        self._transfers_tab.apply_settings()
        self._general_tab.apply_settings()
        self.settings_changed.emit()
        self.accept()
