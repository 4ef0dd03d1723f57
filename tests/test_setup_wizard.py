"""Tests for setup wizard and settings dialog."""

from PyQt6.QtWidgets import QMessageBox

from bucketview.core.credentials import CredentialStore, Profile, TestResult
from bucketview.db.database import Database, get_int_pref, get_pref
from bucketview.ui.settings_dialog import (
    GeneralTab,
    ProfileEditDialog,
    ProfilesTab,
    SettingsDialog,
    TransfersTab,
)
from bucketview.ui.setup_wizard import (
    AWS_REGIONS,
    BucketPage,
    CredentialPage,
    SetupWizard,
    WelcomePage,
    make_region_combo,
    region_from_combo,
    select_region,
)


def _fill_manual(page, name="minio", access="AKIATEST", secret="secret123", endpoint=""):
    page._manual_radio.setChecked(True)
    widget = page._manual_widget
    widget._name_edit.setText(name)
    widget._endpoint_edit.setText(endpoint)
    widget._access_key_edit.setText(access)
    widget._secret_key_edit.setText(secret)


class TestWelcomePage:
    def test_creates(self, qtbot):
        page = WelcomePage()
        qtbot.addWidget(page)
        assert page.title() == "Welcome to BucketView"


class TestRegionCombo:
    def test_known_region(self, qtbot):
        combo = make_region_combo()
        qtbot.addWidget(combo)
        select_region(combo, "eu-west-1")
        assert region_from_combo(combo) == "eu-west-1"

    def test_custom_region(self, qtbot):
        combo = make_region_combo()
        qtbot.addWidget(combo)
        select_region(combo, "garage")
        assert region_from_combo(combo) == "garage"

    def test_auto_entry(self, qtbot):
        combo = make_region_combo(include_auto=True)
        qtbot.addWidget(combo)
        combo.setCurrentIndex(0)
        assert region_from_combo(combo) == ""

    def test_regions_populated(self):
        assert len(AWS_REGIONS) > 10
        for display, code in AWS_REGIONS:
            assert "-" in code
            assert display


class TestCredentialPage:
    def test_creates(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        assert page.title() == "Connection"

    def test_no_profiles_defaults_to_manual(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        assert page._manual_radio.isChecked()
        assert not page._aws_radio.isEnabled()
        assert page._manual_widget.isVisibleTo(page)

    def test_not_complete_without_keys(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        assert page.isComplete() is False

    def test_manual_profile(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        _fill_manual(page, endpoint="http://localhost:9000")
        assert page.isComplete() is True
        profile = page.get_profile()
        assert profile.name == "minio"
        assert profile.access_key_id == "AKIATEST"
        assert profile.endpoint_url == "http://localhost:9000"
        assert profile.region == "us-east-1"
        assert profile.is_aws_profile is False

    def test_missing_secret_incomplete(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        _fill_manual(page, secret="")
        assert page.isComplete() is False

    def test_missing_name_incomplete(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        _fill_manual(page, name="  ")
        assert page.isComplete() is False

    def test_aws_profile_mode(self, qtbot):
        page = CredentialPage(CredentialStore(), aws_profiles=["work"])
        qtbot.addWidget(page)
        assert page._aws_radio.isChecked()
        profile = page.get_profile()
        assert profile.name == "work"
        assert profile.is_aws_profile is True
        assert profile.region == ""

    def test_aws_profile_region_override(self, qtbot):
        page = CredentialPage(CredentialStore(), aws_profiles=["work"])
        qtbot.addWidget(page)
        select_region(page._region_combo, "eu-central-1")
        assert page.get_profile().region == "eu-central-1"

    def test_successful_test_result(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        _fill_manual(page)
        page._on_test_result(TestResult(success=True, buckets=["a", "b"]))
        assert page._test_status.text() == "Connected! Found 2 bucket(s)."
        assert page.get_buckets() == ["a", "b"]

    def test_failed_test_result(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        _fill_manual(page)
        page._on_test_result(
            TestResult(success=False, error_message="Access denied.", error_detail="403")
        )
        assert page._test_status.text() == "Connection failed."
        assert "Access denied." in page._error_label.text()
        assert page.get_buckets() == []

    def test_editing_fields_resets_result(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        _fill_manual(page)
        page._on_test_result(TestResult(success=True, buckets=["a"]))
        page._manual_widget._access_key_edit.setText("OTHER")
        assert page.get_buckets() == []

    def test_incomplete_test_click(self, qtbot):
        page = CredentialPage(CredentialStore())
        qtbot.addWidget(page)
        page._manual_radio.setChecked(True)
        page._on_test_clicked()
        assert page._test_status.text() == "Please fill in all required fields."
        assert page._worker is None


class TestBucketPage:
    def test_creates(self, qtbot):
        page = BucketPage()
        qtbot.addWidget(page)
        assert page.title() == "Select a Bucket"

    def test_complete_even_when_empty(self, qtbot):
        page = BucketPage()
        qtbot.addWidget(page)
        assert page.isComplete() is True

    def test_selected_bucket_from_manual_entry(self, qtbot):
        page = BucketPage()
        qtbot.addWidget(page)
        page._manual_edit.setText(" my-bucket ")
        assert page.selected_bucket() == "my-bucket"


class TestSetupWizard:
    def test_creates(self, qtbot):
        wizard = SetupWizard(CredentialStore())
        qtbot.addWidget(wizard)
        assert wizard.windowTitle() == "BucketView Setup"

    def test_has_three_pages(self, qtbot):
        wizard = SetupWizard(CredentialStore())
        qtbot.addWidget(wizard)
        assert all(wizard.page(i) is not None for i in range(3))

    def test_bucket_page_lists_tested_buckets(self, qtbot):
        wizard = SetupWizard(CredentialStore())
        qtbot.addWidget(wizard)
        _fill_manual(wizard._cred_page)
        wizard._cred_page._on_test_result(TestResult(success=True, buckets=["zeta", "alpha"]))

        wizard._bucket_page.initializePage()
        assert wizard._bucket_page._bucket_list.count() == 2
        assert wizard.get_bucket() == "alpha"
        assert wizard.get_profile().name == "minio"


class TestSettingsDialog:
    def test_creates(self, qtbot):
        dialog = SettingsDialog()
        qtbot.addWidget(dialog)
        assert dialog.windowTitle() == "Settings"
        assert dialog._tabs.count() == 3

    def test_accept_saves_prefs(self, qtbot, tmp_db_path):
        db = Database(tmp_db_path)
        dialog = SettingsDialog(db=db)
        qtbot.addWidget(dialog)
        dialog._transfers_tab._max_concurrent.setValue(6)
        dialog._general_tab._page_size.setValue(250)
        dialog._general_tab._presign_expiry.setValue(600)
        dialog._general_tab._dir_edit.setText("/tmp/downloads")

        with qtbot.waitSignal(dialog.settings_changed):
            dialog._on_accept()

        assert get_int_pref(db, "max_concurrent_transfers") == 6
        assert get_int_pref(db, "listing_page_size") == 250
        assert get_int_pref(db, "presign_expiry") == 600
        assert get_pref(db, "default_download_dir") == "/tmp/downloads"
        db.close()


class TestTransfersTab:
    def test_defaults(self, qtbot):
        tab = TransfersTab()
        qtbot.addWidget(tab)
        assert tab._max_concurrent.value() == 2
        assert tab._max_concurrent.minimum() == 1
        assert tab._max_concurrent.maximum() == 16


class TestGeneralTab:
    def test_ranges(self, qtbot):
        tab = GeneralTab()
        qtbot.addWidget(tab)
        assert tab._page_size.maximum() == 1000
        assert tab._presign_expiry.minimum() == 1
        assert tab._presign_expiry.maximum() == 604800
        assert tab._presign_expiry.value() == 3600


class TestProfilesTab:
    def test_lists_saved_profiles(self, qtbot):
        store = CredentialStore()
        store.save_profile(Profile(name="minio", access_key_id="a", secret_access_key="b"))
        tab = ProfilesTab(store)
        qtbot.addWidget(tab)
        assert tab._profile_list.count() == 1
        assert tab._add_btn.text() == "Add Profile..."

    def test_selection_enables_buttons(self, qtbot):
        store = CredentialStore()
        store.save_profile(Profile(name="minio", access_key_id="a", secret_access_key="b"))
        tab = ProfilesTab(store)
        qtbot.addWidget(tab)
        assert not tab._delete_btn.isEnabled()
        tab._profile_list.setCurrentRow(0)
        assert tab._edit_btn.isEnabled()
        assert tab._delete_btn.isEnabled()

    def test_delete_profile(self, qtbot, monkeypatch):
        store = CredentialStore()
        store.save_profile(Profile(name="minio", access_key_id="a", secret_access_key="b"))
        tab = ProfilesTab(store)
        qtbot.addWidget(tab)
        tab._profile_list.setCurrentRow(0)
        monkeypatch.setattr(
            QMessageBox, "question", lambda *a, **k: QMessageBox.StandardButton.Yes
        )

        with qtbot.waitSignal(tab.profile_changed):
            tab._on_delete()
        assert store.list_profiles() == []
        assert tab._profile_list.count() == 0


class TestProfileEditDialog:
    def test_add_saves_profile(self, qtbot):
        store = CredentialStore()
        dialog = ProfileEditDialog(store)
        qtbot.addWidget(dialog)
        assert dialog.windowTitle() == "Add Profile"
        dialog._name_edit.setText("r2")
        dialog._endpoint_edit.setText("https://acct.r2.cloudflarestorage.com")
        dialog._access_key_edit.setText("key")
        dialog._secret_key_edit.setText("secret")
        select_region(dialog._region_combo, "auto")

        dialog._on_accept()
        saved = store.get_profile("r2")
        assert saved.endpoint_url == "https://acct.r2.cloudflarestorage.com"
        assert saved.region == "auto"

    def test_missing_fields_warns(self, qtbot, monkeypatch):
        store = CredentialStore()
        dialog = ProfileEditDialog(store)
        qtbot.addWidget(dialog)
        warnings = []
        monkeypatch.setattr(QMessageBox, "warning", lambda *a, **k: warnings.append(a[1]))
        dialog._name_edit.setText("incomplete")
        dialog._on_accept()
        assert warnings == ["Missing Fields"]
        assert store.list_profiles() == []

    def test_edit_prefills(self, qtbot):
        store = CredentialStore()
        profile = Profile(
            name="minio",
            access_key_id="a",
            secret_access_key="b",
            region="eu-west-1",
            endpoint_url="http://localhost:9000",
        )
        dialog = ProfileEditDialog(store, profile=profile)
        qtbot.addWidget(dialog)
        assert dialog.windowTitle() == "Edit Profile"
        assert dialog._name_edit.isReadOnly()
        assert dialog.build_profile() == profile
