"""Tests for S3PaneWidget."""

from unittest.mock import MagicMock

from PyQt6.QtWidgets import QMenu

from bucketview.models.s3_objects import ListingPage, S3Item
from bucketview.ui.s3_pane import S3PaneWidget


def _mock_client(page=None):
    """Create a mock S3Client whose listing returns the given page."""
    client = MagicMock()
    client.list_objects_page.return_value = page or ListingPage(prefix="")
    return client


def _make_page(prefix="", token=None):
    return ListingPage(
        prefix=prefix,
        folders=[S3Item(name="docs", key=f"{prefix}docs/", is_prefix=True)],
        files=[
            S3Item(name="readme.txt", key=f"{prefix}readme.txt", is_prefix=False, size=1024),
            S3Item(name="data.csv", key=f"{prefix}data.csv", is_prefix=False, size=2048),
        ],
        continuation_token=token,
        is_truncated=token is not None,
    )


def _connected_pane(qtbot, client=None):
    pane = S3PaneWidget()
    qtbot.addWidget(pane)
    pane.set_client(client or _mock_client())
    pane._bucket = "test-bucket"
    return pane


class TestS3PaneWidget:
    def test_creates_without_error(self, qtbot):
        pane = S3PaneWidget()
        qtbot.addWidget(pane)
        assert pane is not None

    def test_not_connected_state(self, qtbot):
        pane = S3PaneWidget()
        qtbot.addWidget(pane)
        assert pane._connected is False
        assert not pane._table.isVisibleTo(pane)
        assert pane._placeholder.isVisibleTo(pane)

    def test_set_client_connected_state(self, qtbot):
        pane = _connected_pane(qtbot)
        assert pane._connected is True
        assert pane._table.isVisibleTo(pane)
        assert not pane._placeholder.isVisibleTo(pane)

    def test_navigate_without_client_is_noop(self, qtbot):
        pane = S3PaneWidget()
        qtbot.addWidget(pane)
        pane.navigate_to("docs/")
        assert pane.current_prefix() == ""
        assert pane._fetch_id == 0

    def test_fetch_worker_fills_model(self, qtbot):
        client = _mock_client(_make_page())
        pane = _connected_pane(qtbot, client)

        pane.navigate_to("", record_history=False)
        qtbot.waitUntil(lambda: pane.model().item_count() == 3, timeout=5000)

        client.list_objects_page.assert_called_with(
            "test-bucket", "", continuation_token=None, max_keys=pane._page_size
        )
        assert not pane.is_loading()

    def test_navigate_normalizes_prefix(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.navigate_to("docs")
        assert pane.current_prefix() == "docs/"

    def test_page_size_passed_through(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.set_page_size(50)
        assert pane._page_size == 50


class TestPaging:
    def test_first_page_replaces_model(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._model.set_items([S3Item(name="old.txt", key="old.txt", is_prefix=False)])

        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        assert pane._model.item_count() == 3
        assert not pane._model.contains("old.txt")

    def test_token_recorded(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(token="tok-1"), False, pane._fetch_id)
        assert pane.has_more()
        assert pane.continuation_token() == "tok-1"
        assert pane._footer.text().endswith("(more available)")

    def test_last_page_clears_more(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        assert not pane.has_more()
        assert pane.continuation_token() is None
        assert "(more available)" not in pane._footer.text()

    def test_append_adds_rows(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(token="t"), False, pane._fetch_id)
        second = ListingPage(
            prefix="",
            files=[
                S3Item(name="readme.txt", key="readme.txt", is_prefix=False, size=1024),
                S3Item(name="z.bin", key="z.bin", is_prefix=False, size=1),
            ],
        )
        pane._on_page_ready("", second, True, pane._fetch_id)
        # Duplicate key from the earlier page is not listed twice
        assert pane._model.item_count() == 4
        assert pane._model.contains("z.bin")

    def test_stale_page_dropped(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._fetch_id = 5
        pane._loading = True
        pane._on_page_ready("", _make_page(), False, 4)
        assert pane._model.item_count() == 0
        assert pane.is_loading()

    def test_load_more_uses_token(self, qtbot):
        client = _mock_client()
        pane = _connected_pane(qtbot, client)
        pane._on_page_ready("", _make_page(token="next"), False, pane._fetch_id)
        before = pane._fetch_id

        pane.load_more()
        assert pane._fetch_id == before + 1
        assert pane.is_loading()
        qtbot.waitUntil(lambda: client.list_objects_page.called, timeout=5000)
        assert client.list_objects_page.call_args.kwargs["continuation_token"] == "next"

    def test_load_more_without_token_is_noop(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        before = pane._fetch_id
        pane.load_more()
        assert pane._fetch_id == before

    def test_load_more_while_loading_is_noop(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(token="t"), False, pane._fetch_id)
        pane._loading = True
        before = pane._fetch_id
        pane.load_more()
        assert pane._fetch_id == before

    def test_navigate_resets_paging(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(token="t"), False, pane._fetch_id)
        pane.navigate_to("docs/")
        assert pane.continuation_token() is None
        assert not pane.has_more()
        assert pane._model.item_count() == 0

    def test_fetch_error_shows_message(self, qtbot):
        pane = _connected_pane(qtbot)
        messages = []
        pane.status_message.connect(messages.append)
        pane._loading = True
        pane._on_fetch_error("", "Access denied", pane._fetch_id)
        assert not pane.is_loading()
        assert "Access denied" in pane._status_label.text()
        assert messages == ["Error: Access denied"]

    def test_stale_error_ignored(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._fetch_id = 3
        pane._loading = True
        pane._on_fetch_error("", "boom", 2)
        assert pane.is_loading()


class TestNavigation:
    def test_back_forward(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.navigate_to("docs/")
        pane.navigate_to("docs/sub/")
        assert pane.current_prefix() == "docs/sub/"

        pane.go_back()
        assert pane.current_prefix() == "docs/"
        pane.go_back()
        assert pane.current_prefix() == ""
        assert not pane._back_btn.isEnabled()

        pane.go_forward()
        assert pane.current_prefix() == "docs/"
        assert pane._forward_btn.isEnabled()

    def test_navigate_clears_forward(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.navigate_to("a/")
        pane.go_back()
        pane.navigate_to("b/")
        assert pane._history_forward == []

    def test_go_up(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.navigate_to("a/b/c/")
        pane.go_up()
        assert pane.current_prefix() == "a/b/"
        assert pane._up_btn.isEnabled()

    def test_go_up_at_root(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.go_up()
        assert pane.current_prefix() == ""

    def test_set_bucket_resets_history(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.navigate_to("docs/")
        pane.set_bucket("other")
        assert pane.bucket() == "other"
        assert pane.current_prefix() == ""
        assert pane._history_back == []

    def test_directory_changed_emitted(self, qtbot):
        pane = _connected_pane(qtbot)
        with qtbot.waitSignal(pane.directory_changed) as blocker:
            pane.navigate_to("photos/")
        assert blocker.args == ["photos/"]


class TestOptimisticMutations:
    def test_notify_upload_complete(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        pane.notify_upload_complete("new.txt", 10)
        assert pane._model.contains("new.txt")
        assert pane._model.item_count() == 4

    def test_upload_into_subfolder_shows_folder(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        pane.notify_upload_complete("photos/2024/cat.jpg", 10)
        assert pane._model.contains("photos/")
        assert not pane._model.contains("photos/2024/cat.jpg")

    def test_upload_outside_prefix_ignored(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.navigate_to("docs/")
        pane.notify_upload_complete("other/file.txt", 10)
        assert pane._model.item_count() == 0

    def test_notify_delete_complete(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        pane.notify_delete_complete(["readme.txt", "docs/"])
        assert pane._model.item_count() == 1
        assert pane._footer.text() == "1 items, 2.0 KB"

    def test_notify_new_folder(self, qtbot):
        pane = _connected_pane(qtbot)
        pane.navigate_to("docs/")
        pane.notify_new_folder("docs/reports/")
        item = pane._model.get_item(0)
        assert item.is_prefix
        assert item.name == "reports"


class TestFilter:
    def test_filter_by_name(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        pane._search_btn.setChecked(True)
        pane._filter_bar.setText("readme")
        assert pane._proxy.rowCount() == 1
        assert pane._footer.text().startswith("1 of 3 items")

    def test_clear_filter_shows_all(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        pane._search_btn.setChecked(True)
        pane._filter_bar.setText("readme")
        pane._search_btn.setChecked(False)
        assert pane._filter_bar.text() == ""
        assert pane._proxy.rowCount() == 3


class TestContextMenu:
    def _select(self, pane, names):
        pane._table.clearSelection()
        for row in range(pane._proxy.rowCount()):
            idx = pane._proxy.index(row, 0)
            if pane._proxy.data(idx) in names:
                pane._table.selectRow(row)

    def _actions(self, pane):
        menu = QMenu()
        pane._build_context_menu(menu)
        return {a.text(): a for a in menu.actions() if a.text()}

    def test_empty_selection(self, qtbot):
        pane = _connected_pane(qtbot)
        actions = self._actions(pane)
        assert set(actions) == {"Upload Files...", "New Folder", "Refresh"}

    def test_single_file(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._table.setSelectionMode(pane._table.SelectionMode.MultiSelection)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        self._select(pane, {"readme.txt"})
        actions = self._actions(pane)
        assert set(actions) == {
            "Preview",
            "Download",
            "Copy Presigned URL...",
            "Get Info",
            "Delete",
        }

        with qtbot.waitSignal(pane.presign_requested) as blocker:
            actions["Copy Presigned URL..."].trigger()
        assert blocker.args[0].key == "readme.txt"

    def test_folder_only_allows_delete(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._table.setSelectionMode(pane._table.SelectionMode.MultiSelection)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        self._select(pane, {"docs"})
        assert set(self._actions(pane)) == {"Delete"}

    def test_multi_selection_downloads_files_only(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._table.setSelectionMode(pane._table.SelectionMode.MultiSelection)
        pane._on_page_ready("", _make_page(), False, pane._fetch_id)
        self._select(pane, {"docs", "readme.txt", "data.csv"})
        actions = self._actions(pane)
        assert set(actions) == {"Download", "Delete"}

        with qtbot.waitSignal(pane.download_requested) as blocker:
            actions["Download"].trigger()
        assert sorted(i.key for i in blocker.args[0]) == ["data.csv", "readme.txt"]


def _many_files(count):
    return [
        S3Item(name=f"file{i:04d}.txt", key=f"file{i:04d}.txt", is_prefix=False, size=1)
        for i in range(count)
    ]


class TestInfiniteScroll:
    def test_short_first_page_fetches_next(self, qtbot):
        client = _mock_client()
        pane = _connected_pane(qtbot, client)
        pane.resize(800, 600)
        pane.show()
        qtbot.waitExposed(pane)

        pane._on_page_ready("", _make_page(token="next"), False, pane._fetch_id)

        qtbot.waitUntil(lambda: client.list_objects_page.called, timeout=5000)
        assert client.list_objects_page.call_args.kwargs["continuation_token"] == "next"
        qtbot.waitUntil(lambda: not pane.is_loading(), timeout=5000)
        assert not pane.has_more()

    def test_scroll_near_bottom_loads_next_page(self, qtbot):
        client = _mock_client()
        pane = _connected_pane(qtbot, client)
        pane.resize(600, 300)
        pane.show()
        qtbot.waitExposed(pane)

        page = ListingPage(prefix="", files=_many_files(300))
        pane._on_page_ready("", page, False, pane._fetch_id)
        bar = pane._table.verticalScrollBar()
        qtbot.waitUntil(lambda: bar.maximum() > 400, timeout=5000)
        pane._continuation_token = "page-2"
        pane._has_more = True

        bar.setValue(bar.maximum() - 300)
        assert not pane.is_loading()
        assert not client.list_objects_page.called

        bar.setValue(bar.maximum() - 50)
        assert pane.is_loading()
        qtbot.waitUntil(lambda: client.list_objects_page.called, timeout=5000)
        assert client.list_objects_page.call_args.kwargs["continuation_token"] == "page-2"

    def test_scroll_without_more_is_noop(self, qtbot):
        client = _mock_client()
        pane = _connected_pane(qtbot, client)
        pane.resize(600, 300)
        pane.show()
        qtbot.waitExposed(pane)

        page = ListingPage(prefix="", files=_many_files(300))
        pane._on_page_ready("", page, False, pane._fetch_id)
        bar = pane._table.verticalScrollBar()
        qtbot.waitUntil(lambda: bar.maximum() > 400, timeout=5000)

        bar.setValue(bar.maximum())
        assert not pane.is_loading()
        assert not client.list_objects_page.called


class TestWhitespaceKeys:
    def test_double_click_folder_with_leading_space(self, qtbot):
        pane = _connected_pane(qtbot)
        pane._on_page_ready(
            "",
            ListingPage(prefix="", folders=[S3Item(name=" x", key=" x/", is_prefix=True)]),
            False,
            pane._fetch_id,
        )
        pane._on_double_click(pane._proxy.index(0, 0))
        assert pane.current_prefix() == " x/"
