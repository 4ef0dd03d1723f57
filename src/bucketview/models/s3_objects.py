"""Listing data structures and the Qt table model for the object browser."""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from PyQt6.QtCore import QAbstractTableModel, QModelIndex, Qt
from PyQt6.QtWidgets import QFileIconProvider

logger = logging.getLogger("bucketview.s3_objects")


@dataclass
class S3Item:
    """A single object or virtual folder (common prefix) in a listing."""

    name: str
    key: str
    is_prefix: bool
    size: int | None = None
    last_modified: datetime | None = None
    storage_class: str | None = None
    etag: str | None = None
    content_type: str | None = None  # only filled by HeadObject


@dataclass
class Bucket:
    name: str
    creation_date: datetime | None = None


@dataclass
class ListingPage:
    """One ListObjectsV2 response, split into folders and files."""

    prefix: str
    folders: list[S3Item] = field(default_factory=list)
    files: list[S3Item] = field(default_factory=list)
    continuation_token: str | None = None
    is_truncated: bool = False

    @property
    def items(self) -> list[S3Item]:
        return self.folders + self.files

    @property
    def has_more(self) -> bool:
        return self.is_truncated and bool(self.continuation_token)


@dataclass
class ObjectInfo:
    """Object properties from HeadObject plus its tag set."""

    key: str
    size: int = 0
    content_type: str | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    storage_class: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)


def _sort_key(item: S3Item) -> tuple[int, str]:
    """Sort key: prefixes first (0), then objects (1), alphabetical by name."""
    return (0 if item.is_prefix else 1, item.name.lower())


def format_size(size_bytes: int | None) -> str:
    """Format bytes into human-readable string."""
    if size_bytes is None:
        return ""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024**3):.1f} GB"


def format_date(dt: datetime | None) -> str:
    """Format datetime into human-readable string."""
    if dt is None:
        return ""
    now = datetime.now(UTC)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    delta = now - dt
    if delta.total_seconds() < 0:
        return dt.strftime("%b %d, %Y")
    if delta.total_seconds() < 60:
        return "Just now"
    if delta.total_seconds() < 3600:
        mins = int(delta.total_seconds() / 60)
        return f"{mins} minute{'s' if mins != 1 else ''} ago"
    if delta.total_seconds() < 86400:
        hours = int(delta.total_seconds() / 3600)
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    if dt.year == now.year:
        return dt.strftime("%b %d")
    return dt.strftime("%b %d, %Y")


def format_timestamp(dt: datetime | None) -> str:
    """Absolute timestamp for detail views."""
    if dt is None:
        return "-"
    return dt.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


# Column indices
COL_NAME = 0
COL_SIZE = 1
COL_MODIFIED = 2

_COLUMN_HEADERS = ["Name", "Size", "Last Modified"]
_COLUMN_COUNT = len(_COLUMN_HEADERS)

# Role used by the proxy model so that size and date sort numerically
SORT_ROLE = Qt.ItemDataRole.UserRole + 1


class S3ObjectModel(QAbstractTableModel):
    """Table model for one prefix of a bucket, filled page by page."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._items: list[S3Item] = []
        self._keys: set[str] = set()
        self._icon_provider = QFileIconProvider()

    # --- Qt model interface ---

    _EMPTY_INDEX = QModelIndex()

    def rowCount(self, parent: QModelIndex = _EMPTY_INDEX) -> int:
        if parent.isValid():
            return 0
        return len(self._items)

    def columnCount(self, parent: QModelIndex = _EMPTY_INDEX) -> int:
        if parent.isValid():
            return 0
        return _COLUMN_COUNT

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid() or index.row() >= len(self._items):
            return None

        item = self._items[index.row()]
        col = index.column()

        if role == Qt.ItemDataRole.DisplayRole:
            if col == COL_NAME:
                return item.name
            elif col == COL_SIZE:
                if item.is_prefix:
                    return ""
                return format_size(item.size)
            elif col == COL_MODIFIED:
                return format_date(item.last_modified)
            return None

        if role == SORT_ROLE:
            folder_rank = 0 if item.is_prefix else 1
            if col == COL_SIZE:
                return float(item.size or 0) if not item.is_prefix else -1.0
            if col == COL_MODIFIED:
                return item.last_modified.timestamp() if item.last_modified else 0.0
            return f"{folder_rank}{item.name.lower()}"

        if role == Qt.ItemDataRole.DecorationRole and col == COL_NAME:
            if item.is_prefix:
                return self._icon_provider.icon(QFileIconProvider.IconType.Folder)
            return self._icon_provider.icon(QFileIconProvider.IconType.File)

        if role == Qt.ItemDataRole.ToolTipRole and col == COL_NAME:
            return item.key

        if role == Qt.ItemDataRole.TextAlignmentRole:
            if col == COL_SIZE:
                return Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter
            return Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter

        if role == Qt.ItemDataRole.UserRole:
            return item

        return None

    def headerData(
        self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole
    ):
        if (
            orientation == Qt.Orientation.Horizontal
            and role == Qt.ItemDataRole.DisplayRole
            and 0 <= section < _COLUMN_COUNT
        ):
            return _COLUMN_HEADERS[section]
        return None

    def flags(self, index: QModelIndex) -> Qt.ItemFlag:
        base = super().flags(index)
        if index.isValid():
            return base | Qt.ItemFlag.ItemIsSelectable
        return base

    # --- Data access ---

    def get_item(self, row: int) -> S3Item | None:
        """Get item at row index."""
        if 0 <= row < len(self._items):
            return self._items[row]
        return None

    def total_size(self) -> int:
        """Sum of all object sizes (folders count as zero)."""
        return sum(item.size or 0 for item in self._items if not item.is_prefix)

    def item_count(self) -> int:
        return len(self._items)

    def items(self) -> list[S3Item]:
        """Return a copy of the current items list."""
        return list(self._items)

    def contains(self, key: str) -> bool:
        return key in self._keys

    # --- Bulk operations ---

    def set_items(self, items: list[S3Item]) -> None:
        """Replace all items with a fresh first page."""
        unique: dict[str, S3Item] = {}
        for item in items:
            unique.setdefault(item.key, item)
        self.beginResetModel()
        self._items = sorted(unique.values(), key=_sort_key)
        self._keys = set(unique)
        self.endResetModel()

    def append_items(self, items: list[S3Item]) -> int:
        """Append a follow-up page, skipping keys already listed.

        Returns the number of rows actually added.
        """
        fresh = []
        seen = set(self._keys)
        for item in items:
            if item.key in seen:
                continue
            seen.add(item.key)
            fresh.append(item)
        if not fresh:
            return 0
        start = len(self._items)
        end = start + len(fresh) - 1
        self.beginInsertRows(QModelIndex(), start, end)
        self._items.extend(fresh)
        self._keys = seen
        self.endInsertRows()
        logger.debug("Appended %d of %d items", len(fresh), len(items))
        return len(fresh)

    def clear(self) -> None:
        """Remove all items."""
        if not self._items:
            return
        self.beginResetModel()
        self._items.clear()
        self._keys.clear()
        self.endResetModel()

    # --- Granular mutation methods ---

    def insert_item(self, item: S3Item) -> int:
        """Insert item in sorted position. Returns the row index (-1 if already present)."""
        if item.key in self._keys:
            return -1
        key = _sort_key(item)
        keys = [_sort_key(i) for i in self._items]
        row = bisect.bisect_left(keys, key)
        self.beginInsertRows(QModelIndex(), row, row)
        self._items.insert(row, item)
        self._keys.add(item.key)
        self.endInsertRows()
        return row

    def update_item(self, item_key: str, **fields) -> bool:
        """Update fields on an existing item. Emits dataChanged for that row only."""
        for row, item in enumerate(self._items):
            if item.key == item_key:
                for name, value in fields.items():
                    if hasattr(item, name):
                        setattr(item, name, value)
                self.dataChanged.emit(self.index(row, 0), self.index(row, _COLUMN_COUNT - 1))
                return True
        return False

    def remove_items(self, keys: set[str]) -> int:
        """Batch remove items by keys. Removes highest index first. Returns count removed."""
        rows_to_remove = [row for row, item in enumerate(self._items) if item.key in keys]
        if not rows_to_remove:
            return 0
        for row in reversed(rows_to_remove):
            self.beginRemoveRows(QModelIndex(), row, row)
            removed = self._items.pop(row)
            self._keys.discard(removed.key)
            self.endRemoveRows()
        return len(rows_to_remove)
