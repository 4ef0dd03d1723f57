"""Tests for key and prefix helpers."""

import pytest

from bucketview.core.paths import (
    basename,
    compose_key,
    normalize_prefix,
    parent_prefix,
    split_prefix,
)


class TestNormalizePrefix:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("", ""),
            ("/", ""),
            ("  ", "  /"),
            (" x/", " x/"),
            ("docs", "docs/"),
            ("docs/", "docs/"),
            ("/docs/2024", "docs/2024/"),
            ("photos/raw ", "photos/raw /"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_prefix(raw) == expected


class TestComposeKey:
    def test_root(self):
        assert compose_key("", "file.txt") == "file.txt"

    def test_nested(self):
        assert compose_key("a/b/", "c.txt") == "a/b/c.txt"

    def test_prefix_without_trailing_slash(self):
        assert compose_key("a/b", "c.txt") == "a/b/c.txt"

    def test_leading_slash_in_name(self):
        assert compose_key("a/", "/c.txt") == "a/c.txt"

    def test_relative_path_name(self):
        assert compose_key("uploads/", "album/cover.png") == "uploads/album/cover.png"

    def test_whitespace_kept(self):
        assert compose_key("docs/", "a.txt ") == "docs/a.txt "
        assert compose_key("", " notes.md") == " notes.md"

    @pytest.mark.parametrize("name", ["", "/", "//"])
    def test_empty_name_rejected(self, name):
        with pytest.raises(ValueError):
            compose_key("a/", name)


class TestParentPrefix:
    def test_root_stays_root(self):
        assert parent_prefix("") == ""

    def test_top_level(self):
        assert parent_prefix("docs/") == ""

    def test_nested(self):
        assert parent_prefix("docs/2024/jan/") == "docs/2024/"


class TestSplitPrefix:
    def test_root_has_no_segments(self):
        assert split_prefix("") == []

    def test_segments_accumulate(self):
        assert split_prefix("a/b/c/") == [("a", "a/"), ("b", "a/b/"), ("c", "a/b/c/")]

    def test_double_slash_skipped(self):
        assert split_prefix("a//b/") == [("a", "a/"), ("b", "a/b/")]


class TestBasename:
    def test_file(self):
        assert basename("a/b/c.txt") == "c.txt"

    def test_folder(self):
        assert basename("a/b/") == "b"

    def test_top_level(self):
        assert basename("c.txt") == "c.txt"
