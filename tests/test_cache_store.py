"""Tests for cache/store.py module.

Tests storing, loading, and replacing cached directory trees.
"""

import os
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest

from asset_precompile.cache.diff import snapshot_tree
from asset_precompile.cache.store import ContentCache
from asset_precompile.errors import CacheMissError, StorageError


@pytest.fixture
def app_dir(tmp_path):
    """Create an application with a compiled asset tree."""
    app = tmp_path / "app"
    assets = app / "public" / "assets"
    (assets / "images").mkdir(parents=True)
    (assets / "application.css").write_text("x")
    (assets / "images" / "logo.png").write_bytes(b"\x89PNG")
    return app


@pytest.fixture
def cache(tmp_path, app_dir):
    """Create a cache rooted outside the application."""
    return ContentCache(tmp_path / "cache", app_dir)


class TestEntryPath:
    """Tests for ContentCache.entry_path."""

    def test_nested_key(self, cache, tmp_path):
        """Should map a logical path under the cache root."""
        assert cache.entry_path("public/assets") == tmp_path / "cache" / "public" / "assets"

    @pytest.mark.parametrize("key", ["/etc/passwd", "../outside", "a/../../b", "", ".staging/x"])
    def test_rejects_invalid_keys(self, cache, key):
        """Should reject keys that escape or collide with the cache root."""
        with pytest.raises(StorageError) as exc_info:
            cache.entry_path(key)
        assert exc_info.value.code == "invalid_key"


class TestStore:
    """Tests for ContentCache.store."""

    def test_store_copies_tree(self, cache, app_dir):
        """Should copy the full tree into the cache."""
        entry = cache.store("public/assets")

        assert cache.exists("public/assets")
        assert snapshot_tree(entry) == snapshot_tree(app_dir / "public" / "assets")

    def test_store_replaces_wholesale(self, cache, app_dir):
        """A second store should replace the entry, not merge into it."""
        assets = app_dir / "public" / "assets"
        cache.store("public/assets")

        (assets / "application.css").unlink()
        (assets / "application-v2.css").write_text("y")
        entry = cache.store("public/assets")

        assert not (entry / "application.css").exists()
        assert (entry / "application-v2.css").read_text() == "y"

    def test_store_missing_source(self, cache):
        """Should raise StorageError for a missing source directory."""
        with pytest.raises(StorageError) as exc_info:
            cache.store("app/assets")
        assert exc_info.value.code == "source_missing"

    def test_store_leaves_no_staging(self, cache, tmp_path):
        """Staging directories should be cleaned up."""
        cache.store("public/assets")
        staging = tmp_path / "cache" / ".staging"
        assert not staging.exists() or list(staging.iterdir()) == []

    def test_store_failure_keeps_previous_entry(self, cache, app_dir):
        """A failed copy should leave the previous entry intact."""
        entry = cache.store("public/assets")
        before = snapshot_tree(entry)
        (app_dir / "public" / "assets" / "application.css").write_text("new")

        with patch(
            "asset_precompile.cache.store.shutil.copytree",
            side_effect=OSError("disk full"),
        ), pytest.raises(StorageError) as exc_info:
            cache.store("public/assets")

        assert exc_info.value.code == "store_failed"
        assert snapshot_tree(entry) == before

    def test_failed_swap_restores_previous_entry(self, cache, app_dir):
        """A failed rename of the new tree should put the old entry back."""
        entry = cache.store("public/assets")
        before = snapshot_tree(entry)
        (app_dir / "public" / "assets" / "application.css").write_text("new")
        real_replace = os.replace

        def failing_replace(src, dst):
            if Path(src).name == "tree":
                raise OSError("rename failed")
            return real_replace(src, dst)

        with patch(
            "asset_precompile.cache.store.os.replace",
            side_effect=failing_replace,
        ), pytest.raises(StorageError):
            cache.store("public/assets")

        assert cache.exists("public/assets")
        assert snapshot_tree(entry) == before


class TestLoad:
    """Tests for ContentCache.load."""

    def test_load_missing_entry(self, cache):
        """Should raise CacheMissError when nothing is cached."""
        with pytest.raises(CacheMissError) as exc_info:
            cache.load("public/assets")
        assert exc_info.value.path == "public/assets"
        assert isinstance(exc_info.value, StorageError)

    def test_load_restores_tree(self, cache, app_dir):
        """Should overwrite local contents with the cached tree."""
        assets = app_dir / "public" / "assets"
        cached = snapshot_tree(assets)
        cache.store("public/assets")

        (assets / "application.css").write_text("local edit")
        (assets / "stray.js").write_text("stray")

        cache.load("public/assets")

        assert snapshot_tree(assets) == cached

    def test_load_into_missing_directory(self, cache, app_dir):
        """Should recreate the target directory if it was removed."""
        assets = app_dir / "public" / "assets"
        cached = snapshot_tree(assets)
        cache.store("public/assets")

        shutil.rmtree(assets)

        cache.load("public/assets")
        assert snapshot_tree(assets) == cached

    def test_load_leaves_no_staging(self, cache, app_dir):
        """The scratch directory next to the target should be removed."""
        cache.store("public/assets")
        cache.load("public/assets")

        leftovers = [
            p for p in (app_dir / "public").iterdir() if p.name.startswith(".asset-precompile-")
        ]
        assert leftovers == []

    def test_load_does_not_touch_entry(self, cache, app_dir):
        """Loading should not consume the cache entry."""
        entry = cache.store("public/assets")
        before = snapshot_tree(entry)

        cache.load("public/assets")
        cache.load("public/assets")

        assert snapshot_tree(entry) == before


class TestExists:
    """Tests for ContentCache.exists."""

    def test_exists_false_before_store(self, cache):
        """Should report missing entries."""
        assert cache.exists("public/assets") is False

    def test_exists_true_after_store(self, cache):
        """Should report stored entries."""
        cache.store("public/assets")
        assert cache.exists("public/assets") is True
