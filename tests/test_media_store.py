"""Tests for the media store."""

import io
import os

import pytest

from pushplay.server.media_store import MediaStore, StoreIOError, memory_summary


@pytest.fixture
def store(tmp_path):
    return MediaStore(str(tmp_path / "media"))


class TestSave:
    def test_creates_directory(self, tmp_path):
        MediaStore(str(tmp_path / "new" / "media"))
        assert os.path.isdir(tmp_path / "new" / "media")

    def test_save_keeps_original_name(self, store):
        result = store.save("Holiday 2024.mp4", io.BytesIO(b"abc"))
        assert result == {"name": "Holiday 2024.mp4", "url": "/media/Holiday%202024.mp4"}
        with open(store.path_for("Holiday 2024.mp4"), "rb") as f:
            assert f.read() == b"abc"

    def test_save_overwrites(self, store):
        store.save("a.mp4", io.BytesIO(b"old"))
        store.save("a.mp4", io.BytesIO(b"new"))
        with open(store.path_for("a.mp4"), "rb") as f:
            assert f.read() == b"new"

    def test_path_components_stripped(self, store):
        result = store.save("../../etc/evil.mp4", io.BytesIO(b"x"))
        assert result["name"] == "evil.mp4"
        assert os.path.dirname(store.path_for(result["name"])) == store.media_dir

    def test_windows_path_stripped(self, store):
        assert store.save("C:\\Users\\me\\clip.mp4", io.BytesIO(b"x"))["name"] == "clip.mp4"

    @pytest.mark.parametrize("name", ["", ".", "..", "dir/"])
    def test_invalid_names(self, store, name):
        with pytest.raises(ValueError):
            store.save(name, io.BytesIO(b"x"))

    def test_listener_called(self, store):
        seen = []
        store.add_listener(lambda name, path: seen.append((name, path)))
        store.save("a.mp4", io.BytesIO(b"x"))
        assert seen == [("a.mp4", store.path_for("a.mp4"))]

    def test_broken_listener_does_not_fail_save(self, store):
        def broken(name, path):
            raise RuntimeError("listener bug")

        store.add_listener(broken)
        assert store.save("a.mp4", io.BytesIO(b"x"))["name"] == "a.mp4"

    def test_write_failure(self, store, monkeypatch):
        def broken_open(*args, **kwargs):
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr("pushplay.server.media_store.open", broken_open, raising=False)
        with pytest.raises(StoreIOError):
            store.save("a.mp4", io.BytesIO(b"x"))


class TestListAndDelete:
    def test_list_sorted(self, store):
        for name in ("c.mp4", "a.mp4", "b.mp4"):
            store.save(name, io.BytesIO(b"x"))
        assert [f["name"] for f in store.list_files()] == ["a.mp4", "b.mp4", "c.mp4"]

    def test_list_ignores_directories(self, store):
        os.makedirs(os.path.join(store.media_dir, "subdir"))
        assert store.list_files() == []

    def test_list_missing_directory(self, store):
        os.rmdir(store.media_dir)
        with pytest.raises(StoreIOError):
            store.list_files()

    def test_delete(self, store):
        store.save("a.mp4", io.BytesIO(b"x"))
        store.delete("a.mp4")
        assert store.list_files() == []

    def test_delete_missing(self, store):
        with pytest.raises(StoreIOError):
            store.delete("ghost.mp4")


class TestMemory:
    def test_format(self):
        free, total = memory_summary().split(" / ")
        assert int(free.removesuffix(" MB")) <= int(total.removesuffix(" MB"))
