from io import BytesIO
from pathlib import Path

import pytest
from obstore.store import MemoryStore

from dicom_viewer.dicom_file import DicomFile
from dicom_viewer.errors import NotFoundError, StorageError
from dicom_viewer.storage import (
    LocalFileStore,
    ObjectFileStore,
    get_storage_directory,
    open_store,
)


def make_file(file_id: str, data: bytes) -> DicomFile:
    return DicomFile(file_id, len(data), BytesIO(data))


@pytest.fixture(params=["local", "object"])
def store(request, tmp_path):
    if request.param == "local":
        return LocalFileStore(tmp_path / "files")
    return ObjectFileStore(MemoryStore())


class TestFileStore:
    """Behaviour shared by every storage backend."""

    def test_list_before_any_create_is_empty(self, store):
        assert store.list() == []

    def test_get_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.get("does-not-exist")

    def test_create_then_get(self, store, dicom_bytes):
        store.create(make_file("abc", dicom_bytes))

        dicom_file = store.get("abc")

        assert dicom_file.file_id == "abc"
        assert dicom_file.size == len(dicom_bytes)
        assert dicom_file.read_bytes() == dicom_bytes
        assert dicom_file.dataset().PatientName == "Test^Patient"

    def test_create_writes_full_contents_after_partial_read(self, store):
        dicom_file = make_file("abc", b"0123456789")
        dicom_file.raw().read(4)

        store.create(dicom_file)

        assert store.get("abc").read_bytes() == b"0123456789"

    def test_list_returns_created_ids(self, store):
        store.create(make_file("b", b"2"))
        store.create(make_file("a", b"1"))

        assert store.list() == ["a", "b"]

    def test_create_overwrites_existing(self, store):
        store.create(make_file("abc", b"old"))
        store.create(make_file("abc", b"new contents"))

        assert store.get("abc").read_bytes() == b"new contents"
        assert store.list() == ["abc"]

    @pytest.mark.parametrize("file_id", ["", "..", "a/b", "..\\evil"])
    def test_rejects_path_like_ids(self, store, file_id):
        with pytest.raises(NotFoundError):
            store.get(file_id)
        with pytest.raises(StorageError):
            store.create(make_file(file_id, b"data"))


class TestLocalFileStore:
    """Tests specific to the local directory backend."""

    def test_creates_directory_on_first_use(self, tmp_path):
        root = tmp_path / "nested" / "files"
        store = LocalFileStore(root)
        assert not root.exists()

        store.create(make_file("abc", b"data"))

        assert (root / "abc").read_bytes() == b"data"
        assert root.stat().st_mode & 0o777 == 0o700

    def test_get_directory_is_not_found(self, tmp_path):
        (tmp_path / "subdir").mkdir()

        with pytest.raises(NotFoundError):
            LocalFileStore(tmp_path).get("subdir")

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")

        with pytest.raises(StorageError):
            LocalFileStore(blocker / "files").create(make_file("abc", b"data"))


class TestObjectFileStore:
    """Tests specific to object storage."""

    def test_file_url_to_missing_directory(self, tmp_path):
        store = open_store((tmp_path / "never").as_uri())

        assert store.list() == []
        with pytest.raises(NotFoundError):
            store.get("missing")

    def test_file_url_create_then_get(self, tmp_path):
        store = open_store((tmp_path / "objects").as_uri())

        store.create(make_file("abc", b"contents"))

        assert store.list() == ["abc"]
        assert store.get("abc").read_bytes() == b"contents"

    def test_invalid_url_raises_storage_error(self):
        with pytest.raises(StorageError):
            open_store("s3://")


class TestStorageDirectory:
    """Tests for storage location resolution."""

    def test_cli_argument_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DICOM_VIEWER_STORAGE_DIR", "/from/env")

        assert get_storage_directory(str(tmp_path)) == tmp_path

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv("DICOM_VIEWER_STORAGE_DIR", "/from/env")

        assert get_storage_directory() == Path("/from/env")

    def test_default_location(self, monkeypatch):
        monkeypatch.delenv("DICOM_VIEWER_STORAGE_DIR", raising=False)

        path = get_storage_directory()

        assert path.name == "files"
        assert "dicom-viewer" in str(path)


def test_open_store_selects_backend(tmp_path):
    assert isinstance(open_store(str(tmp_path)), LocalFileStore)
    assert isinstance(open_store("memory://"), ObjectFileStore)
