"""
Persistent stores for uploaded DICOM files.

Files are stored as raw bytes keyed by identifier. Two backends are
provided: a flat local directory and object storage through obstore.

Local storage directory resolution (in order of precedence):
1. --storage-dir CLI argument
2. DICOM_VIEWER_STORAGE_DIR environment variable
3. Default: {platformdirs.user_data_dir("dicom-viewer")}/files/
"""

from __future__ import annotations

import abc
import logging
import os
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from obstore.exceptions import NotFoundError as ObjectNotFoundError
from obstore.store import from_url
from platformdirs import user_data_dir

from .constants import APP_NAME, STORAGE_DIR_ENV_VAR
from .dicom_file import DicomFile
from .errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

_URL_SCHEMES = ("s3://", "gs://", "az://", "abfs://", "http://", "https://", "file://", "memory://")


def get_storage_directory(cli_arg: Optional[str] = None) -> Path:
    """
    Resolve the local storage directory with fallback chain.

    Args:
        cli_arg: Optional directory from --storage-dir CLI argument

    Returns:
        Resolved Path to the storage directory
    """
    if cli_arg:
        return Path(cli_arg)

    env_var = os.environ.get(STORAGE_DIR_ENV_VAR)
    if env_var:
        return Path(env_var)

    return Path(user_data_dir(APP_NAME)) / "files"


def is_valid_file_id(file_id: str) -> bool:
    """Identifiers must be a single path segment."""
    return bool(file_id) and file_id not in (".", "..") and "/" not in file_id and "\\" not in file_id


class FileStore(abc.ABC):
    """A persistent store of DICOM files keyed by identifier."""

    @abc.abstractmethod
    def list(self) -> list[str]:
        """Return the identifiers of every stored file."""

    @abc.abstractmethod
    def get(self, file_id: str) -> DicomFile:
        """
        Return the file stored under ``file_id``.

        Raises:
            NotFoundError: If no such file exists
            StorageError: If the backend fails
        """

    @abc.abstractmethod
    def create(self, file: DicomFile) -> None:
        """
        Store the full contents of ``file`` under its identifier.

        An existing file with the same identifier is overwritten.

        Raises:
            StorageError: If the backend fails
        """


class LocalFileStore(FileStore):
    """Store files as plain files in a single local directory."""

    def __init__(self, root: Union[str, Path, None] = None):
        self.root = Path(root) if root else get_storage_directory()

    def _path_for(self, file_id: str) -> Path:
        return self.root / file_id

    def list(self) -> list[str]:
        if not self.root.exists():
            return []
        try:
            return sorted(entry.name for entry in self.root.iterdir() if entry.is_file())
        except OSError as e:
            raise StorageError(f"failed to list {self.root}: {e}") from e

    def get(self, file_id: str) -> DicomFile:
        if not is_valid_file_id(file_id):
            raise NotFoundError(f"file {file_id} was not found")

        path = self._path_for(file_id)
        try:
            data = path.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFoundError(f"file {file_id} was not found") from e
        except OSError as e:
            raise StorageError(f"failed to read file {file_id}: {e}") from e

        # Keep the contents in memory so no file handle outlives this call
        return DicomFile(file_id, len(data), BytesIO(data))

    def create(self, file: DicomFile) -> None:
        if not is_valid_file_id(file.file_id):
            raise StorageError(f"invalid file id: {file.file_id!r}")

        data = file.read_bytes()
        try:
            self.root.mkdir(mode=0o700, parents=True, exist_ok=True)
            self._path_for(file.file_id).write_bytes(data)
        except OSError as e:
            raise StorageError(f"failed to write file {file.file_id}: {e}") from e

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Stored file {file.file_id} ({len(data)} bytes) in {self.root}")

    def __repr__(self) -> str:
        return f"LocalFileStore(root='{self.root}')"


class ObjectFileStore(FileStore):
    """Store files in S3, GCS, Azure, HTTP, or in-memory object storage."""

    def __init__(self, store):
        """
        Args:
            store: obstore store instance, or a URL to build one from
        """
        if isinstance(store, str):
            self.url = store
            try:
                store = self._init_store(store)
            except Exception as e:
                raise StorageError(f"failed to open object store {self.url}: {e}") from e
        else:
            self.url = None
        self.store = store

    @staticmethod
    def _init_store(url: str):
        if url.startswith("memory://"):
            from obstore.store import MemoryStore
            return MemoryStore()
        if url.startswith("file://"):
            from obstore.store import LocalStore
            return LocalStore.from_url(url, mkdir=True)
        return from_url(url)

    def list(self) -> list[str]:
        try:
            file_ids = []
            for batch in self.store.list():
                for obj in batch:
                    path = obj.get("path") if isinstance(obj, dict) else str(obj)
                    file_ids.append(path)
            return sorted(file_ids)
        except (FileNotFoundError, ObjectNotFoundError):
            return []
        except Exception as e:
            raise StorageError(f"failed to list objects: {e}") from e

    def get(self, file_id: str) -> DicomFile:
        if not is_valid_file_id(file_id):
            raise NotFoundError(f"file {file_id} was not found")

        try:
            data = bytes(self.store.get(file_id).bytes())
        except (FileNotFoundError, ObjectNotFoundError) as e:
            raise NotFoundError(f"file {file_id} was not found") from e
        except Exception as e:
            raise StorageError(f"failed to read file {file_id}: {e}") from e

        return DicomFile(file_id, len(data), BytesIO(data))

    def create(self, file: DicomFile) -> None:
        if not is_valid_file_id(file.file_id):
            raise StorageError(f"invalid file id: {file.file_id!r}")

        try:
            self.store.put(file.file_id, file.read_bytes())
        except Exception as e:
            raise StorageError(f"failed to write file {file.file_id}: {e}") from e

    def __repr__(self) -> str:
        return f"ObjectFileStore(url='{self.url}')"


def open_store(location: Optional[str] = None) -> FileStore:
    """
    Open the store for a storage location.

    URLs with an object storage scheme use :class:`ObjectFileStore`;
    anything else is treated as a local directory.
    """
    if location and location.startswith(_URL_SCHEMES):
        return ObjectFileStore(location)
    return LocalFileStore(get_storage_directory(location))
