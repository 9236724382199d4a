"""dicom-viewer - Store, render and inspect DICOM files over HTTP."""

from .dicom_file import DicomFile, decode_dataset
from .errors import (
    DicomViewerError,
    DecodeError,
    PixelDataError,
    NoPixelDataError,
    CorruptPixelDataError,
    NoImagesError,
    NotFoundError,
    StorageError,
    MalformedTagError,
)
from .image_utils import generate_images, render_frame, encode_png
from .pixel_domain import Domain, PixelFrame, TARGET_PIXEL_DOMAIN, find_bounds, map_value, map_values
from .storage import FileStore, LocalFileStore, ObjectFileStore, open_store

__version__ = "0.1.0"
__all__ = [
    "DicomFile",
    "decode_dataset",
    "DicomViewerError",
    "DecodeError",
    "PixelDataError",
    "NoPixelDataError",
    "CorruptPixelDataError",
    "NoImagesError",
    "NotFoundError",
    "StorageError",
    "MalformedTagError",
    "generate_images",
    "render_frame",
    "encode_png",
    "Domain",
    "PixelFrame",
    "TARGET_PIXEL_DOMAIN",
    "find_bounds",
    "map_value",
    "map_values",
    "FileStore",
    "LocalFileStore",
    "ObjectFileStore",
    "open_store",
]
