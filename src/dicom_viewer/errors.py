"""Exceptions raised by dicom-viewer."""


class DicomViewerError(Exception):
    """Base class for all dicom-viewer errors."""


class DecodeError(DicomViewerError):
    """The file contents could not be decoded as a DICOM dataset."""


class PixelDataError(DicomViewerError):
    """The dataset pixel data could not be rendered."""


class NoPixelDataError(PixelDataError):
    """The dataset carries no pixel data element."""


class CorruptPixelDataError(PixelDataError):
    """The pixel data element could not be interpreted as frames."""


class NoImagesError(DicomViewerError):
    """The pixel data decoded successfully but contained no frames."""


class NotFoundError(DicomViewerError):
    """No file is stored under the requested identifier."""


class StorageError(DicomViewerError):
    """The storage backend failed to read or write a file."""


class MalformedTagError(DicomViewerError, ValueError):
    """A tag string could not be parsed."""
