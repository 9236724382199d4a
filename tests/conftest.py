from io import BytesIO

import numpy as np
import pytest
from pydicom.dataset import Dataset, FileMetaDataset
from pydicom.uid import ExplicitVRLittleEndian, SecondaryCaptureImageStorage, generate_uid


def make_image_dataset(frames, signed: bool = False) -> Dataset:
    """Build a 16-bit MONOCHROME2 dataset from one frame or a list of frames."""
    frames = np.asarray(frames)
    if frames.ndim == 2:
        frames = frames[np.newaxis, ...]
    frame_count, rows, cols = frames.shape
    instance_uid = generate_uid()

    ds = Dataset()
    ds.file_meta = FileMetaDataset()
    ds.file_meta.TransferSyntaxUID = ExplicitVRLittleEndian
    ds.file_meta.MediaStorageSOPClassUID = SecondaryCaptureImageStorage
    ds.file_meta.MediaStorageSOPInstanceUID = instance_uid

    ds.SOPClassUID = SecondaryCaptureImageStorage
    ds.SOPInstanceUID = instance_uid
    ds.PatientName = "Test^Patient"
    ds.Modality = "OT"
    ds.Rows = rows
    ds.Columns = cols
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = "MONOCHROME2"
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelRepresentation = 1 if signed else 0
    if frame_count > 1:
        ds.NumberOfFrames = frame_count
    ds.PixelData = frames.astype("<i2" if signed else "<u2").tobytes()
    return ds


def dataset_to_bytes(ds: Dataset) -> bytes:
    buffer = BytesIO()
    ds.save_as(buffer, enforce_file_format=True)
    return buffer.getvalue()


@pytest.fixture
def image_dataset():
    return make_image_dataset([[0, 1], [3, 4]])


@pytest.fixture
def dicom_bytes(image_dataset):
    return dataset_to_bytes(image_dataset)
