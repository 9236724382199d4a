"""Render DICOM pixel data into 8-bit greyscale images."""

import logging
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from typing import List, Optional

import numpy as np
import pydicom
from PIL import Image
from pydicom.tag import Tag

from .constants import DEFAULT_MAX_WORKERS
from .errors import CorruptPixelDataError, NoPixelDataError
from .pixel_domain import (
    TARGET_PIXEL_DOMAIN,
    Domain,
    PixelFrame,
    find_bounds,
    map_values,
)

logger = logging.getLogger(__name__)

PIXEL_DATA_TAG = Tag(0x7FE0, 0x0010)


def _first_channel(data) -> np.ndarray:
    """Channel 0 of every pixel, with 0 for pixels that carry no channels."""
    if isinstance(data, np.ndarray) and data.ndim == 2:
        if data.shape[1] == 0:
            return np.zeros(data.shape[0], dtype=np.int64)
        return data[:, 0].astype(np.int64)
    return np.array([row[0] if len(row) > 0 else 0 for row in data], dtype=np.int64)


def render_frame(
    frame: PixelFrame,
    remap: bool = True,
    target: Domain = TARGET_PIXEL_DOMAIN,
) -> Image.Image:
    """
    Render a single frame as a mode ``L`` image of ``cols`` x ``rows``.

    With ``remap`` the frame's own value range is stretched onto
    ``target``. Without it, raw values are truncated to their low byte.

    Args:
        frame: Decoded frame
        remap: Whether to rescale values onto ``target``
        target: Output value domain

    Returns:
        PIL Image
    """
    size = frame.rows * frame.cols
    if size <= 0:
        return Image.new("L", (max(frame.cols, 0), max(frame.rows, 0)))

    values = _first_channel(frame.data)
    count = min(size, len(values))
    values = values[:count]

    if remap and count:
        values = map_values(values, find_bounds(frame), target)

    pixels = np.zeros(size, dtype=np.int64)
    pixels[:count] = values
    buffer = (pixels & 0xFF).astype(np.uint8)
    return Image.frombytes("L", (frame.cols, frame.rows), buffer.tobytes())


def _split_frames(pixel_array: np.ndarray, dataset: pydicom.Dataset) -> List[PixelFrame]:
    """Reshape a decoded pixel array into per-frame pixel matrices."""
    frame_count = int(dataset.get("NumberOfFrames", 1) or 1)
    samples = int(dataset.get("SamplesPerPixel", 1) or 1)

    array = np.asarray(pixel_array)
    if frame_count == 1:
        array = array[np.newaxis, ...]
    if samples == 1:
        array = array[..., np.newaxis]
    if array.ndim != 4:
        raise ValueError(f"Unexpected pixel array shape {np.shape(pixel_array)}")

    _, rows, cols, channels = array.shape
    return [
        PixelFrame(rows, cols, frame.reshape(rows * cols, channels))
        for frame in array
    ]


def extract_frames(dataset: pydicom.Dataset) -> List[PixelFrame]:
    """
    Decode the dataset pixel data into frames.

    Raises:
        NoPixelDataError: If the dataset has no pixel data element
        CorruptPixelDataError: If the pixel data cannot be decoded
    """
    if PIXEL_DATA_TAG not in dataset:
        raise NoPixelDataError("dataset does not contain a pixel data element")

    element = dataset[PIXEL_DATA_TAG]
    if element.value is None:
        raise CorruptPixelDataError("failed to get pixel data info for DICOM file")

    number_of_frames = dataset.get("NumberOfFrames")
    if len(element.value) == 0 or (number_of_frames is not None and int(number_of_frames) == 0):
        return []

    # Decoding failures can surface from deep inside the pixel handlers
    try:
        return _split_frames(dataset.pixel_array, dataset)
    except Exception as e:
        raise CorruptPixelDataError(
            f"failed to get pixel data info for DICOM file: {e}"
        ) from e


def generate_images(
    dataset: pydicom.Dataset,
    remap: bool = True,
    max_workers: Optional[int] = None,
) -> List[Image.Image]:
    """
    Render every frame of a dataset as an 8-bit greyscale image.

    Frames are independent, so multi-frame payloads are rendered on a
    thread pool. The result keeps frame order and is empty when the pixel
    data holds no frames.

    Args:
        dataset: Decoded DICOM dataset
        remap: Rescale each frame's value range onto 0-255
        max_workers: Thread pool size for multi-frame payloads

    Returns:
        List of PIL Images, one per frame

    Raises:
        NoPixelDataError: If the dataset has no pixel data element
        CorruptPixelDataError: If the pixel data cannot be decoded
    """
    frames = extract_frames(dataset)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Rendering {len(frames)} frame(s), remap={remap}")

    if len(frames) <= 1:
        return [render_frame(frame, remap) for frame in frames]

    workers = min(len(frames), max_workers or DEFAULT_MAX_WORKERS)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(lambda frame: render_frame(frame, remap), frames))


def encode_png(image: Image.Image) -> bytes:
    """Encode an image as PNG bytes."""
    buffer = BytesIO()
    image.save(buffer, "PNG")
    return buffer.getvalue()
