"""A stored DICOM file with a read-through cache for parsing and rendering."""

import logging
import threading
from io import BytesIO
from typing import BinaryIO, Callable, Dict, Iterable, List, Optional, Union

import pydicom
from PIL import Image
from pydicom.tag import BaseTag, Tag

from .attributes import parse_tag
from .errors import DecodeError, NoImagesError
from .image_utils import generate_images

logger = logging.getLogger(__name__)

Decoder = Callable[[bytes, int], pydicom.Dataset]
TagLike = Union[BaseTag, int, str, tuple]


def decode_dataset(data: bytes, size: int) -> pydicom.Dataset:
    """Parse ``size`` bytes of DICOM file contents with pydicom."""
    return pydicom.dcmread(BytesIO(data[:size]))


class _ReadThroughCache:
    """Cache cell shared by every handle on the same logical file."""

    def __init__(self):
        self.dataset: Optional[pydicom.Dataset] = None
        self.images: Dict[bool, List[Image.Image]] = {}
        self.dataset_lock = threading.Lock()
        self.images_lock = threading.Lock()


class DicomFile:
    """A DICOM file held in memory.

    Parsing and rendering are deferred until first requested and then
    cached for the lifetime of the instance. Shallow copies share the
    cache, and concurrent callers wait for a single parse or render.
    """

    def __init__(
        self,
        file_id: str,
        size: int,
        content: BinaryIO,
        decoder: Decoder = decode_dataset,
    ):
        """
        Initialize a DICOM file.

        Parameters
        ----------
        file_id : str
            Identifier the file is stored under
        size : int
            Length of the contents in bytes
        content : BinaryIO
            Seekable byte stream with the file contents
        decoder : callable, optional
            ``decoder(data, size)`` returning a pydicom Dataset
        """
        self.file_id = file_id
        self._size = size
        self._content = content
        self._decoder = decoder
        self._cache = _ReadThroughCache()

    @property
    def size(self) -> int:
        return self._size

    def raw(self) -> BinaryIO:
        """Return the content stream rewound to its start."""
        self._content.seek(0)
        return self._content

    def read_bytes(self) -> bytes:
        return self.raw().read()

    def dataset(self) -> pydicom.Dataset:
        """
        Return the parsed dataset, decoding it on first use.

        Raises
        ------
        DecodeError
            If the contents cannot be decoded
        """
        cache = self._cache
        with cache.dataset_lock:
            if cache.dataset is None:
                cache.dataset = self._decode()
            return cache.dataset

    def _decode(self) -> pydicom.Dataset:
        data = self.read_bytes()
        if len(data) != self._size:
            raise DecodeError(
                f"file {self.file_id} has {len(data)} bytes, expected {self._size}"
            )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Decoding file {self.file_id} ({self._size} bytes)")
        try:
            return self._decoder(data, self._size)
        except Exception as e:
            raise DecodeError(f"failed to decode file {self.file_id}: {e}") from e

    def images(self, remap: bool = True) -> List[Image.Image]:
        """Return every frame rendered as greyscale, rendering on first use."""
        cache = self._cache
        with cache.images_lock:
            if remap not in cache.images:
                cache.images[remap] = generate_images(self.dataset(), remap)
            return cache.images[remap]

    def image(self, remap: bool = True) -> Image.Image:
        """
        Return the first frame rendered as greyscale.

        Parameters
        ----------
        remap : bool, default True
            Stretch the frame's value range onto 0-255 for visibility

        Raises
        ------
        NoImagesError
            If the pixel data holds no frames
        """
        images = self.images(remap)
        if not images:
            raise NoImagesError(f"file {self.file_id} does not contain any images")
        return images[0]

    def find_elements(self, tags: Iterable[TagLike]) -> Dict[str, Optional[pydicom.DataElement]]:
        """
        Look up elements by tag.

        Every requested tag gets an entry keyed by its canonical string
        form; tags missing from the dataset map to ``None``.
        """
        dataset = self.dataset()
        elements = {}
        for tag in tags:
            tag = parse_tag(tag) if isinstance(tag, str) else Tag(tag)
            elements[str(tag)] = _find_element(dataset, tag)
        return elements

    def all_elements(self) -> Dict[str, pydicom.DataElement]:
        """Return every element, file meta included, keyed by tag."""
        dataset = self.dataset()
        elements = {}
        file_meta = getattr(dataset, "file_meta", None)
        if file_meta is not None:
            for element in file_meta:
                elements[str(element.tag)] = element
        for element in dataset:
            elements[str(element.tag)] = element
        return elements

    def __repr__(self) -> str:
        return f"DicomFile(id='{self.file_id}', size={self._size})"


def _find_element(dataset: pydicom.Dataset, tag: BaseTag) -> Optional[pydicom.DataElement]:
    if tag.group == 0x0002:
        file_meta = getattr(dataset, "file_meta", None)
        if file_meta is None:
            return None
        return file_meta.get(tag)
    return dataset.get(tag)
