from io import BytesIO

import numpy as np
import pytest
from PIL import Image
from pydicom.dataset import Dataset

from conftest import make_image_dataset
from dicom_viewer.errors import CorruptPixelDataError, NoPixelDataError
from dicom_viewer.image_utils import encode_png, extract_frames, generate_images, render_frame
from dicom_viewer.pixel_domain import Domain, PixelFrame


class TestRenderFrame:
    """Tests for rendering a single decoded frame."""

    def test_remaps_to_full_byte_range(self):
        frame = PixelFrame(2, 2, [[0], [1], [3], [4]])
        image = render_frame(frame, remap=True)

        assert image.mode == "L"
        assert image.size == (2, 2)
        assert list(image.tobytes()) == [0, 63, 191, 255]

    def test_layout_is_row_major(self):
        frame = PixelFrame(2, 3, [[0], [1], [2], [3], [4], [5]])
        image = render_frame(frame, remap=False)

        assert image.size == (3, 2)
        assert image.getpixel((2, 0)) == 2
        assert image.getpixel((0, 1)) == 3

    def test_without_remap_keeps_low_byte(self):
        frame = PixelFrame(1, 4, np.array([[10], [256], [300], [-1]]))
        image = render_frame(frame, remap=False)

        assert list(image.tobytes()) == [10, 0, 44, 255]

    def test_ignores_extra_channels(self):
        frame = PixelFrame(1, 2, np.array([[0, 500], [10, -500]]))
        image = render_frame(frame, remap=True)

        assert list(image.tobytes()) == [0, 255]

    def test_custom_target_domain(self):
        frame = PixelFrame(1, 3, [[0], [5], [10]])
        image = render_frame(frame, remap=True, target=Domain(100, 200))

        assert list(image.tobytes()) == [100, 150, 200]

    def test_uniform_frame_renders_black(self):
        frame = PixelFrame(1, 3, [[42], [42], [42]])
        image = render_frame(frame, remap=True)

        assert list(image.tobytes()) == [0, 0, 0]

    def test_zero_sized_frame(self):
        image = render_frame(PixelFrame(0, 0, []), remap=True)

        assert image.size == (0, 0)

    def test_short_data_leaves_remaining_pixels_black(self):
        frame = PixelFrame(2, 2, [[0], [4]])
        image = render_frame(frame, remap=True)

        assert list(image.tobytes()) == [0, 255, 0, 0]


class TestGenerateImages:
    """Tests for rendering every frame of a dataset."""

    def test_missing_pixel_data(self):
        ds = Dataset()
        ds.PatientName = "No^Pixels"

        with pytest.raises(NoPixelDataError):
            generate_images(ds)

    def test_empty_dataset(self):
        with pytest.raises(NoPixelDataError):
            generate_images(Dataset())

    def test_pixel_data_without_value_is_corrupt(self):
        ds = make_image_dataset([[0, 1], [3, 4]])
        ds.PixelData = None

        with pytest.raises(CorruptPixelDataError):
            generate_images(ds)

    def test_truncated_pixel_data_is_corrupt(self):
        ds = make_image_dataset([[0, 1], [3, 4]])
        ds.PixelData = b"\x00\x01\x02"

        with pytest.raises(CorruptPixelDataError):
            generate_images(ds)

    def test_zero_frames_returns_empty_list(self):
        ds = make_image_dataset([[0, 1], [3, 4]])
        ds.NumberOfFrames = 0
        ds.PixelData = b""

        assert generate_images(ds) == []

    def test_single_frame(self, image_dataset):
        images = generate_images(image_dataset, remap=True)

        assert len(images) == 1
        assert images[0].size == (2, 2)
        assert list(images[0].tobytes()) == [0, 63, 191, 255]

    def test_frames_are_remapped_independently(self):
        ds = make_image_dataset([
            [[0, 10], [20, 40]],
            [[1000, 1000], [2000, 3000]],
        ])

        images = generate_images(ds, remap=True, max_workers=2)

        assert len(images) == 2
        assert list(images[0].tobytes()) == [0, 63, 127, 255]
        assert list(images[1].tobytes()) == [0, 0, 127, 255]

    def test_signed_values(self):
        ds = make_image_dataset([[-1024, 0], [1024, 3071]], signed=True)

        image = generate_images(ds, remap=True)[0]

        assert list(image.tobytes()) == [0, 63, 127, 255]

    def test_without_remap(self):
        ds = make_image_dataset([[0, 255], [256, 511]])

        image = generate_images(ds, remap=False)[0]

        assert list(image.tobytes()) == [0, 255, 0, 255]


def test_extract_frames_shapes(image_dataset):
    frames = extract_frames(image_dataset)

    assert len(frames) == 1
    assert frames[0].rows == 2
    assert frames[0].cols == 2
    assert frames[0].data.shape == (4, 1)


def test_encode_png_round_trips_pixels():
    image = render_frame(PixelFrame(1, 2, [[0], [9]]))
    data = encode_png(image)

    assert data.startswith(b"\x89PNG")
    decoded = Image.open(BytesIO(data))
    assert list(decoded.tobytes()) == [0, 255]
