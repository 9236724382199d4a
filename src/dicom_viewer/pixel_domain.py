"""Pixel value domains and linear remapping between them.

A frame's stored values can span any integer range (12-bit CT, signed
MR, 8-bit secondary captures). To display them as 8-bit greyscale, the
observed range of a frame is found with :func:`find_bounds` and every
sample is rescaled onto the target domain with :func:`map_value` or its
vectorised form :func:`map_values`.

Both forms use truncating integer division, so the mapping is exact and
deterministic for integer input.
"""

from typing import NamedTuple, Sequence, Union

import numpy as np

from .constants import TARGET_PIXEL_MAX, TARGET_PIXEL_MIN


class Domain(NamedTuple):
    """Closed integer interval ``[min, max]``.

    Ordering is not enforced: a domain with ``max < min`` is inverted and
    maps values in the opposite direction.
    """

    min: int = 0
    max: int = 0


TARGET_PIXEL_DOMAIN = Domain(TARGET_PIXEL_MIN, TARGET_PIXEL_MAX)


class PixelFrame(NamedTuple):
    """One decoded frame.

    ``data`` holds one row per pixel in row-major order, each row carrying
    the pixel's channel values. Only channel 0 is used for rendering.
    """

    rows: int
    cols: int
    data: Union[np.ndarray, Sequence[Sequence[int]]]


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def map_value(value: int, source: Domain, target: Domain) -> int:
    """
    Map a value within ``source`` onto ``target``.

    Values outside ``source`` are clamped to its nearest bound first. A
    single-valued source maps everything to ``target.min``.

    Args:
        value: Value to map
        source: Domain the value was observed in
        target: Domain to map onto

    Returns:
        Mapped integer value
    """
    source_range = source.max - source.min
    if source_range == 0:
        return target.min

    low, high = sorted((source.min, source.max))
    value = min(max(value, low), high)

    target_range = target.max - target.min
    return target.min + _trunc_div(target_range * (value - source.min), source_range)


def map_values(values: np.ndarray, source: Domain, target: Domain) -> np.ndarray:
    """Vectorised :func:`map_value` over an integer array."""
    values = np.asarray(values, dtype=np.int64)
    source_range = source.max - source.min
    if source_range == 0:
        return np.full(values.shape, target.min, dtype=np.int64)

    low, high = sorted((source.min, source.max))
    clamped = np.clip(values, low, high)

    numerator = (target.max - target.min) * (clamped - source.min)
    quotient = np.abs(numerator) // abs(source_range)
    same_sign = (numerator >= 0) == (source_range > 0)
    return target.min + np.where(same_sign, quotient, -quotient)


def find_bounds(frame: PixelFrame) -> Domain:
    """
    Return the domain spanning channel 0 of every pixel in the frame.

    Pixels without channels are skipped. An empty frame, or one whose
    first pixel has no channels, yields ``Domain(0, 0)``.
    """
    data = frame.data
    if len(data) == 0 or len(data[0]) == 0:
        return Domain()

    if isinstance(data, np.ndarray) and data.ndim == 2:
        channel = data[:, 0]
        return Domain(int(channel.min()), int(channel.max()))

    low = high = data[0][0]
    for row in data:
        if len(row) == 0:
            continue
        value = row[0]
        if value < low:
            low = value
        if value > high:
            high = value
    return Domain(int(low), int(high))
