"""Utility helpers for sample-depth conversion and channel layout."""

from typing import Sequence

import numpy as np


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Convert float images in [0, 1] to uint8."""

    image = np.clip(image, 0.0, 1.0)
    return (image * 255).round().astype("uint8")


def normalize_unit_range(image: np.ndarray) -> np.ndarray:
    """Rescale float samples into [0, 1] when they fall outside it.

    Samples already inside [0, 1] are kept as they are. Anything else is
    stretched by its own minimum and maximum; a constant image maps to 0.
    """

    image = np.nan_to_num(image.astype("float32"), nan=0.0, posinf=0.0, neginf=0.0)
    if image.size == 0:
        return image
    low, high = float(image.min()), float(image.max())
    if low >= 0.0 and high <= 1.0:
        return image
    if high == low:
        return np.zeros_like(image)
    return (image - low) / (high - low)


def to_uint16(image: np.ndarray) -> np.ndarray:
    """Widen uint8 samples to uint16, mapping 255 to 65535."""

    if image.dtype == np.uint16:
        return image.copy()
    if image.dtype == np.uint8:
        return image.astype("uint16") * 257
    image = np.clip(image, 0.0, 1.0)
    return (image * 65535).round().astype("uint16")


def flatten_to_u8(image: np.ndarray) -> np.ndarray:
    """Return an 8-bit copy of ``image`` whatever its sample depth.

    Args:
        image: Array of uint8, uint16 or float32 samples (floats in [0, 1]).

    Returns:
        A new uint8 array with the same shape.
    """

    if image.dtype == np.uint8:
        return image.copy()
    if image.dtype == np.uint16:
        # Rounded division by 257 maps 0..65535 onto 0..255 exactly.
        return ((image.astype("uint32") + 128) // 257).astype("uint8")
    return to_uint8(image)


def ensure_hwc(image: np.ndarray) -> np.ndarray:
    """Give 2-D arrays a trailing channel axis."""

    if image.ndim == 2:
        return image[..., None]
    return image


def reorder_channels(image: np.ndarray, order: Sequence[int]) -> np.ndarray:
    """Pick channels of an HxWxC array in ``order``."""

    return np.ascontiguousarray(image[..., list(order)])
