"""Mappings between codec pixel taxonomies and the canonical colorspaces.

Every adapter goes through this module: Pillow reports layouts as mode
strings, libjpeg as ``J_COLOR_SPACE`` names and the array codecs as plain
channel counts. The tables are read-only; unmapped native layouts resolve to
``ColorSpace.UNKNOWN`` and the decision about what to do with them is left
to whoever consumes the image.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from imagepress.errors import UnsupportedColorspace
from imagepress.types import BitDepth, CanonicalImage, ColorSpace
from imagepress.utils.vision import (
    ensure_hwc,
    flatten_to_u8,
    normalize_unit_range,
    reorder_channels,
)

logger = logging.getLogger(__name__)

PIL_MODE_COLORSPACES = MappingProxyType(
    {
        "L": (ColorSpace.LUMA, BitDepth.EIGHT),
        "I;16": (ColorSpace.LUMA, BitDepth.SIXTEEN),
        "F": (ColorSpace.LUMA, BitDepth.FLOAT32),
        "RGB": (ColorSpace.RGB, BitDepth.EIGHT),
        "RGBA": (ColorSpace.RGBA, BitDepth.EIGHT),
        "CMYK": (ColorSpace.CMYK, BitDepth.EIGHT),
        "YCbCr": (ColorSpace.YCBCR, BitDepth.EIGHT),
    }
)

# Modes whose raw buffers are not a canonical layout. Palette images are
# special-cased: they expand to RGB unless they carry transparency.
PIL_FORCED_CONVERSIONS = MappingProxyType(
    {
        "1": "L",
        "P": "RGBA",
        "PA": "RGBA",
        "LA": "RGBA",
        "RGBa": "RGBA",
        "RGBX": "RGB",
        "I": "I;16",
        "I;16B": "I",
        "I;16L": "I",
        "I;16N": "I",
    }
)

JPEG_COLORSPACES = MappingProxyType(
    {
        "GRAYSCALE": ColorSpace.LUMA,
        "RGB": ColorSpace.RGB,
        "YCbCr": ColorSpace.YCBCR,
        "CMYK": ColorSpace.CMYK,
        "YCCK": ColorSpace.YCCK,
        "EXT_RGB": ColorSpace.RGB,
        "EXT_RGBX": ColorSpace.RGBA,
        "EXT_BGR": ColorSpace.BGR,
        "EXT_BGRX": ColorSpace.BGRA,
        "EXT_XBGR": ColorSpace.UNKNOWN,
        "EXT_XRGB": ColorSpace.UNKNOWN,
        "EXT_RGBA": ColorSpace.RGBA,
        "EXT_BGRA": ColorSpace.BGRA,
        "EXT_ABGR": ColorSpace.UNKNOWN,
        "EXT_ARGB": ColorSpace.ARGB,
        "RGB565": ColorSpace.UNKNOWN,
        "UNKNOWN": ColorSpace.UNKNOWN,
    }
)

CANONICAL_JPEG_COLORSPACES = MappingProxyType(
    {
        ColorSpace.RGB: "RGB",
        ColorSpace.RGBA: "EXT_RGBA",
        ColorSpace.YCBCR: "YCbCr",
        ColorSpace.LUMA: "GRAYSCALE",
        ColorSpace.YCCK: "YCCK",
        ColorSpace.CMYK: "CMYK",
        ColorSpace.BGR: "EXT_BGR",
        ColorSpace.BGRA: "EXT_BGRA",
        ColorSpace.ARGB: "EXT_ARGB",
        ColorSpace.UNKNOWN: "UNKNOWN",
    }
)

# libjpeg colorspaces that cannot be handed back as raw scanlines; the
# decoder asks the library for the listed colorspace instead.
JPEG_FORCED_CONVERSIONS = MappingProxyType({"YCCK": "CMYK"})

# Channel orders that turn the BGR/ARGB families into RGB(A).
_RGB_ORDERS = MappingProxyType(
    {
        ColorSpace.BGR: (ColorSpace.RGB, (2, 1, 0)),
        ColorSpace.BGRA: (ColorSpace.RGBA, (2, 1, 0, 3)),
        ColorSpace.ARGB: (ColorSpace.RGBA, (1, 2, 3, 0)),
    }
)


def colorspace_for_channels(channels: int) -> ColorSpace:
    """Canonical colorspace of an interleaved array with ``channels`` samples."""

    return {1: ColorSpace.LUMA, 3: ColorSpace.RGB, 4: ColorSpace.RGBA}.get(
        channels, ColorSpace.UNKNOWN
    )


def normalize_pil_mode(image: Image.Image) -> Image.Image:
    """Convert ``image`` until its mode is one we can read raw."""

    for _ in range(len(PIL_FORCED_CONVERSIONS)):
        mode = image.mode
        if mode not in PIL_FORCED_CONVERSIONS:
            return image
        target = PIL_FORCED_CONVERSIONS[mode]
        if mode == "P" and "transparency" not in image.info:
            target = "RGB"
        logger.debug("Converting Pillow mode %s to %s", mode, target)
        image = image.convert(target)
    return image


def pil_to_canonical(image: Image.Image) -> CanonicalImage:
    """Build a canonical image from a loaded Pillow image.

    Mode ``F`` samples outside [0, 1] are rescaled by the image's own range.
    """

    image = normalize_pil_mode(image)
    colorspace, bit_depth = PIL_MODE_COLORSPACES.get(image.mode, (ColorSpace.UNKNOWN, None))
    pixels = ensure_hwc(np.asarray(image))
    if bit_depth is None:
        bit_depth = BitDepth.from_dtype(pixels.dtype)
    if bit_depth == BitDepth.FLOAT32:
        pixels = normalize_unit_range(pixels)
    pixels = np.ascontiguousarray(pixels.astype(bit_depth.dtype, copy=False))
    return CanonicalImage(pixels=pixels, colorspace=colorspace, bit_depth=bit_depth)


def array_to_canonical(array: np.ndarray) -> CanonicalImage:
    """Build a canonical image from an interleaved array codec output."""

    pixels = ensure_hwc(np.asarray(array))
    if pixels.dtype.kind == "f":
        pixels = normalize_unit_range(pixels)
    if pixels.shape[2] == 2:
        # Gray + alpha has no canonical layout of its own.
        gray, alpha = pixels[..., 0], pixels[..., 1]
        pixels = np.stack([gray, gray, gray, alpha], axis=-1)
    bit_depth = BitDepth.from_dtype(pixels.dtype)
    colorspace = colorspace_for_channels(pixels.shape[2])
    return CanonicalImage(
        pixels=np.ascontiguousarray(pixels), colorspace=colorspace, bit_depth=bit_depth
    )


def to_rgb_layout(pixels: np.ndarray, colorspace: ColorSpace) -> Tuple[np.ndarray, ColorSpace]:
    """Reorder the BGR/ARGB families to RGB(A); other layouts pass through."""

    if colorspace in _RGB_ORDERS:
        target, order = _RGB_ORDERS[colorspace]
        return reorder_channels(pixels, order), target
    return pixels, colorspace


def ycck_to_cmyk(pixels: np.ndarray) -> np.ndarray:
    """Undo the Adobe YCCK transform on 8-bit samples."""

    ycc = Image.frombytes("YCbCr", (pixels.shape[1], pixels.shape[0]), pixels[..., :3].tobytes())
    rgb = np.asarray(ycc.convert("RGB"))
    cmy = 255 - rgb
    return np.ascontiguousarray(np.concatenate([cmy, pixels[..., 3:4]], axis=-1))


def canonical_to_pil(image: CanonicalImage, keep_16bit: bool = False) -> Image.Image:
    """Build a Pillow image from a canonical image.

    Args:
        image: The canonical image.
        keep_16bit: Keep 16-bit luma as ``I;16`` instead of flattening.

    Raises:
        UnsupportedColorspace: For ``UNKNOWN`` layouts.
    """

    size = (image.width, image.height)
    colorspace = image.colorspace
    if colorspace == ColorSpace.UNKNOWN:
        raise UnsupportedColorspace(
            f"Cannot hand an image with unknown {image.channels}-channel layout to Pillow"
        )
    if colorspace == ColorSpace.LUMA and keep_16bit and image.bit_depth == BitDepth.SIXTEEN:
        return Image.frombytes("I;16", size, image.pixels[..., 0].astype("<u2").tobytes())

    pixels, colorspace = to_rgb_layout(flatten_to_u8(image.pixels), colorspace)
    if colorspace == ColorSpace.YCCK:
        pixels, colorspace = ycck_to_cmyk(pixels), ColorSpace.CMYK
    mode = pil_mode_for(colorspace)
    if mode == "L":
        pixels = pixels[..., 0]
    return Image.frombytes(mode, size, np.ascontiguousarray(pixels).tobytes())


def pil_mode_for(colorspace: ColorSpace) -> Optional[str]:
    """The 8-bit Pillow mode holding ``colorspace`` samples as-is."""

    for mode, (candidate, bit_depth) in PIL_MODE_COLORSPACES.items():
        if candidate == colorspace and bit_depth == BitDepth.EIGHT:
            return mode
    return None
