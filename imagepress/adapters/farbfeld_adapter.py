"""Farbfeld codec written directly against numpy.

Farbfeld is an 8 byte magic, big-endian 32-bit width and height, then
16-bit big-endian RGBA samples row by row.
"""

from __future__ import annotations

import struct

import numpy as np

from imagepress.colorspace import canonical_to_pil, to_rgb_layout
from imagepress.errors import MalformedInput, UnsupportedColorspace
from imagepress.types import BitDepth, CanonicalImage, ColorSpace
from imagepress.utils.vision import to_uint16

MAGIC = b"farbfeld"
HEADER = struct.Struct(">8sII")


def is_farbfeld(data: bytes) -> bool:
    return data[: len(MAGIC)] == MAGIC


class FarbfeldDecoder:
    name = "farbfeld"

    def decode(self, data: bytes) -> CanonicalImage:
        if len(data) < HEADER.size or not is_farbfeld(data):
            raise MalformedInput("farbfeld header is truncated or missing")
        _, width, height = HEADER.unpack_from(data)
        if width == 0 or height == 0:
            raise MalformedInput(f"farbfeld image has empty dimensions {width}x{height}")
        count = width * height * 4
        if len(data) < HEADER.size + count * 2:
            raise MalformedInput(
                f"farbfeld payload holds {len(data) - HEADER.size} bytes, {count * 2} expected"
            )
        samples = np.frombuffer(data, dtype=">u2", count=count, offset=HEADER.size)
        pixels = samples.reshape(height, width, 4).astype(np.uint16)
        return CanonicalImage(
            pixels=pixels,
            colorspace=ColorSpace.RGBA,
            bit_depth=BitDepth.SIXTEEN,
            metadata={"format": "FARBFELD"},
        )


class FarbfeldEncoder:
    name = "farbfeld"

    def to_rgba16(self, image: CanonicalImage) -> np.ndarray:
        colorspace = image.colorspace
        if colorspace == ColorSpace.UNKNOWN:
            raise UnsupportedColorspace("farbfeld cannot store an unknown colorspace")
        if colorspace in (ColorSpace.YCBCR, ColorSpace.CMYK, ColorSpace.YCCK):
            rgba = np.asarray(canonical_to_pil(image).convert("RGBA"))
            return to_uint16(rgba)

        pixels, colorspace = to_rgb_layout(image.pixels, colorspace)
        pixels = to_uint16(pixels)
        if colorspace == ColorSpace.LUMA:
            pixels = np.repeat(pixels, 3, axis=-1)
        if pixels.shape[2] == 3:
            alpha = np.full(pixels.shape[:2] + (1,), 65535, dtype=np.uint16)
            pixels = np.concatenate([pixels, alpha], axis=-1)
        return pixels

    def encode(self, image: CanonicalImage) -> bytes:
        pixels = self.to_rgba16(image)
        header = HEADER.pack(MAGIC, image.width, image.height)
        return header + pixels.astype(">u2").tobytes()
