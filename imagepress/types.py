"""Shared type definitions for the compression pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple

import numpy as np

from imagepress.utils.vision import flatten_to_u8


class ColorSpace(Enum):
    """Canonical pixel layouts understood by every adapter."""

    LUMA = "luma"
    RGB = "rgb"
    RGBA = "rgba"
    BGR = "bgr"
    BGRA = "bgra"
    ARGB = "argb"
    YCBCR = "ycbcr"
    YCCK = "ycck"
    CMYK = "cmyk"
    UNKNOWN = "unknown"

    @property
    def channels(self) -> Optional[int]:
        return _CHANNELS[self]

    @property
    def has_alpha(self) -> bool:
        return self in (ColorSpace.RGBA, ColorSpace.BGRA, ColorSpace.ARGB)


_CHANNELS = {
    ColorSpace.LUMA: 1,
    ColorSpace.RGB: 3,
    ColorSpace.RGBA: 4,
    ColorSpace.BGR: 3,
    ColorSpace.BGRA: 4,
    ColorSpace.ARGB: 4,
    ColorSpace.YCBCR: 3,
    ColorSpace.YCCK: 4,
    ColorSpace.CMYK: 4,
    ColorSpace.UNKNOWN: None,
}


class BitDepth(Enum):
    """Per-channel sample depth."""

    EIGHT = "u8"
    SIXTEEN = "u16"
    FLOAT32 = "f32"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(_DTYPES[self])

    @classmethod
    def from_dtype(cls, dtype: Any) -> "BitDepth":
        dtype = np.dtype(dtype)
        for depth, name in _DTYPES.items():
            if dtype == np.dtype(name):
                return depth
        raise ValueError(f"No bit depth for dtype {dtype}")


_DTYPES = {
    BitDepth.EIGHT: "uint8",
    BitDepth.SIXTEEN: "uint16",
    BitDepth.FLOAT32: "float32",
}


@dataclass
class CanonicalImage:
    """The decoded image every operation and encoder works on.

    Pixels are stored interleaved as an ``H x W x C`` array owned by this
    object. The buffer always matches the declared colorspace and bit depth;
    a mismatch is a programming error and raises ``ValueError``.
    """

    pixels: np.ndarray
    colorspace: ColorSpace
    bit_depth: BitDepth
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._validate(self.pixels)

    def _validate(self, pixels: np.ndarray) -> None:
        if pixels.ndim != 3:
            raise ValueError(f"Expected an HxWxC buffer, got shape {pixels.shape}")
        height, width, channels = pixels.shape
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        if pixels.dtype != self.bit_depth.dtype:
            raise ValueError(
                f"Buffer dtype {pixels.dtype} does not match bit depth {self.bit_depth.name}"
            )
        expected = self.colorspace.channels
        if expected is not None and channels != expected:
            raise ValueError(
                f"{self.colorspace.name} needs {expected} channels, buffer has {channels}"
            )

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])

    @property
    def dimensions(self) -> Tuple[int, int]:
        """(width, height)."""

        return self.width, self.height

    def flatten_to_u8(self) -> np.ndarray:
        """Return an 8-bit interleaved copy of the pixels."""

        return flatten_to_u8(self.pixels)

    def replace_pixels(
        self,
        pixels: np.ndarray,
        colorspace: Optional[ColorSpace] = None,
        bit_depth: Optional[BitDepth] = None,
    ) -> None:
        """Swap in a fully computed buffer, validating it first."""

        colorspace = colorspace or self.colorspace
        bit_depth = bit_depth or self.bit_depth
        candidate = CanonicalImage(pixels, colorspace, bit_depth)
        self.pixels = np.ascontiguousarray(candidate.pixels)
        self.colorspace = colorspace
        self.bit_depth = bit_depth


class Encoder(Protocol):
    """Anything the encoder configurator can hand back."""

    name: str

    def encode(self, image: CanonicalImage) -> bytes:
        ...
