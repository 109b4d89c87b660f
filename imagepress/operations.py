"""Index-ordered transform operations on canonical images.

``build_pipeline`` turns the operation occurrences of a ``CommandConfig``
into a mapping from argument-slot index to operation. Indices come from the
argument parser and are unique across every operation kind, so applying the
mapping in ascending index order replays the flags exactly as the user
interleaved them on the command line.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from imagepress.config import CommandConfig
from imagepress.errors import OperationApplicationError, PipelineError
from imagepress.types import BitDepth, CanonicalImage, ColorSpace
from imagepress.utils.vision import ensure_hwc

logger = logging.getLogger(__name__)

_RESIZE_PATTERNS = (
    ("exact", re.compile(r"^(\d+)x(\d+)$")),
    ("width", re.compile(r"^(\d+)w$")),
    ("height", re.compile(r"^(\d+)h$")),
    ("percent", re.compile(r"^(\d+(?:\.\d+)?)%$")),
    ("multiplier", re.compile(r"^@(\d+(?:\.\d+)?)$")),
)


@dataclass(frozen=True)
class ResizeValue:
    """A resize target, absolute or relative to the image dimensions.

    Accepted forms: ``WxH`` (exact), ``Nw`` / ``Nh`` (one side, aspect ratio
    kept), ``N%`` (percentage) and ``@F`` (multiplier).
    """

    kind: str
    first: float
    second: Optional[float] = None

    @classmethod
    def parse(cls, text: str) -> "ResizeValue":
        text = str(text).strip()
        for kind, pattern in _RESIZE_PATTERNS:
            match = pattern.match(text)
            if match is None:
                continue
            values = [float(group) for group in match.groups()]
            if any(value <= 0 for value in values):
                raise ValueError(f"Resize value must be positive: {text!r}")
            return cls(kind, *values)
        raise ValueError(f"Invalid resize value {text!r}")

    def map_dimensions(self, width: int, height: int) -> Tuple[int, int]:
        """Target (width, height) for an image of ``width`` x ``height``."""

        if self.kind == "exact":
            target = (self.first, self.second)
        elif self.kind == "width":
            target = (self.first, height * self.first / width)
        elif self.kind == "height":
            target = (width * self.first / height, self.first)
        else:
            factor = self.first / 100.0 if self.kind == "percent" else self.first
            target = (width * factor, height * factor)
        return tuple(max(int(round(value)), 1) for value in target)

    def __str__(self) -> str:
        if self.kind == "exact":
            return f"{self.first:g}x{self.second:g}"
        suffix = {"width": "w", "height": "h", "percent": "%"}.get(self.kind)
        if suffix is None:
            return f"@{self.first:g}"
        return f"{self.first:g}{suffix}"


class ResizeFilter(Enum):
    POINT = "point"
    BILINEAR = "bilinear"
    BICUBIC = "bicubic"
    CATMULL_ROM = "catmull-rom"
    MITCHELL = "mitchell"
    AREA = "area"
    LANCZOS3 = "lanczos3"

    @property
    def interpolation(self) -> int:
        return _INTERPOLATIONS[self]

    @classmethod
    def parse(cls, name: Optional[str]) -> "ResizeFilter":
        if name is None:
            return cls.LANCZOS3
        try:
            return cls(name.lower())
        except ValueError:
            known = ", ".join(item.value for item in cls)
            raise ValueError(f"Unknown resize filter {name!r}; known: {known}") from None


# OpenCV has one cubic kernel; the cubic family all map onto it.
_INTERPOLATIONS = {
    ResizeFilter.POINT: cv2.INTER_NEAREST,
    ResizeFilter.BILINEAR: cv2.INTER_LINEAR,
    ResizeFilter.BICUBIC: cv2.INTER_CUBIC,
    ResizeFilter.CATMULL_ROM: cv2.INTER_CUBIC,
    ResizeFilter.MITCHELL: cv2.INTER_CUBIC,
    ResizeFilter.AREA: cv2.INTER_AREA,
    ResizeFilter.LANCZOS3: cv2.INTER_LANCZOS4,
}


@dataclass(frozen=True)
class Resize:
    width: int
    height: int
    filter: ResizeFilter = ResizeFilter.LANCZOS3


@dataclass(frozen=True)
class Quantize:
    """Reduce to a palette of ``colors`` entries.

    Attributes:
        colors: Palette size, 2-256.
        dithering: Dithering strength in [0, 1]; ``None`` uses full strength.
    """

    colors: int
    dithering: Optional[float] = None

    @property
    def strength(self) -> float:
        return 1.0 if self.dithering is None else self.dithering


Operation = Union[Resize, Quantize]


def _resize_operation(value, filter: ResizeFilter, dimensions: Tuple[int, int]) -> Resize:
    try:
        resize_value = value if isinstance(value, ResizeValue) else ResizeValue.parse(value)
    except ValueError as exc:
        raise PipelineError(str(exc)) from exc
    width, height = resize_value.map_dimensions(*dimensions)
    return Resize(width=width, height=height, filter=filter)


def _quantize_operation(value, dithering: Optional[int]) -> Quantize:
    try:
        colors = int(value)
    except (TypeError, ValueError) as exc:
        raise PipelineError(f"Invalid palette size {value!r}") from exc
    if not 2 <= colors <= 256:
        raise PipelineError(f"Palette size must be between 2 and 256, got {colors}")
    strength = None
    if dithering is not None:
        if not 0 <= dithering <= 100:
            raise PipelineError(f"Dithering must be between 0 and 100, got {dithering}")
        strength = dithering / 100.0
    return Quantize(colors=colors, dithering=strength)


def build_pipeline(config: CommandConfig, dimensions: Tuple[int, int]) -> Dict[int, Operation]:
    """Build the index -> operation mapping for ``config``.

    Args:
        config: Resolved command configuration.
        dimensions: (width, height) that relative resize targets resolve
            against.

    Returns:
        A dict whose iteration order is ascending argument-slot index.

    Raises:
        PipelineError: An occurrence value or shared setting is invalid.
    """

    operations: Dict[int, Operation] = {}

    resizes = config.occurrences("resize")
    if resizes:
        try:
            resize_filter = ResizeFilter.parse(config.resize_filter)
        except ValueError as exc:
            raise PipelineError(str(exc)) from exc
        for occurrence in resizes:
            logger.debug("Setup resize %s on index %d", occurrence.value, occurrence.index)
            operations[occurrence.index] = _resize_operation(
                occurrence.value, resize_filter, dimensions
            )

    for occurrence in config.occurrences("quantization"):
        logger.debug("Setup quantization %s on index %d", occurrence.value, occurrence.index)
        operations[occurrence.index] = _quantize_operation(occurrence.value, config.dithering)

    return dict(sorted(operations.items()))


def _apply_resize(image: CanonicalImage, operation: Resize) -> None:
    resized = cv2.resize(
        image.pixels,
        (operation.width, operation.height),
        interpolation=operation.filter.interpolation,
    )
    image.replace_pixels(ensure_hwc(resized))


# Normalized 8x8 Bayer matrix, thresholds centred on zero.
_BAYER_8 = np.array(
    [
        [0, 32, 8, 40, 2, 34, 10, 42],
        [48, 16, 56, 24, 50, 18, 58, 26],
        [12, 44, 4, 36, 14, 46, 6, 38],
        [60, 28, 52, 20, 62, 30, 54, 22],
        [3, 35, 11, 43, 1, 33, 9, 41],
        [51, 19, 59, 27, 49, 17, 57, 25],
        [15, 47, 7, 39, 13, 45, 5, 37],
        [63, 31, 55, 23, 61, 29, 53, 21],
    ],
    dtype=np.float32,
)
_BAYER_8 = (_BAYER_8 + 0.5) / 64.0 - 0.5


# Pixels per distance block; with 256 entries a block needs about 25 MB.
_PALETTE_CHUNK = 8192


def _nearest_palette(
    rgb: np.ndarray, palette: np.ndarray, chunk: int = _PALETTE_CHUNK
) -> np.ndarray:
    flat = rgb.reshape(-1, 3)
    indices = np.empty(flat.shape[0], dtype=np.intp)
    palette = palette.astype(np.float32)
    for start in range(0, flat.shape[0], chunk):
        block = flat[start : start + chunk]
        distances = ((block[:, None, :] - palette[None, :, :]) ** 2).sum(axis=-1)
        indices[start : start + chunk] = distances.argmin(axis=1)
    return indices.reshape(rgb.shape[:2])


def _apply_quantize(image: CanonicalImage, operation: Quantize) -> None:
    if image.bit_depth != BitDepth.EIGHT or image.colorspace not in (
        ColorSpace.RGB,
        ColorSpace.RGBA,
    ):
        raise OperationApplicationError(
            f"Quantization needs 8-bit RGB or RGBA, image is "
            f"{image.bit_depth.name} {image.colorspace.name}"
        )
    rgb = image.pixels[..., :3]
    palette_image = Image.fromarray(np.ascontiguousarray(rgb), "RGB").quantize(
        colors=operation.colors,
        method=Image.Quantize.MEDIANCUT,
        dither=Image.Dither.NONE,
    )
    palette = np.array(palette_image.getpalette(), dtype=np.uint8).reshape(-1, 3)
    palette = palette[: operation.colors]

    samples = rgb.astype(np.float32)
    if operation.strength > 0:
        height, width = rgb.shape[:2]
        tiled = np.tile(_BAYER_8, (height // 8 + 1, width // 8 + 1))[:height, :width]
        spread = 255.0 / np.cbrt(len(palette))
        samples = np.clip(samples + (tiled * spread * operation.strength)[..., None], 0, 255)

    quantized = palette[_nearest_palette(samples, palette)]
    if image.colorspace.has_alpha:
        quantized = np.concatenate([quantized, image.pixels[..., 3:4]], axis=-1)
    image.replace_pixels(quantized)


def apply_operation(image: CanonicalImage, operation: Operation) -> None:
    """Apply one operation in place; on failure ``image`` is left as it was."""

    if isinstance(operation, Resize):
        _apply_resize(image, operation)
    elif isinstance(operation, Quantize):
        _apply_quantize(image, operation)
    else:
        raise TypeError(f"Unknown operation {operation!r}")


def apply_operations(image: CanonicalImage, operations: Dict[int, Operation]) -> CanonicalImage:
    for index in sorted(operations):
        operation = operations[index]
        logger.debug("Applying %s at index %d", type(operation).__name__, index)
        apply_operation(image, operation)
    return image

