"""Native libjpeg adapter: tuned JPEG encoder and raw-colorspace decoder.

Both directions call into libjpeg through Pillow's C extension. The calls
run inside ``IsolatedCall`` so that a library fault on one input surfaces as
``NativeCodecFailure`` and leaves the calling process intact.

Stored colorspaces listed in ``JPEG_FORCED_CONVERSIONS`` are read back in
their target colorspace. Pillow already has libjpeg convert YCCK to CMYK;
the decoder checks the mode it gets and converts when it differs.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np
from PIL import Image

from imagepress.colorspace import (
    CANONICAL_JPEG_COLORSPACES,
    JPEG_COLORSPACES,
    JPEG_FORCED_CONVERSIONS,
    canonical_to_pil,
)
from imagepress.config import JpegDecoderConfig, LibjpegOptions
from imagepress.errors import UnsupportedColorspace, UnsupportedFormat
from imagepress.isolation import IsolatedCall
from imagepress.types import BitDepth, CanonicalImage, ColorSpace
from imagepress.utils.vision import ensure_hwc

logger = logging.getLogger(__name__)

JPEG_SOI = b"\xff\xd8\xff"

# libjpeg colorspace names for what Pillow hands back in each mode.
_PIL_MODE_JPEG_COLORSPACES = {
    "L": "GRAYSCALE",
    "RGB": "RGB",
    "YCbCr": "YCbCr",
    "CMYK": "CMYK",
}

_REQUESTED_COLORSPACES = {
    "ycbcr": "YCbCr",
    "rgb": "RGB",
    "grayscale": "GRAYSCALE",
}

# Input colorspaces libjpeg will not convert to anything else.
_FIXED_OUTPUT_COLORSPACES = ("GRAYSCALE", "CMYK", "YCCK")

_OUTPUT_PIL_MODES = {
    "GRAYSCALE": "L",
    "RGB": "RGB",
    "CMYK": "CMYK",
}

# Chroma block size in pixels -> Pillow subsampling code.
_SUBSAMPLING = {1: 0, 2: 2}


def is_jpeg(data: bytes) -> bool:
    return data[:3] == JPEG_SOI


def stored_colorspace(image: Image.Image) -> str:
    """Infer the colorspace a JPEG file stores, the way libjpeg does."""

    layers = getattr(image, "layers", len(image.getbands()))
    transform = image.info.get("adobe_transform")
    if layers == 1:
        return "GRAYSCALE"
    if layers == 3:
        if "jfif" not in image.info and transform == 0:
            return "RGB"
        return "YCbCr"
    if layers == 4:
        return "YCCK" if transform == 2 else "CMYK"
    return "UNKNOWN"


def forced_mode(stored: str) -> Optional[str]:
    """Pillow mode a stored colorspace must be read back in, if it is forced."""

    target = JPEG_FORCED_CONVERSIONS.get(stored)
    return None if target is None else _OUTPUT_PIL_MODES[target]


def _decompress(data: bytes, raw: bool) -> Tuple[np.ndarray, str, str]:
    with Image.open(io.BytesIO(data)) as image:
        if image.format != "JPEG":
            raise ValueError(f"expected a JPEG stream, found {image.format}")
        stored = stored_colorspace(image)
        if raw and stored == "YCbCr":
            image.draft("YCbCr", image.size)
        image.load()
        target = forced_mode(stored)
        if target is not None and image.mode != target:
            image = image.convert(target)
        output = _PIL_MODE_JPEG_COLORSPACES.get(image.mode, "UNKNOWN")
        pixels = np.array(ensure_hwc(np.asarray(image)), dtype=np.uint8)
    return pixels, stored, output


def _compress(image: Image.Image, mode: str, save_options: Dict[str, Any]) -> bytes:
    if image.mode != mode:
        image = image.convert(mode)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", **save_options)
    return buffer.getvalue()


class JpegDecoder:
    """Decode JPEG data with libjpeg, mapping its colorspaces to canonical."""

    name = "libjpeg-decoder"

    def __init__(self, config: Optional[JpegDecoderConfig] = None) -> None:
        self.config = config or JpegDecoderConfig()
        self._decompress = IsolatedCall(_decompress, codec=self.name)

    def decode(self, data: bytes) -> CanonicalImage:
        if not is_jpeg(data):
            raise UnsupportedFormat("Data does not start with a JPEG SOI marker")
        pixels, stored, output = self._decompress(data, self.config.raw)
        if stored in JPEG_FORCED_CONVERSIONS:
            logger.debug("Stored colorspace %s read back as %s", stored, output)
        colorspace = JPEG_COLORSPACES.get(output, ColorSpace.UNKNOWN)
        return CanonicalImage(
            pixels=pixels,
            colorspace=colorspace,
            bit_depth=BitDepth.EIGHT,
            metadata={"format": "JPEG", "jpeg_colorspace": stored},
        )


class JpegEncoder:
    """Encode with libjpeg using every tunable in ``LibjpegOptions``."""

    name = "libjpeg-encoder"

    def __init__(self, options: Optional[LibjpegOptions] = None) -> None:
        self.options = options or LibjpegOptions()
        self._compress = IsolatedCall(_compress, codec=self.name)

    def output_colorspace(self, input_colorspace: str) -> str:
        """The colorspace libjpeg will write for ``input_colorspace``."""

        requested = _REQUESTED_COLORSPACES[self.options.colorspace]
        if input_colorspace in _FIXED_OUTPUT_COLORSPACES:
            output = JPEG_FORCED_CONVERSIONS.get(input_colorspace, input_colorspace)
            if output != requested:
                logger.warning(
                    "Input colorspace is %s, using %s as output", input_colorspace, output
                )
            return output
        return requested

    def save_options(self, output: str) -> Dict[str, Any]:
        options = self.options
        save_options: Dict[str, Any] = {
            "progressive": options.progressive,
            "optimize": options.optimize_coding,
            "smooth": int(options.smoothing),
        }
        if options.qtables is not None:
            # Tables are already scaled; Pillow must not scale them again.
            save_options["qtables"] = [list(table) for table in options.qtables]
        else:
            save_options["quality"] = int(round(options.quality))
        if output == "RGB":
            save_options["keep_rgb"] = True
        if options.chroma_subsample is not None and output == "YCbCr":
            save_options["subsampling"] = _SUBSAMPLING[options.chroma_subsample]
        if options.trellis_multipass:
            logger.debug("Trellis multipass is only applied by mozjpeg builds of libjpeg")
        return save_options

    def encode(self, image: CanonicalImage) -> bytes:
        native = CANONICAL_JPEG_COLORSPACES[image.colorspace]
        if native == "UNKNOWN":
            raise UnsupportedColorspace("libjpeg cannot encode an unknown colorspace")
        output = self.output_colorspace(native)
        pil_image = canonical_to_pil(image)
        if output == "YCbCr":
            mode = "YCbCr" if pil_image.mode == "YCbCr" else "RGB"
        else:
            mode = _OUTPUT_PIL_MODES[output]
        logger.debug("libjpeg input %s, output %s", native, output)
        return self._compress(pil_image, mode, self.save_options(output))
