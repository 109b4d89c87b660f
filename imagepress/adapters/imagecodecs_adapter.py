"""imagecodecs adapter for codecs Pillow does not ship by default."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import numpy as np

from imagepress.colorspace import array_to_canonical, canonical_to_pil
from imagepress.errors import EncodeError, MalformedInput, UnsupportedFormat
from imagepress.types import CanonicalImage

logger = logging.getLogger(__name__)


def _codec_function(codec: str, direction: str):
    """Return ``imagecodecs.<codec>_<direction>``, importing lazily."""

    import imagecodecs

    function = getattr(imagecodecs, f"{codec}_{direction}", None)
    if function is None:
        raise ImportError(f"imagecodecs was built without {codec} support")
    return function


class ImagecodecsDecoder:
    """Decode one imagecodecs format into a canonical image."""

    def __init__(self, codec: str) -> None:
        self.codec = codec
        self.name = f"imagecodecs-{codec}"

    def decode(self, data: bytes) -> CanonicalImage:
        try:
            decode = _codec_function(self.codec, "decode")
            array = decode(data)
        except ImportError as exc:
            raise UnsupportedFormat(f"{self.codec} decoding is not available: {exc}") from exc
        except Exception as exc:
            raise MalformedInput(f"{self.codec} data is invalid: {exc}") from exc
        try:
            image = array_to_canonical(array)
        except ValueError as exc:
            raise MalformedInput(f"{self.codec} produced an unsupported layout: {exc}") from exc
        image.metadata["format"] = self.codec.upper()
        logger.debug("Decoded %s %dx%d", self.codec, image.width, image.height)
        return image


class ImagecodecsEncoder:
    """Encode a canonical image with one imagecodecs format.

    Args:
        codec: imagecodecs codec prefix (``avif``, ``jpegxl``, ``qoi``).
        options: Keyword arguments for ``<codec>_encode``.
        keep_luma: Pass single-channel images through instead of expanding
            them to RGB.
    """

    def __init__(
        self, codec: str, options: Optional[Dict[str, Any]] = None, keep_luma: bool = True
    ) -> None:
        self.codec = codec
        self.name = f"imagecodecs-{codec}"
        self.options = dict(options or {})
        self.keep_luma = keep_luma

    def to_array(self, image: CanonicalImage) -> np.ndarray:
        pil_image = canonical_to_pil(image)
        if pil_image.mode == "L" and self.keep_luma:
            return np.asarray(pil_image)
        if pil_image.mode not in ("RGB", "RGBA"):
            pil_image = pil_image.convert("RGB")
        return np.ascontiguousarray(np.asarray(pil_image))

    def encode(self, image: CanonicalImage) -> bytes:
        array = self.to_array(image)
        try:
            encode = _codec_function(self.codec, "encode")
            return bytes(encode(array, **self.options))
        except ImportError as exc:
            raise EncodeError(f"{self.codec} encoding is not available: {exc}") from exc
        except Exception as exc:
            raise EncodeError(f"{self.codec} encoder failed: {exc}") from exc
