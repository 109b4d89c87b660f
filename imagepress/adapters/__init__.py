"""Adapters for external codec libraries."""

from imagepress.adapters.farbfeld_adapter import FarbfeldDecoder, FarbfeldEncoder
from imagepress.adapters.imagecodecs_adapter import ImagecodecsDecoder, ImagecodecsEncoder
from imagepress.adapters.jpeg_adapter import JpegDecoder, JpegEncoder
from imagepress.adapters.pillow_adapter import PillowDecoder, PillowEncoder

__all__ = [
    "FarbfeldDecoder",
    "FarbfeldEncoder",
    "ImagecodecsDecoder",
    "ImagecodecsEncoder",
    "JpegDecoder",
    "JpegEncoder",
    "PillowDecoder",
    "PillowEncoder",
]
