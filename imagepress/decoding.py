"""Decode dispatch: the universal decoder first, then sniffed fallbacks.

The universal decoder identifies formats from their content. When it reports
``UnsupportedFormat`` the fallback decoders are tried in a fixed order, each
guarded by a cheap predicate over the file's bytes (or, for WebP, its name).
The first predicate that holds owns the input; if its decoder fails, that
failure is final. Any other universal-decoder failure propagates untouched.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from imagepress.adapters.farbfeld_adapter import FarbfeldDecoder, is_farbfeld
from imagepress.adapters.imagecodecs_adapter import ImagecodecsDecoder
from imagepress.adapters.pillow_adapter import PillowDecoder
from imagepress.errors import UnsupportedFormat
from imagepress.types import CanonicalImage

logger = logging.getLogger(__name__)

AVIF_BRANDS = (b"avif", b"avis")
JXL_CODESTREAM = b"\xff\x0a"
JXL_CONTAINER = b"\x00\x00\x00\x0cJXL \r\n\x87\n"
QOI_MAGIC = b"qoif"


def is_avif(data: bytes, filename: Optional[str] = None) -> bool:
    """ISO-BMFF ``ftyp`` box naming an AVIF major or compatible brand."""

    if len(data) < 12 or data[4:8] != b"ftyp":
        return False
    box_size = int.from_bytes(data[:4], "big")
    brands = data[8:12] + data[16 : max(16, min(box_size, 64))]
    return any(brands[i : i + 4] in AVIF_BRANDS for i in range(0, len(brands), 4))


def is_jpegxl(data: bytes, filename: Optional[str] = None) -> bool:
    return data.startswith(JXL_CODESTREAM) or data.startswith(JXL_CONTAINER)


def is_qoi(data: bytes, filename: Optional[str] = None) -> bool:
    return data.startswith(QOI_MAGIC)


def has_farbfeld_magic(data: bytes, filename: Optional[str] = None) -> bool:
    return is_farbfeld(data)


def has_webp_extension(data: bytes, filename: Optional[str] = None) -> bool:
    if not filename:
        return False
    return os.path.splitext(filename)[1].lower() == ".webp"


@dataclass(frozen=True)
class SpecializedDecoder:
    """A fallback decoder and the predicate that selects it."""

    name: str
    accepts: Callable[[bytes, Optional[str]], bool]
    decoder: object


FALLBACK_DECODERS = (
    SpecializedDecoder("avif", is_avif, ImagecodecsDecoder("avif")),
    SpecializedDecoder("jpegxl", is_jpegxl, ImagecodecsDecoder("jpegxl")),
    SpecializedDecoder("qoi", is_qoi, ImagecodecsDecoder("qoi")),
    SpecializedDecoder("farbfeld", has_farbfeld_magic, FarbfeldDecoder()),
    SpecializedDecoder("webp", has_webp_extension, ImagecodecsDecoder("webp")),
)


class DecodeDispatcher:
    """Turn a file into a canonical image with the first decoder that owns it."""

    def __init__(
        self,
        universal: Optional[object] = None,
        fallbacks: Sequence[SpecializedDecoder] = FALLBACK_DECODERS,
    ) -> None:
        self.universal = universal or PillowDecoder()
        self.fallbacks = tuple(fallbacks)

    def decode(self, path: str) -> CanonicalImage:
        with open(path, "rb") as handle:
            data = handle.read()
        return self.decode_bytes(data, filename=os.path.basename(path))

    def decode_bytes(self, data: bytes, filename: Optional[str] = None) -> CanonicalImage:
        try:
            image = self.universal.decode(data)
            logger.debug("%s decoded %s", self.universal.name, filename or "<bytes>")
            return image
        except UnsupportedFormat as exc:
            logger.debug(
                "%s does not support %s: %s", self.universal.name, filename or "<bytes>", exc
            )

        for fallback in self.fallbacks:
            if fallback.accepts(data, filename):
                logger.debug("Falling back to the %s decoder", fallback.name)
                return fallback.decoder.decode(data)

        raise UnsupportedFormat(f"No decoder accepts {filename or 'the input'}")


_default_dispatcher: Optional[DecodeDispatcher] = None


def _dispatcher() -> DecodeDispatcher:
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = DecodeDispatcher()
    return _default_dispatcher


def decode(path: str) -> CanonicalImage:
    """Decode the file at ``path`` with the default decoder chain."""

    return _dispatcher().decode(path)


def decode_bytes(data: bytes, filename: Optional[str] = None) -> CanonicalImage:
    return _dispatcher().decode_bytes(data, filename=filename)
