"""Pillow adapter: the universal decoder and the Pillow-backed encoders."""

from __future__ import annotations

import io
import logging
import struct
from typing import Any, Dict, Iterable, Optional

from PIL import Image, UnidentifiedImageError

from imagepress.colorspace import canonical_to_pil, pil_to_canonical
from imagepress.errors import EncodeError, MalformedInput, UnsupportedFormat
from imagepress.types import CanonicalImage

logger = logging.getLogger(__name__)

_LOAD_ERRORS = (OSError, SyntaxError, ValueError, EOFError, Image.DecompressionBombError)

# What Pillow itself tolerates from a plugin accept check.
_ACCEPT_ERRORS = (SyntaxError, IndexError, TypeError, struct.error)


def claimed_by_plugin(prefix: bytes) -> bool:
    """Whether a registered Pillow plugin recognizes ``prefix`` by its magic.

    Plugins without an accept check, and checks that return a message about
    missing library support, do not count.
    """

    Image.init()
    for _, accept in Image.OPEN.values():
        if accept is None:
            continue
        try:
            result = accept(prefix)
        except _ACCEPT_ERRORS:
            continue
        if result and not isinstance(result, str):
            return True
    return False


class PillowDecoder:
    """Decode anything Pillow identifies from its content.

    Data no registered plugin claims is reported as ``UnsupportedFormat``.
    A plugin that recognizes the magic bytes and then rejects the header, or
    any failure after identification, is ``MalformedInput``.
    """

    name = "pillow"

    def decode(self, data: bytes) -> CanonicalImage:
        try:
            image = Image.open(io.BytesIO(data))
        except UnidentifiedImageError as exc:
            if claimed_by_plugin(data[:16]):
                raise MalformedInput(f"Pillow recognized the data but rejected it: {exc}") from exc
            raise UnsupportedFormat("Pillow has no decoder for this data") from exc
        except _LOAD_ERRORS as exc:
            raise MalformedInput(f"Pillow could not read the header: {exc}") from exc

        with image:
            fmt = image.format
            try:
                image.load()
                canonical = pil_to_canonical(image)
            except _LOAD_ERRORS as exc:
                raise MalformedInput(f"{fmt} data is invalid: {exc}") from exc
        canonical.metadata["format"] = fmt
        logger.debug(
            "Decoded %s %dx%d as %s", fmt, canonical.width, canonical.height, canonical.colorspace.name
        )
        return canonical


class PillowEncoder:
    """Encode through ``PIL.Image.save``.

    Args:
        name: Encoder name.
        format: Pillow format identifier (``PNG``, ``JPEG``, ...).
        modes: Pillow modes the format stores as-is; anything else is
            converted to RGBA (when the format has alpha) or RGB first.
        save_options: Keyword arguments for ``Image.save``.
        keep_16bit: Keep 16-bit luma instead of flattening to 8 bits.
    """

    def __init__(
        self,
        name: str,
        format: str,
        modes: Iterable[str],
        save_options: Optional[Dict[str, Any]] = None,
        keep_16bit: bool = False,
    ) -> None:
        self.name = name
        self.format = format
        self.modes = tuple(modes)
        self.save_options = dict(save_options or {})
        self.keep_16bit = keep_16bit

    def _target_mode(self, mode: str) -> str:
        if mode in self.modes:
            return mode
        if "A" in mode and "RGBA" in self.modes:
            return "RGBA"
        return "RGB"

    def to_pil(self, image: CanonicalImage) -> Image.Image:
        pil_image = canonical_to_pil(image, keep_16bit=self.keep_16bit)
        target = self._target_mode(pil_image.mode)
        if target != pil_image.mode:
            logger.debug("%s stores %s as %s", self.name, pil_image.mode, target)
            pil_image = pil_image.convert(target)
        return pil_image

    def encode(self, image: CanonicalImage) -> bytes:
        pil_image = self.to_pil(image)
        buffer = io.BytesIO()
        try:
            pil_image.save(buffer, format=self.format, **self.save_options)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"{self.name} encoder failed: {exc}") from exc
        return buffer.getvalue()
