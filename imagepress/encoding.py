"""Encoder configurator: codec name and sub-options to a ready encoder."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from imagepress.adapters.farbfeld_adapter import FarbfeldEncoder
from imagepress.adapters.imagecodecs_adapter import ImagecodecsEncoder
from imagepress.adapters.jpeg_adapter import JpegEncoder
from imagepress.adapters.pillow_adapter import PillowEncoder
from imagepress.config import AvifOptions, JpegOptions, JxlOptions, LibjpegOptions, WebpOptions
from imagepress.errors import ConfigError, NoEncoderSelected, UnknownEncoder
from imagepress.qtables import scaled_pair
from imagepress.types import Encoder

logger = logging.getLogger(__name__)

LIBJPEG_COLORSPACES = ("ycbcr", "rgb", "grayscale")
CHROMA_SUBSAMPLES = (1, 2)


def _option(options: Mapping[str, Any], key: str, default: Any) -> Any:
    value = options.get(key)
    return default if value is None else value


def _percent(options: Mapping[str, Any], key: str, default: Any = None) -> Any:
    value = options.get(key)
    if value is None:
        return default
    if not 0 <= value <= 100:
        raise ConfigError(f"{key} must be between 0 and 100, got {value}")
    return value


def build_libjpeg_options(options: Mapping[str, Any]) -> LibjpegOptions:
    """Resolve the libjpeg sub-options.

    ``quality`` is required. The chroma quality falls back to it, and a named
    quantization table family is scaled separately for luma (``quality``)
    and chroma (``chroma_quality``).
    """

    quality = _percent(options, "quality")
    if quality is None:
        raise ConfigError("libjpeg needs a quality")
    quality = float(quality)
    chroma_quality = float(_percent(options, "chroma_quality", quality))

    colorspace = options.get("colorspace") or "ycbcr"
    if colorspace not in LIBJPEG_COLORSPACES:
        raise ConfigError(f"Unknown libjpeg colorspace {colorspace!r}")
    subsample = options.get("subsample")
    if subsample is not None and subsample not in CHROMA_SUBSAMPLES:
        raise ConfigError(f"Chroma subsampling must be 1 or 2, got {subsample}")

    luma_qtable = chroma_qtable = None
    qtable = options.get("qtable")
    if qtable is not None:
        try:
            luma_qtable, chroma_qtable = scaled_pair(qtable, quality, chroma_quality)
        except KeyError as exc:
            raise ConfigError(exc.args[0]) from exc
        logger.debug("Using %s tables, luma q%g, chroma q%g", qtable, quality, chroma_quality)

    return LibjpegOptions(
        quality=quality,
        chroma_quality=chroma_quality,
        progressive=not options.get("baseline", False),
        optimize_coding=not options.get("no_optimize_coding", False),
        smoothing=int(_percent(options, "smoothing", 0)),
        colorspace=colorspace,
        trellis_multipass=bool(options.get("multipass", False)),
        chroma_subsample=subsample,
        luma_qtable=luma_qtable,
        chroma_qtable=chroma_qtable,
    )


def _farbfeld(options: Mapping[str, Any]) -> Encoder:
    return FarbfeldEncoder()


def _jpeg(options: Mapping[str, Any]) -> Encoder:
    settings = JpegOptions(
        quality=int(_percent(options, "quality", JpegOptions.quality)),
        progressive=bool(options.get("progressive", False)),
    )
    return PillowEncoder(
        "jpeg",
        "JPEG",
        modes=("L", "RGB", "CMYK"),
        save_options={"quality": settings.quality, "progressive": settings.progressive},
    )


def _jpeg_xl(options: Mapping[str, Any]) -> Encoder:
    settings = JxlOptions(
        quality=int(_percent(options, "quality", JxlOptions.quality)),
        effort=int(_option(options, "effort", JxlOptions.effort)),
        lossless=bool(options.get("lossless", False)),
    )
    return ImagecodecsEncoder(
        "jpegxl",
        {"level": settings.quality, "effort": settings.effort, "lossless": settings.lossless},
    )


def _libjpeg(options: Mapping[str, Any]) -> Encoder:
    return JpegEncoder(build_libjpeg_options(options))


def _png(options: Mapping[str, Any]) -> Encoder:
    return PillowEncoder(
        "png",
        "PNG",
        modes=("L", "I;16", "RGB", "RGBA"),
        save_options={"optimize": bool(options.get("optimize", False))},
        keep_16bit=True,
    )


def _ppm(options: Mapping[str, Any]) -> Encoder:
    return PillowEncoder("ppm", "PPM", modes=("L", "RGB"))


def _qoi(options: Mapping[str, Any]) -> Encoder:
    return ImagecodecsEncoder("qoi", keep_luma=False)


def _webp(options: Mapping[str, Any]) -> Encoder:
    settings = WebpOptions(
        quality=int(_percent(options, "quality", WebpOptions.quality)),
        lossless=bool(options.get("lossless", False)),
        method=int(_option(options, "method", WebpOptions.method)),
    )
    return PillowEncoder(
        "webp",
        "WEBP",
        modes=("RGB", "RGBA"),
        save_options={
            "quality": settings.quality,
            "lossless": settings.lossless,
            "method": settings.method,
        },
    )


def _avif(options: Mapping[str, Any]) -> Encoder:
    settings = AvifOptions(
        quality=int(_percent(options, "quality", AvifOptions.quality)),
        speed=int(_option(options, "speed", AvifOptions.speed)),
    )
    return ImagecodecsEncoder("avif", {"level": settings.quality, "speed": settings.speed})


ENCODERS: Mapping[str, Tuple[Callable[[Mapping[str, Any]], Encoder], str]] = MappingProxyType(
    {
        "farbfeld": (_farbfeld, "ff"),
        "jpeg": (_jpeg, "jpg"),
        "jpeg_xl": (_jpeg_xl, "jxl"),
        "libjpeg": (_libjpeg, "jpg"),
        "png": (_png, "png"),
        "ppm": (_ppm, "ppm"),
        "qoi": (_qoi, "qoi"),
        "webp": (_webp, "webp"),
        "avif": (_avif, "avif"),
    }
)


def configure_encoder(
    name: Optional[str], sub_options: Optional[Dict[str, Any]] = None
) -> Tuple[Encoder, str]:
    """Return the encoder selected by ``name`` and its file extension.

    Raises:
        NoEncoderSelected: ``name`` is ``None``.
        UnknownEncoder: ``name`` is not registered.
        ConfigError: A sub-option is out of range.
    """

    if name is None:
        raise NoEncoderSelected("No encoder used")
    try:
        builder, extension = ENCODERS[name]
    except KeyError:
        raise UnknownEncoder(f'Encoder "{name}" not found') from None
    encoder = builder(dict(sub_options or {}))
    logger.debug("Configured %s encoder (.%s)", name, extension)
    return encoder, extension
