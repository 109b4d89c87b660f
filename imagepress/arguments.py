"""Command-line parsing into ``CommandConfig`` objects."""

from __future__ import annotations

import argparse
from typing import Any, Dict, List, Optional

from imagepress.config import CommandConfig, EncoderSelection, OperationOccurrence
from imagepress.operations import ResizeFilter, ResizeValue
from imagepress.qtables import CATALOG

_SLOT_COUNTER = "_operation_slot"

OPERATION_KINDS = ("resize", "quantization")

# Sub-option names each encoder sub-command contributes to the namespace.
_ENCODER_OPTIONS: Dict[str, tuple] = {
    "farbfeld": (),
    "jpeg": ("quality", "progressive"),
    "jpeg_xl": ("quality", "effort", "lossless"),
    "libjpeg": (
        "quality",
        "chroma_quality",
        "baseline",
        "no_optimize_coding",
        "smoothing",
        "colorspace",
        "multipass",
        "subsample",
        "qtable",
    ),
    "png": ("optimize",),
    "ppm": (),
    "qoi": (),
    "webp": ("quality", "lossless", "method"),
    "avif": ("quality", "speed"),
}


class IndexedAppend(argparse.Action):
    """Append ``OperationOccurrence`` values numbered by a shared slot counter.

    Every action of this type on a parser draws from the same counter, so the
    indices record the order of occurrences across all operation flags.
    """

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        index = getattr(namespace, _SLOT_COUNTER, 0)
        setattr(namespace, _SLOT_COUNTER, index + 1)
        items = list(getattr(namespace, self.dest, None) or [])
        items.append(OperationOccurrence(value=values, index=index))
        setattr(namespace, self.dest, items)


def _ranged_int(low: int, high: int):
    def parse(text: str) -> int:
        try:
            value = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{text!r} is not an integer") from None
        if not low <= value <= high:
            raise argparse.ArgumentTypeError(f"{value} is not in {low}..{high}")
        return value

    return parse


def _resize_value(text: str) -> ResizeValue:
    try:
        return ResizeValue.parse(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


_percent = _ranged_int(0, 100)


def _add_quality(parser: argparse.ArgumentParser, required: bool = False) -> None:
    parser.add_argument("-q", "--quality", type=_percent, required=required, help="0-100")


def _add_files(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("files", nargs="+", help="Input files")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imagepress", description="Decode, transform and re-encode images."
    )
    parser.add_argument(
        "--resize",
        action=IndexedAppend,
        type=_resize_value,
        metavar="VALUE",
        help="WxH, Nw, Nh, N%% or @F; repeatable",
    )
    parser.add_argument(
        "--quantization",
        action=IndexedAppend,
        type=_ranged_int(2, 256),
        metavar="COLORS",
        help="Palette size 2-256; repeatable",
    )
    parser.add_argument(
        "--filter",
        choices=[item.value for item in ResizeFilter],
        default=None,
        help="Resize filter (default lanczos3)",
    )
    parser.add_argument(
        "--dithering", type=_percent, default=None, help="Dithering level for quantization, 0-100"
    )
    parser.add_argument("--outdir", default=None, help="Output directory")
    parser.add_argument("--suffix", default=None, help="Suffix for output file names")
    parser.add_argument("-v", "--verbose", action="count", default=0)

    encoders = parser.add_subparsers(dest="encoder", metavar="ENCODER")

    _add_files(encoders.add_parser("farbfeld", help="Farbfeld"))

    jpeg = encoders.add_parser("jpeg", help="Baseline JPEG")
    _add_quality(jpeg)
    jpeg.add_argument("--progressive", action="store_true")
    _add_files(jpeg)

    jxl = encoders.add_parser("jpeg_xl", help="JPEG XL")
    _add_quality(jxl)
    jxl.add_argument("--effort", type=_ranged_int(1, 9), default=None)
    jxl.add_argument("--lossless", action="store_true")
    _add_files(jxl)

    libjpeg = encoders.add_parser("libjpeg", help="Tuned libjpeg JPEG")
    _add_quality(libjpeg, required=True)
    libjpeg.add_argument("--chroma-quality", dest="chroma_quality", type=_percent, default=None)
    libjpeg.add_argument("--baseline", action="store_true", help="Disable progressive scans")
    libjpeg.add_argument("--no-optimize-coding", dest="no_optimize_coding", action="store_true")
    libjpeg.add_argument("--smoothing", type=_percent, default=None)
    libjpeg.add_argument("--colorspace", choices=["ycbcr", "rgb", "grayscale"], default="ycbcr")
    libjpeg.add_argument("--multipass", action="store_true", help="Trellis multipass")
    libjpeg.add_argument("--subsample", type=int, choices=[1, 2], default=None)
    libjpeg.add_argument("--qtable", choices=sorted(CATALOG), default=None)
    _add_files(libjpeg)

    png = encoders.add_parser("png", help="PNG")
    png.add_argument("--optimize", action="store_true")
    _add_files(png)

    _add_files(encoders.add_parser("ppm", help="PPM"))
    _add_files(encoders.add_parser("qoi", help="QOI"))

    webp = encoders.add_parser("webp", help="WebP")
    _add_quality(webp)
    webp.add_argument("--lossless", action="store_true")
    webp.add_argument("--method", type=_ranged_int(0, 6), default=None)
    _add_files(webp)

    avif = encoders.add_parser("avif", help="AVIF")
    _add_quality(avif)
    avif.add_argument("--speed", type=_ranged_int(0, 10), default=None)
    _add_files(avif)

    return parser


def encoder_options(args: argparse.Namespace) -> Dict[str, Any]:
    """Sub-option values of the selected encoder sub-command."""

    names = _ENCODER_OPTIONS.get(args.encoder, ())
    return {name: getattr(args, name) for name in names if hasattr(args, name)}


def input_files(args: argparse.Namespace) -> List[str]:
    return list(getattr(args, "files", None) or [])


def resolve_config(args: argparse.Namespace, path: str) -> CommandConfig:
    encoder: Optional[EncoderSelection] = None
    if args.encoder is not None:
        encoder = EncoderSelection(name=args.encoder, options=encoder_options(args))
    return CommandConfig(
        input_path=path,
        operations={kind: list(getattr(args, kind, None) or []) for kind in OPERATION_KINDS},
        resize_filter=args.filter,
        dithering=args.dithering,
        encoder=encoder,
        output_dir=args.outdir,
        suffix=args.suffix,
    )
