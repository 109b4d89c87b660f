"""Image compression pipeline.

Files are decoded into a canonical pixel representation, transformed by
operations applied in the order their flags appeared on the command line,
and re-encoded with a selected, tunable codec. Native codec calls run in
isolated worker processes so that a library fault fails only the image that
triggered it.
"""

from imagepress.pipeline import CompressionPipeline, PipelineOutputs, output_path
from imagepress.config import (
    AvifOptions,
    CommandConfig,
    EncoderSelection,
    JpegDecoderConfig,
    JpegOptions,
    JxlOptions,
    LibjpegOptions,
    OperationOccurrence,
    WebpOptions,
)
from imagepress.decoding import DecodeDispatcher, decode, decode_bytes
from imagepress.encoding import configure_encoder
from imagepress.operations import Quantize, Resize, apply_operations, build_pipeline
from imagepress.types import BitDepth, CanonicalImage, ColorSpace

__all__ = [
    "CompressionPipeline",
    "PipelineOutputs",
    "output_path",
    "AvifOptions",
    "CommandConfig",
    "EncoderSelection",
    "JpegDecoderConfig",
    "JpegOptions",
    "JxlOptions",
    "LibjpegOptions",
    "OperationOccurrence",
    "WebpOptions",
    "DecodeDispatcher",
    "decode",
    "decode_bytes",
    "configure_encoder",
    "Quantize",
    "Resize",
    "apply_operations",
    "build_pipeline",
    "BitDepth",
    "CanonicalImage",
    "ColorSpace",
]
