"""End-to-end compression pipeline for one input file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from imagepress.config import CommandConfig
from imagepress.decoding import DecodeDispatcher
from imagepress.encoding import configure_encoder
from imagepress.operations import Operation, apply_operations, build_pipeline
from imagepress.types import CanonicalImage

logger = logging.getLogger(__name__)


@dataclass
class PipelineOutputs:
    """Encoded bytes together with what produced them."""

    data: bytes
    extension: str
    image: CanonicalImage
    operations: Dict[int, Operation]


class CompressionPipeline:
    """Decode, transform and re-encode a single image.

    Flow:
        1) Encoder configuration. Done at construction so that a bad
           encoder selection is reported before any file is read.
        2) Decode through the universal decoder and its fallback chain.
        3) Build the index -> operation map from the decoded dimensions and
           apply it in ascending index order.
        4) Encode with the configured encoder.
    """

    def __init__(self, config: CommandConfig, dispatcher: Optional[DecodeDispatcher] = None) -> None:
        self.config = config
        self.dispatcher = dispatcher or DecodeDispatcher()
        selection = config.encoder
        self.encoder, self.extension = configure_encoder(
            selection.name if selection is not None else None,
            selection.options if selection is not None else None,
        )

    def __call__(self, path: Optional[str] = None) -> PipelineOutputs:
        path = path or self.config.input_path
        image = self.dispatcher.decode(path)
        logger.info(
            "Decoded %s: %dx%d %s", path, image.width, image.height, image.colorspace.name
        )

        operations = build_pipeline(self.config, image.dimensions)
        apply_operations(image, operations)

        data = self.encoder.encode(image)
        logger.info("Encoded %s with %s (%d bytes)", path, self.encoder.name, len(data))
        return PipelineOutputs(
            data=data, extension=self.extension, image=image, operations=operations
        )


def output_path(config: CommandConfig, extension: str) -> str:
    """Destination for ``config.input_path`` re-encoded as ``extension``."""

    directory, filename = os.path.split(config.input_path)
    stem = os.path.splitext(filename)[0]
    if config.suffix:
        stem = f"{stem}{config.suffix}"
    return os.path.join(config.output_dir or directory, f"{stem}.{extension}")
