"""Configuration dataclasses for the compression pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from imagepress.qtables import QTable


@dataclass
class OperationOccurrence:
    """One occurrence of an operation flag on the command line.

    Attributes:
        value: The flag's value as supplied (resize value, palette size, ...).
        index: Argument-slot index. Indices are unique across every operation
            kind and order application.
    """

    value: Any
    index: int


@dataclass
class EncoderSelection:
    """The chosen output codec and its raw sub-option values."""

    name: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CommandConfig:
    """Resolved configuration for one input file.

    Attributes:
        input_path: File to decode.
        operations: Occurrences per operation kind (``"resize"``,
            ``"quantization"``) in command-line order.
        resize_filter: Resampling filter name shared by every resize.
        dithering: Dithering percentage (0-100) shared by every quantization;
            ``None`` keeps the quantizer default.
        encoder: Selected encoder, ``None`` if no encoder sub-command was used.
        output_dir: Directory for the output file; defaults to the input's.
        suffix: Optional suffix appended to the output file stem.
    """

    input_path: str
    operations: Dict[str, List[OperationOccurrence]] = field(default_factory=dict)
    resize_filter: Optional[str] = None
    dithering: Optional[int] = None
    encoder: Optional[EncoderSelection] = None
    output_dir: Optional[str] = None
    suffix: Optional[str] = None

    def occurrences(self, kind: str) -> List[OperationOccurrence]:
        return list(self.operations.get(kind, []))


@dataclass
class JpegOptions:
    """Baseline JPEG encoder settings (Pillow's libjpeg defaults)."""

    quality: int = 75
    progressive: bool = False


@dataclass
class LibjpegOptions:
    """Settings for the tuned libjpeg encoder.

    Attributes:
        quality: Luma quality, 0-100.
        chroma_quality: Chroma quality, 0-100; equals ``quality`` unless set.
        progressive: Progressive scan layout.
        optimize_coding: Optimized Huffman tables.
        smoothing: Input smoothing factor, 0-100.
        colorspace: Output JPEG colorspace: ``ycbcr``, ``rgb`` or
            ``grayscale``. Grayscale, CMYK and YCCK inputs always keep their
            own colorspace.
        trellis_multipass: Trellis quantization across scans. Only honoured
            by mozjpeg builds of libjpeg.
        chroma_subsample: Chroma block size in pixels (1 = 4:4:4,
            2 = 4:2:0); ``None`` keeps the library default.
        luma_qtable: Scaled luma quantization table, natural order.
        chroma_qtable: Scaled chroma quantization table, natural order.
    """

    quality: float = 75.0
    chroma_quality: Optional[float] = None
    progressive: bool = True
    optimize_coding: bool = True
    smoothing: int = 0
    colorspace: str = "ycbcr"
    trellis_multipass: bool = False
    chroma_subsample: Optional[int] = None
    luma_qtable: Optional[QTable] = None
    chroma_qtable: Optional[QTable] = None

    def __post_init__(self) -> None:
        if self.chroma_quality is None:
            self.chroma_quality = self.quality

    @property
    def qtables(self) -> Optional[Tuple[QTable, QTable]]:
        if self.luma_qtable is None or self.chroma_qtable is None:
            return None
        return self.luma_qtable, self.chroma_qtable


@dataclass
class JpegDecoderConfig:
    """Settings for the native JPEG decoder.

    Attributes:
        raw: Keep the file's own colorspace (e.g. YCbCr) instead of letting
            the library convert to RGB.
    """

    raw: bool = False


@dataclass
class WebpOptions:
    """WebP encoder settings."""

    quality: int = 80
    lossless: bool = False
    method: int = 4


@dataclass
class AvifOptions:
    """AVIF encoder settings."""

    quality: int = 50
    speed: int = 6


@dataclass
class JxlOptions:
    """JPEG XL encoder settings."""

    quality: int = 90
    effort: int = 7
    lossless: bool = False
