"""Perceptually tuned 8x8 JPEG quantization tables.

The catalog is process-wide constant data: tables are tuples in natural
(row-major) order, families are frozen and the name lookup is a read-only
mapping. Scaling never mutates a base table, it returns a new one.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Optional, Tuple

QTable = Tuple[int, ...]

TABLE_SIZE = 64


def _table(values: Iterable[int]) -> QTable:
    table = tuple(values)
    if len(table) != TABLE_SIZE:
        raise ValueError(f"Quantization tables hold {TABLE_SIZE} entries, got {len(table)}")
    return table


@dataclass(frozen=True)
class QTableFamily:
    """A named table style: one luma and one chroma variant."""

    name: str
    luma: QTable
    chroma: QTable


ANNEX_K_LUMA = _table(
    (
        16, 11, 10, 16, 24, 40, 51, 61,
        12, 12, 14, 19, 26, 58, 60, 55,
        14, 13, 16, 24, 40, 57, 69, 56,
        14, 17, 22, 29, 51, 87, 80, 62,
        18, 22, 37, 56, 68, 109, 103, 77,
        24, 35, 55, 64, 81, 104, 113, 92,
        49, 64, 78, 87, 103, 121, 120, 101,
        72, 92, 95, 98, 112, 100, 103, 99,
    )
)

ANNEX_K_CHROMA = _table(
    (
        17, 18, 24, 47, 99, 99, 99, 99,
        18, 21, 26, 66, 99, 99, 99, 99,
        24, 26, 56, 99, 99, 99, 99, 99,
        47, 66, 99, 99, 99, 99, 99, 99,
        99, 99, 99, 99, 99, 99, 99, 99,
        99, 99, 99, 99, 99, 99, 99, 99,
        99, 99, 99, 99, 99, 99, 99, 99,
        99, 99, 99, 99, 99, 99, 99, 99,
    )
)

FLAT = _table((16,) * TABLE_SIZE)

# Tuned for MS-SSIM on the Kodak image set.
MSSSIM_LUMA = _table(
    (
        12, 17, 20, 21, 30, 34, 56, 63,
        18, 20, 20, 26, 28, 51, 61, 55,
        19, 20, 21, 26, 33, 58, 69, 55,
        26, 26, 26, 30, 46, 87, 86, 66,
        31, 33, 36, 40, 46, 96, 100, 73,
        40, 35, 46, 62, 81, 100, 111, 91,
        46, 66, 76, 86, 102, 121, 120, 101,
        68, 90, 90, 96, 113, 102, 105, 103,
    )
)

MSSSIM_CHROMA = _table(
    (
        8, 12, 15, 15, 86, 96, 96, 98,
        13, 13, 15, 26, 90, 96, 99, 98,
        12, 15, 18, 96, 99, 99, 99, 99,
        17, 16, 90, 96, 99, 99, 99, 99,
        96, 96, 99, 99, 99, 99, 99, 99,
        99, 99, 99, 99, 99, 99, 99, 99,
        99, 99, 99, 99, 99, 99, 99, 99,
        99, 99, 99, 99, 99, 99, 99, 99,
    )
)

# N. Robidoux, tuned for ImageMagick.
NROBIDOUX = _table(
    (
        16, 16, 16, 18, 25, 37, 56, 85,
        16, 17, 20, 27, 34, 40, 53, 75,
        16, 20, 24, 31, 43, 62, 91, 135,
        18, 27, 31, 40, 53, 74, 106, 156,
        25, 34, 43, 53, 69, 94, 131, 189,
        37, 40, 62, 74, 94, 124, 169, 238,
        56, 53, 91, 106, 131, 169, 226, 311,
        85, 75, 135, 156, 189, 238, 311, 418,
    )
)

# Tuned for PSNR-HVS-M on the Kodak image set.
PSNRHVS_LUMA = _table(
    (
        9, 10, 12, 14, 27, 32, 51, 62,
        11, 12, 14, 19, 27, 44, 59, 73,
        12, 14, 18, 25, 42, 59, 79, 78,
        17, 18, 25, 42, 61, 92, 87, 92,
        23, 28, 42, 75, 79, 112, 112, 99,
        40, 42, 59, 84, 88, 124, 132, 111,
        42, 64, 78, 95, 105, 126, 125, 99,
        70, 75, 100, 102, 116, 100, 107, 98,
    )
)

PSNRHVS_CHROMA = _table(
    (
        9, 10, 17, 19, 62, 89, 91, 97,
        12, 13, 18, 29, 84, 91, 88, 98,
        14, 19, 29, 93, 95, 95, 98, 97,
        20, 26, 84, 88, 95, 95, 98, 94,
        26, 86, 91, 93, 97, 99, 98, 99,
        99, 100, 98, 99, 99, 99, 99, 99,
        99, 99, 99, 99, 99, 99, 99, 99,
        97, 97, 99, 99, 99, 99, 97, 99,
    )
)

# Klein, Silverstein and Carney (1992).
KLEIN_SILVERSTEIN_CARNEY = _table(
    (
        10, 12, 14, 19, 26, 38, 57, 86,
        12, 18, 21, 28, 35, 41, 54, 76,
        14, 21, 25, 32, 44, 63, 92, 136,
        19, 28, 32, 41, 54, 75, 107, 157,
        26, 35, 44, 54, 70, 95, 132, 190,
        38, 41, 63, 75, 95, 125, 170, 239,
        57, 54, 92, 107, 132, 170, 227, 312,
        86, 76, 136, 157, 190, 239, 312, 419,
    )
)

# Watson, Taylor and Borthwick (1997).
WATSON_TAYLOR_BORTHWICK = _table(
    (
        7, 8, 10, 14, 23, 44, 95, 241,
        8, 8, 11, 15, 25, 47, 102, 255,
        10, 11, 13, 19, 31, 58, 127, 255,
        14, 15, 19, 27, 44, 83, 181, 255,
        23, 25, 31, 44, 72, 136, 255, 255,
        44, 47, 58, 83, 136, 255, 255, 255,
        95, 102, 127, 181, 255, 255, 255, 255,
        241, 255, 255, 255, 255, 255, 255, 255,
    )
)

# Ahumada, Watson and Peterson (1993).
AHUMADA_WATSON_PETERSON = _table(
    (
        15, 11, 11, 12, 15, 19, 25, 32,
        11, 13, 10, 10, 12, 15, 19, 24,
        11, 10, 14, 14, 16, 18, 22, 27,
        12, 10, 14, 18, 21, 24, 28, 33,
        15, 12, 16, 21, 26, 31, 36, 42,
        19, 15, 18, 24, 31, 38, 45, 53,
        25, 19, 22, 28, 36, 45, 55, 65,
        32, 24, 27, 33, 42, 53, 65, 77,
    )
)

# Peterson, Ahumada and Watson (1993).
PETERSON_AHUMADA_WATSON = _table(
    (
        14, 10, 11, 14, 19, 25, 34, 45,
        10, 11, 11, 12, 15, 20, 26, 33,
        11, 11, 15, 18, 21, 25, 31, 38,
        14, 12, 18, 24, 28, 33, 39, 47,
        19, 15, 21, 28, 36, 43, 51, 59,
        25, 20, 25, 33, 43, 54, 64, 74,
        34, 26, 31, 39, 51, 64, 77, 91,
        45, 33, 38, 47, 59, 74, 91, 108,
    )
)


def _family(name: str, luma: QTable, chroma: Optional[QTable] = None) -> QTableFamily:
    return QTableFamily(name=name, luma=luma, chroma=luma if chroma is None else chroma)


CATALOG = MappingProxyType(
    {
        family.name: family
        for family in (
            _family("AhumadaWatsonPeterson", AHUMADA_WATSON_PETERSON),
            _family("AnnexK", ANNEX_K_LUMA, ANNEX_K_CHROMA),
            _family("Flat", FLAT),
            _family("KleinSilversteinCarney", KLEIN_SILVERSTEIN_CARNEY),
            _family("MSSSIM", MSSSIM_LUMA, MSSSIM_CHROMA),
            _family("NRobidoux", NROBIDOUX),
            _family("PSNRHVS", PSNRHVS_LUMA, PSNRHVS_CHROMA),
            _family("PetersonAhumadaWatson", PETERSON_AHUMADA_WATSON),
            _family("WatsonTaylorBorthwick", WATSON_TAYLOR_BORTHWICK),
        )
    }
)


def get_family(name: str) -> QTableFamily:
    """Look up a table family by name."""

    try:
        return CATALOG[name]
    except KeyError:
        raise KeyError(f"Unknown quantization table {name!r}; known: {', '.join(CATALOG)}") from None


def quality_scaling(quality: float) -> float:
    """IJG quality curve: percentage applied to a base table."""

    quality = min(max(float(quality), 1.0), 100.0)
    if quality < 50:
        return 5000.0 / quality
    return 200.0 - quality * 2.0


def scale_table(table: QTable, quality: float) -> QTable:
    """Scale ``table`` for ``quality`` in [0, 100].

    Higher quality gives smaller or equal step sizes. Entries are clamped to
    1..255 so the result is valid in a baseline JPEG.
    """

    scale = quality_scaling(quality)
    return tuple(min(max(int((value * scale + 50) // 100), 1), 255) for value in table)


def scaled_pair(name: str, quality: float, chroma_quality: float) -> Tuple[QTable, QTable]:
    """Luma table scaled by ``quality``, chroma table by ``chroma_quality``."""

    family = get_family(name)
    return scale_table(family.luma, quality), scale_table(family.chroma, chroma_quality)
