import unittest
from unittest import mock

import numpy as np

from imagepress.config import CommandConfig, OperationOccurrence
from imagepress.errors import OperationApplicationError, PipelineError
from imagepress.operations import (
    _PALETTE_CHUNK,
    _nearest_palette,
    Quantize,
    Resize,
    ResizeFilter,
    ResizeValue,
    apply_operations,
    build_pipeline,
)
from imagepress.types import BitDepth, CanonicalImage, ColorSpace


def _noise(width: int = 32, height: int = 32, channels: int = 3, seed: int = 3) -> CanonicalImage:
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)
    colorspace = ColorSpace.RGB if channels == 3 else ColorSpace.RGBA
    return CanonicalImage(pixels, colorspace, BitDepth.EIGHT)


def _unique_colors(image: CanonicalImage) -> int:
    return len(np.unique(image.pixels.reshape(-1, image.channels), axis=0))


def _config(resize=(), quantization=(), **kwargs) -> CommandConfig:
    return CommandConfig(
        input_path="input.png",
        operations={
            "resize": [OperationOccurrence(value, index) for value, index in resize],
            "quantization": [OperationOccurrence(value, index) for value, index in quantization],
        },
        **kwargs,
    )


class ResizeValueTest(unittest.TestCase):
    def test_forms(self) -> None:
        cases = {
            "100x50": (100, 50),
            "50w": (50, 25),
            "50h": (100, 50),
            "50%": (100, 50),
            "12.5%": (25, 12),
            "@2": (400, 200),
            "@0.5": (100, 50),
        }
        for text, expected in cases.items():
            self.assertEqual(ResizeValue.parse(text).map_dimensions(200, 100), expected, text)

    def test_results_are_at_least_one_pixel(self) -> None:
        self.assertEqual(ResizeValue.parse("1%").map_dimensions(10, 10), (1, 1))

    def test_invalid_values(self) -> None:
        for text in ("abc", "0x10", "10", "-5w", "x20", "@"):
            with self.assertRaises(ValueError, msg=text):
                ResizeValue.parse(text)

    def test_string_form(self) -> None:
        for text in ("100x50", "50w", "50h", "50%", "@2"):
            self.assertEqual(str(ResizeValue.parse(text)), text)


class BuildPipelineTest(unittest.TestCase):
    def test_entries_are_keyed_and_sorted_by_index(self) -> None:
        config = _config(resize=[("50%", 2)], quantization=[(16, 0)])

        operations = build_pipeline(config, (200, 100))

        self.assertEqual(list(operations), [0, 2])
        self.assertEqual(operations[0], Quantize(colors=16, dithering=None))
        self.assertEqual(operations[2], Resize(100, 50, ResizeFilter.LANCZOS3))

    def test_interleaved_kinds_share_index_space(self) -> None:
        config = _config(resize=[("50%", 0), ("10w", 3)], quantization=[(8, 1), (4, 2)])

        operations = build_pipeline(config, (200, 100))

        self.assertEqual(
            [type(op).__name__ for op in operations.values()],
            ["Resize", "Quantize", "Quantize", "Resize"],
        )

    def test_relative_targets_use_given_dimensions(self) -> None:
        config = _config(resize=[("50%", 0), ("50%", 1)])
        operations = build_pipeline(config, (80, 40))
        self.assertEqual(operations[0], operations[1])
        self.assertEqual((operations[1].width, operations[1].height), (40, 20))

    def test_filter_and_dithering(self) -> None:
        config = _config(
            resize=[("10x10", 1)], quantization=[(32, 0)], resize_filter="point", dithering=50
        )

        operations = build_pipeline(config, (20, 20))

        self.assertEqual(operations[1].filter, ResizeFilter.POINT)
        self.assertEqual(operations[0].dithering, 0.5)
        self.assertEqual(operations[0].strength, 0.5)

    def test_default_dithering_is_full_strength(self) -> None:
        operations = build_pipeline(_config(quantization=[(32, 0)]), (4, 4))
        self.assertIsNone(operations[0].dithering)
        self.assertEqual(operations[0].strength, 1.0)

    def test_no_operations(self) -> None:
        self.assertEqual(build_pipeline(CommandConfig(input_path="x"), (4, 4)), {})

    def test_invalid_values(self) -> None:
        invalid = [
            _config(resize=[("huge", 0)]),
            _config(resize=[("10x10", 0)], resize_filter="gaussian"),
            _config(quantization=[(1, 0)]),
            _config(quantization=[(257, 0)]),
            _config(quantization=[(16, 0)], dithering=150),
        ]
        for config in invalid:
            with self.assertRaises(PipelineError):
                build_pipeline(config, (10, 10))


class ApplyOperationsTest(unittest.TestCase):
    def test_applies_in_ascending_index_order(self) -> None:
        image = _noise()
        operations = {5: Resize(4, 4), 1: Quantize(8), 3: Resize(8, 8)}
        applied = []

        with mock.patch(
            "imagepress.operations.apply_operation",
            side_effect=lambda img, op: applied.append(op),
        ):
            apply_operations(image, operations)

        self.assertEqual(applied, [Quantize(8), Resize(8, 8), Resize(4, 4)])

    def test_swapping_indices_swaps_observed_order(self) -> None:
        quantize = Quantize(colors=2, dithering=0.0)
        resize = Resize(7, 7, ResizeFilter.BILINEAR)

        quantize_first = apply_operations(_noise(), {0: quantize, 2: resize})
        resize_first = apply_operations(_noise(), {0: resize, 2: quantize})

        self.assertEqual(quantize_first.dimensions, (7, 7))
        self.assertEqual(resize_first.dimensions, (7, 7))
        self.assertLessEqual(_unique_colors(resize_first), 2)
        self.assertGreater(_unique_colors(quantize_first), 2)

    def test_successive_resizes_compose(self) -> None:
        image = apply_operations(_noise(), {0: Resize(16, 16), 1: Resize(4, 2)})
        self.assertEqual(image.dimensions, (4, 2))

    def test_resize_keeps_layout(self) -> None:
        pixels = np.full((10, 10, 1), 40000, dtype=np.uint16)
        image = CanonicalImage(pixels, ColorSpace.LUMA, BitDepth.SIXTEEN)

        apply_operations(image, {0: Resize(5, 3, ResizeFilter.AREA)})

        self.assertEqual(image.pixels.shape, (3, 5, 1))
        self.assertEqual(image.bit_depth, BitDepth.SIXTEEN)
        self.assertEqual(int(image.pixels[1, 1, 0]), 40000)

    def test_quantize_limits_palette(self) -> None:
        image = apply_operations(_noise(), {0: Quantize(colors=4)})
        self.assertLessEqual(_unique_colors(image), 4)
        self.assertEqual(image.dimensions, (32, 32))

    def test_quantize_is_deterministic(self) -> None:
        first = apply_operations(_noise(), {0: Quantize(colors=16, dithering=0.75)})
        second = apply_operations(_noise(), {0: Quantize(colors=16, dithering=0.75)})
        np.testing.assert_array_equal(first.pixels, second.pixels)

    def test_quantize_keeps_alpha(self) -> None:
        image = _noise(channels=4)
        alpha = image.pixels[..., 3].copy()

        apply_operations(image, {0: Quantize(colors=4)})

        self.assertEqual(image.colorspace, ColorSpace.RGBA)
        np.testing.assert_array_equal(image.pixels[..., 3], alpha)
        self.assertLessEqual(len(np.unique(image.pixels[..., :3].reshape(-1, 3), axis=0)), 4)

    def test_palette_mapping_does_not_depend_on_chunking(self) -> None:
        rng = np.random.default_rng(11)
        side = 100
        self.assertGreater(side * side, _PALETTE_CHUNK)
        samples = rng.uniform(0, 255, size=(side, side, 3)).astype(np.float32)
        palette = rng.integers(0, 256, size=(16, 3), dtype=np.uint8)

        flat = samples.reshape(-1, 1, 3) - palette.astype(np.float32)[None, :, :]
        expected = (flat**2).sum(axis=-1).argmin(axis=1).reshape(side, side)

        np.testing.assert_array_equal(_nearest_palette(samples, palette), expected)
        np.testing.assert_array_equal(_nearest_palette(samples, palette, chunk=7), expected)

    def test_quantize_rejects_luma_without_touching_image(self) -> None:
        pixels = np.arange(16, dtype=np.uint8).reshape(4, 4, 1)
        image = CanonicalImage(pixels.copy(), ColorSpace.LUMA, BitDepth.EIGHT)

        with self.assertRaises(OperationApplicationError):
            apply_operations(image, {0: Resize(2, 2), 1: Quantize(colors=4)})

        # The resize at index 0 completed; the failed quantization changed nothing.
        self.assertEqual(image.dimensions, (2, 2))
        self.assertEqual(image.colorspace, ColorSpace.LUMA)

    def test_quantize_rejects_sixteen_bit(self) -> None:
        pixels = np.zeros((4, 4, 3), dtype=np.uint16)
        image = CanonicalImage(pixels, ColorSpace.RGB, BitDepth.SIXTEEN)
        with self.assertRaises(OperationApplicationError):
            apply_operations(image, {0: Quantize(colors=4)})
        np.testing.assert_array_equal(image.pixels, pixels)


if __name__ == "__main__":
    unittest.main()
