import unittest

import numpy as np

from imagepress.types import BitDepth, CanonicalImage, ColorSpace


def _rgb(width: int = 4, height: int = 3) -> CanonicalImage:
    pixels = np.arange(width * height * 3, dtype=np.uint8).reshape(height, width, 3)
    return CanonicalImage(pixels=pixels, colorspace=ColorSpace.RGB, bit_depth=BitDepth.EIGHT)


class CanonicalImageTest(unittest.TestCase):
    def test_dimensions(self) -> None:
        image = _rgb(4, 3)
        self.assertEqual(image.dimensions, (4, 3))
        self.assertEqual(image.channels, 3)

    def test_rejects_channel_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            CanonicalImage(
                pixels=np.zeros((2, 2, 4), dtype=np.uint8),
                colorspace=ColorSpace.RGB,
                bit_depth=BitDepth.EIGHT,
            )

    def test_rejects_dtype_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            CanonicalImage(
                pixels=np.zeros((2, 2, 1), dtype=np.uint16),
                colorspace=ColorSpace.LUMA,
                bit_depth=BitDepth.EIGHT,
            )

    def test_rejects_flat_and_empty_buffers(self) -> None:
        with self.assertRaises(ValueError):
            CanonicalImage(np.zeros((2, 2), dtype=np.uint8), ColorSpace.LUMA, BitDepth.EIGHT)
        with self.assertRaises(ValueError):
            CanonicalImage(np.zeros((2, 0, 3), dtype=np.uint8), ColorSpace.RGB, BitDepth.EIGHT)

    def test_unknown_accepts_any_channel_count(self) -> None:
        image = CanonicalImage(
            np.zeros((2, 2, 2), dtype=np.uint8), ColorSpace.UNKNOWN, BitDepth.EIGHT
        )
        self.assertEqual(image.channels, 2)
        self.assertIsNone(ColorSpace.UNKNOWN.channels)

    def test_flatten_to_u8(self) -> None:
        pixels = np.array([[[0], [257 * 100], [65535]]], dtype=np.uint16)
        image = CanonicalImage(pixels, ColorSpace.LUMA, BitDepth.SIXTEEN)

        flat = image.flatten_to_u8()

        self.assertEqual(flat.dtype, np.uint8)
        self.assertEqual(flat[0, :, 0].tolist(), [0, 100, 255])
        self.assertEqual(image.pixels.dtype, np.uint16)

    def test_flatten_float(self) -> None:
        pixels = np.array([[[0.0], [0.5], [1.0]]], dtype=np.float32)
        image = CanonicalImage(pixels, ColorSpace.LUMA, BitDepth.FLOAT32)
        self.assertEqual(image.flatten_to_u8()[0, :, 0].tolist(), [0, 128, 255])

    def test_invalid_replacement_leaves_image_unchanged(self) -> None:
        image = _rgb()
        before = image.pixels.copy()

        with self.assertRaises(ValueError):
            image.replace_pixels(np.zeros((3, 4, 4), dtype=np.uint8))

        self.assertEqual(image.colorspace, ColorSpace.RGB)
        np.testing.assert_array_equal(image.pixels, before)

    def test_replacement_can_change_layout(self) -> None:
        image = _rgb()
        image.replace_pixels(np.zeros((5, 6, 1), dtype=np.uint16), ColorSpace.LUMA, BitDepth.SIXTEEN)
        self.assertEqual(image.dimensions, (6, 5))
        self.assertEqual(image.colorspace, ColorSpace.LUMA)
        self.assertEqual(image.bit_depth, BitDepth.SIXTEEN)

    def test_alpha_layouts(self) -> None:
        alpha = {space for space in ColorSpace if space.has_alpha}
        self.assertEqual(alpha, {ColorSpace.RGBA, ColorSpace.BGRA, ColorSpace.ARGB})

    def test_bit_depth_from_dtype(self) -> None:
        self.assertEqual(BitDepth.from_dtype(np.uint16), BitDepth.SIXTEEN)
        with self.assertRaises(ValueError):
            BitDepth.from_dtype(np.int64)


if __name__ == "__main__":
    unittest.main()
