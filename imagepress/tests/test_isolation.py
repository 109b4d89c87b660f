import io
import os
import unittest

from PIL import Image

from imagepress.adapters.jpeg_adapter import JpegDecoder
from imagepress.errors import NativeCodecFailure
from imagepress.isolation import IsolatedCall
from imagepress.types import ColorSpace


def _abort(*args):
    os.abort()


def _raise_value_error(message):
    raise ValueError(message)


def _square(value):
    return value * value


def _jpeg_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), (200, 30, 30)).save(buffer, format="JPEG")
    return buffer.getvalue()


class IsolatedCallTest(unittest.TestCase):
    def test_returns_result(self) -> None:
        self.assertEqual(IsolatedCall(_square, codec="test")(7), 49)

    def test_abnormal_termination_becomes_failure(self) -> None:
        call = IsolatedCall(_abort, codec="crashing")

        with self.assertRaises(NativeCodecFailure) as ctx:
            call()

        self.assertEqual(ctx.exception.codec, "crashing")
        self.assertIn("terminated abnormally", str(ctx.exception))
        # The same wrapper starts a fresh worker for the next call.
        follow_up = IsolatedCall(_square, codec="crashing")
        self.assertEqual(follow_up(3), 9)

    def test_library_error_becomes_failure(self) -> None:
        with self.assertRaises(NativeCodecFailure) as ctx:
            IsolatedCall(_raise_value_error, codec="erroring")("bad marker")

        self.assertIn("ValueError", str(ctx.exception))
        self.assertIn("bad marker", str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, ValueError)


class JpegDecoderContainmentTest(unittest.TestCase):
    def test_crashed_decode_does_not_affect_next_decode(self) -> None:
        data = _jpeg_bytes()
        crashing = JpegDecoder()
        crashing._decompress = IsolatedCall(_abort, codec=crashing.name)

        with self.assertRaises(NativeCodecFailure):
            crashing.decode(data)

        image = JpegDecoder().decode(data)
        self.assertEqual(image.dimensions, (8, 8))
        self.assertEqual(image.colorspace, ColorSpace.RGB)

    def test_corrupt_stream_is_reported_not_raised_raw(self) -> None:
        data = _jpeg_bytes()
        corrupt = data[:4] + b"\x00" * 40

        with self.assertRaises(NativeCodecFailure):
            JpegDecoder().decode(corrupt)


if __name__ == "__main__":
    unittest.main()
