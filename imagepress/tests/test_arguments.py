import contextlib
import io
import unittest

from imagepress.arguments import build_parser, encoder_options, input_files, resolve_config
from imagepress.operations import Quantize, Resize, ResizeValue, build_pipeline


class ArgumentParsingTest(unittest.TestCase):
    def setUp(self) -> None:
        self.parser = build_parser()

    def _parse_error(self, argv) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                self.parser.parse_args(argv)

    def test_slot_indices_are_shared_across_kinds(self) -> None:
        args = self.parser.parse_args(
            ["--resize", "50%", "--quantization", "16", "--resize", "10w", "png", "a.png"]
        )

        self.assertEqual([o.index for o in args.resize], [0, 2])
        self.assertEqual([o.index for o in args.quantization], [1])
        self.assertEqual(args.resize[0].value, ResizeValue.parse("50%"))
        self.assertEqual(args.quantization[0].value, 16)

    def test_indices_drive_pipeline_order(self) -> None:
        args = self.parser.parse_args(
            ["--quantization", "8", "--resize", "100x50", "--quantization", "4", "png", "a.png"]
        )

        operations = build_pipeline(resolve_config(args, "a.png"), (400, 200))

        self.assertEqual(list(operations), [0, 1, 2])
        self.assertEqual(
            list(operations.values()), [Quantize(8), Resize(100, 50), Quantize(4)]
        )

    def test_resolve_config(self) -> None:
        args = self.parser.parse_args(
            [
                "--resize",
                "@2",
                "--filter",
                "bilinear",
                "--dithering",
                "40",
                "--outdir",
                "out",
                "--suffix",
                "_min",
                "libjpeg",
                "-q",
                "80",
                "--chroma-quality",
                "60",
                "--qtable",
                "NRobidoux",
                "--baseline",
                "a.jpg",
                "b.jpg",
            ]
        )

        config = resolve_config(args, "b.jpg")

        self.assertEqual(input_files(args), ["a.jpg", "b.jpg"])
        self.assertEqual(config.input_path, "b.jpg")
        self.assertEqual(config.resize_filter, "bilinear")
        self.assertEqual(config.dithering, 40)
        self.assertEqual(config.output_dir, "out")
        self.assertEqual(config.suffix, "_min")
        self.assertEqual(config.occurrences("quantization"), [])
        self.assertEqual(config.encoder.name, "libjpeg")
        self.assertEqual(config.encoder.options["quality"], 80)
        self.assertEqual(config.encoder.options["chroma_quality"], 60)
        self.assertEqual(config.encoder.options["qtable"], "NRobidoux")
        self.assertTrue(config.encoder.options["baseline"])
        self.assertFalse(config.encoder.options["multipass"])

    def test_no_encoder(self) -> None:
        args = self.parser.parse_args(["--resize", "10w"])

        self.assertIsNone(args.encoder)
        self.assertEqual(encoder_options(args), {})
        self.assertEqual(input_files(args), [])
        self.assertIsNone(resolve_config(args, "a.png").encoder)

    def test_rejected_values(self) -> None:
        self._parse_error(["--resize", "big", "png", "a.png"])
        self._parse_error(["--quantization", "1", "png", "a.png"])
        self._parse_error(["--dithering", "101", "png", "a.png"])
        self._parse_error(["libjpeg", "a.jpg"])
        self._parse_error(["libjpeg", "-q", "80", "--qtable", "Custom", "a.jpg"])
        self._parse_error(["png"])


if __name__ == "__main__":
    unittest.main()
