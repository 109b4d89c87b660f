import logging
import os
import sys
from typing import List, Optional

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from imagepress.arguments import build_parser, encoder_options, input_files, resolve_config
from imagepress.encoding import configure_encoder
from imagepress.errors import ConfigError, ImagePressError
from imagepress.pipeline import CompressionPipeline, output_path

logger = logging.getLogger("imagepress")


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if verbosity < 3:
        logging.getLogger("PIL").setLevel(logging.WARNING)


def _write_output(path: str, data: bytes) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "wb") as handle:
        handle.write(data)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        configure_encoder(args.encoder, encoder_options(args))
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    failed = 0
    for path in input_files(args):
        config = resolve_config(args, path)
        try:
            outputs = CompressionPipeline(config)()
            destination = output_path(config, outputs.extension)
            _write_output(destination, outputs.data)
        except (ImagePressError, OSError) as exc:
            failed += 1
            logger.error("%s: %s", path, exc)
            continue
        print(f"{path} -> {destination}")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
