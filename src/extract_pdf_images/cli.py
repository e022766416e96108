from __future__ import annotations

import argparse
import logging
import sys

from .artifacts import serialize_extraction_results
from .contracts import ChannelPolicy, ExtractEngineName, ExtractImagesConfig
from .errors import ExtractImagesError
from .module import extract_images

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="extract-pdf-images",
        description="Write every raster image painted in a PDF as PNG; print the per-page manifest as JSON.",
    )
    p.add_argument("--pdf", required=True, help="Source PDF path (must end with .pdf).")
    p.add_argument(
        "--out-dir",
        required=True,
        help="Existing destination directory (\".\" is not accepted).",
    )
    p.add_argument(
        "--engine",
        choices=[e.value for e in ExtractEngineName],
        default=ExtractEngineName.PYPDF.value,
        help="PDF parsing backend.",
    )
    p.add_argument("--png-quality", type=int, default=50, help="PNG quality 0..100 (below 100 => palette PNG).")
    p.add_argument(
        "--channel-policy",
        choices=[c.value for c in ChannelPolicy],
        default=ChannelPolicy.LEGACY_RGB.value,
        help="Channel count declared to the encoder: always 3 (legacy-rgb) or the detected one.",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (logs go to stderr).",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        config = ExtractImagesConfig(
            engine=ExtractEngineName(args.engine),
            png_quality=args.png_quality,
            channel_policy=ChannelPolicy(args.channel_policy),
        )
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    try:
        results = extract_images(args.pdf, args.out_dir, config=config)
    except ExtractImagesError as e:
        logger.error("%s", e, exc_info=e.__cause__ is not None)
        return 2

    sys.stdout.write(serialize_extraction_results(results))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
