"""
Command line entry point.

    imageprep raw/ prepared/ --resize 50% --rotate 90 --flip horizontal
"""

import argparse
import logging
import signal
import sys
from typing import Callable, List, Optional

from .config import FLIP_CHOICES, OUTPUT_FORMATS, PipelineConfig, TransformConfig
from .config import parse_flip, parse_resize, parse_rotation
from .preprocessing import BatchPipeline

logger = logging.getLogger(__name__)

EXIT_SETUP_ERROR = 1
EXIT_CANCELLED = 130


def _checked(parse: Callable):
    """Turn a parse helper's ValueError into an argparse usage error."""
    def wrapper(value):
        try:
            return parse(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(str(e)) from None
    wrapper.__name__ = parse.__name__
    return wrapper


def _quality(value: str) -> int:
    quality = int(value)
    if not 1 <= quality <= 100:
        raise ValueError(f"quality must be between 1 and 100, got {quality}")
    return quality


def _workers(value: str) -> int:
    workers = int(value)
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    return workers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imageprep",
        description="Recursively transform images and build a labeled training manifest",
    )
    parser.add_argument("input_dir", help="Directory containing images, one subfolder per label")
    parser.add_argument("output_dir", help="Directory for transformed images and the manifest")
    parser.add_argument("--manifest", default=None,
                        help="Previous manifest used to keep class indices stable")
    parser.add_argument("--resize", type=_checked(parse_resize), default=None,
                        help="WIDTHxHEIGHT, N%%, Nw or Nh (e.g. 800x600, 50%%, 400w)")
    parser.add_argument("--rotate", type=_checked(parse_rotation), default=None,
                        help="Rotation angle: 90, 180 or 270")
    parser.add_argument("--flip", choices=FLIP_CHOICES, default="none",
                        help="Flip direction")
    parser.add_argument("--preserve-filenames", action=argparse.BooleanOptionalAction, default=True,
                        help="Keep input file names (otherwise use sequential numbers)")
    parser.add_argument("--preserve-formats", action="store_true",
                        help="Keep each input's format instead of converting")
    parser.add_argument("--format", dest="output_format", choices=OUTPUT_FORMATS, default="png",
                        help="Output format when formats are not preserved")
    parser.add_argument("--quality", type=_checked(_quality), default=95,
                        help="Encode quality for lossy formats (1-100)")
    parser.add_argument("--workers", type=_checked(_workers), default=None,
                        help="Worker threads (default: CPU count)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    flip_horizontal, flip_vertical = parse_flip(args.flip)
    transform_kwargs = dict(flip_horizontal=flip_horizontal, flip_vertical=flip_vertical)
    if args.resize is not None:
        transform_kwargs["resize"] = args.resize
    return PipelineConfig(
        input_dir=args.input_dir,
        output_dir=args.output_dir,
        transform=TransformConfig(rotation=args.rotate, **transform_kwargs),
        prior_manifest=args.manifest,
        preserve_filenames=args.preserve_filenames,
        preserve_formats=args.preserve_formats,
        output_format=args.output_format,
        quality=args.quality,
        num_workers=args.workers,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    pipeline = BatchPipeline(config_from_args(args))
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: pipeline.cancel())
    try:
        result = pipeline.run()
    except (OSError, ValueError) as e:
        logger.error(f"Setup failed: {e}")
        return EXIT_SETUP_ERROR
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print(result.summary())
    for failure in result.failures:
        print(f"  {failure.stage} failed: {failure.path}: {failure.error}")
    if result.processed == 0:
        print("Warning: no images were processed")
    return EXIT_CANCELLED if result.cancelled else 0


if __name__ == "__main__":
    sys.exit(main())
