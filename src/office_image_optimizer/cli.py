"""Command line interface."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from toml import TomlDecodeError

from .common import ConfigLoader, setup_logging
from .config import AppConfig, OptimizerConfig
from .pipeline import DocumentOptimizer, default_output_path

# Application name derived from package name
_package = __package__ or "office_image_optimizer"
APP_NAME = _package.replace('_', '-')

DESCRIPTION = (
    "Reduce the file size of images contained within a Libre- or Open-Office file.\n"
    "Images wider or taller than the maximum size are scaled down, keeping their\n"
    "aspect ratio; everything else in the document is copied unchanged."
)

EPILOG = (
    "examples:\n"
    f"  {APP_NAME} myOOFile.odp\n"
    f"  {APP_NAME} myOOFile.odp myOOFile_small.odp\n"
    f"  {APP_NAME} --max-size 1024 myOOFile.odt"
)


def positive_int(value: str) -> int:
    """argparse type for strictly positive integers."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "in_file",
        nargs="?",
        type=Path,
        help="Document to optimize"
    )
    parser.add_argument(
        "out_file",
        nargs="?",
        type=Path,
        help="Where to write the result (default: <in-file-stem>_optimized.<ext>)"
    )
    parser.add_argument(
        "-s", "--max-size",
        type=positive_int,
        dest="max_size",
        metavar="PIXELS",
        help="Maximum image width and height (overrides config, default: 800)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (TOML)"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)"
    )
    return parser


def apply_overrides(config: AppConfig, max_size: Optional[int] = None, log_level: Optional[str] = None) -> AppConfig:
    """Return ``config`` with command line values applied."""
    optimizer = config.optimizer
    if max_size is not None:
        optimizer = OptimizerConfig(**{**optimizer.model_dump(), "max_dimension": max_size})

    logging_config = config.logging
    if log_level is not None:
        logging_config = logging_config.model_copy(update={"level": log_level})

    return AppConfig(logging=logging_config, optimizer=optimizer)


def optimize_command(config: AppConfig, in_file: Path, out_file: Optional[Path] = None) -> int:
    """Optimize one document.

    Returns:
        Exit code (0 for success)
    """
    logger = logging.getLogger(_package)

    out_file = out_file or default_output_path(in_file)

    try:
        result = DocumentOptimizer(config.optimizer, logger).optimize_file(in_file, out_file)
    except Exception as e:
        # Phase failures are logged with their traceback by the pipeline
        logger.error(f"Optimization of {in_file} failed: {e}")
        return 1

    saved = result.optimization.bytes_saved
    logger.info(
        f"Done: {result.optimization.resized} of {result.optimization.examined} image(s) "
        f"resized, {saved} bytes saved"
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.in_file is None:
        parser.print_help()
        return 0

    loader = ConfigLoader(app_name=APP_NAME, config_class=AppConfig)
    try:
        config = loader.load(defaults_path=args.config)
    except (OSError, TomlDecodeError, ValidationError) as e:
        print(f"{APP_NAME}: error: invalid configuration: {e}", file=sys.stderr)
        return 1

    config = apply_overrides(config, max_size=args.max_size, log_level=args.log_level)

    setup_logging(config.logging)

    return optimize_command(config, args.in_file, args.out_file)


if __name__ == "__main__":
    sys.exit(main())
